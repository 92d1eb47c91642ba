"""Tests for Kivy and manual event sources."""

from __future__ import annotations

from typing import List

import pytest
from kivy.event import EventDispatcher

from clickgate.sources import KivyEventSource, ManualEventSource, as_event_source


class _FakeButton(EventDispatcher):
    __events__ = ("on_press", "on_release")

    def on_press(self, *_args) -> None:
        pass

    def on_release(self, *_args) -> None:
        pass

    def click(self) -> None:
        self.dispatch("on_press")
        self.dispatch("on_release")


class _RecordingObserver:
    def __init__(self) -> None:
        self.events: List[str] = []
        self.errors: List[BaseException] = []

    def on_next(self) -> None:
        self.events.append("next")

    def on_error(self, exc: BaseException) -> None:
        self.errors.append(exc)

    def on_completed(self) -> None:
        self.events.append("completed")


def test_kivy_source_forwards_release_until_disposed() -> None:
    button = _FakeButton()
    observer = _RecordingObserver()
    binding = KivyEventSource(button).subscribe(observer)

    button.click()
    button.click()
    binding.dispose()
    binding.dispose()
    button.click()

    assert observer.events == ["next", "next"]


def test_kivy_source_respects_event_name() -> None:
    button = _FakeButton()
    observer = _RecordingObserver()
    KivyEventSource(button, "on_press").subscribe(observer)
    button.dispatch("on_press")
    assert observer.events == ["next"]


def test_kivy_source_rejects_unknown_event_and_non_dispatchers() -> None:
    with pytest.raises(ValueError):
        KivyEventSource(_FakeButton(), "on_double_tap").subscribe(_RecordingObserver())
    with pytest.raises(TypeError):
        KivyEventSource(object())  # type: ignore[arg-type]


def test_manual_source_fail_keeps_stream_alive_and_complete_ends_it() -> None:
    source = ManualEventSource()
    observer = _RecordingObserver()
    source.subscribe(observer)

    source.emit()
    error = RuntimeError("sensor glitch")
    source.fail(error)
    source.emit()
    source.complete()
    source.emit()
    source.complete()

    assert observer.events == ["next", "next", "completed"]
    assert observer.errors == [error]
    assert source.terminated
    assert source.observer_count == 0


def test_manual_source_subscribe_after_complete_completes_immediately() -> None:
    source = ManualEventSource()
    source.complete()
    observer = _RecordingObserver()
    source.subscribe(observer).dispose()
    assert observer.events == ["completed"]


def test_manual_source_fail_requires_exception() -> None:
    with pytest.raises(TypeError):
        ManualEventSource().fail("nope")  # type: ignore[arg-type]


def test_as_event_source_wraps_dispatchers_and_passes_sources_through() -> None:
    manual = ManualEventSource()
    assert as_event_source(manual) is manual
    wrapped = as_event_source(_FakeButton(), "on_press")
    assert isinstance(wrapped, KivyEventSource)
    assert wrapped.event == "on_press"
    with pytest.raises(TypeError):
        as_event_source(42)

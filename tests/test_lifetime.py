"""Tests for cancellation tokens."""

from __future__ import annotations

import asyncio
import threading
from typing import List

import pytest

from clickgate.lifetime import EMPTY, Lifetime


def test_cancel_runs_callbacks_once_in_order() -> None:
    lifetime = Lifetime("ui")
    calls: List[str] = []
    lifetime.register(lambda: calls.append("first"))
    lifetime.register(lambda: calls.append("second"))

    lifetime.cancel()
    lifetime.cancel()

    assert lifetime.cancelled
    assert calls == ["first", "second"]


def test_register_after_cancel_runs_immediately() -> None:
    lifetime = Lifetime()
    lifetime.cancel()
    calls: List[int] = []
    registration = lifetime.register(lambda: calls.append(1))
    assert calls == [1]
    registration.dispose()


def test_disposed_registration_is_skipped() -> None:
    lifetime = Lifetime()
    calls: List[int] = []
    registration = lifetime.register(lambda: calls.append(1))
    registration.dispose()
    registration.dispose()
    lifetime.cancel()
    assert calls == []


def test_failing_callback_does_not_stop_others(caplog: pytest.LogCaptureFixture) -> None:
    lifetime = Lifetime("widget")
    calls: List[int] = []

    def _broken() -> None:
        raise RuntimeError("boom")

    lifetime.register(_broken)
    lifetime.register(lambda: calls.append(1))
    with caplog.at_level("ERROR"):
        lifetime.cancel()
    assert calls == [1]
    assert any("callback failed" in record.getMessage() for record in caplog.records)


def test_child_follows_parent_until_detached() -> None:
    parent = Lifetime("parent")
    attached = parent.child()
    detached = parent.child()
    detached.detach()

    parent.cancel()

    assert attached.cancelled
    assert not detached.cancelled


def test_child_of_cancelled_parent_is_cancelled() -> None:
    parent = Lifetime()
    parent.cancel()
    assert parent.child().cancelled


def test_cancelling_child_leaves_parent_alive() -> None:
    parent = Lifetime()
    child = parent.child()
    child.cancel()
    assert child.cancelled
    assert not parent.cancelled


def test_raise_if_cancelled_uses_asyncio_cancellation() -> None:
    lifetime = Lifetime()
    lifetime.raise_if_cancelled()
    lifetime.cancel()
    with pytest.raises(asyncio.CancelledError):
        lifetime.raise_if_cancelled()


def test_wait_wakes_when_cancelled_from_another_thread() -> None:
    lifetime = Lifetime()

    async def _main() -> None:
        timer = threading.Timer(0.01, lifetime.cancel)
        timer.start()
        await asyncio.wait_for(lifetime.wait(), timeout=2.0)

    asyncio.run(_main())
    assert lifetime.cancelled


def test_empty_disposable_is_a_no_op() -> None:
    EMPTY.dispose()
    EMPTY.dispose()
    assert repr(EMPTY) == "EMPTY"

"""Kivy demo application wiring buttons through :class:`ClickGate`."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import time
from typing import Any, List, Optional, Sequence, Tuple

os.environ.setdefault("KIVY_LOG_MODE", "PYTHON")
os.environ.setdefault("KIVY_NO_ARGS", "1")

from kivy.app import App
from kivy.uix.boxlayout import BoxLayout
from kivy.uix.button import Button
from kivy.uix.label import Label

from core.config import GateSettings, parse_cooldown_override
from core.logging import configure_logging

from clickgate.button import ClickGate
from clickgate.lifetime import Disposable, Lifetime

log = logging.getLogger(__name__)

SLOW_HANDLER_S = 1.0
BUTTON_LABELS: Sequence[str] = (
    "plain",
    "with index",
    "with index and time",
    "await plain",
    "await with index",
    "await with index and time",
)


def build_gate(argv: Optional[Sequence[str]] = None) -> ClickGate:
    settings = GateSettings.from_env()
    override = parse_cooldown_override(sys.argv[1:] if argv is None else argv)
    if override is not None:
        settings = GateSettings(
            cooldown_s=override,
            resume_on_source_error=settings.resume_on_source_error,
            event=settings.event,
        )
    return ClickGate.from_settings(settings)


def _on_click() -> None:
    log.info("Clicked")


def _on_click_index(index: int) -> None:
    log.info("Clicked %d", index)


def _on_click_stamped(param: Tuple[int, float]) -> None:
    index, stamp = param
    log.info("Clicked %d (subscribed at %.3f)", index, stamp)


async def _on_click_async(token: Lifetime) -> None:
    await asyncio.sleep(SLOW_HANDLER_S)
    token.raise_if_cancelled()
    log.info("Clicked")


async def _on_click_index_async(index: int, token: Lifetime) -> None:
    await asyncio.sleep(SLOW_HANDLER_S)
    token.raise_if_cancelled()
    log.info("Clicked %d", index)


async def _on_click_stamped_async(param: Tuple[int, float], token: Lifetime) -> None:
    await asyncio.sleep(SLOW_HANDLER_S)
    token.raise_if_cancelled()
    index, stamp = param
    log.info("Clicked %d (subscribed at %.3f)", index, stamp)


class ClickGateDemoApp(App):
    """One row per handler shape; the label mirrors the subscription's gate."""

    def __init__(self, gate: Optional[ClickGate] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.gate = gate or build_gate()
        self.lifetime = Lifetime("demo-app")
        self._subscriptions: List[Disposable] = []

    def build(self) -> BoxLayout:
        root = BoxLayout(orientation="vertical", padding=12, spacing=8)
        for index, text in enumerate(BUTTON_LABELS):
            row = BoxLayout(orientation="horizontal", spacing=8)
            button = Button(text=text)
            status = Label(text="idle", size_hint_x=0.3)
            row.add_widget(button)
            row.add_widget(status)
            root.add_widget(row)
            subscription = self._subscribe(index, button)
            self._subscriptions.append(subscription)
            gate_view = getattr(subscription, "gate", None)
            if gate_view is not None:
                gate_view.observe(
                    lambda idle, label=status: setattr(label, "text", "idle" if idle else "busy")
                )
        return root

    def _subscribe(self, index: int, button: Button) -> Disposable:
        stamp = (index, time.monotonic())
        gate, lifetime = self.gate, self.lifetime
        if index == 0:
            return gate.subscribe(button, _on_click, lifetime)
        if index == 1:
            return gate.subscribe_with(button, index, _on_click_index, lifetime)
        if index == 2:
            return gate.subscribe_with(button, stamp, _on_click_stamped, lifetime)
        if index == 3:
            return gate.subscribe_await(button, _on_click_async, lifetime)
        if index == 4:
            return gate.subscribe_await_with(button, index, _on_click_index_async, lifetime)
        return gate.subscribe_await_with(button, stamp, _on_click_stamped_async, lifetime)

    def on_stop(self) -> None:  # pragma: no cover - framework callback
        self.lifetime.cancel()
        self._subscriptions.clear()
        super().on_stop()


def main() -> None:
    """Run the demo on the asyncio loop so awaiting handlers share it."""

    configure_logging()
    app = ClickGateDemoApp()
    asyncio.run(app.async_run(async_lib="asyncio"))


if __name__ == "__main__":  # pragma: no cover - manual execution
    main()

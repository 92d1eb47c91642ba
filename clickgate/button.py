"""Click gating for buttons: throttled, single-flight handler dispatch."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from core.clock import ClockFn, now_mono
from core.config import DEFAULT_EVENT, DurationLike, GateSettings, coerce_cooldown

from clickgate.diagnostics import Diagnostics
from clickgate.handlers import Handler
from clickgate.lifetime import EMPTY, Disposable, Lifetime
from clickgate.sources import as_event_source
from clickgate.subscription import GateSubscription

__all__ = ["ClickGate"]

T = TypeVar("T")


class ClickGate:
    """Wrap a button's click stream so handlers never overlap or get spammed.

    Each ``subscribe*`` call returns its own :class:`GateSubscription` with a
    fresh gate and throttle window.  Passing ``None`` as source or handler is
    reported through the logger and yields :data:`~clickgate.lifetime.EMPTY`.

    Args:
        cooldown_s: Minimum spacing between admitted clicks, in seconds or as a
            :class:`~datetime.timedelta`. ``0`` disables throttling.
        resume_on_source_error: When true, an error reported by the source
            ends the subscription as a failure instead of being logged and
            skipped.
        event: Kivy event treated as a click when a widget is passed.
        clock: Monotonic clock used for throttling.
        loop: Loop running awaiting handlers; defaults to the loop running at
            subscribe time, then the loop running when a click is admitted.
        logger: Destination for diagnostics.
    """

    def __init__(
        self,
        cooldown_s: DurationLike = 0.3,
        resume_on_source_error: bool = False,
        *,
        event: str = DEFAULT_EVENT,
        clock: ClockFn = now_mono,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._settings = GateSettings(
            cooldown_s=coerce_cooldown(cooldown_s),
            resume_on_source_error=bool(resume_on_source_error),
            event=event,
        )
        self._clock = clock
        self._loop = loop
        self._diagnostics = Diagnostics(logger)

    @classmethod
    def from_settings(cls, settings: GateSettings, **kwargs: Any) -> "ClickGate":
        return cls(
            settings.cooldown_s,
            settings.resume_on_source_error,
            event=settings.event,
            **kwargs,
        )

    def __repr__(self) -> str:
        return (
            f"ClickGate(cooldown_s={self.cooldown_s}, "
            f"resume_on_source_error={self.resume_on_source_error})"
        )

    @property
    def settings(self) -> GateSettings:
        return self._settings

    @property
    def cooldown_s(self) -> float:
        return self._settings.cooldown_s

    @property
    def resume_on_source_error(self) -> bool:
        return self._settings.resume_on_source_error

    # ------------------------------------------------------------------
    def subscribe(
        self,
        source: Any,
        on_click: Callable[[], None],
        lifetime: Optional[Lifetime] = None,
    ) -> Disposable:
        if not self._validate(source, on_click, "on_click"):
            return EMPTY
        return self._connect(source, Handler.sync(on_click), lifetime)

    def subscribe_with(
        self,
        source: Any,
        state: T,
        on_click: Callable[[T], None],
        lifetime: Optional[Lifetime] = None,
    ) -> Disposable:
        if not self._validate(source, on_click, "on_click"):
            return EMPTY
        return self._connect(source, Handler.sync_with(state, on_click), lifetime)

    def subscribe_await(
        self,
        source: Any,
        on_click: Callable[[Lifetime], Awaitable[None]],
        lifetime: Optional[Lifetime] = None,
    ) -> Disposable:
        if not self._validate(source, on_click, "on_click_async"):
            return EMPTY
        return self._connect(source, Handler.awaiting(on_click), lifetime)

    def subscribe_await_with(
        self,
        source: Any,
        state: T,
        on_click: Callable[[T, Lifetime], Awaitable[None]],
        lifetime: Optional[Lifetime] = None,
    ) -> Disposable:
        if not self._validate(source, on_click, "on_click_async"):
            return EMPTY
        return self._connect(source, Handler.awaiting_with(state, on_click), lifetime)

    # ------------------------------------------------------------------
    def _validate(self, source: Any, handler: Any, label: str) -> bool:
        if source is None:
            self._diagnostics.error("Click source is None. Cannot subscribe.")
            return False
        if handler is None:
            self._diagnostics.error("%s handler is None. Cannot subscribe.", label)
            return False
        if not callable(handler):
            self._diagnostics.error(
                "%s handler %r is not callable. Cannot subscribe.", label, handler
            )
            return False
        return True

    def _connect(
        self,
        source: Any,
        handler: Handler,
        lifetime: Optional[Lifetime],
    ) -> Disposable:
        try:
            event_source = as_event_source(source, self._settings.event)
        except (TypeError, ValueError) as exc:
            self._diagnostics.error("Cannot subscribe to %r: %s", source, exc)
            return EMPTY
        subscription = GateSubscription(
            handler,
            cooldown_s=self._settings.cooldown_s,
            resume_on_source_error=self._settings.resume_on_source_error,
            clock=self._clock,
            diagnostics=self._diagnostics,
            loop=self._loop,
        )
        try:
            return subscription.connect(event_source, lifetime)
        except (TypeError, ValueError) as exc:
            subscription.dispose()
            self._diagnostics.error("Cannot subscribe to %r: %s", source, exc)
            return EMPTY

"""Throttled single-flight subscription binding a source to a handler."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from core.clock import ClockFn, now_mono

from clickgate.diagnostics import Diagnostics
from clickgate.gate import Gate, GateView
from clickgate.handlers import Handler
from clickgate.invocation import Outcome, make_invoker
from clickgate.lifetime import Disposable, Lifetime, Registration
from clickgate.sources import EventSource
from clickgate.throttle import ThrottleFirst

__all__ = ["GateSubscription", "SubscriptionStats"]

log = logging.getLogger(__name__)


@dataclass(slots=True)
class SubscriptionStats:
    """Counters describing what happened to the clicks a subscription saw."""

    received: int = 0
    throttled: int = 0
    busy: int = 0
    admitted: int = 0
    dropped: int = 0
    completed: int = 0
    canceled: int = 0
    failed: int = 0
    source_errors: int = 0


_OUTCOME_FIELDS = {
    Outcome.COMPLETED: "completed",
    Outcome.CANCELED: "canceled",
    Outcome.FAILED: "failed",
    Outcome.DROPPED: "dropped",
}


class GateSubscription:
    """Live link between one event source and one handler.

    Clicks pass the leading-edge throttle first and the gate second; an
    admitted click closes the gate until its handler finishes.  The object is
    the disposable handed back to callers and the observer handed to the
    source.
    """

    def __init__(
        self,
        handler: Handler,
        *,
        cooldown_s: float = 0.0,
        resume_on_source_error: bool = False,
        clock: ClockFn = now_mono,
        diagnostics: Optional[Diagnostics] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        name: Optional[str] = None,
    ) -> None:
        self.name = name or handler.name
        self._handler = handler
        self._resume_on_source_error = resume_on_source_error
        self._diagnostics = diagnostics or Diagnostics()
        self._lock = threading.Lock()
        self._gate = Gate(self.name)
        self._throttle = ThrottleFirst(cooldown_s, clock)
        self._lifetime = Lifetime(f"{self.name}.subscription")
        self._invoker = make_invoker(
            handler, self._diagnostics, self._record, self._lifetime, loop
        )
        self._stats = SubscriptionStats()
        self._last_outcome: Optional[Outcome] = None
        self._disposed = False
        self._completed = False
        self._failure: Optional[BaseException] = None
        self._upstream: Optional[Disposable] = None
        self._external: Optional[Registration] = None

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "live"
        return f"GateSubscription({self.name!r}, {state}, idle={self._gate.value})"

    # ------------------------------------------------------------------
    @property
    def gate(self) -> GateView:
        return self._gate.view

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def failure(self) -> Optional[BaseException]:
        return self._failure

    @property
    def last_outcome(self) -> Optional[Outcome]:
        return self._last_outcome

    @property
    def stats(self) -> SubscriptionStats:
        with self._lock:
            return dataclasses.replace(self._stats)

    # ------------------------------------------------------------------
    def connect(self, source: EventSource, lifetime: Optional[Lifetime] = None) -> "GateSubscription":
        """Start listening to *source* until disposed or *lifetime* is cancelled."""

        upstream: Optional[Disposable] = source.subscribe(self)
        with self._lock:
            if not self._disposed:
                self._upstream, upstream = upstream, None
        if upstream is not None:
            # the source terminated while we were subscribing
            upstream.dispose()

        if lifetime is not None:
            registration: Optional[Registration] = lifetime.register(self.dispose)
            with self._lock:
                if not self._disposed:
                    self._external, registration = registration, None
            if registration is not None:
                registration.dispose()
        return self

    def dispose(self) -> None:
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            upstream, self._upstream = self._upstream, None
            external, self._external = self._external, None
        if upstream is not None:
            upstream.dispose()
        self._lifetime.cancel()
        if external is not None:
            external.dispose()
        log.debug("Subscription %s disposed", self.name)

    # ------------------------------------------------------------------
    def on_next(self) -> None:
        if self._disposed:
            return
        self._count("received")
        if not self._throttle.allow():
            self._count("throttled")
            return
        claim = self._gate.try_claim()
        if claim is None:
            self._count("busy")
            self._diagnostics.debug("Click ignored; %s is busy", self.name)
            return
        if self._disposed:
            claim.release()
            return
        self._count("admitted")
        self._invoker.start(claim)

    def on_error(self, exc: BaseException) -> None:
        if self._disposed:
            return
        self._count("source_errors")
        if not self._resume_on_source_error:
            self._diagnostics.exception(exc, "Unhandled error from click source of %s", self.name)
            return
        with self._lock:
            self._failure = exc
        self._diagnostics.exception(
            exc, "Click source of %s failed; subscription completed with failure", self.name
        )
        self._finish()

    def on_completed(self) -> None:
        if self._disposed:
            return
        self._finish()

    # ------------------------------------------------------------------
    def _finish(self) -> None:
        with self._lock:
            self._completed = True
        self.dispose()

    def _count(self, field: str) -> None:
        with self._lock:
            setattr(self._stats, field, getattr(self._stats, field) + 1)

    def _record(self, outcome: Outcome) -> None:
        with self._lock:
            self._last_outcome = outcome
            field = _OUTCOME_FIELDS[outcome]
            setattr(self._stats, field, getattr(self._stats, field) + 1)

"""Synchronous and awaiting execution of admitted clicks."""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
import threading
from contextlib import contextmanager
from functools import partial
from typing import Callable, Iterator, Optional, Union

from clickgate.diagnostics import Diagnostics
from clickgate.gate import GateClaim
from clickgate.handlers import ExecutionMode, Handler
from clickgate.lifetime import Lifetime, Registration

__all__ = ["AsyncInvoker", "Invoker", "Outcome", "SyncInvoker", "make_invoker"]

log = logging.getLogger(__name__)

CANCELED_MESSAGE = "Click handler %s was canceled before completion."


class Outcome(enum.Enum):
    COMPLETED = "completed"
    CANCELED = "canceled"
    FAILED = "failed"
    DROPPED = "dropped"


OutcomeCallback = Callable[[Outcome], None]


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class SyncInvoker:
    """Run the handler inline while the claim keeps the gate closed."""

    def __init__(
        self,
        handler: Handler,
        diagnostics: Diagnostics,
        on_outcome: OutcomeCallback,
    ) -> None:
        self._handler = handler
        self._diagnostics = diagnostics
        self._on_outcome = on_outcome

    def start(self, claim: GateClaim) -> None:
        with claim:
            outcome = self._invoke()
        self._on_outcome(outcome)

    def _invoke(self) -> Outcome:
        try:
            result = self._handler.call()
        except Exception as exc:
            self._diagnostics.exception(exc, "Click handler %s failed", self._handler.name)
            return Outcome.FAILED
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            self._diagnostics.error(
                "Click handler %s returned an awaitable; subscribe it with subscribe_await",
                self._handler.name,
            )
            return Outcome.FAILED
        return Outcome.COMPLETED


class AsyncInvoker:
    """Schedule the handler on an asyncio loop, dropping clicks while busy.

    The gate already rejects clicks while a handler runs; the in-flight marker
    kept here additionally drops a click whose claim was won while the previous
    task had not yet been torn down.
    """

    def __init__(
        self,
        handler: Handler,
        diagnostics: Diagnostics,
        on_outcome: OutcomeCallback,
        lifetime: Lifetime,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self._handler = handler
        self._diagnostics = diagnostics
        self._on_outcome = on_outcome
        self._lifetime = lifetime
        self._loop = loop or _running_loop()
        self._lock = threading.Lock()
        self._current: Optional[Lifetime] = None

    @property
    def busy(self) -> bool:
        return self._current is not None

    def start(self, claim: GateClaim) -> None:
        token = self._lifetime.child(f"{self._handler.name}.invocation")
        with self._lock:
            busy = self._current is not None
            if not busy:
                self._current = token
        if busy:
            token.detach()
            claim.release()
            self._diagnostics.debug("Click dropped; %s is still running", self._handler.name)
            self._on_outcome(Outcome.DROPPED)
            return

        loop = self._resolve_loop()
        if loop is None:
            self._diagnostics.error(
                "No running asyncio event loop; click handler %s skipped", self._handler.name
            )
            self._settle(claim, token, Outcome.FAILED)
            return

        if _running_loop() is loop:
            self._spawn(loop, claim, token)
            return
        try:
            loop.call_soon_threadsafe(self._spawn, loop, claim, token)
        except RuntimeError as exc:
            self._diagnostics.exception(
                exc, "Unable to schedule click handler %s", self._handler.name
            )
            self._settle(claim, token, Outcome.FAILED)

    # ------------------------------------------------------------------
    def _resolve_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        loop = self._loop
        if loop is not None and not loop.is_closed():
            return loop
        return _running_loop()

    def _spawn(self, loop: asyncio.AbstractEventLoop, claim: GateClaim, token: Lifetime) -> None:
        if token.cancelled:
            self._diagnostics.warning(CANCELED_MESSAGE, self._handler.name)
            self._settle(claim, token, Outcome.CANCELED)
            return
        task = loop.create_task(self._run(claim, token))
        registration = token.register(partial(_cancel_task, loop, task))
        task.add_done_callback(partial(self._on_done, claim, token, registration))

    async def _run(self, claim: GateClaim, token: Lifetime) -> Outcome:
        with self._holding(claim, token):
            try:
                await self._handler.call_async(token)
            except asyncio.CancelledError:
                self._diagnostics.warning(CANCELED_MESSAGE, self._handler.name)
                return Outcome.CANCELED
            except Exception as exc:
                self._diagnostics.exception(exc, "Click handler %s failed", self._handler.name)
                return Outcome.FAILED
        return Outcome.COMPLETED

    def _on_done(
        self,
        claim: GateClaim,
        token: Lifetime,
        registration: Registration,
        task: asyncio.Task,
    ) -> None:
        registration.dispose()
        if task.cancelled():
            # cancelled before the coroutine got to run
            self._diagnostics.warning(CANCELED_MESSAGE, self._handler.name)
            outcome = Outcome.CANCELED
        elif task.exception() is not None:
            outcome = Outcome.FAILED
        else:
            outcome = task.result()
        self._settle(claim, token, outcome)

    @contextmanager
    def _holding(self, claim: GateClaim, token: Lifetime) -> Iterator[None]:
        try:
            yield
        finally:
            self._release(claim, token)

    def _release(self, claim: GateClaim, token: Lifetime) -> None:
        token.detach()
        with self._lock:
            if self._current is token:
                self._current = None
        claim.release()

    def _settle(self, claim: GateClaim, token: Lifetime, outcome: Outcome) -> None:
        self._release(claim, token)
        self._on_outcome(outcome)


def _cancel_task(loop: asyncio.AbstractEventLoop, task: asyncio.Task) -> None:
    if task.done():
        return
    if _running_loop() is loop:
        task.cancel()
        return
    if loop.is_closed():
        log.debug("Loop closed before %r could be cancelled", task)
        return
    loop.call_soon_threadsafe(task.cancel)


Invoker = Union[SyncInvoker, AsyncInvoker]


def make_invoker(
    handler: Handler,
    diagnostics: Diagnostics,
    on_outcome: OutcomeCallback,
    lifetime: Lifetime,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> Invoker:
    if handler.mode is ExecutionMode.SYNC:
        return SyncInvoker(handler, diagnostics, on_outcome)
    return AsyncInvoker(handler, diagnostics, on_outcome, lifetime, loop)

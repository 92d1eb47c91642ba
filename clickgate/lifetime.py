"""Cancellation tokens and disposables bounding a subscription's lifetime."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, List, Optional, Protocol

__all__ = ["Disposable", "EMPTY", "Lifetime", "Registration"]

log = logging.getLogger(__name__)


class Disposable(Protocol):
    """Anything that can release the resources it holds."""

    def dispose(self) -> None: ...


class _EmptyDisposable:
    """Disposable returned when nothing was subscribed."""

    __slots__ = ()

    def dispose(self) -> None:
        return None

    def __repr__(self) -> str:
        return "EMPTY"


EMPTY = _EmptyDisposable()


class Registration:
    """Handle removing a callback from a :class:`Lifetime`."""

    __slots__ = ("_owner", "_callback")

    def __init__(self, owner: Optional["Lifetime"], callback: Callable[[], None]) -> None:
        self._owner = owner
        self._callback = callback

    def dispose(self) -> None:
        owner, self._owner = self._owner, None
        if owner is not None:
            owner._unregister(self)

    def _invoke(self) -> None:
        self._owner = None
        self._callback()


class Lifetime:
    """Thread-safe cancellation token.

    Callbacks registered through :meth:`register` run exactly once, in
    registration order, when :meth:`cancel` is first called.  Registering on a
    token that is already cancelled runs the callback immediately.
    """

    def __init__(self, name: str = "lifetime") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._cancelled = False
        self._registrations: List[Registration] = []
        self._parent_link: Optional[Registration] = None

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "alive"
        return f"Lifetime({self.name!r}, {state})"

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    # ------------------------------------------------------------------
    def register(self, callback: Callable[[], None]) -> Registration:
        registration = Registration(self, callback)
        with self._lock:
            if not self._cancelled:
                self._registrations.append(registration)
                return registration
        self._run(registration)
        return registration

    def _unregister(self, registration: Registration) -> None:
        with self._lock:
            try:
                self._registrations.remove(registration)
            except ValueError:
                pass

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            pending, self._registrations = self._registrations, []
            link, self._parent_link = self._parent_link, None
        if link is not None:
            link.dispose()
        for registration in pending:
            self._run(registration)

    def _run(self, registration: Registration) -> None:
        try:
            registration._invoke()
        except Exception:
            log.exception("Lifetime %r callback failed", self.name)

    # ------------------------------------------------------------------
    def child(self, name: Optional[str] = None) -> "Lifetime":
        """Return a token that is cancelled together with this one."""

        derived = Lifetime(name or f"{self.name}.child")
        link = self.register(derived.cancel)
        with derived._lock:
            if not derived._cancelled:
                derived._parent_link = link
        return derived

    def detach(self) -> None:
        """Stop following the parent token without cancelling."""

        with self._lock:
            link, self._parent_link = self._parent_link, None
        if link is not None:
            link.dispose()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise asyncio.CancelledError(f"{self.name} was cancelled")

    async def wait(self) -> None:
        """Block the awaiting task until the token is cancelled."""

        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[None] = loop.create_future()

        def _wake() -> None:
            if not waiter.done():
                waiter.set_result(None)

        def _on_cancel() -> None:
            if loop.is_closed():
                return
            loop.call_soon_threadsafe(_wake)

        registration = self.register(_on_cancel)
        try:
            await waiter
        finally:
            registration.dispose()

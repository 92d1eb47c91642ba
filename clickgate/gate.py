"""Observable idle/busy flag guarding a single handler invocation."""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

__all__ = ["Gate", "GateClaim", "GateObserver", "GateView", "ObserverHandle"]

log = logging.getLogger(__name__)

GateObserver = Callable[[bool], None]


class ObserverHandle:
    """Disposable returned by :meth:`GateView.observe`."""

    __slots__ = ("_gate", "callback")

    def __init__(self, gate: "Gate", callback: GateObserver) -> None:
        self._gate: Optional[Gate] = gate
        self.callback = callback

    def dispose(self) -> None:
        gate, self._gate = self._gate, None
        if gate is not None:
            gate._remove_observer(self)


class Gate:
    """Boolean cell that is ``True`` while idle and ``False`` while busy.

    Only the owning subscription holds a :class:`Gate`; everybody else gets a
    :class:`GateView`.  Closing happens exclusively through :meth:`try_claim`,
    which checks and closes under one lock so two concurrent admissions can
    never both succeed.
    """

    def __init__(self, name: str = "gate") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._value = True
        self._observers: List[ObserverHandle] = []
        self._view = GateView(self)

    def __repr__(self) -> str:
        return f"Gate({self.name!r}, idle={self._value})"

    @property
    def value(self) -> bool:
        return self._value

    @property
    def view(self) -> "GateView":
        return self._view

    # ------------------------------------------------------------------
    def try_claim(self) -> Optional["GateClaim"]:
        """Close the gate and return the claim, or ``None`` when busy."""

        with self._lock:
            if not self._value:
                return None
            self._value = False
        self._notify(False)
        return GateClaim(self)

    def _open(self) -> None:
        with self._lock:
            if self._value:
                return
            self._value = True
        self._notify(True)

    # ------------------------------------------------------------------
    def _add_observer(self, callback: GateObserver) -> ObserverHandle:
        handle = ObserverHandle(self, callback)
        with self._lock:
            self._observers.append(handle)
        return handle

    def _remove_observer(self, handle: ObserverHandle) -> None:
        with self._lock:
            try:
                self._observers.remove(handle)
            except ValueError:
                pass

    def _notify(self, value: bool) -> None:
        with self._lock:
            observers = list(self._observers)
        for handle in observers:
            try:
                handle.callback(value)
            except Exception:
                log.exception("Gate %r observer failed", self.name)


class GateClaim:
    """Scope holding the gate closed; leaving it re-opens the gate once."""

    __slots__ = ("_gate", "_lock")

    def __init__(self, gate: Gate) -> None:
        self._gate: Optional[Gate] = gate
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._gate is None

    def release(self) -> None:
        with self._lock:
            gate, self._gate = self._gate, None
        if gate is not None:
            gate._open()

    def __enter__(self) -> "GateClaim":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.release()


class GateView:
    """Read-only face of a :class:`Gate`."""

    __slots__ = ("_gate",)

    def __init__(self, gate: Gate) -> None:
        self._gate = gate

    def __repr__(self) -> str:
        return f"GateView({self._gate.name!r}, idle={self._gate.value})"

    def __bool__(self) -> bool:
        return self._gate.value

    @property
    def value(self) -> bool:
        return self._gate.value

    def observe(self, callback: GateObserver) -> ObserverHandle:
        """Call *callback* with the new value on every transition."""

        return self._gate._add_observer(callback)

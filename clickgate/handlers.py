"""Handler shapes accepted by :class:`clickgate.button.ClickGate`."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from clickgate.lifetime import Lifetime

__all__ = ["ExecutionMode", "Handler", "NO_STATE"]


class ExecutionMode(enum.Enum):
    SYNC = "sync"
    ASYNC = "async"


class _NoState:
    __slots__ = ()

    def __repr__(self) -> str:
        return "NO_STATE"


NO_STATE: Any = _NoState()


@dataclass(frozen=True)
class Handler:
    """Callable plus the state captured once at subscribe time.

    The four constructors form the closed set of supported shapes; ``state``
    is :data:`NO_STATE` for the plain variants.
    """

    mode: ExecutionMode
    func: Callable[..., Any]
    state: Any = NO_STATE

    @classmethod
    def sync(cls, func: Callable[[], None]) -> "Handler":
        return cls(ExecutionMode.SYNC, func)

    @classmethod
    def sync_with(cls, state: Any, func: Callable[[Any], None]) -> "Handler":
        return cls(ExecutionMode.SYNC, func, state)

    @classmethod
    def awaiting(cls, func: Callable[[Lifetime], Awaitable[None]]) -> "Handler":
        return cls(ExecutionMode.ASYNC, func)

    @classmethod
    def awaiting_with(
        cls, state: Any, func: Callable[[Any, Lifetime], Awaitable[None]]
    ) -> "Handler":
        return cls(ExecutionMode.ASYNC, func, state)

    @property
    def has_state(self) -> bool:
        return self.state is not NO_STATE

    @property
    def name(self) -> str:
        return getattr(self.func, "__qualname__", None) or repr(self.func)

    def call(self) -> Any:
        if self.has_state:
            return self.func(self.state)
        return self.func()

    def call_async(self, token: Lifetime) -> Awaitable[None]:
        if self.has_state:
            return self.func(self.state, token)
        return self.func(token)

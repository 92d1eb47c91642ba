"""Event sources feeding click subscriptions."""

from __future__ import annotations

import threading
from typing import Any, List, Optional, Protocol

from kivy.event import EventDispatcher

from clickgate.lifetime import Disposable

__all__ = [
    "EventObserver",
    "EventSource",
    "KivyEventSource",
    "ManualEventSource",
    "as_event_source",
]


class EventObserver(Protocol):
    def on_next(self) -> None: ...

    def on_error(self, exc: BaseException) -> None: ...

    def on_completed(self) -> None: ...


class EventSource(Protocol):
    def subscribe(self, observer: EventObserver) -> Disposable: ...


class _KivyBinding:
    __slots__ = ("_dispatcher", "_event", "_uid", "_lock")

    def __init__(self, dispatcher: EventDispatcher, event: str, uid: int) -> None:
        self._dispatcher: Optional[EventDispatcher] = dispatcher
        self._event = event
        self._uid = uid
        self._lock = threading.Lock()

    def dispose(self) -> None:
        with self._lock:
            dispatcher, self._dispatcher = self._dispatcher, None
        if dispatcher is not None:
            dispatcher.unbind_uid(self._event, self._uid)


class KivyEventSource:
    """Adapt a Kivy :class:`EventDispatcher` event (``on_release`` by default)."""

    def __init__(self, dispatcher: EventDispatcher, event: str = "on_release") -> None:
        if not isinstance(dispatcher, EventDispatcher):
            raise TypeError(f"expected a Kivy EventDispatcher, got {type(dispatcher).__name__}")
        self.dispatcher = dispatcher
        self.event = event

    def __repr__(self) -> str:
        return f"KivyEventSource({type(self.dispatcher).__name__}, {self.event!r})"

    def subscribe(self, observer: EventObserver) -> Disposable:
        def _on_event(*_args: Any) -> None:
            observer.on_next()

        uid = self.dispatcher.fbind(self.event, _on_event)
        if not uid:
            raise ValueError(f"{type(self.dispatcher).__name__} has no event {self.event!r}")
        return _KivyBinding(self.dispatcher, self.event, uid)


class _ManualSubscription:
    __slots__ = ("_source", "observer")

    def __init__(self, source: "ManualEventSource", observer: EventObserver) -> None:
        self._source: Optional[ManualEventSource] = source
        self.observer = observer

    def dispose(self) -> None:
        source, self._source = self._source, None
        if source is not None:
            source._remove(self)


class ManualEventSource:
    """Programmatic trigger stream for non-UI callers, tools and tests.

    ``fail`` reports a fault without ending the stream; ``complete`` ends it
    and later calls are ignored.
    """

    def __init__(self, name: str = "manual") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._subscriptions: List[_ManualSubscription] = []
        self._terminated = False

    def __repr__(self) -> str:
        return f"ManualEventSource({self.name!r})"

    @property
    def terminated(self) -> bool:
        return self._terminated

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(self, observer: EventObserver) -> Disposable:
        subscription = _ManualSubscription(self, observer)
        with self._lock:
            terminated = self._terminated
            if not terminated:
                self._subscriptions.append(subscription)
        if terminated:
            observer.on_completed()
        return subscription

    def _remove(self, subscription: _ManualSubscription) -> None:
        with self._lock:
            try:
                self._subscriptions.remove(subscription)
            except ValueError:
                pass

    def _snapshot(self, terminate: bool = False) -> List[_ManualSubscription]:
        with self._lock:
            if self._terminated:
                return []
            snapshot = list(self._subscriptions)
            if terminate:
                self._terminated = True
                self._subscriptions.clear()
        return snapshot

    # ------------------------------------------------------------------
    def emit(self) -> None:
        for subscription in self._snapshot():
            subscription.observer.on_next()

    def fail(self, exc: BaseException) -> None:
        if not isinstance(exc, BaseException):
            raise TypeError("fail() expects an exception instance")
        for subscription in self._snapshot():
            subscription.observer.on_error(exc)

    def complete(self) -> None:
        for subscription in self._snapshot(terminate=True):
            subscription.observer.on_completed()


def as_event_source(source: Any, event: str = "on_release") -> EventSource:
    """Wrap Kivy dispatchers; pass anything with ``subscribe`` through."""

    if isinstance(source, EventDispatcher):
        return KivyEventSource(source, event)
    if callable(getattr(source, "subscribe", None)):
        return source
    raise TypeError(f"{type(source).__name__} is not an event source")

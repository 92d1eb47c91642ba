"""Throttled, single-flight click handling for Kivy buttons and other event sources."""

from .button import ClickGate
from .gate import GateView
from .handlers import ExecutionMode, Handler
from .invocation import Outcome
from .lifetime import EMPTY, Disposable, Lifetime
from .sources import EventSource, KivyEventSource, ManualEventSource
from .subscription import GateSubscription, SubscriptionStats

__all__ = [
    "ClickGate",
    "Disposable",
    "EMPTY",
    "EventSource",
    "ExecutionMode",
    "GateSubscription",
    "GateView",
    "Handler",
    "KivyEventSource",
    "Lifetime",
    "ManualEventSource",
    "Outcome",
    "SubscriptionStats",
]

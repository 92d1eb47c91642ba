"""Central configuration helpers for click gating."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional, Sequence, Union

__all__ = [
    "DEFAULT_COOLDOWN_S",
    "DEFAULT_EVENT",
    "DurationLike",
    "GateSettings",
    "coerce_cooldown",
    "parse_cooldown_override",
]

log = logging.getLogger(__name__)

DurationLike = Union[float, int, timedelta]

DEFAULT_COOLDOWN_S = 0.3
"""Default admission window for repeated clicks."""

DEFAULT_EVENT = "on_release"
"""Kivy event treated as a click."""

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _coerce_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    cleaned = value.strip().lower()
    if cleaned in _TRUE_VALUES:
        return True
    if cleaned in _FALSE_VALUES:
        return False
    return default


def _normalise_event(value: str | None, default: str) -> str:
    if not value:
        return default
    cleaned = value.strip()
    return cleaned or default


def coerce_cooldown(value: DurationLike) -> float:
    """Return *value* as non-negative seconds."""

    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    else:
        seconds = float(value)
    if seconds != seconds:
        raise ValueError("cooldown must be a number")
    return max(0.0, seconds)


@dataclass(frozen=True)
class GateSettings:
    """Immutable configuration shared by every subscription of a gate."""

    cooldown_s: float = DEFAULT_COOLDOWN_S
    resume_on_source_error: bool = False
    event: str = DEFAULT_EVENT

    def __post_init__(self) -> None:
        object.__setattr__(self, "cooldown_s", coerce_cooldown(self.cooldown_s))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GateSettings":
        env = os.environ if environ is None else environ
        return cls(
            cooldown_s=_coerce_float(env.get("CLICKGATE_COOLDOWN_S"), DEFAULT_COOLDOWN_S),
            resume_on_source_error=_coerce_bool(
                env.get("CLICKGATE_RESUME_ON_SOURCE_ERROR"), False
            ),
            event=_normalise_event(env.get("CLICKGATE_EVENT"), DEFAULT_EVENT),
        )


def parse_cooldown_override(
    argv: Sequence[str],
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[float]:
    """Return a cooldown from ``--cooldown=`` or ``CLICKGATE_COOLDOWN_S``.

    The command line wins over the environment; invalid values are logged and
    ignored.
    """

    for argument in argv:
        if argument.startswith("--cooldown="):
            _, value = argument.split("=", 1)
            try:
                return coerce_cooldown(float(value.strip()))
            except ValueError:
                log.warning("Invalid --cooldown value %r ignored.", argument)
                break

    env = os.environ if environ is None else environ
    env_value = env.get("CLICKGATE_COOLDOWN_S")
    if env_value is not None:
        try:
            return coerce_cooldown(float(env_value.strip()))
        except (ValueError, AttributeError):
            log.warning("Invalid CLICKGATE_COOLDOWN_S value %r ignored.", env_value)

    return None

"""Error reporting for misuse, handler faults and cancellations."""

from __future__ import annotations

import logging
from typing import Any, Optional

from core.logging import get_logger

__all__ = ["Diagnostics"]


class Diagnostics:
    """Route every non-fatal condition to a logger instead of raising."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._log = logger or get_logger("clickgate")

    @property
    def logger(self) -> logging.Logger:
        return self._log

    def error(self, msg: str, *args: Any) -> None:
        self._log.error(msg, *args)

    def warning(self, msg: str, *args: Any) -> None:
        self._log.warning(msg, *args)

    def debug(self, msg: str, *args: Any) -> None:
        self._log.debug(msg, *args)

    def exception(self, exc: BaseException, msg: str, *args: Any) -> None:
        self._log.error(msg, *args, exc_info=(type(exc), exc, exc.__traceback__))

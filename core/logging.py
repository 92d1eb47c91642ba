"""Logger helpers shared by the click gate packages."""

from __future__ import annotations

import logging
import os
from typing import Optional, Union

__all__ = ["LOG_FORMAT", "configure_logging", "get_logger"]

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the ``clickgate`` hierarchy unless already namespaced."""

    if name == "clickgate" or name.startswith("clickgate.") or name.startswith("core."):
        return logging.getLogger(name)
    return logging.getLogger(f"clickgate.{name}")


def configure_logging(level: Optional[Union[int, str]] = None) -> None:
    """Install a basic stream handler; ``CLICKGATE_LOG_LEVEL`` wins when unset."""

    if level is None:
        level = os.environ.get("CLICKGATE_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO
        level = resolved
    logging.basicConfig(level=level, format=LOG_FORMAT)

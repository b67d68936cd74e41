"""Centralized logging helpers.

The root logger is configured once per process from ``DEPSTASH_LOG_LEVEL``;
the CLI may raise or lower the level afterwards. Modules log through
``logging.getLogger(__name__)`` and attach structured fields with
``extra_context`` when debug output is enabled.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Dict, Optional

from constants import Constants

_HANDLER_NAME = "depstash-console"


def configure_logging(stream=None) -> None:
    """Install the console handler on the root logger (idempotent).

    Args:
        stream: Output stream for the handler; defaults to stderr.
    """
    root = logging.getLogger()
    level_name = os.environ.get(Constants.ENV_LOG_LEVEL, "INFO").upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for handler in root.handlers:
        if handler.get_name() == _HANDLER_NAME:
            return

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    root.addHandler(handler)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` payload, dropping fields whose value is None."""
    return {k: v for k, v in fields.items() if v is not None}


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when the logger would emit DEBUG records."""
    return logger.isEnabledFor(logging.DEBUG)


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self):
        self._start: Optional[float] = None
        self.duration_ms: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc) -> None:
        self.duration_ms = round((time.perf_counter() - self._start) * 1000.0, 2)

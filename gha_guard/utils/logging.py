"""Logging utilities for gha-guard.

stdout belongs to the host protocol, so the default handler writes to stderr.
"""

import logging
import sys
from typing import Any


def configure_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """Configure logging for gha-guard.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format_string: Custom format string.
        handler: Custom handler. Defaults to a stderr StreamHandler.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if format_string is None:
        format_string = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"

    if handler is None:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(logging.Formatter(format_string))

    logger = logging.getLogger("gha_guard")
    logger.setLevel(level)
    logger.addHandler(handler)

    # Prevent propagation to root logger
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a gha-guard component.

    Args:
        name: Component name (e.g., "guard", "config").

    Returns:
        Configured logger.
    """
    return logging.getLogger(f"gha_guard.{name}")


class StructuredLogger:
    """Logger that appends key=value pairs to each message. None values are dropped."""

    def __init__(self, name: str):
        self._logger = get_logger(name)

    @staticmethod
    def _format_message(message: str, **kwargs: Any) -> str:
        pairs = [f"{k}={v}" for k, v in kwargs.items() if v is not None]
        if pairs:
            return f"{message} | {' '.join(pairs)}"
        return message

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(self._format_message(message, **kwargs))

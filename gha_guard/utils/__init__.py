"""Utilities for gha-guard."""

from .formatting import format_duration, status_icon
from .logging import StructuredLogger, configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
    "StructuredLogger",
    "format_duration",
    "status_icon",
]

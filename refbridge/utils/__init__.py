"""Utility functions for RefBridge."""

from .logger import LogLevel, LogLine, RefBridgeLogger, configure_logging
from .text import clean_text, normalise_spaces, quote, truncate

__all__ = [
    "LogLevel",
    "LogLine",
    "RefBridgeLogger",
    "clean_text",
    "configure_logging",
    "normalise_spaces",
    "quote",
    "truncate",
]

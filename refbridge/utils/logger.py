"""Logging configuration for RefBridge."""

import logging
import os
import sys
from enum import IntEnum
from typing import Any, Dict, List, Optional

import structlog


class LogLevel(IntEnum):
    """Log levels for RefBridge."""
    ERROR = 0
    WARN = 1
    INFO = 2
    DEBUG = 3


def configure_logging(verbose: int = 0) -> structlog.BoundLogger:
    """
    Configure structlog for RefBridge.

    Args:
        verbose: Verbosity level (0-3)

    Returns:
        Configured logger instance
    """
    log_level = "ERROR"
    if verbose >= 3:
        log_level = "DEBUG"
    elif verbose >= 2:
        log_level = "INFO"
    elif verbose >= 1:
        log_level = "WARNING"

    is_tty = sys.stderr.isatty()

    processors: List[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if is_tty and os.getenv("NO_COLOR") is None:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level),
    )

    logger = structlog.get_logger("refbridge")
    logger = logger.bind(verbose=verbose)

    return logger


# Context keys a child logger binds; None values are left out
SCOPE_KEYS = ("component", "role", "frame_id")


class LogLine:
    """
    One structured event.

    ``category`` is ``area:action`` (``frames:inject``, ``browser:navigate``);
    it is split so that records can be filtered by area.
    """

    def __init__(
        self,
        category: str,
        message: str,
        level: LogLevel = LogLevel.INFO,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.area, _, action = category.partition(":")
        self.action = action or None
        self.message = message
        self.level = level
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"area": self.area, "level": self.level.name}
        if self.action:
            data["action"] = self.action
        data.update(self.context)
        return data


class RefBridgeLogger:
    """
    Verbosity-gated, category-style logging over a structlog logger.

    Child loggers remember the component, role and frame they serve in
    ``scope``, so per-frame bridges and per-role session pools do not have to
    repeat them on every call.
    """

    def __init__(self, logger: structlog.BoundLogger, verbose: int = 0, scope: Optional[Dict[str, Any]] = None):
        self.logger = logger
        self.verbose = verbose
        self.scope: Dict[str, Any] = dict(scope or {})

    def enabled(self, level: LogLevel) -> bool:
        return level.value <= self.verbose

    def log(self, log_line: LogLine) -> None:
        if not self.enabled(log_line.level):
            return

        # structlog's stdlib wrapper spells it "warning"
        level_name = "warning" if log_line.level is LogLevel.WARN else log_line.level.name.lower()
        log_method = getattr(self.logger, level_name, self.logger.info)
        log_method(log_line.message, **log_line.to_dict())

    def error(self, category: str, message: str, **kwargs: Any) -> None:
        self.log(LogLine(category, message, LogLevel.ERROR, kwargs))

    def warn(self, category: str, message: str, **kwargs: Any) -> None:
        self.log(LogLine(category, message, LogLevel.WARN, kwargs))

    def info(self, category: str, message: str, **kwargs: Any) -> None:
        self.log(LogLine(category, message, LogLevel.INFO, kwargs))

    def debug(self, category: str, message: str, **kwargs: Any) -> None:
        self.log(LogLine(category, message, LogLevel.DEBUG, kwargs))

    def child(
        self,
        component: Optional[str] = None,
        role: Optional[str] = None,
        frame_id: Optional[str] = None,
        **bindings: Any,
    ) -> 'RefBridgeLogger':
        """
        Derive a logger bound to a component and the role/frame it works for.

        Args:
            component: Subsystem name (``frames``, ``cdp``, ``bridge``)
            role: Role whose resources the child logs about
            frame_id: CDP frame id, for per-frame bridges
            **bindings: Any further context to bind

        Returns:
            RefBridgeLogger sharing this logger's verbosity
        """
        added = {
            key: value
            for key, value in zip(SCOPE_KEYS, (component, role, frame_id))
            if value is not None
        }
        added.update(bindings)
        return RefBridgeLogger(self.logger.bind(**added), self.verbose, {**self.scope, **added})

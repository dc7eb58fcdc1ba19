# src/marginalia/core/logs.py
"""Structured event logging for the annotation engine.

Every background pipeline (highlighting, consistency checks, overlay scans,
version snapshots) reports what it did as a ``StructuredLogEvent``. Events are
kept in a bounded in-memory ring for inspection and mirrored to the standard
``logging`` tree under the ``marginalia`` namespace, formatted as plain text,
``rich`` console output or JSON lines.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import sys
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4

from marginalia.config import config

_LOGGING_INITIALIZED = False


class LogLevel(Enum):
    """Log levels with numeric values for filtering."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class EventType(Enum):
    """Event types emitted by the engine."""

    SYSTEM = "system"
    SESSION = "session"

    # Annotation passes
    HIGHLIGHT_PASS = "highlight_pass"
    ENTITY_INDEX = "entity_index"

    # Consistency verification
    VERIFICATION_SCHEDULED = "verification_scheduled"
    VERIFICATION_APPLIED = "verification_applied"
    VERIFICATION_FAILED = "verification_failed"
    STALE_RESULT = "stale_result"

    # Show/tell overlay
    OVERLAY = "overlay"

    # Version history
    VERSION_SAVED = "version_saved"
    VERSION_PRUNED = "version_pruned"
    VERSION_RESTORED = "version_restored"

    # External calls
    GENERATION = "generation"
    LLM_REQUEST = "llm_request"

    ERROR = "error"
    WARNING = "warning"


@dataclass
class StructuredLogEvent:
    """Structured log event with engine-specific context."""

    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: float = field(default_factory=time.time)
    event_type: EventType = EventType.SYSTEM
    level: LogLevel = LogLevel.INFO
    message: str = ""
    session_id: str | None = None
    component: str | None = None
    block_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp,
            "event_type": self.event_type.value,
            "level": self.level.name,
            "message": self.message,
            "session_id": self.session_id,
            "component": self.component,
            "block_id": self.block_id,
            "metadata": self.metadata,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data = {
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


def _build_handler(resolved_format: str, log_level: int) -> logging.Handler:
    handler: logging.Handler
    if resolved_format == "json":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
    elif resolved_format == "rich":
        from rich.logging import RichHandler

        handler = RichHandler(
            level=log_level,
            show_time=True,
            show_level=True,
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s | %(levelname)8s | %(name)s | %(message)s",
                datefmt="%H:%M:%S",
            )
        )
    handler.setLevel(log_level)
    return handler


def init_logging(
    level: str | None = None,
    format: str | None = None,
    log_file: str | None = None,
    *,
    force: bool = False,
) -> logging.Logger:
    """Initialize the ``marginalia`` logger tree.

    Arguments left as ``None`` fall back to ``config.system``, which reads:
      - MARGINALIA_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR|CRITICAL (default INFO)
      - MARGINALIA_LOG_FORMAT: plain|rich|json (default plain)
      - MARGINALIA_LOG_FILE: optional path for an additional file handler
    """
    global _LOGGING_INITIALIZED
    logger = logging.getLogger("marginalia")
    if _LOGGING_INITIALIZED and not force:
        return logger

    resolved_level = (level or config.system.log_level or "INFO").upper()
    resolved_format = (format or config.system.log_format or "plain").lower()
    resolved_file = log_file if log_file is not None else config.system.log_file
    log_level = logging.getLevelName(resolved_level)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(log_level)
    logger.propagate = False
    logger.addHandler(_build_handler(resolved_format, log_level))

    if resolved_file:
        file_handler = logging.FileHandler(resolved_file)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    _LOGGING_INITIALIZED = True
    logger.debug(
        "Initializing logging | level=%s format=%s file=%s",
        resolved_level,
        resolved_format,
        resolved_file or "-",
    )
    return logger


class EventLogger:
    """Records structured events and mirrors them to the traditional logger."""

    def __init__(self, max_events: int = 5000):
        self.max_events = max_events
        self._events: deque[StructuredLogEvent] = deque(maxlen=max_events)
        self._counts: dict[str, int] = {}
        self._traditional_logger = init_logging()

    def log(
        self,
        level: LogLevel,
        message: str,
        event_type: EventType = EventType.SYSTEM,
        session_id: str | None = None,
        component: str | None = None,
        block_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> StructuredLogEvent:
        """Record a structured event and return it."""
        event = StructuredLogEvent(
            level=level,
            event_type=event_type,
            message=message,
            session_id=session_id,
            component=component,
            block_id=block_id,
            metadata=dict(metadata or {}),
        )
        self._events.append(event)
        self._counts[event_type.value] = self._counts.get(event_type.value, 0) + 1
        self._log_to_traditional(event)
        return event

    def _log_to_traditional(self, event: StructuredLogEvent) -> None:
        context = []
        if event.component:
            context.append(f"comp:{event.component.replace('marginalia.', '')}")
        if event.session_id:
            context.append(f"sess:{event.session_id[:8]}")
        if event.block_id:
            context.append(f"block:{event.block_id[:8]}")
        header = f"[{event.event_type.value.upper()}]"
        if context:
            header = f"{header} ({' | '.join(context)})"
        self._traditional_logger.log(event.level.value, f"{header} {event.message}")

    def debug(self, message: str, **kwargs: Any) -> StructuredLogEvent:
        """Log debug message."""
        return self.log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> StructuredLogEvent:
        """Log info message."""
        return self.log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> StructuredLogEvent:
        """Log warning message."""
        kwargs.setdefault("event_type", EventType.WARNING)
        return self.log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> StructuredLogEvent:
        """Log error message."""
        kwargs.setdefault("event_type", EventType.ERROR)
        return self.log(LogLevel.ERROR, message, **kwargs)

    def get_events(
        self,
        event_type: EventType | None = None,
        session_id: str | None = None,
        limit: int | None = None,
    ) -> list[StructuredLogEvent]:
        """Return recorded events, oldest first, optionally filtered."""
        events = [
            e
            for e in self._events
            if (event_type is None or e.event_type == event_type)
            and (session_id is None or e.session_id == session_id)
        ]
        if limit is not None:
            events = events[-limit:]
        return events

    def get_metrics(self) -> dict[str, Any]:
        return {
            "total_events": sum(self._counts.values()),
            "events_by_type": dict(self._counts),
            "buffered_events": len(self._events),
        }

    def clear_logs(self) -> None:
        self._events.clear()
        self._counts.clear()


_event_logger: EventLogger | None = None


def get_event_logger() -> EventLogger:
    """Return the process-wide event logger."""
    global _event_logger
    if _event_logger is None:
        _event_logger = EventLogger()
    return _event_logger


def get_logger(name: str) -> logging.Logger:
    """Return a namespaced logger under the Marginalia root logger."""
    root = init_logging()
    if name.startswith("marginalia."):
        name = name[len("marginalia.") :]
    return root.getChild(name)


def log_message(message: str) -> None:
    """Store message in structured logging system."""
    get_event_logger().info(message, event_type=EventType.SYSTEM)


def log_calls(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorate func to log calls at the DEBUG level."""
    event_logger = get_event_logger()

    if asyncio.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.time()
            event_logger.debug(f"Entering {func.__qualname__}", component=func.__module__)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                event_logger.error(
                    f"Error in {func.__qualname__}: {e}",
                    component=func.__module__,
                    metadata={
                        "function": func.__qualname__,
                        "error_type": type(e).__name__,
                        "duration_ms": (time.time() - start_time) * 1000,
                    },
                )
                raise
            event_logger.debug(
                f"Exiting {func.__qualname__} successfully",
                component=func.__module__,
                metadata={"duration_ms": (time.time() - start_time) * 1000},
            )
            return result

        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        event_logger.debug(f"Entering {func.__qualname__}", component=func.__module__)
        try:
            return func(*args, **kwargs)
        except Exception as e:
            event_logger.error(
                f"Error in {func.__qualname__}: {e}",
                component=func.__module__,
                metadata={"function": func.__qualname__, "error_type": type(e).__name__},
            )
            raise

    return sync_wrapper


__all__ = [
    "EventLogger",
    "EventType",
    "JsonFormatter",
    "LogLevel",
    "StructuredLogEvent",
    "get_event_logger",
    "get_logger",
    "init_logging",
    "log_calls",
    "log_message",
]

"""Structured logging setup shared across all services.

Besides the console/JSON renderer, every event also lands in the
process-wide ``log_sink``, a capped ring buffer the UI reads from.

Usage:
    from shared.log import get_logger, log_sink
    logger = get_logger("my-service")
    logger.info("started", version="1.0")
    recent = log_sink.entries()
"""

from __future__ import annotations

import logging
import sys
import threading
import time
import uuid
from collections import deque
from collections.abc import MutableMapping
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVELS = ("debug", "info", "warning", "error")
DEFAULT_MAX_ENTRIES = 1000

# structlog method names that don't map 1:1 onto the sink's levels
_LEVEL_ALIASES = {
    "warn": "warning",
    "exception": "error",
    "critical": "error",
    "fatal": "error",
    "notset": "debug",
}


@dataclass
class LogEntry:
    """A single entry in the UI log buffer."""

    id: str
    timestamp: str  # ISO-8601
    level: str  # debug | info | warning | error
    category: str
    message: str
    details: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if data["details"] is None:
            del data["details"]
        return data


@dataclass
class LogSettings:
    level: str = "debug"


def normalize_level(level: str) -> str:
    """Map any structlog/stdlib level name onto debug|info|warning|error."""
    name = level.lower()
    name = _LEVEL_ALIASES.get(name, name)
    if name not in LOG_LEVELS:
        raise ValueError(f"unknown log level: {level!r}")
    return name


class LogSink:
    """Thread-safe, level-filtered ring buffer of log entries.

    Used as a structlog processor: events at or above the sink's level are
    copied into the buffer, then passed on unchanged to the renderer.
    Oldest entries are dropped once ``max_entries`` is exceeded.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._lock = threading.Lock()
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)
        self._settings = LogSettings()

    @property
    def max_entries(self) -> int:
        return self._entries.maxlen or 0

    # ---- Settings ------------------------------------------------------

    def get_settings(self) -> LogSettings:
        return LogSettings(level=self._settings.level)

    def save_settings(self, settings: LogSettings) -> None:
        level = normalize_level(settings.level)
        with self._lock:
            self._settings = LogSettings(level=level)

    def accepts(self, level: str) -> bool:
        try:
            wanted = LOG_LEVELS.index(normalize_level(level))
        except ValueError:
            return False
        return wanted >= LOG_LEVELS.index(self._settings.level)

    # ---- Buffer --------------------------------------------------------

    def add(
        self,
        level: str,
        category: str,
        message: str,
        details: str | None = None,
    ) -> LogEntry | None:
        """Append an entry; returns None if the level is filtered out."""
        if not self.accepts(level):
            return None
        entry = LogEntry(
            id=f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}",
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=normalize_level(level),
            category=category,
            message=message,
            details=details,
        )
        with self._lock:
            self._entries.append(entry)
        return entry

    def entries(self) -> list[LogEntry]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    # ---- structlog processor -------------------------------------------

    def __call__(
        self, _logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        level = str(event_dict.get("level", method_name))
        if not self.accepts(level):
            return event_dict

        skip = {"event", "level", "timestamp", "service", "details"}
        extras = [f"{k}={v}" for k, v in event_dict.items() if k not in skip]
        details = event_dict.get("details")
        if details is None and extras:
            details = ", ".join(extras)

        self.add(
            level,
            str(event_dict.get("service", "system")),
            str(event_dict.get("event", "")),
            None if details is None else str(details),
        )
        return event_dict


log_sink = LogSink()


def _normalize_log_event(_logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Normalize logs to: timestamp, level, service, msg, context."""
    if "msg" not in event_dict and "event" in event_dict:
        event_dict["msg"] = event_dict.pop("event")

    reserved = {"timestamp", "level", "service", "msg", "context"}
    context = event_dict.get("context")
    if not isinstance(context, dict):
        context = {} if context is None else {"value": context}

    extras = {}
    for key in list(event_dict.keys()):
        if key not in reserved:
            extras[key] = event_dict.pop(key)

    if extras:
        context.update(extras)
    event_dict["context"] = context

    return event_dict


def _drop_below(min_level: int):
    """Processor that stops events under ``min_level`` from reaching the renderer."""

    def processor(
        _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        level = logging.getLevelName(str(event_dict.get("level", "info")).upper())
        if isinstance(level, int) and level < min_level:
            raise structlog.DropEvent
        return event_dict

    return processor


def setup_logging(level: str = "INFO", log_format: str = "auto") -> None:
    """Configure structlog for JSON logs in containers and console logs locally.

    ``level`` only gates the console/JSON output. Every event still reaches
    ``log_sink``, which applies its own runtime ``LogSettings`` level.
    """
    is_json = log_format.lower() == "json" or (
        log_format.lower() == "auto" and not sys.stdout.isatty()
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        log_sink,
        _drop_below(getattr(logging, level.upper(), logging.INFO)),
    ]
    if is_json:
        processors += [_normalize_log_event, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


_initialized = False


def get_logger(service_name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with the service name (used as the log category)."""
    global _initialized
    if not _initialized:
        from shared.config import Settings

        settings = Settings()
        setup_logging(settings.log_level, settings.log_format)
        _initialized = True

    return structlog.get_logger(service=service_name)

"""
StudyForge Logging Subsystem

Purpose
-------
One logging pipeline for the engine and its infrastructure:

- JSON records (console in production, optional rotating file) and readable
  text in development.
- Operation context (component, operation, correlation id) carried through
  awaits by a ContextVar and stamped on every record.
- Records are handed to a bounded queue and written by a listener thread, so
  a slow terminal or disk never stalls a transaction.

Design Decisions
----------------
- Library code only calls `get_logger(__name__)`. Handlers are installed by
  `setup_logging()`, which ForgeContext calls.
- Nested LogContexts inherit the enclosing correlation id, so an event
  handler that calls back into the engine logs under the same id as the
  operation that published the event.
- `extra={...}` fields land under "extra" in JSON output.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from studyforge.core.config.config import Config

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(correlation_id)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "studyforge.json.log"
LOG_FILE_BACKUPS = 7
QUEUE_MAX_SIZE = 10_000

_operation_context: ContextVar[Dict[str, Any]] = ContextVar("studyforge_log_context", default={})


# ============================================================================
# Settings
# ============================================================================


@dataclass(frozen=True)
class LoggingSettings:
    """Resolved logging options; built from Config unless given explicitly."""

    level: int = logging.INFO
    json_output: bool = False
    colors: bool = False
    to_file: bool = False
    logs_dir: Path = Path("logs")
    environment: str = "development"

    @classmethod
    def from_config(cls) -> LoggingSettings:
        environment = str(Config.ENVIRONMENT).lower()
        production = environment == "production"
        json_output = production if Config.LOG_JSON is None else bool(Config.LOG_JSON)

        # getLevelName returns "Level X" for unknown names
        level = logging.getLevelName(str(Config.LOG_LEVEL).upper())
        if not isinstance(level, int):
            level = logging.INFO

        return cls(
            level=level,
            json_output=json_output,
            colors=not json_output and bool(Config.LOG_COLORS) and sys.stdout.isatty(),
            to_file=bool(Config.LOG_TO_FILE),
            logs_dir=Path(Config.LOGS_DIR),
            environment=environment,
        )


# ============================================================================
# Pipeline state
# ============================================================================


@dataclass(frozen=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_enqueued: int
    records_dropped: int
    listener_errors: int


@dataclass
class _PipelineState:
    settings: Optional[LoggingSettings] = None
    log_queue: Optional["queue.Queue[logging.LogRecord]"] = None
    listener: Optional[QueueListener] = None
    handlers: List[logging.Handler] = field(default_factory=list)
    records_enqueued: int = 0
    records_dropped: int = 0
    listener_errors: int = 0

    @property
    def initialized(self) -> bool:
        return self.listener is not None


_pipeline = _PipelineState()


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """Copy the current operation context onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _operation_context.get()

        record.correlation_id = context.get("correlation_id", "-")
        record.component = context.get("component") or record.name.rsplit(".", 1)[-1]
        if not hasattr(record, "operation"):
            record.operation = context.get("operation", "-")
        for key, value in context.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ColoredFormatter(logging.Formatter):
    LEVEL_COLORS: Dict[int, str] = {
        logging.DEBUG: "\033[90m",
        logging.INFO: "\033[36m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        text = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno)
        return f"{color}{text}{self.RESET}" if color else text


class JSONFormatter(logging.Formatter):
    """One JSON object per record; unknown attributes go under "extra"."""

    RESERVED = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}
    CONTEXT_FIELDS = ("correlation_id", "component", "operation")

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        for name in self.CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value not in (None, "-"):
                payload[name] = value

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in self.RESERVED
            and key not in self.CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


# ============================================================================
# Queue plumbing
# ============================================================================


class _BoundedQueueHandler(QueueHandler):
    """Drops (and counts) records instead of blocking when the queue is full."""

    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _pipeline.records_dropped += 1
            return
        _pipeline.records_enqueued += 1


class _CountingQueueListener(QueueListener):
    def handleError(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _pipeline.listener_errors += 1
        sys.stderr.write(f"studyforge: failed to write log record from {record.name}\n")


def _console_handler(settings: LoggingSettings) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if settings.json_output:
        handler.setFormatter(JSONFormatter())
    elif settings.colors:
        handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
    return handler


def _file_handler(settings: LoggingSettings) -> logging.Handler:
    settings.logs_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        settings.logs_dir / LOG_FILE_NAME,
        when="midnight",
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
        utc=True,
    )
    handler.setFormatter(JSONFormatter())
    return handler


# ============================================================================
# Setup / teardown
# ============================================================================


def setup_logging(settings: Optional[LoggingSettings] = None) -> None:
    """Install the queue-backed pipeline on the root logger. No-op if installed."""
    if _pipeline.initialized:
        return

    settings = settings or LoggingSettings.from_config()

    sinks: List[logging.Handler] = [_console_handler(settings)]
    if settings.to_file:
        sinks.append(_file_handler(settings))
    for sink in sinks:
        sink.setLevel(settings.level)

    log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(QUEUE_MAX_SIZE)
    listener = _CountingQueueListener(log_queue, *sinks, respect_handler_level=True)

    entry = _BoundedQueueHandler(log_queue)
    entry.setLevel(settings.level)
    # Context is read on the emitting task; the listener thread has none.
    entry.addFilter(ContextFilter())

    root = logging.getLogger()
    root.setLevel(settings.level)
    root.addHandler(entry)

    for noisy in ("sqlalchemy.engine", "aiosqlite", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _pipeline.settings = settings
    _pipeline.log_queue = log_queue
    _pipeline.listener = listener
    _pipeline.handlers = [entry, *sinks]
    _pipeline.records_enqueued = 0
    _pipeline.records_dropped = 0
    _pipeline.listener_errors = 0
    listener.start()

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "environment": settings.environment,
            "log_level": logging.getLevelName(settings.level),
            "json_output": settings.json_output,
            "log_file": settings.to_file,
        },
    )


def shutdown_logging() -> None:
    """Flush the queue, stop the listener and remove the pipeline's handlers."""
    if not _pipeline.initialized:
        return

    logging.getLogger(__name__).info("Shutting down logging")

    root = logging.getLogger()
    listener = _pipeline.listener
    try:
        listener.stop()
    finally:
        for handler in _pipeline.handlers:
            if handler in root.handlers:
                root.removeHandler(handler)
            handler.close()
        _pipeline.listener = None
        _pipeline.log_queue = None
        _pipeline.handlers = []


def get_logging_health() -> LoggingHealth:
    log_queue = _pipeline.log_queue
    return LoggingHealth(
        initialized=_pipeline.initialized,
        queue_size=log_queue.qsize() if log_queue is not None else 0,
        queue_max_size=log_queue.maxsize if log_queue is not None else 0,
        records_enqueued=_pipeline.records_enqueued,
        records_dropped=_pipeline.records_dropped,
        listener_errors=_pipeline.listener_errors,
    )


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


def _new_correlation_id() -> str:
    return uuid.uuid4().hex[:8]


class LogContext:
    """
    Bind operation context to every record logged inside the block.

    Works as a sync or async context manager. Fields from an enclosing
    context are kept unless overridden here.

    >>> async with LogContext(component="forge", operation="claim_mission"):
    ...     logger.info("Claiming")
    """

    def __init__(
        self,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **fields: Any,
    ) -> None:
        parent = _operation_context.get()
        self.context: Dict[str, Any] = {**parent, **fields}
        if component is not None:
            self.context["component"] = component
        if operation is not None:
            self.context["operation"] = operation
        self.context["correlation_id"] = (
            correlation_id or parent.get("correlation_id") or _new_correlation_id()
        )
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> LogContext:
        self._token = _operation_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _operation_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(
    component: Optional[str] = None,
    operation: Optional[str] = None,
    correlation_id: Optional[str] = None,
    **fields: Any,
) -> None:
    """Merge fields into the current context without a scope."""
    current = {**_operation_context.get(), **fields}
    if component is not None:
        current["component"] = component
    if operation is not None:
        current["operation"] = operation
    if correlation_id is not None:
        current["correlation_id"] = correlation_id
    _operation_context.set(current)


def get_log_context() -> Dict[str, Any]:
    return dict(_operation_context.get())


def clear_log_context() -> None:
    _operation_context.set({})

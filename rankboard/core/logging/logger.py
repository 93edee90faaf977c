"""
Rankboard logging.

Records are handed to a bounded queue on the calling task and written by a
listener thread, so score submissions never block on console or file I/O.
Each record is stamped with the leaderboard context active when it was
emitted (leaderboard, member, operation, correlation_id).

Usage
-----
>>> logger = get_logger(__name__)
>>> async with LogContext(leaderboard="weekly", member="jin_1", operation="join_rank"):
...     logger.info("Score recorded", extra={"display_score": "100.00"})
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from rankboard.core.config.config import Config

CONTEXT_FIELDS = ("leaderboard", "member", "operation", "correlation_id")

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-32s | %(leaderboard)s/%(member)s | %(message)s"
LOG_FILE_NAME = "rankboard.json.log"
QUEUE_SIZE = 10_000

_log_context: ContextVar[Dict[str, Any]] = ContextVar("rankboard_log_context", default={})

# logging.LogRecord attributes that are never copied into the JSON "extra" block
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


@dataclass(frozen=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_dropped: int


class _State:
    queue: Optional["queue.Queue[logging.LogRecord]"] = None
    listener: Optional[QueueListener] = None
    dropped: int = 0


# ============================================================================
# Record enrichment and formatting
# ============================================================================


class ContextFilter(logging.Filter):
    """Copy the active LogContext onto the record unless `extra` already set it."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _log_context.get()
        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, context.get(field, "-"))
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line; Decimal scores are written as strings."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, "-")
            if value != "-":
                payload[field] = value

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in CONTEXT_FIELDS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class _DroppingQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _State.dropped += 1


# ============================================================================
# Setup
# ============================================================================


def _level() -> int:
    return getattr(logging, str(Config.LOG_LEVEL).upper(), logging.INFO)


def _handlers(enable_file: bool) -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    if Config.LOG_JSON:
        console.setFormatter(JSONFormatter())
    else:
        console.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%H:%M:%S"))
    handlers: List[logging.Handler] = [console]

    if enable_file:
        logs_dir = Path(Config.LOGS_DIR)
        logs_dir.mkdir(parents=True, exist_ok=True)
        daily = TimedRotatingFileHandler(
            logs_dir / LOG_FILE_NAME, when="midnight", backupCount=7, encoding="utf-8", utc=True
        )
        daily.setFormatter(JSONFormatter())
        handlers.append(daily)

    return handlers


def setup_logging(enable_file: bool = True) -> None:
    """Route the root logger through the queue. Safe to call more than once."""
    if _State.listener is not None:
        return

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(_level())

    _State.queue = queue.Queue(QUEUE_SIZE)
    _State.dropped = 0
    _State.listener = QueueListener(_State.queue, *_handlers(enable_file), respect_handler_level=True)
    _State.listener.start()

    handler = _DroppingQueueHandler(_State.queue)
    # Context is read on the emitting task, before the record crosses threads
    handler.addFilter(ContextFilter())
    root.addHandler(handler)

    for noisy in ("asyncio", "testcontainers", "docker", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={"environment": Config.ENVIRONMENT.value, "json": Config.LOG_JSON, "file": enable_file},
    )


def shutdown_logging() -> None:
    """Flush the queue and detach every handler."""
    if _State.listener is None:
        return

    _State.listener.stop()
    for handler in _State.listener.handlers:
        handler.close()
    _State.listener = None
    _State.queue = None
    logging.getLogger().handlers.clear()


def get_logging_health() -> LoggingHealth:
    q = _State.queue
    return LoggingHealth(
        initialized=_State.listener is not None,
        queue_size=q.qsize() if q is not None else 0,
        queue_max_size=q.maxsize if q is not None else 0,
        records_dropped=_State.dropped,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


# ============================================================================
# Context
# ============================================================================


class LogContext:
    """
    Scope leaderboard context to a block of sync or async code.

    Nested contexts inherit the enclosing fields and correlation id.
    Fields outside CONTEXT_FIELDS are kept in the context but only reach
    records that name them in `extra`.
    """

    def __init__(self, correlation_id: Optional[str] = None, **fields: Any) -> None:
        inherited = _log_context.get()
        self.context: Dict[str, Any] = {
            **inherited,
            **{key: value for key, value in fields.items() if value is not None},
        }
        self.context["correlation_id"] = (
            correlation_id or inherited.get("correlation_id") or uuid.uuid4().hex[:8]
        )
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())


def clear_log_context() -> None:
    _log_context.set({})


setup_logging()

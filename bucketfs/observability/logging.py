"""
Structured Logging for filesystem operations

Every engine module logs through stdlib `logging` with `extra={...}`
fields. This module adds:
- `JsonFormatter`: one JSON object per line, fields from `extra` and from
  the enclosing operation scope merged in
- `operation_scope()`: binds `operation_id`, `uri` and any other fields to
  every record emitted inside it (ContextVar, so threads and tasks do not
  leak fields into each other)
- `StructuredLogger`: keyword-field logging with bound defaults
- `setup_logging()`: root logger wiring, quiets the AWS SDK loggers

Output line:
    {"@timestamp": "...", "level": "INFO", "logger": "bucketfs.filesystem.flush",
     "message": "Flush completed", "operation_id": "3f9c...", "uri": "public://a.jpg",
     "key": "s3fs-public/a.jpg", "size_bytes": 12}
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Iterator, Mapping, Optional, TextIO


class LogLevel(IntEnum):
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


_scope_fields: ContextVar[Mapping[str, Any]] = ContextVar("bucketfs_log_scope", default={})

# Attributes present on every logging.LogRecord; anything else came from `extra`.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}

# Fields emitted first, in this order, when present.
_LEADING_FIELDS = ("operation_id", "uri", "key")

_SDK_LOGGERS = ("botocore", "boto3", "urllib3", "s3transfer")


def new_operation_id() -> str:
    return uuid.uuid4().hex[:16]


def current_context() -> dict[str, Any]:
    """Fields bound by the innermost active operation scope."""
    return dict(_scope_fields.get())


@contextmanager
def operation_scope(**fields: Any) -> Iterator[str]:
    """
    Bind fields to every record logged inside the block.

    An `operation_id` is generated unless one is passed or already bound by
    an enclosing scope. Yields the active operation id.

    Usage:
        with operation_scope(uri="public://a.jpg") as op_id:
            logger.info("Flush completed", extra={"size_bytes": 12})
    """
    merged = {**_scope_fields.get(), **fields}
    merged.setdefault("operation_id", new_operation_id())
    token = _scope_fields.set(merged)
    try:
        yield merged["operation_id"]
    finally:
        _scope_fields.reset(token)


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON with scope and extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        fields = current_context()
        fields.update(
            (name, value)
            for name, value in vars(record).items()
            if name not in _STANDARD_ATTRS
        )
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        payload: dict[str, Any] = {
            "@timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _LEADING_FIELDS:
            if name in fields:
                payload[name] = fields.pop(name)
        payload.update(fields)
        return json.dumps(payload, default=str)


class StructuredLogger:
    """
    Logger taking structured fields as keyword arguments.

    Usage:
        logger = StructuredLogger(__name__).bind(bucket="media")
        logger.warning("Flush rejected by backend", key=key, transient=True)
    """

    __slots__ = ("_logger", "_bound")

    def __init__(self, name: str, level: Optional[LogLevel] = None) -> None:
        self._logger = logging.getLogger(name)
        if level is not None:
            self._logger.setLevel(level)
        self._bound: dict[str, Any] = {}

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **fields: Any) -> StructuredLogger:
        """Child logger that adds `fields` to every record."""
        child = StructuredLogger(self._logger.name)
        child._bound = {**self._bound, **fields}
        return child

    def log(self, level: LogLevel, message: str, **fields: Any) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, message, extra={**self._bound, **fields})

    def debug(self, message: str, **fields: Any) -> None:
        self.log(LogLevel.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log(LogLevel.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.log(LogLevel.WARNING, message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self.log(LogLevel.ERROR, message, **fields)


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    json_output: bool = True,
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """
    Install a single handler on the root logger.

    Args:
        level: Minimum level for bucketfs records.
        json_output: JsonFormatter when True, a one-line text format otherwise.
        stream: Destination (stderr when omitted).

    Returns:
        The installed handler.
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
        ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _SDK_LOGGERS:
        logging.getLogger(name).setLevel(max(level, LogLevel.WARNING))
    return handler

"""Structured logging configuration.

Both the server and the clients log through the standard logging module.
The root logger gets one stream handler (and, for clients, a file handler
next to the marker) using either the JSON or the text formatter, selected by
``settings.log_format``.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

from rangeconfig.config import settings

# Correlation ID for the current request (server only)
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


def generate_correlation_id() -> str:
    """Generate a short correlation ID for request tracing."""
    return uuid.uuid4().hex[:12]


def set_correlation_id(correlation_id: str | None) -> None:
    correlation_id_var.set(correlation_id)


def _extras(record: logging.LogRecord) -> dict:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class RangeJSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def __init__(self, service: str):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service,
        }
        correlation_id = correlation_id_var.get()
        if correlation_id:
            payload["correlation_id"] = correlation_id
        extra = _extras(record)
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RangeTextFormatter(logging.Formatter):
    """Human-readable formatter: time, level, service, logger, message."""

    def __init__(self, service: str):
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s [%(service)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        record.service = self.service
        message = super().format(record)
        correlation_id = correlation_id_var.get()
        if correlation_id:
            message = f"{message} [cid={correlation_id}]"
        return message


def _build_formatter(service: str) -> logging.Formatter:
    if settings.log_format.lower() == "text":
        return RangeTextFormatter(service)
    return RangeJSONFormatter(service)


def setup_logging(service: str, log_file: str | None = None) -> None:
    """Configure the root logger.

    Args:
        service: Service name stamped on every record ("server", "client-linux", ...)
        log_file: Optional file to append to in addition to stdout
    """
    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())

    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = _build_formatter(service)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # uvicorn access logs duplicate our request logging
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

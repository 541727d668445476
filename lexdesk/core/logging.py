"""Process-wide logging: JSON lines for servers, plain text for the CLI."""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

CORRELATION_ID_CTX: ContextVar[str] = ContextVar("correlation_id", default="")

# ``extra=`` keys copied onto the log line when present
EXTRA_FIELDS = (
    "path",
    "method",
    "status_code",
    "duration_ms",
    "user_id",
    "empresa_id",
    "oportunidade_id",
    "flow_id",
    "document_id",
)
NOISY_LOGGERS = ("pymongo", "urllib3", "fitz")


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    extras: dict[str, Any] = {}
    for key in EXTRA_FIELDS:
        value = getattr(record, key, None)
        if value not in (None, ""):
            extras[key] = value
    return extras


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": CORRELATION_ID_CTX.get(),
            **_record_extras(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class TextLogFormatter(logging.Formatter):
    """``2026-10-19 09:00:00 INFO lexdesk.x message key=value`` lines."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s", "%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _record_extras(record)
        correlation_id = CORRELATION_ID_CTX.get()
        if correlation_id:
            extras = {"correlation_id": correlation_id, **extras}
        if extras:
            line += " " + " ".join(f"{key}={value}" for key, value in extras.items())
        return line


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Route the root logger to stdout using ``fmt`` (``json`` or ``text``)."""
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(TextLogFormatter() if fmt == "text" else JsonLogFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.addHandler(handler)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_correlation_id(correlation_id: str) -> None:
    CORRELATION_ID_CTX.set(correlation_id)

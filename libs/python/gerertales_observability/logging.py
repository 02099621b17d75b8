"""JSON logging with request-scoped context for the studio services."""

from __future__ import annotations

import json
import logging
import logging.config
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Mapping

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("gerertales_log_context", default={})

# Attributes every LogRecord carries; anything else was passed via ``extra=``.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

# Keys whose values must never reach the log stream.
SECRET_MARKERS = ("api_key", "apikey", "secret", "token", "password", "x-gererllama-key")
REDACTED = "[redacted]"

# Emitted first so log lines read consistently across services.
LEADING_FIELDS = ("service", "feature", "story_id", "profile_id", "provider", "model")


def is_secret_key(key: str) -> bool:
    lowered = key.lower()
    if lowered.endswith("_tokens"):
        return False
    return any(marker in lowered for marker in SECRET_MARKERS)


def redact(fields: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: REDACTED if is_secret_key(key) and value else value for key, value in fields.items()}


def current_context() -> Dict[str, Any]:
    return dict(_LOG_CONTEXT.get())


class ContextFilter(logging.Filter):
    """Copy :func:`log_context` fields and the service name onto each record."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _LOG_CONTEXT.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        if getattr(record, "service", None) is None:
            record.service = self.service_name
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; secrets are masked, unserialisable extras dropped."""

    def format(self, record: logging.LogRecord) -> str:
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_") and value is not None
        }
        extras = redact(extras)

        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in LEADING_FIELDS:
            if key in extras:
                payload[key] = extras.pop(key)
        for key, value in sorted(extras.items()):
            if _is_json_safe(value):
                payload[key] = value
            else:
                payload[key] = str(value)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False)


def _is_json_safe(value: Any) -> bool:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return False
    return True


def setup_logging(
    service_name: str,
    level: str | int | None = None,
    *,
    capture_warnings: bool | None = None,
) -> None:
    """Route the root, uvicorn and httpx loggers through the JSON formatter.

    ``level`` defaults to ``GERERTALES_LOG_LEVEL`` (or ``INFO``). Calling this
    again replaces the handlers rather than stacking them.
    """

    level = level or os.getenv("GERERTALES_LOG_LEVEL", "INFO")
    quiet_level = level if str(level).upper() == "DEBUG" else "WARNING"
    handlers = ["stdout"]
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": JsonFormatter}},
            "filters": {"context": {"()": ContextFilter, "service_name": service_name}},
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "json",
                    "filters": ["context"],
                }
            },
            "root": {"level": level, "handlers": handlers},
            "loggers": {
                name: {"handlers": handlers, "level": level, "propagate": False}
                for name in ("uvicorn", "uvicorn.error", "uvicorn.access")
            }
            | {
                # SDK transports log every request at INFO.
                name: {"handlers": handlers, "level": quiet_level, "propagate": False}
                for name in ("httpx", "httpcore", "openai", "google_genai")
            },
        }
    )

    if capture_warnings is None:
        capture_warnings = os.getenv("GERERTALES_CAPTURE_WARNINGS", "").strip().lower() in {"1", "true", "yes", "on"}
    logging.captureWarnings(capture_warnings)


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind fields to every log line emitted inside the block.

    Passing ``None`` for a key unbinds it for the duration of the block.
    """

    updated = current_context()
    for key, value in kwargs.items():
        if value is None:
            updated.pop(key, None)
        else:
            updated[key] = value
    token = _LOG_CONTEXT.set(updated)
    try:
        yield
    finally:
        _LOG_CONTEXT.reset(token)

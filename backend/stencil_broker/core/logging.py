"""Logging utilities for stencil-broker.

Build and transform code attaches context (build id, generation, tag) via
``extra=log_context(...)``. The JSON formatter emits it as top-level fields,
the plain formatter as a trailing ``key=value`` list.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, TextIO

import orjson

_DEFAULT_LEVEL = os.environ.get("STENCIL_BROKER_LOG_LEVEL", "INFO")
CONTEXT_PREFIX = "ctx_"
# Libraries whose INFO output drowns the build log.
QUIET_LOGGERS = ("watchdog", "asyncio", "httpx", "urllib3")


def log_context(**fields: Any) -> dict[str, Any]:
    """Build a logging ``extra`` mapping, skipping unset values."""
    return {f"{CONTEXT_PREFIX}{key}": value for key, value in fields.items() if value is not None}


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key[len(CONTEXT_PREFIX) :]: value
        for key, value in record.__dict__.items()
        if key.startswith(CONTEXT_PREFIX)
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per line; context fields sit next to the message."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key, value in record_context(record).items():
            payload.setdefault(key, value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return orjson.dumps(payload, default=str).decode("utf-8")


class ContextFormatter(logging.Formatter):
    """Human-readable lines for terminals running ``stencil-broker watch``."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if not context:
            return line
        first, newline, rest = line.partition("\n")
        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{first} [{pairs}]{newline}{rest}"


def configure_logging(
    level: str | int = _DEFAULT_LEVEL,
    use_json: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure root logger; stderr by default so CLI output stays clean."""
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter() if use_json else ContextFormatter())
    root.handlers = [handler]
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = "stencil_broker") -> logging.Logger:
    """Return configured logger, configuring root on first call."""
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


__all__ = [
    "ContextFormatter",
    "JsonFormatter",
    "configure_logging",
    "get_logger",
    "log_context",
]

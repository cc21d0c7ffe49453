"""
Logging helpers for the template store.

Every module logs under the ``quickbar_storage`` logger. By default
records go wherever the host application sends them. Setting
``QUICKBAR_LOG_FORMAT=json`` makes TemplateStore.from_environment()
attach a handler that writes one JSON object per line, with the
context carried by StoreLoggerAdapter (container, cache directory,
missing variables) as top-level keys.

Environment Variables:
    QUICKBAR_LOG_FORMAT: "json" for structured output (default: unset)
    QUICKBAR_LOG_LEVEL: Level name for the package logger (default: INFO)
"""

import json
import logging
import os
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import IO, Any

PACKAGE_LOGGER = "quickbar_storage"
LOG_FORMAT_VARIABLE = "QUICKBAR_LOG_FORMAT"
LOG_LEVEL_VARIABLE = "QUICKBAR_LOG_LEVEL"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


def _json_safe(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class StructuredJsonFormatter(logging.Formatter):
    """
    Format records as single-line JSON.

    Output keys: timestamp (UTC ISO 8601), level, logger, message,
    exception (when present), any ``static_fields`` given at
    construction, then every ``extra`` field on the record.
    """

    def __init__(self, static_fields: Mapping[str, Any] | None = None):
        super().__init__()
        self.static_fields = dict(static_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self.static_fields,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(
            (key, _json_safe(value))
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        return json.dumps(entry)


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str = PACKAGE_LOGGER,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """
    Send a logger's records to ``stream`` as JSON lines.

    Replaces handlers previously attached to that logger, so calling it
    twice does not duplicate output.

    Args:
        level: Logging level (default: INFO)
        logger_name: Logger to configure (default: the package logger)
        stream: Output stream (default: stdout)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredJsonFormatter({"service": PACKAGE_LOGGER}))
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def configure_logging_from_environment(
    environ: Mapping[str, str] | None = None,
) -> logging.Logger | None:
    """Apply QUICKBAR_LOG_FORMAT / QUICKBAR_LOG_LEVEL.

    Returns:
        The package logger when JSON output was enabled, else None
        (host logging configuration is left alone).
    """
    env = os.environ if environ is None else environ
    if (env.get(LOG_FORMAT_VARIABLE) or "").strip().lower() != "json":
        return None

    level_name = (env.get(LOG_LEVEL_VARIABLE) or "INFO").strip().upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    return configure_structured_logging(level)


def get_store_logger(name: str) -> logging.Logger:
    """Logger named ``quickbar_storage.{name}`` (e.g. 'cosmos', 'local')."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


class StoreLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds store context to every record.

    Context given at construction (container, cache directory) is merged
    into each call's ``extra``; per-call keys win on conflict.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

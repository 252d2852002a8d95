"""JSON logging for the API process and the maintenance worker.

Every record leaves as one JSON object per line on stdout. Request, caller and
job identifiers come from :mod:`tasktracker.core.context`; anything passed via
``extra=`` is merged in as top-level fields.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any

from .config import Settings
from .context import log_context

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

_CONTEXT_FIELDS = ("request_id", "user_id", "job")

# Third-party loggers that would otherwise print plain text through their own handlers.
_ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "rq.worker")


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class JsonLogFormatter(logging.Formatter):
    """Format a record as a single JSON line.

    ``static_fields`` (service name, environment) are written first, then the
    record's core attributes, the context fields and finally any extras. Extras
    never overwrite a core attribute.
    """

    def __init__(self, *, static_fields: dict[str, Any] | None = None) -> None:
        super().__init__()
        self._static_fields = dict(static_fields or {})

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        entry: dict[str, Any] = {
            **self._static_fields,
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _CONTEXT_FIELDS:
            entry[field] = getattr(record, field, "-")

        extras = {
            key: _jsonable(value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and key not in entry
        }
        entry.update(extras)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ContextFilter(logging.Filter):
    """Stamp the bound request, caller and job identifiers on each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        for field, value in log_context().items():
            setattr(record, field, value)
        return True


def build_logging_config(settings: Settings) -> dict[str, Any]:
    level = settings.log_level.upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"

    logger_entry = {"handlers": ["stdout"], "level": level, "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"context": {"()": ContextFilter}},
        "formatters": {
            "json": {
                "()": JsonLogFormatter,
                "static_fields": {
                    "service": settings.project_name,
                    "environment": settings.environment,
                },
            }
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "json",
                "filters": ["context"],
                "level": level,
            }
        },
        "root": {"handlers": ["stdout"], "level": level},
        "loggers": {name: dict(logger_entry) for name in _ROUTED_LOGGERS},
    }


def configure_logging(settings: Settings) -> None:
    """Install the JSON handler on the root logger and the routed library loggers."""

    logging.captureWarnings(True)
    logging.config.dictConfig(build_logging_config(settings))


__all__ = ["ContextFilter", "JsonLogFormatter", "build_logging_config", "configure_logging"]

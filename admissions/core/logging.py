"""Logging setup for the admissions service.

Everything goes to stdout. Three streams matter operationally: the access
log (`admissions.request`), handled errors (`admissions.exception`) and the
audit mirror (`admissions.audit`). The audit stream has its own level so it
stays on when LOG_LEVEL is raised. Driven by env vars because this runs
before Settings are loaded.
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
import sys
from datetime import UTC, datetime
from typing import Any


def env_bool(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with known `extra=` fields lifted to the top."""

    extra_keys = (
        "request_id",
        "method",
        "path",
        "query",
        "status_code",
        "duration_ms",
        "client_ip",
        "user_agent",
        "error_type",
        "actor_id",
        "institution_id",
        "action",
        "resource_id",
        "severity",
    )

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        extras = record.__dict__
        for key in self.extra_keys:
            if key in extras:
                payload[key] = extras[key]

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> None:
    """Install the dictConfig for the service and uvicorn.

    LOG_LEVEL sets the console level (INFO). LOG_JSON switches to one JSON
    object per line. LOG_AUDIT_LEVEL sets the `admissions.audit` level
    independently (INFO). LOG_REQUESTS turns on the access middleware, in
    which case uvicorn's own access log is off unless LOG_UVICORN_ACCESS
    says otherwise.
    """

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    audit_level = os.getenv("LOG_AUDIT_LEVEL", "INFO").upper()
    log_json = env_bool("LOG_JSON", default=False)
    log_requests = env_bool("LOG_REQUESTS", default=True)
    uvicorn_access = env_bool(
        "LOG_UVICORN_ACCESS",
        default=not log_requests,
    )

    formatter_name = "json" if log_json else "text"

    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
            "json": {
                "()": "admissions.core.logging.JsonFormatter",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG",
                "formatter": formatter_name,
                "stream": sys.stdout,
            }
        },
        "root": {"handlers": ["console"], "level": level},
        "loggers": {
            "admissions.audit": {"level": audit_level, "propagate": True},
            "uvicorn": {"level": level, "propagate": True},
            "uvicorn.error": {"level": level, "propagate": True},
            "uvicorn.access": {
                "level": "INFO" if uvicorn_access else "WARNING",
                "propagate": True,
            },
            "sqlalchemy.engine": {
                "level": os.getenv("SQL_LOG_LEVEL", "WARNING"),
                "propagate": True,
            },
        },
    }

    logging.config.dictConfig(config)

"""Tests for admissions/core/logging.py - logging configuration."""

import json
import logging

from admissions.core.logging import JsonFormatter, configure_logging, env_bool


def test_env_bool(monkeypatch):
    """Test truthy strings are recognised and unset falls back to the default."""
    monkeypatch.setenv("FLAG_ON", "Yes")
    monkeypatch.setenv("FLAG_OFF", "0")
    monkeypatch.delenv("FLAG_UNSET", raising=False)

    assert env_bool("FLAG_ON", default=False) is True
    assert env_bool("FLAG_OFF", default=True) is False
    assert env_bool("FLAG_UNSET", default=True) is True


def test_json_formatter_includes_audit_extras():
    """Test audit extras end up as top-level JSON keys."""
    record = logging.LogRecord(
        "admissions.audit", logging.INFO, __file__, 1, "approved %s", ("u1",), None
    )
    record.action = "membership.approve"
    record.actor_id = "admin-1"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["msg"] == "approved u1"
    assert payload["logger"] == "admissions.audit"
    assert payload["action"] == "membership.approve"
    assert payload["actor_id"] == "admin-1"
    assert "severity" not in payload


def test_configure_logging_json(monkeypatch):
    """Test LOG_JSON switches the console handler to the JSON formatter."""
    monkeypatch.setenv("LOG_JSON", "true")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    configure_logging()

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(isinstance(h.formatter, JsonFormatter) for h in root.handlers)

    monkeypatch.setenv("LOG_JSON", "false")
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    configure_logging()


def test_audit_level_is_independent(monkeypatch):
    """Test audit lines survive a raised LOG_LEVEL."""
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("LOG_AUDIT_LEVEL", "INFO")

    configure_logging()

    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("admissions.audit").isEnabledFor(logging.INFO)

    monkeypatch.setenv("LOG_LEVEL", "INFO")
    configure_logging()

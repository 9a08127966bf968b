"""
Tests for logging setup.
"""

import json
import logging

import pytest

from mirrorhistory.config import settings
from mirrorhistory.logging_config import JsonFormatter, setup_logging


@pytest.fixture
def log_settings(monkeypatch, tmp_path):
    """Point file logging at a temp dir and restore the root logger afterwards."""
    monkeypatch.setattr(settings, "log_dir", str(tmp_path))
    monkeypatch.setattr(settings, "log_file_enabled", True)
    monkeypatch.setattr(settings, "log_console_enabled", False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level

    yield tmp_path

    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def _own_handlers() -> list[logging.Handler]:
    return [h for h in logging.getLogger().handlers if getattr(h, "_mirrorhistory_handler", False)]


def test_writes_context_log_file(log_settings):
    setup_logging(context="cli")
    logging.getLogger("mirrorhistory.test").info("hello from the cli")
    for handler in _own_handlers():
        handler.flush()

    content = (log_settings / "cli.log").read_text()
    assert "[INFO] [mirrorhistory.test] hello from the cli" in content


def test_rerun_replaces_handlers(log_settings, monkeypatch):
    monkeypatch.setattr(settings, "log_console_enabled", True)

    setup_logging(context="api")
    setup_logging(context="api")

    assert len(_own_handlers()) == 3


def test_level_from_settings(log_settings, monkeypatch):
    monkeypatch.setattr(settings, "log_level", "debug")

    setup_logging(context="api")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_json_formatter():
    record = logging.LogRecord(
        "mirrorhistory.scan", logging.WARNING, __file__, 1, "found %d", (3,), None
    )

    entry = json.loads(JsonFormatter().format(record))

    assert entry["level"] == "WARNING"
    assert entry["logger"] == "mirrorhistory.scan"
    assert entry["message"] == "found 3"
    assert "exception" not in entry

"""
Unit tests for logging setup, formatters and ContextLogger.
"""

import json
import logging
import logging.handlers
import sys
from unittest.mock import patch

import pytest

from utils.logging import (
    ConsoleFormatter,
    ContextLogger,
    JSONFormatter,
    configure_from_env,
    setup_logging,
    shutdown_logging,
)


@pytest.fixture
def isolated_root_logger():
    """
    Detach pytest's handlers while setup_logging rewires the root logger,
    then restore them.
    """
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    for handler in handlers:
        root.removeHandler(handler)
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def _record(msg="hello", level=logging.INFO, **extra):
    record = logging.LogRecord("reconciliation.test", level, __file__, 10, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.usefixtures("isolated_root_logger")
class TestSetupLogging:
    """Tests for setup_logging"""

    @pytest.mark.parametrize("level,expected", [
        ("INFO", logging.INFO),
        ("debug", logging.DEBUG),
        ("WARNING", logging.WARNING),
        ("bogus", logging.INFO),
    ])
    def test_levels(self, level, expected):
        setup_logging(level=level)

        assert logging.getLogger().level == expected

    def test_console_handler_only_by_default(self):
        setup_logging()

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, ConsoleFormatter)

    def test_json_console(self):
        setup_logging(json_format=True)

        assert isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

    def test_size_rotated_file(self, tmp_path):
        log_file = tmp_path / "logs" / "validator.log"

        setup_logging(log_file=str(log_file), console_output=False, max_bytes=1024, backup_count=2)
        logging.getLogger("reconciliation").warning("written to file")

        handler = logging.getLogger().handlers[0]
        assert isinstance(handler, logging.handlers.RotatingFileHandler)
        assert handler.maxBytes == 1024
        handler.flush()
        assert "written to file" in log_file.read_text()

    def test_daily_rotated_file(self, tmp_path):
        setup_logging(log_file=str(tmp_path / "v.log"), console_output=False, rotation="daily", backup_count=30)

        handler = logging.getLogger().handlers[0]
        assert isinstance(handler, logging.handlers.TimedRotatingFileHandler)
        assert handler.backupCount == 30

    def test_unknown_rotation(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown log rotation"):
            setup_logging(log_file=str(tmp_path / "v.log"), rotation="weekly")

    def test_noisy_libraries_quieted(self):
        setup_logging(level="DEBUG")

        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_configure_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        monkeypatch.setenv("LOG_FILE", str(tmp_path / "env.log"))
        monkeypatch.setenv("LOG_CONSOLE", "false")
        monkeypatch.setenv("LOG_ROTATION", "daily")

        configure_from_env()

        root = logging.getLogger()
        assert root.level == logging.ERROR
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.handlers.TimedRotatingFileHandler)

    def test_configure_from_env_overrides(self, monkeypatch):
        monkeypatch.delenv("LOG_FILE", raising=False)
        monkeypatch.delenv("LOG_CONSOLE", raising=False)
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        monkeypatch.setenv("LOG_JSON", "true")

        configure_from_env(level="DEBUG", json_format=None)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_shutdown_removes_handlers(self):
        setup_logging()

        with patch("utils.logging.config.logging.shutdown") as mock_shutdown:
            shutdown_logging()

        assert logging.getLogger().handlers == []
        mock_shutdown.assert_called_once()


class TestJSONFormatter:
    """Tests for JSONFormatter"""

    def test_basic_fields(self):
        data = json.loads(JSONFormatter(app_name="validator").format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "reconciliation.test"
        assert data["message"] == "hello"
        assert data["app"] == "validator"
        assert "timestamp" in data
        assert "hostname" in data
        assert data["source"]["line"] == 10

    def test_optional_fields_disabled(self):
        data = json.loads(JSONFormatter(include_timestamp=False, include_hostname=False).format(_record()))

        assert "timestamp" not in data
        assert "hostname" not in data

    def test_extra_context(self):
        data = json.loads(JSONFormatter().format(_record(source_table="HR.EMP", rows=5)))

        assert data["context"] == {"source_table": "HR.EMP", "rows": 5}

    def test_exception(self):
        try:
            raise RuntimeError("extract failed")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "boom", (), sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert data["exception"]["type"] == "RuntimeError"
        assert data["exception"]["message"] == "extract failed"


class TestConsoleFormatter:
    """Tests for ConsoleFormatter"""

    def test_plain_line_with_context(self):
        text = ConsoleFormatter(use_colors=False).format(_record("done", table="HR.EMP"))

        assert "[INFO] reconciliation.test: done" in text
        assert text.endswith("[table=HR.EMP]")

    def test_colors_do_not_leak_into_record(self):
        formatter = ConsoleFormatter(use_colors=True)
        formatter.use_colors = True
        record = _record(level=logging.WARNING)

        text = formatter.format(record)

        assert "\033[33m" in text
        assert record.levelname == "WARNING"


class TestContextLogger:
    """Tests for ContextLogger"""

    def test_context_is_attached(self, caplog):
        clog = ContextLogger("reconciliation.ctx", source_table="HR.EMP")

        with caplog.at_level(logging.INFO, logger="reconciliation.ctx"):
            clog.info("validating", rows=3)

        record = caplog.records[-1]
        assert record.source_table == "HR.EMP"
        assert record.rows == 3
        assert record.funcName == "test_context_is_attached"

    def test_disabled_level_is_skipped(self, caplog):
        clog = ContextLogger("reconciliation.ctx")

        with caplog.at_level(logging.WARNING, logger="reconciliation.ctx"):
            clog.debug("hidden")

        assert caplog.records == []

    def test_bind(self):
        clog = ContextLogger("x", a=1).bind(b=2)

        assert clog.get_context() == {"a": 1, "b": 2}

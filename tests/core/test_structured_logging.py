"""
Tests for structured logging module.
"""

import json
import logging
import sys

from ftxws.core.exceptions import NotConnectedError
from ftxws.core.structured_logging import JSONFormatter, configure_logging, get_logger


def make_record(msg="Test message", level=logging.INFO, exc_info=None, **extra):
    record = logging.LogRecord(
        name="ftxws.test",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_formatting(self):
        """Test basic JSON log formatting."""
        log_data = json.loads(JSONFormatter().format(make_record()))

        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "ftxws.test"
        assert log_data["message"] == "Test message"
        assert log_data["timestamp"].endswith("Z")
        assert log_data["source"]["line"] == 10

    def test_timestamp_optional(self):
        """Test timestamp can be disabled."""
        formatter = JSONFormatter(include_timestamp=False)

        log_data = json.loads(formatter.format(make_record()))

        assert "timestamp" not in log_data

    def test_exception_formatting(self):
        """Test exception info is included."""
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        log_data = json.loads(
            JSONFormatter().format(make_record(level=logging.ERROR, exc_info=exc_info))
        )

        assert log_data["exception"]["type"] == "ValueError"
        assert log_data["exception"]["message"] == "Test error"
        assert log_data["exception"]["traceback"]

    def test_extra_fields_from_record(self):
        """Test fields passed via extra= are serialized."""
        record = make_record(reconnect_count=3, topic="BTC-PERP::ticker")

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["reconnect_count"] == 3
        assert log_data["topic"] == "BTC-PERP::ticker"

    def test_error_objects_serialized(self):
        """Test FTXWSError extras use to_dict()."""
        record = make_record(error=NotConnectedError())

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["error"]["error_code"] == "CONNECTION_NOT_CONNECTED"

    def test_static_extra_fields(self):
        formatter = JSONFormatter(extra_fields={"service": "ftxws"})

        log_data = json.loads(formatter.format(make_record()))

        assert log_data["service"] == "ftxws"


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_handler_installed(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            configure_logging(level="DEBUG", json_format=True)

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            assert logging.getLogger("websockets").level == logging.INFO
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])

    def test_log_file(self, tmp_path):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        log_file = tmp_path / "logs" / "ftxws.log"
        try:
            configure_logging(json_format=False, log_file=str(log_file))
            get_logger("ftxws.test").info("hello")
            for handler in root.handlers:
                handler.flush()

            assert "hello" in log_file.read_text()
        finally:
            for handler in root.handlers:
                if handler not in saved[0]:
                    handler.close()
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])


class TestGetLogger:
    """Tests for get_logger."""

    def test_named_logger(self):
        assert get_logger("ftxws.cli") is logging.getLogger("ftxws.cli")

    def test_cli_logger_goes_through_helper(self, caplog, monkeypatch):
        from ftxws import cli

        # keep caplog's handler on the root logger
        monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)

        with caplog.at_level(logging.ERROR, logger="ftxws.cli"):
            code = cli.main(["--channel", "ticker", "--config", "missing.json"])

        assert code == 2
        assert cli.logger.name == "ftxws.cli"
        assert any(r.name == "ftxws.cli" for r in caplog.records)

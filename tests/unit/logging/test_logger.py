# tests/unit/logging/test_logger.py
"""Tests for logging/logger.py: formatters and logging setup."""

from __future__ import annotations

import json
import logging
import sys

from imageproxy.logging.context import (
    clear_context,
    set_address_context,
    set_request_context,
    set_state_context,
)
from imageproxy.logging.logger import (
    ROOT_LOGGER,
    JsonFormatter,
    TextFormatter,
    setup_logging,
)


def _record(msg: str = "Hello", exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=logging.INFO, pathname="", lineno=0,
        msg=msg, args=(), exc_info=exc_info,
    )


class TestJsonFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["level"] == "INFO"
        assert parsed["msg"] == "Hello"
        assert "ts" in parsed
        assert "request_id" not in parsed
        assert "where" not in parsed

    def test_format_with_context(self):
        set_request_context("req1")
        set_state_context("fetching")
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["request_id"] == "req1"
        assert parsed["state"] == "fetching"
        assert "address" not in parsed

    def test_address_is_top_level(self):
        set_request_context("req2")
        set_address_context("https%3A%2F%2Fx%2Fa.jpg/fit/0/0/0/100/a.jpg")
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["address"].endswith("/fit/0/0/0/100/a.jpg")

    def test_warning_has_location(self):
        record = _record()
        record.levelno, record.levelname = logging.WARNING, "WARNING"
        parsed = json.loads(JsonFormatter().format(record))
        assert parsed["where"] == f"{record.module}:{record.lineno}"

    def test_format_with_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = _record(exc_info=sys.exc_info())
        parsed = json.loads(JsonFormatter().format(record))
        assert parsed["error"] == "ValueError"
        assert "ValueError: bad" in parsed["traceback"]


class TestTextFormatter:
    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        output = TextFormatter().format(_record("Hello text"))
        assert "Hello text" in output
        assert "INFO" in output

    def test_format_with_context(self):
        set_request_context("abc123")
        set_state_context("serving")
        output = TextFormatter().format(_record())
        assert "[abc123]" in output
        assert "(serving)" in output


class TestSetupLogging:
    def teardown_method(self):
        root = logging.getLogger(ROOT_LOGGER)
        for handler in root.handlers:
            handler.close()
        root.handlers.clear()

    def test_setup_json(self):
        setup_logging(level="DEBUG", log_format="json")
        root = logging.getLogger(ROOT_LOGGER)
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_setup_text(self):
        setup_logging(level="INFO", log_format="text")
        root = logging.getLogger(ROOT_LOGGER)
        assert root.level == logging.INFO
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_no_duplicate_handlers(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger(ROOT_LOGGER).handlers) == 1

    def test_module_loggers_under_root(self):
        from imageproxy.proxy import orchestrator
        from imageproxy.storage import local_store

        for module in (orchestrator, local_store):
            assert module.logger.name.startswith(f"{ROOT_LOGGER}.")

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "proxy.log"
        setup_logging(log_file=str(log_file), rotation="1MB", retention=2)
        logging.getLogger(f"{ROOT_LOGGER}.test").info("written")
        for handler in logging.getLogger(ROOT_LOGGER).handlers:
            handler.flush()
        assert "written" in log_file.read_text()

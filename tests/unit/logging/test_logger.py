# tests/unit/logging/test_logger.py — v1
"""Tests for logging/logger.py — logger factory and formatters."""

from __future__ import annotations

import json
import logging

from staffsync.logging.context import clear_context, set_component_context, set_entity_context
from staffsync.logging.logger import (
    ROOT_LOGGER_NAME,
    JsonFormatter,
    TextFormatter,
    get_logger,
    setup_logging,
)


def _record(msg: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="staffsync.test", level=level, pathname="", lineno=0,
        msg=msg, args=(), exc_info=None,
    )


class TestJsonFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        parsed = json.loads(JsonFormatter().format(_record("Hello")))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Hello"
        assert "timestamp" in parsed
        assert "context" not in parsed

    def test_format_with_context(self):
        set_entity_context("42", "employee_1_42")
        parsed = json.loads(JsonFormatter().format(_record("indexed")))
        assert parsed["context"] == {"entity_id": "42", "record_id": "employee_1_42"}

    def test_format_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            import sys
            record = _record("failed", logging.ERROR)
            record.exc_info = sys.exc_info()
        parsed = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in parsed["exception"]


class TestTextFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        output = TextFormatter().format(_record("Hello text"))
        assert "INFO" in output
        assert "Hello text" in output

    def test_format_with_context(self):
        set_component_context("consumer")
        set_entity_context("7")
        output = TextFormatter().format(_record("x"))
        assert "[consumer]" in output
        assert "(entity=7)" in output


class TestSetupLogging:
    def teardown_method(self):
        root = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in root.handlers:
            handler.close()
        root.handlers.clear()
        root.propagate = True
        root.setLevel(logging.NOTSET)

    def test_get_logger_namespaced(self):
        assert get_logger("sync").name == "staffsync.sync"

    def test_json_handler(self):
        setup_logging(level="DEBUG", log_format="json")
        root = logging.getLogger(ROOT_LOGGER_NAME)
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_no_duplicate_handlers(self):
        setup_logging(log_format="text")
        setup_logging(log_format="text")
        assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "sync.log"
        setup_logging(log_format="json", log_file=str(log_file), rotation="1MB", retention=2)
        root = logging.getLogger(ROOT_LOGGER_NAME)
        assert len(root.handlers) == 2
        root.info("written")
        for handler in root.handlers:
            handler.flush()
        assert "written" in log_file.read_text()

    def test_quiets_httpx(self):
        setup_logging()
        assert logging.getLogger("httpx").level == logging.WARNING

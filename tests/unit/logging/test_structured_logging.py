"""Tests for logging configuration and the structured JSON formatter."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from rentvest.core.utils.logging import StructuredJSONFormatter, configure_logging, get_logger


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("rentvest.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredJSONFormatter:
    def test_shape(self):
        payload = json.loads(StructuredJSONFormatter().format(_record("hello")))

        assert payload["level"] == "INFO"
        assert payload["message"] == "hello"
        assert payload["context"]["logger_name"] == "rentvest.test"
        assert payload["context"]["line"] == 10
        assert "timestamp" in payload

    def test_message_and_extras_are_sanitized(self):
        record = _record(
            "login for ada@example.com",
            headers={"Authorization": "Bearer abc"},
            body={"password": "hunter2", "identifier": "ada"},
        )

        payload = json.loads(StructuredJSONFormatter().format(record))

        assert payload["message"] == "login for <REDACTED:EMAIL>"
        assert payload["context"]["headers"] == {"Authorization": "<REDACTED>"}
        assert payload["context"]["body"] == {"password": "<REDACTED>", "identifier": "ada"}

    def test_exception_info(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record("failed")
            record.exc_info = sys.exc_info()

        payload = json.loads(StructuredJSONFormatter().format(record))

        assert payload["context"]["error_type"] == "ValueError"
        assert payload["context"]["error_message"] == "boom"


class TestConfigureLogging:
    def test_level_and_file(self, tmp_path):
        log_file = tmp_path / "rentvest.jsonl"

        configure_logging(level="debug", filename=str(log_file), structured=True)
        logging.getLogger("rentvest.test").debug("written")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "written"

    def test_get_logger_with_context(self):
        adapter = get_logger("rentvest.test", backend="kyc")
        assert isinstance(adapter, logging.LoggerAdapter)
        assert adapter.extra == {"backend": "kyc"}
        assert isinstance(get_logger("rentvest.test"), logging.Logger)

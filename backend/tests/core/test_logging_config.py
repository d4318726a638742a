"""Unit tests for procflow.core.logging_config."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from procflow.core.logging_config import JSONFormatter, configure_logging


def _record(msg="hello %s", args=("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="procflow.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


class TestJSONFormatter:
    def test_single_json_line(self):
        line = JSONFormatter().format(_record())
        entry = json.loads(line)
        assert entry["message"] == "hello world"
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "procflow.test"
        assert "timestamp" in entry
        assert "\n" not in line

    def test_workflow_format_extra(self):
        entry = json.loads(JSONFormatter().format(_record(workflow_format="bpmn")))
        assert entry["workflow_format"] == "bpmn"

    def test_workflow_code_and_warning_count(self):
        entry = json.loads(JSONFormatter().format(_record(workflow_code="leave", warning_count=2)))
        assert (entry["workflow_code"], entry["warning_count"]) == ("leave", 2)

    def test_unknown_extras_ignored(self):
        entry = json.loads(JSONFormatter().format(_record(something_else=1)))
        assert "something_else" not in entry

    def test_exception_included(self):
        try:
            raise ValueError("bad input")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad input" in entry["exception"]


class TestConfigureLogging:
    def test_production_uses_json(self, restore_root_logger):
        configure_logging("production", "WARNING")
        root = restore_root_logger
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert root.level == logging.WARNING

    def test_development_uses_text(self, restore_root_logger):
        configure_logging("development", "debug")
        root = restore_root_logger
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)
        assert root.level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        configure_logging("production", "chatty")
        assert restore_root_logger.level == logging.INFO

    def test_noisy_loggers_quietened(self, restore_root_logger):
        configure_logging("production")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING

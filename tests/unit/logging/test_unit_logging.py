# tests/unit/logging/test_unit_logging.py - v1
"""Tests for logging/context.py, logging/logger.py and logging/handlers.py."""

from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler

import pytest

from contentflow.config.settings import Settings
from contentflow.logging.context import (
    clear_context,
    get_context,
    set_run_id,
    step_context,
)
from contentflow.logging.handlers import create_rotating_handler, parse_size
from contentflow.logging.logger import (
    JsonFormatter,
    TextFormatter,
    get_logger,
    setup_logging,
    setup_logging_from_settings,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger("contentflow")
    level, handlers = root.level, list(root.handlers)
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg: str = "hello %s", args=("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord("contentflow.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContext:
    def test_empty_by_default(self):
        clear_context()
        assert get_context().as_dict() == {}

    def test_step_context_binds_and_resets(self):
        clear_context()
        with step_context("item-1", "plan"):
            set_run_id("run-9")
            ctx = get_context()
            assert ctx.work_item_id == "item-1"
            assert ctx.step == "plan"
            assert ctx.run_id == "run-9"
        assert get_context().as_dict() == {}

    def test_reset_after_exception(self):
        clear_context()
        with pytest.raises(RuntimeError):
            with step_context("item-1", "media"):
                raise RuntimeError("boom")
        assert get_context().work_item_id is None


class TestFormatters:
    def test_json_includes_context(self):
        clear_context()
        with step_context("item-1", "write_block"):
            line = JsonFormatter().format(_record())
        entry = json.loads(line)
        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["context"] == {"work_item_id": "item-1", "step": "write_block"}

    def test_json_data_payload(self):
        clear_context()
        entry = json.loads(JsonFormatter().format(_record(data={"blocks": 5})))
        assert entry["data"] == {"blocks": 5}
        assert "context" not in entry

    def test_text_format(self):
        clear_context()
        with step_context("abcdef123456", "plan"):
            line = TextFormatter().format(_record())
        assert "[INFO    ]" in line
        assert "[abcdef12]" in line
        assert "(plan)" in line
        assert line.endswith("- hello world")


class TestSetup:
    def test_get_logger_namespaced(self):
        assert get_logger("pipeline").name == "contentflow.pipeline"
        assert get_logger("contentflow.api").name == "contentflow.api"

    def test_no_handler_stacking(self):
        setup_logging(level="DEBUG", log_format="text")
        root = setup_logging(level="WARNING", log_format="json")
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "cf.log"
        root = setup_logging(log_file=str(log_file), rotation="1KB", retention=2)
        try:
            assert len(root.handlers) == 2
            assert log_file.parent.exists()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers.clear()

    def test_from_settings(self):
        root = setup_logging_from_settings(Settings(_env_file=None, log_level="ERROR"))
        assert root.level == logging.ERROR


class TestHandlers:
    def test_parse_size(self):
        assert parse_size("10MB") == 10 * 1024 * 1024
        assert parse_size("512kb") == 512 * 1024
        assert parse_size("100") == 100

    def test_parse_size_invalid(self):
        with pytest.raises(ValueError):
            parse_size("ten megs")

    def test_rotating_handler(self, tmp_path):
        handler = create_rotating_handler(str(tmp_path / "a" / "b.log"), "2KB", 3)
        try:
            assert isinstance(handler, RotatingFileHandler)
            assert handler.maxBytes == 2048
            assert handler.backupCount == 3
        finally:
            handler.close()

"""
Tests for the structured logging setup.
"""

import json
import logging

import pytest
import structlog

from tunemood.utils.logging_config import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    clear_request_context()
    structlog.reset_defaults()


def read_records(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


class TestSetupLogging:
    """Test file output and request context."""

    def test_writes_json_lines_with_request_context(self, tmp_path, restore_logging):
        setup_logging(log_dir=str(tmp_path), log_level="INFO", enable_console=False)

        bind_request_context("req-1", "/genres", user_id="u1")
        get_logger("tests.logging").info("genre_lookup", artist="Nina Simone")
        clear_request_context()
        get_logger("tests.logging").info("after_request")

        records = read_records(tmp_path / "tunemood.log")
        assert records[0]["event"] == "genre_lookup"
        assert records[0]["artist"] == "Nina Simone"
        assert records[0]["request_id"] == "req-1"
        assert records[0]["user_id"] == "u1"
        assert "request_id" not in records[1]

    def test_errors_file_only_gets_errors(self, tmp_path, restore_logging):
        setup_logging(log_dir=str(tmp_path), enable_console=False)

        logger = get_logger("tests.logging")
        logger.info("routine")
        logger.error("provider_down", provider="LastFM")

        errors = read_records(tmp_path / "errors.log")
        assert [r["event"] for r in errors] == ["provider_down"]
        assert errors[0]["level"] == "error"

    def test_debug_level_filters_nothing(self, tmp_path, restore_logging):
        setup_logging(log_dir=str(tmp_path), log_level="debug", enable_console=False)

        get_logger("tests.logging").debug("verbose")

        assert read_records(tmp_path / "tunemood.log")[0]["event"] == "verbose"

    def test_unknown_level_falls_back_to_info(self, tmp_path, restore_logging):
        instance = setup_logging(log_dir=str(tmp_path), log_level="chatty", enable_console=False)
        assert instance.level == logging.INFO

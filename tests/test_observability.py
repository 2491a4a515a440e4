"""
Tests for logging setup and the engine log sink.
"""

import logging

import pytest

from media_toolchain.core.observability.log_sink import LogLevel, LogSink, MemorySink
from media_toolchain.core.observability.logging_config import (
    SUCCESS,
    _parse_level,
    level_from_flags,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    def test_console_level(self, restore_root_logger):
        setup_logging(level="INFO")
        root = restore_root_logger
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert root.handlers[0].level == logging.INFO

    def test_file_handler_gets_own_level(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "engine.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2

        logging.getLogger("media_toolchain.test").debug("to the file only")
        for h in root.handlers:
            h.flush()
        assert "to the file only" in log_file.read_text(encoding="utf-8")
        for h in root.handlers[1:]:
            h.close()

    def test_noisy_loggers_quieted(self, restore_root_logger):
        setup_logging(level="INFO")
        assert logging.getLogger("concurrent.futures").level == logging.WARNING

    @pytest.mark.parametrize("name, expected", [
        ("debug", logging.DEBUG),
        ("SUCCESS", SUCCESS),
        ("bogus", logging.WARNING),
        (None, logging.WARNING),
    ])
    def test_parse_level(self, name, expected):
        assert _parse_level(name) == expected

    def test_flag_precedence(self):
        env = {"MTC_LOG_LEVEL": "SUCCESS"}
        assert level_from_flags(debug=True, verbose=True, env=env) == "DEBUG"
        assert level_from_flags(verbose=True, quiet=True, env=env) == "INFO"
        assert level_from_flags(quiet=True, env=env) == "ERROR"
        assert level_from_flags(env=env) == "SUCCESS"
        assert level_from_flags(env={}) == "WARNING"


class TestLogSink:
    def test_success_level_between_info_and_warning(self):
        assert logging.INFO < LogLevel.SUCCESS.numeric < logging.WARNING
        assert logging.getLevelName(SUCCESS) == "SUCCESS"

    def test_forwards_to_logging(self, caplog):
        with caplog.at_level(logging.INFO, logger="media_toolchain.plugins"):
            LogSink().log(LogLevel.WARNING, "FFmpeg", "Failed", ValueError("boom"))
        assert caplog.records[-1].levelno == logging.WARNING
        assert caplog.records[-1].getMessage() == "[FFmpeg] Failed: boom"

    def test_no_context(self, caplog):
        with caplog.at_level(logging.INFO, logger="media_toolchain.plugins"):
            LogSink().log(LogLevel.INFO, "", "Run started")
        assert caplog.records[-1].getMessage() == "Run started"

    def test_memory_sink_records(self):
        sink = MemorySink()
        sink.log(LogLevel.SUCCESS, "7-Zip", "Installed 24.09")
        sink.log(LogLevel.ERROR, "7-Zip", "Aborting", "no release")

        assert [e.level for e in sink.entries] == [LogLevel.SUCCESS, LogLevel.ERROR]
        assert sink.at(LogLevel.ERROR)[0].error == "no release"
        assert sink.at(LogLevel.SUCCESS)[0].error is None

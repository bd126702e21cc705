"""
Unit tests for logging and the AI interaction log.
"""

import logging

import pytest

from chronoflux.utils.debug import AIInteractionLog, get_ai_interaction_log
from chronoflux.utils.logger import ColoredFormatter, get_logger, setup_logging


class TestLogger:
    """Test the logging utilities"""

    def test_get_logger(self):
        logger = get_logger("test")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "test"

    def test_setup_logging(self):
        try:
            setup_logging(level="INFO", enable_colors=False)
        except Exception as e:
            pytest.fail(f"setup_logging raised an exception: {e}")
        assert logging.getLogger().level == logging.INFO

    def test_unknown_level_falls_back_to_info(self):
        setup_logging(level="chatty", enable_colors=False)
        assert logging.getLogger().level == logging.INFO

    def test_noisy_libraries_silenced(self):
        setup_logging(level="DEBUG", enable_colors=False)
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger().level == logging.DEBUG

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "chronoflux.log"
        setup_logging(level="INFO", log_file=str(log_file), enable_console_logging=False)
        get_logger("test_file").info("[Test] written to file")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "[Test] written to file" in log_file.read_text()
        setup_logging(level="INFO", enable_colors=False)

    def test_colored_formatter_leaves_record_untouched(self):
        record = logging.LogRecord("chronoflux", logging.WARNING, __file__, 1, "hi", None, None)
        output = ColoredFormatter("%(levelname)s %(name)s %(message)s").format(record)
        assert "\033[33m" in output
        assert record.levelname == "WARNING"


class TestAIInteractionLog:
    """Bounded newest-first log of provider calls"""

    def test_newest_first(self):
        log = AIInteractionLog()
        log.add("ollama", "first prompt", "first", 10.0)
        log.add("ollama", "second prompt", "second", 12.345)

        entries = log.entries()
        assert [e["response"] for e in entries] == ["second", "first"]
        assert entries[0]["duration"] == 12.35
        assert "error" not in entries[0]

    def test_error_recorded(self):
        log = AIInteractionLog()
        entry = log.add("openrouter", "prompt", "", 5.0, error="Rate limit exceeded")
        assert entry["error"] == "Rate limit exceeded"

    def test_capped(self):
        log = AIInteractionLog(max_entries=3)
        for i in range(5):
            log.add("ollama", f"prompt {i}", str(i), 1.0)
        assert len(log) == 3
        assert log.entries()[0]["response"] == "4"
        assert log.entries()[-1]["response"] == "2"

    def test_clear(self):
        log = AIInteractionLog()
        log.add("ollama", "prompt", "text", 1.0)
        log.clear()
        assert log.entries() == []

    def test_global_instance(self):
        assert get_ai_interaction_log() is get_ai_interaction_log()

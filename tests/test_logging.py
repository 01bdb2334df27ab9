"""Tests for the PyUnbox logger."""

import io
import logging

from pyunbox.logging import (
    LogEntry,
    LogLevel,
    UnboxLogger,
    configure_logging,
    get_logger,
    set_logger,
    setup_python_logging,
)


def make_logger(level=LogLevel.NORMAL):
    stream = io.StringIO()
    return UnboxLogger(level=level, color=False, stream=stream), stream


class TestLevels:
    def test_entries_above_the_level_are_kept_but_not_written(self):
        logger, stream = make_logger(LogLevel.NORMAL)
        logger.info("shown")
        logger.debug("hidden", category="absint")
        assert "shown" in stream.getvalue()
        assert "hidden" not in stream.getvalue()
        assert [entry.message for entry in logger.get_entries(category="absint")] == ["hidden"]

    def test_filter_by_level(self):
        logger, _ = make_logger(LogLevel.TRACE)
        logger.trace("a")
        logger.verbose("b")
        assert [entry.message for entry in logger.get_entries(level=LogLevel.TRACE)] == ["a"]

    def test_quiet_still_shows_errors(self):
        logger, stream = make_logger(LogLevel.QUIET)
        logger.warning("careful")
        logger.error("broken")
        assert "careful" not in stream.getvalue()
        assert "✗ broken" in stream.getvalue()

    def test_warning_is_marked(self):
        logger, stream = make_logger()
        logger.warning("careful", category="absint")
        (entry,) = logger.get_entries(category="absint")
        assert entry.context == {"warning": True}
        assert stream.getvalue() == "⚠ careful\n"

    def test_format_without_color(self):
        entry = LogEntry(LogLevel.DEBUG, "merged", category="escape")
        assert entry.format(color=False, show_time=False) == "⚙ [escape] merged"

    def test_location(self):
        entry = LogEntry(LogLevel.TRACE, "LOAD_CONST", category="absint", function="f", offset=6)
        assert entry.format(color=False, show_time=False) == "⋯ [absint] f@6 LOAD_CONST"

    def test_analyzing_stamps_the_function(self):
        logger, stream = make_logger(LogLevel.TRACE)
        with logger.analyzing("outer"):
            logger.trace("step", offset=2)
            with logger.analyzing("inner"):
                logger.debug("nested")
        logger.info("after")
        assert [entry.function for entry in logger.get_entries()] == ["outer", "inner", None]
        assert [entry.message for entry in logger.get_entries(offset=2)] == ["step"]
        assert "outer@2 step" in stream.getvalue()

    def test_set_level(self):
        logger, stream = make_logger(LogLevel.QUIET)
        logger.set_level(LogLevel.DEBUG)
        logger.debug("now shown")
        assert "now shown" in stream.getvalue()

    def test_file_output(self, tmp_path):
        path = tmp_path / "log.txt"
        logger = UnboxLogger(color=False, stream=io.StringIO(), file_path=path)
        logger.info("to file")
        logger.close()
        assert "to file" in path.read_text(encoding="utf-8")


class TestCountersAndTimers:
    def test_counters(self):
        logger, _ = make_logger()
        assert logger.count("functions_analyzed") == 1
        assert logger.count("functions_analyzed", 2) == 3
        assert logger.get_count("functions_analyzed") == 3
        assert logger.get_count("missing") == 0
        logger.clear()
        assert logger.get_count("functions_analyzed") == 0
        assert logger.get_entries() == []

    def test_timer_logs_verbose_entry(self):
        logger, _ = make_logger()
        with logger.timer("interpret count"):
            pass
        (entry,) = logger.get_entries(category="timing")
        assert entry.level is LogLevel.VERBOSE
        assert entry.message.startswith("interpret count: ")


class TestGlobalLogger:
    def test_configure_replaces_the_global_logger(self):
        stream = io.StringIO()
        logger = configure_logging(level=LogLevel.DEBUG, color=False, stream=stream)
        assert get_logger() is logger
        assert logger.level is LogLevel.DEBUG

    def test_python_logging_bridge(self):
        logger, _ = make_logger(LogLevel.TRACE)
        set_logger(logger)
        bridge = setup_python_logging(logging.DEBUG)
        std_logger = logging.getLogger("pyunbox.tests")
        try:
            std_logger.info("hello")
            std_logger.warning("careful")
            std_logger.error("broken")
        finally:
            logging.getLogger("pyunbox").removeHandler(bridge)
        entries = logger.get_entries(category="python")
        assert [entry.message for entry in entries] == ["hello", "careful", "broken"]
        assert entries[0].level is LogLevel.NORMAL
        assert entries[1].context == {"warning": True}
        assert entries[2].context == {"error": True}

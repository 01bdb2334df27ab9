"""Logging framework for PyUnbox.
Structured entries tagged with the code unit and bytecode offset they concern,
configurable verbosity, and a bridge from the stdlib ``logging`` module.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, TextIO

# Categories used by the analysis.
ABSINT = "absint"
ESCAPE = "escape"
TIMING = "timing"
PYTHON = "python"


class LogLevel(IntEnum):
    """Verbosity levels, each including the ones below it."""

    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3
    TRACE = 4


class Colors:
    RESET = "\033[0m"
    RED = "\033[31m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    GRAY = "\033[90m"


_INDICATORS = {
    LogLevel.NORMAL: ("•", Colors.WHITE),
    LogLevel.VERBOSE: ("→", Colors.BLUE),
    LogLevel.DEBUG: ("⚙", Colors.MAGENTA),
    LogLevel.TRACE: ("⋯", Colors.GRAY),
}


def supports_color(stream: TextIO) -> bool:
    """Check if the stream is a terminal that understands ANSI colors."""
    if not getattr(stream, "isatty", None) or not stream.isatty():
        return False
    if sys.platform == "win32":
        return bool(os.environ.get("TERM") or "ANSICON" in os.environ)
    return True


def _paint(text: str, color: str, enabled: bool) -> str:
    return f"{color}{text}{Colors.RESET}" if enabled else text


@dataclass
class LogEntry:
    """
    One logged event.
    Attributes:
        level: Verbosity the entry was logged at
        message: Human readable text
        category: Subsystem, e.g. ``absint`` or ``escape``
        function: Name of the code unit under analysis, if any
        offset: Bytecode offset the entry is about, if any
        timestamp: Wall-clock time of the event
        context: Extra key/value data; warnings and errors are marked here
    """

    level: LogLevel
    message: str
    category: str = "general"
    function: str | None = None
    offset: int | None = None
    timestamp: float = field(default_factory=time.time)
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def location(self) -> str:
        if self.function is None:
            return "" if self.offset is None else f"@{self.offset}"
        return self.function if self.offset is None else f"{self.function}@{self.offset}"

    def format(self, color: bool = True, show_time: bool = True) -> str:
        parts = []
        if show_time:
            parts.append(_paint(time.strftime("%H:%M:%S", time.localtime(self.timestamp)), Colors.GRAY, color))
        if self.level in _INDICATORS:
            char, col = _INDICATORS[self.level]
            parts.append(_paint(char, col, color))
        if self.category != "general":
            parts.append(_paint(f"[{self.category}]", Colors.CYAN, color))
        if self.location:
            parts.append(_paint(self.location, Colors.GRAY, color))
        parts.append(self.message)
        return " ".join(parts)


class UnboxLogger:
    """Main logger for PyUnbox.

    Every entry is kept (see ``get_entries``); only entries at or below the
    configured level are written to the stream. Inside ``analyzing()`` every
    entry is stamped with the name of the code unit being analyzed.
    """

    def __init__(
        self,
        level: LogLevel = LogLevel.NORMAL,
        color: bool = True,
        stream: TextIO | None = None,
        file_path: Path | None = None,
    ):
        self.level = level
        self._stream = stream or sys.stderr
        self._color = color and supports_color(self._stream)
        self._file_handle: TextIO | None = None
        self._entries: list[LogEntry] = []
        self._counters: dict[str, int] = {}
        self._function: str | None = None
        if file_path is not None:
            self.open_file(file_path)

    def set_level(self, level: LogLevel) -> None:
        self.level = level

    @property
    def tracing(self) -> bool:
        """Whether per-instruction trace output is wanted."""
        return self.level >= LogLevel.TRACE

    def _write(self, text: str, plain: str) -> None:
        self._stream.write(text + "\n")
        self._stream.flush()
        if self._file_handle:
            self._file_handle.write(plain + "\n")
            self._file_handle.flush()

    def _record(self, entry: LogEntry) -> LogEntry:
        if entry.function is None:
            entry.function = self._function
        self._entries.append(entry)
        return entry

    def log(
        self,
        level: LogLevel,
        message: str,
        category: str = "general",
        offset: int | None = None,
        **context: Any,
    ) -> None:
        """Log a message at the specified level."""
        entry = self._record(LogEntry(level, message, category, offset=offset, context=context))
        if level <= self.level:
            self._write(entry.format(color=self._color), entry.format(color=False))

    def info(self, message: str, **context: Any) -> None:
        self.log(LogLevel.NORMAL, message, **context)

    def verbose(self, message: str, **context: Any) -> None:
        self.log(LogLevel.VERBOSE, message, **context)

    def debug(self, message: str, **context: Any) -> None:
        self.log(LogLevel.DEBUG, message, **context)

    def trace(self, message: str, **context: Any) -> None:
        self.log(LogLevel.TRACE, message, **context)

    def _marked(self, level: LogLevel, marker: str, color: str, kind: str, message: str, category: str) -> None:
        self._record(LogEntry(level, message, category, context={kind: True}))
        if level <= self.level:
            self._write(f"{_paint(marker, color, self._color)} {message}", f"{marker} {message}")

    def warning(self, message: str, category: str = "general") -> None:
        """Log a warning (hidden only when quiet)."""
        self._marked(LogLevel.NORMAL, "⚠", Colors.YELLOW, "warning", message, category)

    def error(self, message: str, category: str = "general") -> None:
        """Log an error (always shown)."""
        self._marked(LogLevel.QUIET, "✗", Colors.RED, "error", message, category)

    @contextmanager
    def analyzing(self, function: str):
        """Stamp entries logged inside the block with ``function``."""
        outer = self._function
        self._function = function
        try:
            yield
        finally:
            self._function = outer

    @contextmanager
    def timer(self, name: str, category: str = TIMING):
        """Log the time spent in the block at verbose level."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.verbose(f"{name}: {time.perf_counter() - start:.3f}s", category=category)

    def count(self, name: str, increment: int = 1) -> int:
        """Increment a counter and return new value."""
        self._counters[name] = self._counters.get(name, 0) + increment
        return self._counters[name]

    def get_count(self, name: str) -> int:
        return self._counters.get(name, 0)

    def get_entries(
        self,
        level: LogLevel | None = None,
        category: str | None = None,
        offset: int | None = None,
    ) -> list[LogEntry]:
        """Get logged entries, optionally filtered."""
        return [
            e
            for e in self._entries
            if (level is None or e.level == level)
            and (category is None or e.category == category)
            and (offset is None or e.offset == offset)
        ]

    def clear(self) -> None:
        """Forget recorded entries and counters."""
        self._entries.clear()
        self._counters.clear()

    def open_file(self, path: Path) -> None:
        self._file_handle = open(path, "w", encoding="utf-8")

    def close(self) -> None:
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None


_logger: UnboxLogger | None = None


def get_logger() -> UnboxLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = UnboxLogger()
    return _logger


def set_logger(logger: UnboxLogger) -> None:
    global _logger
    _logger = logger


def configure_logging(
    level: LogLevel = LogLevel.NORMAL,
    color: bool = True,
    file_path: Path | None = None,
    stream: TextIO | None = None,
) -> UnboxLogger:
    """Configure and return the global logger."""
    set_logger(UnboxLogger(level=level, color=color, stream=stream, file_path=file_path))
    return get_logger()


class PythonLoggingBridge(logging.Handler):
    """Forward records of the stdlib ``pyunbox`` logger to an UnboxLogger."""

    _LEVELS = {
        logging.DEBUG: LogLevel.DEBUG,
        logging.INFO: LogLevel.NORMAL,
    }

    def __init__(self, shadow_logger: UnboxLogger):
        super().__init__()
        self.shadow_logger = shadow_logger

    def emit(self, record: logging.LogRecord) -> None:
        message = self.format(record)
        if record.levelno >= logging.ERROR:
            self.shadow_logger.error(message, category=PYTHON)
        elif record.levelno >= logging.WARNING:
            self.shadow_logger.warning(message, category=PYTHON)
        else:
            self.shadow_logger.log(self._LEVELS.get(record.levelno, LogLevel.TRACE), message, category=PYTHON)


def setup_python_logging(level: int = logging.INFO) -> PythonLoggingBridge:
    """Route the ``pyunbox`` stdlib logger into the global PyUnbox logger."""
    logger = logging.getLogger("pyunbox")
    logger.setLevel(level)
    bridge = PythonLoggingBridge(get_logger())
    logger.addHandler(bridge)
    return bridge


__all__ = [
    "ABSINT",
    "ESCAPE",
    "TIMING",
    "PYTHON",
    "LogLevel",
    "LogEntry",
    "Colors",
    "UnboxLogger",
    "PythonLoggingBridge",
    "get_logger",
    "set_logger",
    "configure_logging",
    "setup_python_logging",
    "supports_color",
]

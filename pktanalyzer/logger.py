"""Levelled console/file logger with optional ANSI colours and hex dumps."""

from __future__ import annotations

import sys
import time
from enum import IntEnum
from typing import IO, Optional


class LogLevel(IntEnum):
    """Severity levels, ordered from least to most severe."""

    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    CRITICAL = 4


_COLORS = {
    LogLevel.DEBUG: "\033[36m",
    LogLevel.INFO: "\033[32m",
    LogLevel.WARN: "\033[33m",
    LogLevel.ERROR: "\033[31m",
    LogLevel.CRITICAL: "\033[35m",
}
_RESET = "\033[0m"
_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_hexdump(data: bytes) -> str:
    """Render data as hex dump lines of 16 bytes, each line ending in a newline."""
    lines = []
    for offset in range(0, len(data), 16):
        chunk = bytes(data[offset:offset + 16])
        hex_part = "".join(f"{byte:02x} " for byte in chunk)
        text_part = "".join(chr(byte) if 32 <= byte < 127 else "." for byte in chunk)
        lines.append(f"  {offset:04x}: {hex_part} | {text_part}\n")
    return "".join(lines)


class Logger:
    """Writes timestamped, levelled messages to a file or a console stream.

    Colours are used only for console output, never for a log file.
    """

    def __init__(
        self,
        log_file: Optional[str] = None,
        min_level: LogLevel = LogLevel.INFO,
        stream: Optional[IO[str]] = None,
    ) -> None:
        self.min_level = LogLevel(min_level)
        self.use_colors = True
        self.use_timestamps = True
        self._stream = stream
        self._file: Optional[IO[str]] = None
        self._closed = False
        if log_file is not None:
            try:
                self._file = open(log_file, "a", encoding="utf-8")
            except OSError:
                print(f"Failed to open log file: {log_file}", file=sys.stderr)
        self.info("Logger initialized")

    @property
    def _out(self) -> IO[str]:
        if self._file is not None:
            return self._file
        return self._stream if self._stream is not None else sys.stdout

    def _emit(self, level: LogLevel, text: str) -> None:
        colored = self.use_colors and self._file is None
        parts = []
        if colored:
            parts.append(_COLORS[level])
        if self.use_timestamps:
            parts.append(f"[{time.strftime(_TIMESTAMP_FORMAT, time.localtime())}] ")
        parts.append(text)
        if colored:
            parts.append(_RESET)
        out = self._out
        out.write("".join(parts))
        out.flush()

    def log(self, level: LogLevel, message: str) -> None:
        """Write a message if its level is at or above the minimum level."""
        if self._closed:
            return
        level = LogLevel(level)
        if level < self.min_level:
            return
        self._emit(level, f"[{level.name}] {message}\n")

    def debug(self, message: str) -> None:
        self.log(LogLevel.DEBUG, message)

    def info(self, message: str) -> None:
        self.log(LogLevel.INFO, message)

    def warn(self, message: str) -> None:
        self.log(LogLevel.WARN, message)

    def error(self, message: str) -> None:
        self.log(LogLevel.ERROR, message)

    def critical(self, message: str) -> None:
        self.log(LogLevel.CRITICAL, message)

    def hexdump(self, label: str, data: bytes) -> None:
        """Write a labelled hex dump of data; only emitted at DEBUG level."""
        if self._closed or self.min_level > LogLevel.DEBUG or not data:
            return
        self._emit(LogLevel.DEBUG, f"[HEXDUMP] {label}:\n{format_hexdump(data)}")

    def close(self) -> None:
        """Close the log file, if any; later messages are discarded."""
        if self._file is not None:
            self._file.close()
            self._file = None
        self._closed = True

    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


_global_logger: Optional[Logger] = None


def init_logger(log_file: Optional[str] = None, min_level: LogLevel = LogLevel.INFO) -> Logger:
    """Replace the process-wide logger with a new one and return it."""
    global _global_logger
    cleanup_logger()
    _global_logger = Logger(log_file, min_level)
    return _global_logger


def get_logger() -> Logger:
    """Return the process-wide logger, creating an INFO console logger if needed."""
    if _global_logger is None:
        return init_logger(None, LogLevel.INFO)
    return _global_logger


def cleanup_logger() -> None:
    """Close and discard the process-wide logger."""
    global _global_logger
    if _global_logger is not None:
        _global_logger.close()
        _global_logger = None
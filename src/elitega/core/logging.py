"""Structured logging utilities.

Records are single JSON lines so interleaved output from many worker
threads stays machine-readable.
"""

from __future__ import annotations

import json
import sys
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, TextIO

_LEVELS = {"DEBUG": 0, "INFO": 1, "WARN": 2, "ERROR": 3}
_write_lock = threading.Lock()


@dataclass
class LogRecord:
    """Structured log record."""

    level: str
    message: str
    timestamp: float = field(default_factory=time.time)
    thread: str = field(default_factory=lambda: threading.current_thread().name)
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "message": self.message,
            "timestamp": self.timestamp,
            "thread": self.thread,
            **self.data,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class StructuredLogger:
    """JSON-lines logger safe to share between threads."""

    def __init__(
        self,
        name: str,
        output: TextIO | None = None,
        min_level: str = "INFO",
    ) -> None:
        self.name = name
        self.output = output
        self._min_level = _LEVELS.get(min_level.upper(), 1)

    def set_level(self, level: str) -> None:
        self._min_level = _LEVELS.get(level.upper(), 1)

    def is_enabled(self, level: str) -> bool:
        return _LEVELS.get(level, 0) >= self._min_level

    def _log(self, level: str, message: str, **data: Any) -> None:
        if not self.is_enabled(level):
            return

        record = LogRecord(level=level, message=message, data={"logger": self.name, **data})
        line = record.to_json()
        # Resolved per call so a redirected sys.stderr is honoured
        out = self.output or sys.stderr
        with _write_lock:
            print(line, file=out, flush=True)

    def debug(self, message: str, **data: Any) -> None:
        """Log at DEBUG level."""
        self._log("DEBUG", message, **data)

    def info(self, message: str, **data: Any) -> None:
        """Log at INFO level."""
        self._log("INFO", message, **data)

    def warn(self, message: str, **data: Any) -> None:
        """Log at WARN level."""
        self._log("WARN", message, **data)

    def error(self, message: str, **data: Any) -> None:
        """Log at ERROR level."""
        self._log("ERROR", message, **data)

    @contextmanager
    def timer(self, operation: str, **data: Any):
        """Context manager for timing operations.

        Usage:
            with logger.timer("emit_artifacts"):
                save_elite_archive(...)
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self.debug(f"{operation} completed", elapsed_ms=elapsed * 1000, **data)


# Global logger cache
_loggers: dict[str, StructuredLogger] = {}
_default_level = "INFO"
_cache_lock = threading.Lock()


def get_logger(name: str) -> StructuredLogger:
    """Get or create a structured logger.

    Args:
        name: Logger name (typically __name__).
    """
    with _cache_lock:
        if name not in _loggers:
            _loggers[name] = StructuredLogger(name, min_level=_default_level)
        return _loggers[name]


def set_log_level(level: str) -> None:
    """Set minimum log level for all current and future loggers.

    Args:
        level: One of DEBUG, INFO, WARN, ERROR.
    """
    global _default_level
    level = level.upper()
    if level not in _LEVELS:
        raise ValueError(f"Unknown log level {level!r} (expected one of {', '.join(_LEVELS)})")
    with _cache_lock:
        _default_level = level
        for logger in _loggers.values():
            logger.set_level(level)

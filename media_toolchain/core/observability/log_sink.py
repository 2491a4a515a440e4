"""
Log sink — the narrow logging interface the orchestrator reports through.

``log(level, context, message, error=None)`` where ``context`` is the
plugin (or phase) the event concerns. The default sink forwards to the
stdlib ``media_toolchain.plugins`` logger; ``MemorySink`` keeps entries
in a list for tests and for the CLI warnings summary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from media_toolchain.core.observability.logging_config import SUCCESS


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"

    @property
    def numeric(self) -> int:
        if self is LogLevel.SUCCESS:
            return SUCCESS
        return getattr(logging, self.value)


@dataclass(frozen=True)
class LogEntry:
    level: LogLevel
    context: str
    message: str
    error: str | None = None


class LogSink:
    """Forward engine events to stdlib logging."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("media_toolchain.plugins")

    def log(
        self,
        level: LogLevel,
        context: str,
        message: str,
        error: BaseException | str | None = None,
    ) -> None:
        text = f"[{context}] {message}" if context else message
        if error is not None:
            text = f"{text}: {error}"
        self._logger.log(level.numeric, text)


class MemorySink(LogSink):
    """Record entries in memory (and still forward to logging)."""

    def __init__(self, logger: logging.Logger | None = None):
        super().__init__(logger)
        self.entries: list[LogEntry] = []

    def log(
        self,
        level: LogLevel,
        context: str,
        message: str,
        error: BaseException | str | None = None,
    ) -> None:
        self.entries.append(
            LogEntry(level, context, message, str(error) if error is not None else None)
        )
        super().log(level, context, message, error)

    def at(self, level: LogLevel) -> list[LogEntry]:
        return [e for e in self.entries if e.level == level]

"""
Logging configuration — one root setup for the CLI process.

``main.py`` calls ``setup_logging`` once; engine modules only ever do
``logger = logging.getLogger(__name__)``. Console verbosity comes from
``level_from_flags`` (``--debug`` > ``--verbose`` > ``--quiet`` >
``MTC_LOG_LEVEL`` > WARNING). ``MTC_LOG_FILE`` adds a file handler with
its own level (``MTC_LOG_FILE_LEVEL``).

Adds a ``SUCCESS`` level between INFO and WARNING for "plugin installed
or upgraded" events, so a default WARNING console stays quiet while a
log file at SUCCESS keeps an install history.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

ENV_LOG_LEVEL = "MTC_LOG_LEVEL"
ENV_LOG_FILE = "MTC_LOG_FILE"
ENV_LOG_FILE_LEVEL = "MTC_LOG_FILE_LEVEL"

# ── Formats, by console verbosity ───────────────────────────────

_FULL_FMT = "%(asctime)s %(levelname)-7s %(threadName)s %(name)s:%(lineno)d  %(message)s"

# (threshold, format, datefmt): first threshold the level is <= wins
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, _FULL_FMT, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s %(levelname)-7s %(message)s", "%H:%M:%S"),
)
_QUIET_FMT = "%(message)s"

_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Worker-pool chatter from parallel phases
_NOISY_LOGGERS = ("concurrent.futures", "asyncio")


def level_from_flags(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env: Mapping[str, str] | None = None,
) -> str:
    """Console level name for the CLI's global flags."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return (env or {}).get(ENV_LOG_LEVEL) or "WARNING"


def _console_formatter(level: int) -> logging.Formatter:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return logging.Formatter(fmt, datefmt=datefmt)
    return logging.Formatter(_QUIET_FMT)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Replace the root logger's handlers with a stderr console handler
    and, optionally, a UTF-8 file handler.

    Args:
        level: Console level name (DEBUG, INFO, SUCCESS, WARNING, ERROR).
        log_file: Path of an extra log file.
        log_file_level: Level for the file; defaults to ``level``.
        quiet_third_party: Hold pool/async loggers at WARNING unless the
            console is at DEBUG.
    """
    console_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))

    handlers: list[logging.Handler] = [console]
    if log_file:
        file_level = _parse_level(log_file_level or level)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FULL_FMT, datefmt=_FILE_DATEFMT))
        handlers.append(fh)

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    # The root must let through whatever the most verbose handler wants.
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Level name (including SUCCESS) → number; unknown names mean WARNING."""
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.WARNING

"""
System clock service.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime

from media_toolchain.adapters.base import Clock


class SystemClock(Clock):
    """Wall clock, monotonic timer and real sleeps."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

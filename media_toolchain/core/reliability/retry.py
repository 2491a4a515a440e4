"""
Retry policy — bounded retries with linear backoff.

Network and process calls are retried a small fixed number of times
before the error surfaces to the per-plugin failure boundary. Sleeping
goes through the injected ``Clock`` so tests never wait.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from media_toolchain.adapters.base import Clock
from media_toolchain.core.errors import NetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """``retries`` extra attempts after the first, ``backoff * attempt`` apart."""

    retries: int = 2
    backoff_seconds: float = 1.0

    @property
    def max_attempts(self) -> int:
        return self.retries + 1

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        return self.backoff_seconds * attempt


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    clock: Clock,
    *,
    label: str = "",
    retry_on: tuple[type[BaseException], ...] = (NetworkError,),
    retry_if: Callable[[BaseException], bool] | None = None,
) -> T:
    """Call ``fn`` until it succeeds or the policy is exhausted.

    Only exceptions in ``retry_on`` (and accepted by ``retry_if``) are
    retried; the last one is re-raised.
    """
    attempt = 0
    while True:
        try:
            return fn()
        except retry_on as e:
            attempt += 1
            if retry_if is not None and not retry_if(e):
                raise
            if attempt > policy.retries:
                logger.debug("%s: giving up after %d attempts", label or "call", attempt)
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                label or "call", attempt, policy.max_attempts, delay, e,
            )
            clock.sleep(delay)


def is_transient(exc: BaseException) -> bool:
    """Transport failures, 5xx and 429 are worth retrying; other 4xx are not."""
    if not isinstance(exc, NetworkError):
        return False
    return exc.status is None or exc.status >= 500 or exc.status == 429

"""
Service registry — the bundle of capability services the engine uses.

The engine never builds services itself; it receives a ``Services``
instance. ``Services.local()`` wires the real implementations, tests
pass fakes from ``media_toolchain.adapters.mock``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from media_toolchain.adapters.base import Clock, FileSystem, HttpClient, ProcessRunner

if TYPE_CHECKING:
    from media_toolchain.core.models.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    """File system, process, HTTP and clock, injected as one unit."""

    fs: FileSystem
    process: ProcessRunner
    http: HttpClient
    clock: Clock

    @classmethod
    def local(cls, settings: Settings | None = None) -> Services:
        """Real implementations, with timeouts taken from ``settings``."""
        from media_toolchain.adapters.clock import SystemClock
        from media_toolchain.adapters.http.client import UrllibHttpClient
        from media_toolchain.adapters.shell.command import LocalProcessRunner
        from media_toolchain.adapters.shell.filesystem import LocalFileSystem

        process_timeout = settings.process_timeout if settings else 60
        metadata_timeout = settings.network.metadata_timeout if settings else 30

        logger.debug(
            "Wiring local services (process timeout %ss, HTTP timeout %ss)",
            process_timeout, metadata_timeout,
        )
        return cls(
            fs=LocalFileSystem(),
            process=LocalProcessRunner(default_timeout=process_timeout),
            http=UrllibHttpClient(default_timeout=metadata_timeout),
            clock=SystemClock(),
        )

    def with_overrides(self, **kwargs) -> Services:
        """Copy with some services swapped, e.g. ``with_overrides(http=fake)``."""
        return replace(self, **kwargs)

    def describe(self) -> dict[str, str]:
        return {
            "fs": type(self.fs).__name__,
            "process": type(self.process).__name__,
            "http": type(self.http).__name__,
            "clock": type(self.clock).__name__,
        }

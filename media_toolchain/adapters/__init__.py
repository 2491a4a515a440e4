"""Adapters — capability services for file system, processes, HTTP and time.

Public re-exports for convenient access.
"""

from media_toolchain.adapters.base import (
    Clock,
    Entry,
    EntryKind,
    FileSystem,
    HttpClient,
    ProcessResult,
    ProcessRunner,
)
from media_toolchain.adapters.mock import FakeClock, MockHttpClient, MockProcessRunner
from media_toolchain.adapters.registry import Services

__all__ = [
    "Clock",
    "Entry",
    "EntryKind",
    "FakeClock",
    "FileSystem",
    "HttpClient",
    "MockHttpClient",
    "MockProcessRunner",
    "ProcessResult",
    "ProcessRunner",
    "Services",
]

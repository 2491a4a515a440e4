"""
Mock services — deterministic test doubles for HTTP, processes and time.

Used by the test suite (and anywhere a dry run is wanted) in place of
the real network, subprocesses and wall clock. Each double records its
calls and returns canned responses configured per URL or executable.
The file system is not mocked: tests use ``LocalFileSystem`` on a
temporary directory.
"""

from __future__ import annotations

import shutil
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from media_toolchain.adapters.base import Clock, HttpClient, ProcessResult, ProcessRunner
from media_toolchain.core.errors import NetworkError, ProcessLaunchError

# A canned HTTP response: body text, an exception to raise, or a
# callable producing either.
HttpResponse = str | BaseException
DownloadContent = bytes | Path | Callable[[Path], None]
ProcessHandler = Callable[[Path, list[str]], ProcessResult]


class MockHttpClient(HttpClient):
    """Canned HTTP responses keyed by exact URL.

    A URL may be given a sequence of responses; each call consumes one
    and the last is repeated. Unknown URLs fail with a 404 ``NetworkError``.
    """

    def __init__(self) -> None:
        self._responses: dict[str, list[HttpResponse]] = {}
        self._downloads: dict[str, list[DownloadContent | BaseException]] = {}
        self._call_log: list[tuple[str, str, dict[str, str]]] = []
        self._lock = threading.Lock()

    # ── Configuration ───────────────────────────────────────────

    def set_response(self, url: str, *responses: HttpResponse) -> None:
        """Body (or exception) returned by ``get(url)``, in call order."""
        self._responses[url] = list(responses)

    def set_failure(self, url: str, error: str | BaseException = "Mock failure", status: int | None = None) -> None:
        """Make every ``get`` and ``download`` of ``url`` fail."""
        exc = error if isinstance(error, BaseException) else NetworkError(error, url=url, status=status)
        self._responses[url] = [exc]
        self._downloads[url] = [exc]

    def set_download(self, url: str, *contents: DownloadContent | BaseException) -> None:
        """Content written by ``download(url, dest)``: bytes, a file to copy, or a writer."""
        self._downloads[url] = list(contents)

    # ── Inspection ──────────────────────────────────────────────

    @property
    def call_log(self) -> list[tuple[str, str, dict[str, str]]]:
        """``(method, url, headers)`` for every call, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_to(self, fragment: str) -> list[str]:
        """URLs called that contain ``fragment``."""
        return [url for _, url, _ in self._call_log if fragment in url]

    def reset(self) -> None:
        self._call_log.clear()
        self._responses.clear()
        self._downloads.clear()

    # ── HttpClient ──────────────────────────────────────────────

    @staticmethod
    def _next(queue: list):
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def get(self, url, headers=None, *, timeout=None):
        with self._lock:
            self._call_log.append(("GET", url, dict(headers or {})))
            queue = self._responses.get(url)
            if not queue:
                raise NetworkError(f"HTTP 404 for {url}", url=url, status=404)
            response = self._next(queue)
        if isinstance(response, BaseException):
            raise response
        return response

    def download(self, url, dest, headers=None, *, timeout=None):
        with self._lock:
            self._call_log.append(("DOWNLOAD", url, dict(headers or {})))
            queue = self._downloads.get(url)
            if not queue:
                raise NetworkError(f"HTTP 404 for {url}", url=url, status=404)
            content = self._next(queue)
        if isinstance(content, BaseException):
            raise content

        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            dest.write_bytes(content)
        elif isinstance(content, Path):
            shutil.copyfile(content, dest)
        else:
            content(dest)
        return dest


class MockProcessRunner(ProcessRunner):
    """Canned process results keyed by executable file name (case-insensitive).

    A handler callable may stand in for a result, e.g. to simulate an
    installer writing files. Executables with nothing configured raise
    ``ProcessLaunchError``, like a missing binary would.
    """

    def __init__(self) -> None:
        self._results: dict[str, ProcessResult | ProcessHandler | BaseException] = {}
        self._call_log: list[tuple[str, list[str]]] = []
        self._lock = threading.Lock()

    @staticmethod
    def _key(executable: str | Path) -> str:
        return Path(executable).name.lower()

    def set_result(self, executable: str, exit_code: int = 0, stdout: str = "", stderr: str = "") -> None:
        self._results[self._key(executable)] = ProcessResult(
            exit_code=exit_code, stdout=stdout, stderr=stderr,
        )

    def set_handler(self, executable: str, handler: ProcessHandler) -> None:
        self._results[self._key(executable)] = handler

    def set_failure(self, executable: str, error: str = "Mock launch failure") -> None:
        self._results[self._key(executable)] = ProcessLaunchError(error, executable=executable)

    @property
    def call_log(self) -> list[tuple[str, list[str]]]:
        """``(executable, args)`` for every call, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_for(self, executable: str) -> list[list[str]]:
        key = self._key(executable)
        return [args for exe, args in self._call_log if self._key(exe) == key]

    def run(self, executable, args=None, *, timeout=None, cwd=None):
        args = list(args or [])
        with self._lock:
            self._call_log.append((str(executable), args))
            result = self._results.get(self._key(executable))
        if result is None:
            raise ProcessLaunchError(f"Executable not found: {executable}", executable=str(executable))
        if isinstance(result, BaseException):
            raise result
        if callable(result):
            return result(Path(executable), args)
        return result

    def command_exists(self, name):
        return self._key(name) in self._results


class FakeClock(Clock):
    """Clock that never blocks; ``sleep`` advances time and is recorded."""

    def __init__(self, start: datetime | None = None, tick: float = 0.0):
        self._now = start or datetime(2024, 1, 1, tzinfo=UTC)
        self._monotonic = 0.0
        self._tick = tick
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        self._monotonic += self._tick
        return self._monotonic

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._monotonic += seconds

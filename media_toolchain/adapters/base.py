"""
Capability contracts — the seams between the engine and the machine.

Every file-system, process, network and clock interaction the plugin
engine performs goes through one of the four abstract services defined
here. The engine never touches ``os``, ``subprocess`` or ``urllib``
directly, so tests can substitute deterministic fakes.

These services RAISE on failure
(``NetworkError``, ``ProcessLaunchError``, ``ExtractionError``). A
non-zero process exit is data, not an error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel


class EntryKind(str, Enum):
    """Which kind of child entries ``FileSystem.list_children`` returns."""

    FILE = "file"
    DIRECTORY = "directory"
    ANY = "any"


class Entry(BaseModel):
    """A single file-system entry found by ``list_children``."""

    name: str
    path: Path
    is_dir: bool = False


class ProcessResult(BaseModel):
    """Captured result of a finished process."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """stdout and stderr combined (some tools print versions to stderr)."""
        return (self.stdout or "") + (self.stderr or "")


class FileSystem(ABC):
    """File-system access used by probes and installers."""

    @abstractmethod
    def exists(self, path: Path) -> bool:
        """Whether ``path`` exists (file or directory)."""

    @abstractmethod
    def list_children(
        self,
        path: Path,
        pattern: str = "*",
        kind: EntryKind = EntryKind.ANY,
        recursive: bool = False,
    ) -> list[Entry]:
        """List entries under ``path`` whose name matches the glob ``pattern``.

        Returns an empty list when ``path`` does not exist. Results are
        sorted by path for determinism.
        """

    @abstractmethod
    def create_directory(self, path: Path) -> None:
        """Create ``path`` and its parents; no error if it already exists."""

    @abstractmethod
    def remove_tree(self, path: Path) -> None:
        """Delete ``path`` recursively; no error if it does not exist."""

    @abstractmethod
    def extract_archive(self, archive: Path, dest: Path, overwrite: bool = True) -> None:
        """Extract a zip/tar archive into ``dest``.

        Raises:
            ExtractionError: Corrupt or unsupported archive.
        """

    @abstractmethod
    def read_file_version(self, path: Path) -> str | None:
        """Read the embedded file-version resource of a binary, if any."""


class ProcessRunner(ABC):
    """Process execution."""

    @abstractmethod
    def run(
        self,
        executable: str | Path,
        args: list[str] | None = None,
        *,
        timeout: float | None = None,
        cwd: Path | None = None,
    ) -> ProcessResult:
        """Run ``executable`` with ``args`` and capture its output.

        Never raises on a non-zero exit code.

        Raises:
            ProcessLaunchError: The executable cannot be found or spawned,
                or it exceeded ``timeout``.
        """

    @abstractmethod
    def command_exists(self, name: str | Path) -> bool:
        """Whether ``name`` is an existing executable path or resolvable command."""


class HttpClient(ABC):
    """HTTP retrieval. No built-in retry; callers own the retry policy."""

    @abstractmethod
    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> str:
        """Fetch ``url`` and return the decoded body.

        Raises:
            NetworkError: Transport failure or non-2xx status.
        """

    @abstractmethod
    def download(
        self,
        url: str,
        dest: Path,
        headers: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> Path:
        """Stream ``url`` to ``dest``, creating parent directories.

        Raises:
            NetworkError: Transport failure or non-2xx status.
        """


class Clock(ABC):
    """Time source, used for durations, backoff and log correlation."""

    @abstractmethod
    def now(self) -> datetime:
        """Current UTC time."""

    @abstractmethod
    def monotonic(self) -> float:
        """Monotonic seconds, for measuring durations."""

    @abstractmethod
    def sleep(self, seconds: float) -> None:
        """Block for ``seconds``."""

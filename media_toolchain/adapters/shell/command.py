"""
Local process service — the single place ``subprocess.run`` is called.

Exit codes are returned as data. Only a missing, unspawnable or hung
executable raises ``ProcessLaunchError``.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from pathlib import Path

from media_toolchain.adapters.base import ProcessResult, ProcessRunner
from media_toolchain.core.errors import ProcessLaunchError

logger = logging.getLogger(__name__)

# Keep captured output bounded; version banners and installer errors fit easily.
_MAX_OUTPUT = 4000


class LocalProcessRunner(ProcessRunner):
    """Run processes on the local machine."""

    def __init__(self, default_timeout: float = 60):
        self._default_timeout = default_timeout

    def run(
        self,
        executable: str | Path,
        args: list[str] | None = None,
        *,
        timeout: float | None = None,
        cwd: Path | None = None,
    ) -> ProcessResult:
        cmd = [str(executable), *(args or [])]
        timeout = timeout if timeout is not None else self._default_timeout

        logger.debug("Executing: %s (cwd=%s)", cmd, cwd)
        start = time.monotonic()
        try:
            result = subprocess.run(
                cmd,
                stdin=subprocess.DEVNULL,   # tools that pause for Enter
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout,
                cwd=str(cwd) if cwd else None,
            )
        except subprocess.TimeoutExpired as e:
            raise ProcessLaunchError(
                f"{Path(str(executable)).name} timed out after {timeout}s",
                executable=str(executable),
            ) from e
        except OSError as e:
            # FileNotFoundError, PermissionError, exec format errors
            raise ProcessLaunchError(
                f"Cannot launch {executable}: {e}",
                executable=str(executable),
            ) from e

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug("Exit %d after %dms: %s", result.returncode, elapsed_ms, cmd[0])

        return ProcessResult(
            exit_code=result.returncode,
            stdout=(result.stdout or "")[-_MAX_OUTPUT:],
            stderr=(result.stderr or "")[-_MAX_OUTPUT:],
        )

    def command_exists(self, name: str | Path) -> bool:
        candidate = Path(str(name))
        if candidate.is_absolute() or candidate.parent != Path("."):
            return candidate.is_file()
        return shutil.which(str(name)) is not None

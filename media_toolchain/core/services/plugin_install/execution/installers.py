"""
L4 Execution — Install mechanics.

Three ways a downloaded asset becomes an installed tool:

    ARCHIVE            zip/tar expanded by the file-system service
    SELF_EXTRACTING    7z / 7z-SFX expanded by the managed archiver plugin
    SILENT_INSTALLER   NSIS/Inno style installer run unattended

Every mechanic installs into ``<root>/<asset stem>`` and clears that
directory first, so re-running over a correct install never merges
stale files in.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from media_toolchain.adapters.registry import Services
from media_toolchain.core.errors import ExtractionError, InstallError, ProcessLaunchError
from media_toolchain.core.models.outcome import InstallRoot
from media_toolchain.core.models.plugin import PluginSpec
from media_toolchain.core.services.plugin_install.domain.asset_matching import (
    asset_stem,
    expand_placeholders,
)

logger = logging.getLogger(__name__)

# 7-Zip exit codes: 0 ok, 1 warning (e.g. locked file skipped), >=2 error
_7Z_MAX_OK_EXIT = 1


class InstallMechanic(str, Enum):
    ARCHIVE = "archive"
    SELF_EXTRACTING = "self_extracting"
    SILENT_INSTALLER = "silent_installer"


@dataclass(frozen=True)
class InstallRequest:
    """Everything one install needs. The archiver path is passed explicitly."""

    spec: PluginSpec
    asset: Path
    root: InstallRoot
    services: Services
    archiver: Path | None = None
    silent_args: tuple[str, ...] = ()
    timeout: float = 900

    @property
    def destination(self) -> Path:
        return destination_for(self.root, self.asset.name)


def destination_for(root: InstallRoot, asset_name: str) -> Path:
    """``<root>/<asset name without packaging suffix>``."""
    return root.root / asset_stem(asset_name)


def install_archive(req: InstallRequest) -> Path:
    dest = req.destination
    req.services.fs.extract_archive(req.asset, dest, overwrite=True)
    return dest


def install_self_extracting(req: InstallRequest) -> Path:
    if req.archiver is None:
        raise ProcessLaunchError(
            f"{req.spec.name}: no archiver available to expand {req.asset.name}",
        )
    dest = req.destination
    fs = req.services.fs
    fs.remove_tree(dest)
    fs.create_directory(dest)

    result = req.services.process.run(
        req.archiver,
        ["x", str(req.asset), f"-o{dest}", "-y"],
        timeout=req.timeout,
    )
    if result.exit_code > _7Z_MAX_OK_EXIT:
        raise ExtractionError(
            f"{req.archiver.name} failed on {req.asset.name} "
            f"(exit {result.exit_code}): {result.stderr.strip() or result.stdout.strip()}"
        )
    if result.exit_code:
        logger.warning("%s: archiver reported warnings for %s", req.spec.name, req.asset.name)
    return dest


def install_silent(req: InstallRequest) -> Path:
    dest = req.destination
    fs = req.services.fs
    fs.remove_tree(dest)
    fs.create_directory(dest)

    args = [expand_placeholders(a, dest=str(dest)) for a in req.silent_args]
    result = req.services.process.run(req.asset, args, timeout=req.timeout)
    if not result.ok:
        raise InstallError(
            f"{req.asset.name} exited with code {result.exit_code}"
            + (f": {result.stderr.strip()}" if result.stderr.strip() else "")
        )
    return dest


INSTALLERS: dict[InstallMechanic, Callable[[InstallRequest], Path]] = {
    InstallMechanic.ARCHIVE: install_archive,
    InstallMechanic.SELF_EXTRACTING: install_self_extracting,
    InstallMechanic.SILENT_INSTALLER: install_silent,
}


def run_installer(mechanic: InstallMechanic, req: InstallRequest) -> Path:
    """Dispatch to the mechanic; clean the destination if it fails.

    Returns:
        The install directory.
    """
    installer = INSTALLERS[mechanic]
    logger.info("%s: installing %s (%s)", req.spec.name, req.asset.name, mechanic.value)
    try:
        return installer(req)
    except Exception:
        # Leave no half-extracted directory behind for the next probe.
        try:
            req.services.fs.remove_tree(req.destination)
        except OSError as cleanup_error:
            logger.warning("Failed to clean up %s: %s", req.destination, cleanup_error)
        raise

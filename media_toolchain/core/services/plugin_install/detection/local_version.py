"""
L3 Detection — Installed version probes.

Read-only probes against the install root. Installed tools expose their
version one of three ways, so there is one probe per way:

    DirectoryNameProbe   ``mariadb-11.4.4-winx64`` → ``11.4.4``
    CommandOutputProbe   ``ffmpeg -version`` → regex on the banner
    FileVersionProbe     PE version resource of the executable

Every probe tolerates an absent tool: it returns None, never raises.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from functools import cmp_to_key
from pathlib import Path

from media_toolchain.adapters.base import Entry, EntryKind
from media_toolchain.adapters.registry import Services
from media_toolchain.core.errors import ProcessLaunchError
from media_toolchain.core.models.outcome import InstallRoot, LocalInstall
from media_toolchain.core.models.plugin import PluginSpec
from media_toolchain.core.services.plugin_install.domain.asset_matching import version_from_name
from media_toolchain.core.services.plugin_install.domain.version import compare_versions

logger = logging.getLogger(__name__)

_RESERVED_PREFIX = "_"   # _Downloads, _Temp


def _newest_first(a: Entry, b: Entry) -> int:
    # Versioned directories first, highest version first, then by name descending.
    va, vb = version_from_name(a.name), version_from_name(b.name)
    if va and vb:
        order = compare_versions(va, vb)
        if order:
            return -int(order)
    elif va or vb:
        return -1 if va else 1
    return (a.name < b.name) - (a.name > b.name)


def find_command(spec: PluginSpec, install_dir: Path, services: Services) -> Path | None:
    """Locate ``spec.command_name`` inside ``install_dir``.

    Tries ``<dir>/<command_path>/<command_name>`` first, then the
    shallowest match anywhere below ``install_dir``.
    """
    fs = services.fs
    direct = install_dir / spec.command_path / spec.command_name
    if fs.exists(direct):
        return direct

    matches = fs.list_children(install_dir, spec.command_name, EntryKind.FILE, recursive=True)
    if not matches:
        return None
    return min(matches, key=lambda e: (len(e.path.parts), str(e.path))).path


def locate_install(
    spec: PluginSpec,
    root: InstallRoot,
    services: Services,
    dir_prefix: str,
) -> tuple[Path, Path | None] | None:
    """Find the newest install directory for ``spec`` under the root.

    Returns ``(install_dir, command)``; ``command`` is None when the
    directory exists but the executable is missing (a broken install).
    """
    entries = [
        e for e in services.fs.list_children(root.root, f"{dir_prefix}*", EntryKind.DIRECTORY)
        if not e.name.startswith(_RESERVED_PREFIX)
    ]
    if not entries:
        # Single-file tools may sit directly in the root.
        loose = root.root / spec.command_name
        if services.fs.exists(loose):
            return root.root, loose
        return None

    ordered = sorted(entries, key=cmp_to_key(_newest_first))
    for entry in ordered:
        command = find_command(spec, entry.path, services)
        if command is not None:
            return entry.path, command
    return ordered[0].path, None


class LocalProbe(ABC):
    """Extract the installed version of one plugin."""

    name: str = ""

    def probe(
        self,
        spec: PluginSpec,
        root: InstallRoot,
        services: Services,
        dir_prefix: str,
    ) -> LocalInstall | None:
        found = locate_install(spec, root, services, dir_prefix)
        if found is None:
            logger.debug("%s: no install directory matching '%s*'", spec.name, dir_prefix)
            return None
        install_dir, command = found
        version = self.read_version(spec, install_dir, command, services)
        return LocalInstall(install_dir=install_dir, command=command, version=version or None)

    @abstractmethod
    def read_version(
        self,
        spec: PluginSpec,
        install_dir: Path,
        command: Path | None,
        services: Services,
    ) -> str | None:
        """Version string, or None when it cannot be determined."""


class DirectoryNameProbe(LocalProbe):
    """Version embedded in the install directory name."""

    name = "directory-name"

    def read_version(self, spec, install_dir, command, services):
        if command is None:
            return None
        return version_from_name(install_dir.name)


class CommandOutputProbe(LocalProbe):
    """Run the executable with a version flag and parse its output."""

    name = "command-output"

    def __init__(self, args: tuple[str, ...] = ("--version",), pattern: str = r"(\d+(?:\.\d+)+)"):
        self.args = tuple(args)
        self.pattern = re.compile(pattern)

    def read_version(self, spec, install_dir, command, services):
        if command is None:
            return None
        try:
            result = services.process.run(command, list(self.args))
        except ProcessLaunchError as e:
            logger.warning("%s: version probe could not run %s: %s", spec.name, command.name, e)
            return None
        match = self.pattern.search(result.output)
        if not match:
            logger.debug("%s: no version in output of %s %s", spec.name, command.name, self.args)
            return None
        groups = match.groupdict()
        return groups.get("version") or match.group(1)


class FileVersionProbe(LocalProbe):
    """Binary file-version metadata of the executable."""

    name = "file-version"

    def __init__(self, components: int = 3):
        self.components = components

    def read_version(self, spec, install_dir, command, services):
        if command is None:
            return None
        raw = services.fs.read_file_version(command)
        if not raw:
            return None
        parts = raw.split(".")[: self.components]
        return ".".join(parts)

"""
L2 Resolver — Per-plugin strategy table.

Each tool packages and reports its version differently, so every plugin
identity maps to a ``{local probe, install mechanic}`` pair. The table
is bound to the manifest once, at load time: an explicit ``strategy``
key that is not in the table is a manifest error, and plugins with no
entry get a generic strategy inferred from their asset pattern.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from media_toolchain.core.errors import ManifestValidationError
from media_toolchain.core.models.plugin import Manifest, PluginSpec
from media_toolchain.core.services.plugin_install.detection.local_version import (
    CommandOutputProbe,
    DirectoryNameProbe,
    FileVersionProbe,
    LocalProbe,
)
from media_toolchain.core.services.plugin_install.execution.installers import InstallMechanic

logger = logging.getLogger(__name__)

NSIS_SILENT_ARGS = ("/S", "/D={dest}")

_PATTERN_META = re.compile(r"[*?\[({\\]")


@dataclass(frozen=True)
class PluginStrategy:
    """How to probe and install one plugin family.

    ``mechanic`` and ``dir_prefix`` may be left as None to be inferred
    from the plugin's asset pattern when bound.
    """

    key: str
    probe: LocalProbe
    mechanic: InstallMechanic | None = None
    dir_prefix: str | None = None
    silent_args: tuple[str, ...] = NSIS_SILENT_ARGS


@dataclass(frozen=True)
class BoundStrategy:
    """A strategy resolved against one concrete ``PluginSpec``."""

    spec: PluginSpec
    key: str
    probe: LocalProbe
    mechanic: InstallMechanic
    dir_prefix: str
    silent_args: tuple[str, ...] = field(default=NSIS_SILENT_ARGS)


def literal_prefix(pattern: str) -> str:
    """Leading literal part of a glob/regex/template pattern.

    ``7z*-x64.exe`` → ``7z``; ``ffmpeg-(?P<version>...)`` → ``ffmpeg-``.
    """
    m = _PATTERN_META.search(pattern)
    return pattern[: m.start()] if m else pattern


def infer_mechanic(asset_pattern: str) -> InstallMechanic:
    """Guess the install mechanic from the asset's packaging suffix."""
    lower = asset_pattern.replace("\\", "").lower().rstrip("$")
    if lower.endswith((".7z", ".7z.exe")):
        return InstallMechanic.SELF_EXTRACTING
    if lower.endswith((".exe", ".msi")):
        return InstallMechanic.SILENT_INSTALLER
    return InstallMechanic.ARCHIVE


# ── Built-in table ──────────────────────────────────────────────

BUILTIN_STRATEGIES: tuple[PluginStrategy, ...] = (
    PluginStrategy("7-zip", FileVersionProbe(components=2), InstallMechanic.SILENT_INSTALLER),
    PluginStrategy(
        "portablegit",
        CommandOutputProbe(("--version",), r"git version (\d+(?:\.\d+)+)"),
        InstallMechanic.SELF_EXTRACTING,
    ),
    PluginStrategy(
        "gitlfs",
        CommandOutputProbe(("version",), r"git-lfs/(\d+\.\d+\.\d+)"),
        InstallMechanic.ARCHIVE,
    ),
    PluginStrategy(
        "gitversion",
        CommandOutputProbe(("/version",), r"(\d+\.\d+\.\d+)"),
        InstallMechanic.ARCHIVE,
    ),
    PluginStrategy(
        "exiftool",
        CommandOutputProbe(("-ver",), r"(\d+\.\d+)"),
        InstallMechanic.ARCHIVE,
    ),
    PluginStrategy(
        "ffmpeg",
        CommandOutputProbe(("-version",), r"ffmpeg version (\d+(?:\.\d+)+)"),
        InstallMechanic.ARCHIVE,
    ),
    PluginStrategy(
        "imagemagick",
        CommandOutputProbe(("-version",), r"ImageMagick (\d+\.\d+\.\d+(?:-\d+)?)"),
        InstallMechanic.SELF_EXTRACTING,
    ),
    PluginStrategy(
        "mkvtoolnix",
        CommandOutputProbe(("--version",), r"mkvmerge v(\d+\.\d+(?:\.\d+)?)"),
        InstallMechanic.SELF_EXTRACTING,
    ),
    PluginStrategy(
        "keepassxc",
        CommandOutputProbe(("--version",), r"(\d+\.\d+\.\d+)"),
        InstallMechanic.ARCHIVE,
    ),
    PluginStrategy("mariadb", DirectoryNameProbe(), InstallMechanic.ARCHIVE),
    PluginStrategy("digikam", FileVersionProbe(components=3), InstallMechanic.SILENT_INSTALLER),
)


class StrategyRegistry:
    """Lookup table: plugin identity → strategy."""

    def __init__(self, strategies: tuple[PluginStrategy, ...] | list[PluginStrategy] = ()):
        self._strategies: dict[str, PluginStrategy] = {}
        for s in strategies:
            self.register(s)

    @classmethod
    def default(cls) -> StrategyRegistry:
        return cls(BUILTIN_STRATEGIES)

    def register(self, strategy: PluginStrategy) -> None:
        key = strategy.key.lower()
        if key in self._strategies:
            logger.warning("Overwriting existing strategy: %s", key)
        self._strategies[key] = strategy

    def get(self, key: str) -> PluginStrategy | None:
        return self._strategies.get(key.lower())

    def __contains__(self, key: str) -> bool:
        return key.lower() in self._strategies

    def keys(self) -> list[str]:
        return sorted(self._strategies)

    def bind_one(self, spec: PluginSpec) -> BoundStrategy:
        """Resolve ``spec`` to a concrete strategy.

        Raises:
            ManifestValidationError: ``spec.strategy`` names an unknown entry.
        """
        strategy = self.get(spec.key)
        if strategy is None and spec.strategy:
            raise ManifestValidationError(
                f"{spec.name}: unknown strategy '{spec.strategy}' "
                f"(known: {', '.join(self.keys())})"
            )
        if strategy is None:
            strategy = PluginStrategy(key=spec.key, probe=DirectoryNameProbe())

        prefix = strategy.dir_prefix or literal_prefix(spec.asset_pattern) or spec.name
        return BoundStrategy(
            spec=spec,
            key=strategy.key,
            probe=strategy.probe,
            mechanic=strategy.mechanic or infer_mechanic(spec.asset_pattern),
            dir_prefix=prefix,
            silent_args=strategy.silent_args,
        )

    def bind(self, manifest: Manifest) -> dict[str, BoundStrategy]:
        """Bind every plugin in the manifest; collects all errors before raising."""
        bound: dict[str, BoundStrategy] = {}
        errors: list[str] = []
        for _, spec in manifest.iter_plugins():
            try:
                bound[spec.name] = self.bind_one(spec)
            except ManifestValidationError as e:
                errors.extend(e.errors)
        if errors:
            raise ManifestValidationError(errors)
        return bound

"""
Resolve use cases — load settings + manifest, then run, probe or list.

These are the entry points the CLI calls. They build the service
bundle and install root from configuration; tests inject fake services.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from media_toolchain.adapters.registry import Services
from media_toolchain.core.config.loader import load_settings, resolve_manifest
from media_toolchain.core.models.config import Settings
from media_toolchain.core.models.outcome import InstallRoot, RunReport
from media_toolchain.core.models.plugin import Manifest
from media_toolchain.core.observability.log_sink import LogSink
from media_toolchain.core.services.plugin_install.data.manifest_schema import ensure_valid
from media_toolchain.core.services.plugin_install.detection.remote_version import RemoteVersionSource
from media_toolchain.core.services.plugin_install.orchestration.orchestrator import (
    CancellationToken,
    resolve_plugins,
)
from media_toolchain.core.services.plugin_install.resolver.strategies import StrategyRegistry
from media_toolchain.core.services.plugin_install.resolver.version_resolver import VersionResolver

logger = logging.getLogger(__name__)


@dataclass
class EngineContext:
    """Everything one command needs, loaded once."""

    settings: Settings
    manifest: Manifest
    root: InstallRoot
    services: Services
    env: Mapping[str, str] | None = None


def load_context(
    config_path: Path | None = None,
    manifest_path: Path | None = None,
    *,
    services: Services | None = None,
    env: Mapping[str, str] | None = None,
) -> EngineContext:
    """Load settings and manifest.

    Raises:
        ConfigError: Settings or manifest file unreadable.
        ManifestValidationError: Manifest content invalid.
    """
    settings = load_settings(config_path, env=env)
    manifest = resolve_manifest(settings, manifest_path)
    return EngineContext(
        settings=settings,
        manifest=manifest,
        root=InstallRoot.from_paths(settings.paths),
        services=services or Services.local(settings),
        env=env,
    )


def run_resolve(
    ctx: EngineContext,
    *,
    force: bool = False,
    sink: LogSink | None = None,
    cancel: CancellationToken | None = None,
) -> RunReport:
    """Run the full resolve/install pass.

    Raises:
        ManifestValidationError: Nothing was run.
        FatalPluginError: Carries the partial report.
    """
    return resolve_plugins(
        ctx.manifest, ctx.root, ctx.services, ctx.settings,
        force=force, sink=sink, cancel=cancel, env=ctx.env,
    )


# ── Probe only ──────────────────────────────────────────────────


@dataclass
class CheckEntry:
    """Installed vs latest for one plugin, no install attempted."""

    name: str
    phase: str
    enabled: bool = True
    installed: str | None = None
    latest: str | None = None
    up_to_date: bool = False
    install_dir: str | None = None
    error: str | None = None

    @property
    def status(self) -> str:
        if not self.enabled:
            return "disabled"
        if self.up_to_date:
            return "up-to-date"
        if not self.installed:
            return "missing"
        if not self.latest:
            return "unknown"
        return "outdated"


@dataclass
class CheckResult:
    entries: list[CheckEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "plugins": [
                {
                    "name": e.name,
                    "phase": e.phase,
                    "status": e.status,
                    "installed": e.installed,
                    "latest": e.latest,
                    "install_dir": e.install_dir,
                    "error": e.error,
                }
                for e in self.entries
            ],
        }


def run_check(ctx: EngineContext) -> CheckResult:
    """Probe installed and latest versions of every enabled plugin.

    Raises:
        ManifestValidationError: Nothing was probed.
    """
    registry = StrategyRegistry.default()
    ensure_valid(ctx.manifest, registry, ctx.settings.archiver)
    strategies = registry.bind(ctx.manifest)
    remote = RemoteVersionSource(ctx.services, ctx.settings.network, env=ctx.env)
    resolver = VersionResolver(ctx.services, ctx.root, strategies, remote)

    result = CheckResult()
    for phase, spec in ctx.manifest.iter_plugins():
        entry = CheckEntry(name=spec.name, phase=phase.name, enabled=spec.enabled)
        if spec.enabled:
            resolved = resolver.resolve(spec)
            entry.installed = resolved.installed
            entry.latest = resolved.latest
            entry.up_to_date = resolved.is_up_to_date
            entry.install_dir = str(resolved.local.install_dir) if resolved.local else None
            entry.error = resolved.remote_error
        result.entries.append(entry)
    return result


def list_plugins(manifest: Manifest) -> list[dict[str, Any]]:
    """Flat manifest listing, in install order."""
    rows = []
    for phase, spec in manifest.iter_plugins():
        rows.append({
            "phase": phase.name,
            "name": spec.name,
            "source": spec.source.value,
            "origin": spec.repository_id or spec.base_uri,
            "asset_pattern": spec.asset_pattern,
            "command": "/".join(p for p in (spec.command_path, spec.command_name) if p),
            "mandatory": spec.mandatory,
            "enabled": spec.enabled,
            "depends_on": list(spec.depends_on),
        })
    return rows

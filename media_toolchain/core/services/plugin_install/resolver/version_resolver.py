"""
L2 Resolver — Installed vs latest for one plugin.

Runs the plugin's local probe against the install root, then the remote
probe against its declared source. A remote failure never raises here:
it is recorded on the ``ResolvedVersion`` as ``remote_error`` with
``latest`` left empty, and the orchestrator applies policy.
"""

from __future__ import annotations

import logging

from media_toolchain.adapters.registry import Services
from media_toolchain.core.errors import PluginEngineError
from media_toolchain.core.models.outcome import InstallRoot, LocalInstall, ResolvedVersion
from media_toolchain.core.models.plugin import PluginSpec
from media_toolchain.core.services.plugin_install.detection.remote_version import RemoteVersionSource
from media_toolchain.core.services.plugin_install.resolver.strategies import BoundStrategy

logger = logging.getLogger(__name__)


class VersionResolver:
    """Produce a ``ResolvedVersion`` per plugin, fresh on every call."""

    def __init__(
        self,
        services: Services,
        root: InstallRoot,
        strategies: dict[str, BoundStrategy],
        remote: RemoteVersionSource,
    ):
        self._services = services
        self._root = root
        self._strategies = strategies
        self._remote = remote

    def strategy_for(self, spec: PluginSpec) -> BoundStrategy:
        return self._strategies[spec.name]

    def probe_local(self, spec: PluginSpec) -> LocalInstall | None:
        """Local install for ``spec``, or None when absent or unreadable."""
        strategy = self.strategy_for(spec)
        try:
            return strategy.probe.probe(spec, self._root, self._services, strategy.dir_prefix)
        except (PluginEngineError, OSError) as e:
            # An unreadable install counts as absent; the next install replaces it.
            logger.warning("%s: local probe failed: %s", spec.name, e)
            return None

    def resolve(self, spec: PluginSpec) -> ResolvedVersion:
        local = self.probe_local(spec)
        resolved = ResolvedVersion(
            installed=local.version if local else None,
            local=local,
        )
        logger.debug(
            "%s: installed %s (%s)",
            spec.name, resolved.installed or "-",
            local.install_dir if local else "not found",
        )

        try:
            release = self._remote.latest(spec)
        except PluginEngineError as e:
            resolved.remote_error = str(e)
            logger.warning("%s: latest version unknown: %s", spec.name, e)
            return resolved

        resolved.release = release
        resolved.latest = release.version or None
        logger.debug("%s: latest %s", spec.name, resolved.latest or "-")
        return resolved

"""Domain models — public re-exports."""

from media_toolchain.core.models.config import NetworkConfig, PathsConfig, Settings
from media_toolchain.core.models.outcome import (
    InstallAction,
    InstallOutcome,
    InstallRoot,
    LocalInstall,
    RemoteRelease,
    ResolvedVersion,
    RunReport,
    RunState,
)
from media_toolchain.core.models.plugin import Manifest, Phase, PluginSource, PluginSpec

__all__ = [
    "InstallAction",
    "InstallOutcome",
    "InstallRoot",
    "LocalInstall",
    "Manifest",
    "NetworkConfig",
    "PathsConfig",
    "Phase",
    "PluginSource",
    "PluginSpec",
    "RemoteRelease",
    "ResolvedVersion",
    "RunReport",
    "RunState",
    "Settings",
]

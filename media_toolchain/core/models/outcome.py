"""
Run models — install roots, resolved versions, per-plugin outcomes.

None of these are persisted. Installed state is rediscovered from the
file system on every run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from media_toolchain.core.models.config import PathsConfig


@dataclass(frozen=True)
class InstallRoot:
    """Deterministic install locations, created on demand, never deleted."""

    root: Path
    downloads_dir: Path
    temp_dir: Path

    @classmethod
    def from_paths(cls, paths: PathsConfig) -> InstallRoot:
        return cls(root=paths.plugins_root, downloads_dir=paths.downloads, temp_dir=paths.temp)

    @classmethod
    def at(cls, root: Path) -> InstallRoot:
        """Default layout under ``root`` (``_Downloads``, ``_Temp``)."""
        root = Path(root)
        return cls(root=root, downloads_dir=root / "_Downloads", temp_dir=root / "_Temp")


@dataclass(frozen=True)
class RemoteRelease:
    """Latest available version and the asset that carries it."""

    version: str
    asset_name: str
    download_url: str
    tag: str = ""


@dataclass(frozen=True)
class LocalInstall:
    """What the local probe found on disk."""

    install_dir: Path
    command: Path | None = None
    version: str | None = None


@dataclass
class ResolvedVersion:
    """Installed vs latest for one plugin, computed fresh every pass."""

    installed: str | None = None
    latest: str | None = None
    local: LocalInstall | None = None
    release: RemoteRelease | None = None
    remote_error: str | None = None

    @property
    def is_up_to_date(self) -> bool:
        from media_toolchain.core.services.plugin_install.domain.version import is_up_to_date

        return is_up_to_date(self.installed, self.latest)


class InstallAction(str, Enum):
    SKIPPED = "skipped"
    INSTALLED = "installed"
    UPGRADED = "upgraded"
    FAILED = "failed"


class InstallOutcome(BaseModel):
    """Result record for a single plugin."""

    name: str
    phase: str = ""
    action: InstallAction
    reason: str = ""                # skip reason: disabled, up-to-date, ...
    error: str | None = None
    duration_ms: int = 0
    installed_version: str | None = None
    latest_version: str | None = None
    install_dir: str | None = None

    @property
    def ok(self) -> bool:
        return self.action != InstallAction.FAILED

    @classmethod
    def skipped(cls, name: str, reason: str, **kwargs: Any) -> InstallOutcome:
        return cls(name=name, action=InstallAction.SKIPPED, reason=reason, **kwargs)

    @classmethod
    def failed(cls, name: str, error: str, **kwargs: Any) -> InstallOutcome:
        return cls(name=name, action=InstallAction.FAILED, error=error, **kwargs)


class RunState(str, Enum):
    NOT_STARTED = "not_started"
    PROBING = "probing"
    INSTALLING = "installing"
    PHASE_COMPLETE = "phase_complete"
    RUN_COMPLETE = "run_complete"
    RUN_ABORTED = "run_aborted"


@dataclass
class RunReport:
    """Ordered outcomes plus the plugin → install directory map."""

    outcomes: list[InstallOutcome] = field(default_factory=list)
    install_dirs: dict[str, Path] = field(default_factory=dict)
    commands: dict[str, Path] = field(default_factory=dict)
    state: RunState = RunState.NOT_STARTED
    fatal_error: str | None = None
    cancelled: bool = False

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def count(self, action: InstallAction) -> int:
        return sum(1 for o in self.outcomes if o.action == action)

    @property
    def failed(self) -> list[InstallOutcome]:
        return [o for o in self.outcomes if o.action == InstallAction.FAILED]

    @property
    def aborted(self) -> bool:
        return self.state == RunState.RUN_ABORTED

    @property
    def status(self) -> str:
        if self.cancelled:
            return "cancelled"
        if self.aborted:
            return "aborted"
        if not self.failed:
            return "ok"
        return "partial"

    def outcome(self, name: str) -> InstallOutcome | None:
        for o in self.outcomes:
            if o.name == name:
                return o
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "state": self.state.value,
            "total": self.total,
            "installed": self.count(InstallAction.INSTALLED),
            "upgraded": self.count(InstallAction.UPGRADED),
            "skipped": self.count(InstallAction.SKIPPED),
            "failed": self.count(InstallAction.FAILED),
            "fatal_error": self.fatal_error,
            "cancelled": self.cancelled,
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
            "install_dirs": {k: str(v) for k, v in self.install_dirs.items()},
            "commands": {k: str(v) for k, v in self.commands.items()},
        }

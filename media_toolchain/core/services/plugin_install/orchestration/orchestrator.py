"""
L5 Orchestration — Phase-ordered plugin resolution.

For each phase, in order, and each plugin in the phase, in order:

    disabled?          → skipped(disabled), no I/O at all
    resolve            → installed vs latest
    up to date?        → skipped(up-to-date)
    download + install → installed | upgraded
    anything raised    → failed (siblings keep going)

A mandatory plugin with no prior install that fails aborts the run with
``FatalPluginError``; no later plugin or phase runs. Installed state is
rediscovered from the file system every run.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from media_toolchain.adapters.registry import Services
from media_toolchain.core.errors import FatalPluginError, InstallError
from media_toolchain.core.models.config import Settings
from media_toolchain.core.models.outcome import (
    InstallAction,
    InstallOutcome,
    InstallRoot,
    LocalInstall,
    ResolvedVersion,
    RunReport,
    RunState,
)
from media_toolchain.core.models.plugin import Manifest, Phase, PluginSpec
from media_toolchain.core.observability.log_sink import LogLevel, LogSink
from media_toolchain.core.services.plugin_install.data.manifest_schema import ensure_valid
from media_toolchain.core.services.plugin_install.detection.remote_version import RemoteVersionSource
from media_toolchain.core.services.plugin_install.execution.download import download_asset
from media_toolchain.core.services.plugin_install.execution.installers import (
    InstallRequest,
    run_installer,
)
from media_toolchain.core.services.plugin_install.resolver.strategies import StrategyRegistry
from media_toolchain.core.services.plugin_install.resolver.version_resolver import VersionResolver

logger = logging.getLogger(__name__)

SKIP_DISABLED = "disabled"
SKIP_UP_TO_DATE = "up-to-date"
SKIP_LATEST_UNKNOWN = "latest-unknown"
SKIP_CANCELLED = "cancelled"


class CancellationToken:
    """Run-level stop signal. In-flight plugins finish; new ones don't start."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class _PluginResult:
    outcome: InstallOutcome
    local: LocalInstall | None = None
    fatal: bool = False


class PluginOrchestrator:
    """Run the manifest against one install root.

    The manifest is validated and bound to the strategy table in the
    constructor, so a bad manifest raises ``ManifestValidationError``
    before any network or process work.
    """

    def __init__(
        self,
        manifest: Manifest,
        root: InstallRoot,
        services: Services,
        settings: Settings | None = None,
        *,
        sink: LogSink | None = None,
        registry: StrategyRegistry | None = None,
        force: bool = False,
        cancel: CancellationToken | None = None,
        env: Mapping[str, str] | None = None,
        on_state: Callable[[RunState], None] | None = None,
    ):
        self.manifest = manifest
        self.root = root
        self.services = services
        self.settings = settings or Settings()
        self.sink = sink or LogSink()
        self.force = force
        self.cancel = cancel or CancellationToken()
        self._on_state = on_state

        registry = registry or StrategyRegistry.default()
        ensure_valid(manifest, registry, self.settings.archiver)
        self._strategies = registry.bind(manifest)

        remote = RemoteVersionSource(services, self.settings.network, env=env)
        self.resolver = VersionResolver(services, root, self._strategies, remote)

        self._state = RunState.NOT_STARTED
        self._state_lock = threading.Lock()
        self.state_history: list[RunState] = [RunState.NOT_STARTED]
        self._report = RunReport()

    # ── State ───────────────────────────────────────────────────

    @property
    def state(self) -> RunState:
        return self._state

    def _transition(self, state: RunState) -> None:
        with self._state_lock:
            if state == self._state:
                return
            logger.debug("Run state: %s → %s", self._state.value, state.value)
            self._state = state
            self.state_history.append(state)
            self._report.state = state
        if self._on_state:
            self._on_state(state)

    # ── Run ─────────────────────────────────────────────────────

    def run(self) -> RunReport:
        """Resolve every plugin, phase by phase.

        Returns:
            The run report (outcomes in declared order, install dirs).

        Raises:
            FatalPluginError: A mandatory, never-installed plugin failed.
        """
        report = self._report
        for d in (self.root.root, self.root.downloads_dir, self.root.temp_dir):
            self.services.fs.create_directory(d)

        logger.info(
            "Resolving %d plugins in %d phases under %s%s",
            self.manifest.plugin_count, len(self.manifest.phases), self.root.root,
            " (force)" if self.force else "",
        )

        for phase in self.manifest.phases:
            self._transition(RunState.PROBING)
            self.sink.log(LogLevel.INFO, phase.name, f"Phase started ({len(phase.plugins)} plugins)")

            if self.settings.parallel_downloads and len(phase.plugins) > 1:
                results = self._run_phase_parallel(phase)
            else:
                results = self._run_phase_sequential(phase)

            for spec, result in results:
                self._record(spec, result)
                if result.fatal:
                    error = result.outcome.error or "install failed"
                    report.fatal_error = f"{spec.name}: {error}"
                    self._transition(RunState.RUN_ABORTED)
                    self.sink.log(
                        LogLevel.ERROR, spec.name,
                        "Mandatory plugin unavailable, aborting run", error,
                    )
                    raise FatalPluginError(spec.name, error, report)

            self._transition(RunState.PHASE_COMPLETE)

        if self.cancel.cancelled:
            report.cancelled = True
            self._transition(RunState.RUN_ABORTED)
            self.sink.log(LogLevel.WARNING, "", "Run cancelled before all plugins were processed")
        else:
            self._transition(RunState.RUN_COMPLETE)

        logger.info(
            "Resolve finished: %d installed, %d upgraded, %d skipped, %d failed",
            report.count(InstallAction.INSTALLED), report.count(InstallAction.UPGRADED),
            report.count(InstallAction.SKIPPED), report.count(InstallAction.FAILED),
        )
        return report

    def _run_phase_sequential(self, phase: Phase) -> list[tuple[PluginSpec, _PluginResult]]:
        results = []
        for spec in phase.plugins:
            result = self._process(phase, spec)
            results.append((spec, result))
            if result.fatal:
                break
        return results

    def _run_phase_parallel(self, phase: Phase) -> list[tuple[PluginSpec, _PluginResult]]:
        workers = min(self.settings.max_workers, len(phase.plugins))
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix=f"plugins-{phase.name}",
        ) as pool:
            futures = [pool.submit(self._process, phase, spec) for spec in phase.plugins]
            # Collect in declared order, not completion order.
            return [(spec, f.result()) for spec, f in zip(phase.plugins, futures)]

    def _record(self, spec: PluginSpec, result: _PluginResult) -> None:
        report = self._report
        report.outcomes.append(result.outcome)
        local = result.local
        # A failed upgrade leaves the previous install usable.
        if local is not None and local.command is not None:
            report.install_dirs[spec.name] = local.install_dir
            report.commands[spec.name] = local.command

    # ── Per-plugin work unit ────────────────────────────────────

    def _process(self, phase: Phase, spec: PluginSpec) -> _PluginResult:
        """Probe → decide → fetch → install, with failures contained."""
        if not spec.enabled:
            self.sink.log(LogLevel.INFO, spec.name, "Disabled, skipping")
            return _PluginResult(InstallOutcome.skipped(spec.name, SKIP_DISABLED, phase=phase.name))
        if self.cancel.cancelled:
            return _PluginResult(InstallOutcome.skipped(spec.name, SKIP_CANCELLED, phase=phase.name))

        clock = self.services.clock
        started = clock.monotonic()
        resolved: ResolvedVersion | None = None

        def _elapsed() -> int:
            return int((clock.monotonic() - started) * 1000)

        try:
            self._check_dependencies(spec)
            resolved = self.resolver.resolve(spec)
            return self._decide_and_install(phase, spec, resolved, _elapsed)
        except Exception as e:  # per-plugin failure boundary
            logger.debug("%s: failed", spec.name, exc_info=True)
            installed = resolved.installed if resolved else None
            local = resolved.local if resolved else None
            fatal = spec.mandatory and not installed
            if not fatal:
                self.sink.log(LogLevel.WARNING, spec.name, "Failed", e)
            outcome = InstallOutcome.failed(
                spec.name,
                str(e) or type(e).__name__,
                phase=phase.name,
                duration_ms=_elapsed(),
                installed_version=installed,
                latest_version=resolved.latest if resolved else None,
                install_dir=str(local.install_dir) if local else None,
            )
            survivor = self.resolver.probe_local(spec) if installed else None
            return _PluginResult(outcome, local=survivor, fatal=fatal)

    def _check_dependencies(self, spec: PluginSpec) -> None:
        missing = [d for d in spec.depends_on if d not in self._report.install_dirs]
        if missing:
            raise InstallError(f"required plugin(s) not available: {', '.join(missing)}")

    def _decide_and_install(
        self,
        phase: Phase,
        spec: PluginSpec,
        resolved: ResolvedVersion,
        elapsed: Callable[[], int],
    ) -> _PluginResult:
        local = resolved.local
        installed = resolved.installed
        common = {
            "phase": phase.name,
            "installed_version": installed,
            "latest_version": resolved.latest,
        }

        if installed and resolved.release is None:
            self.sink.log(
                LogLevel.WARNING, spec.name,
                f"Latest version unknown, keeping installed {installed}", resolved.remote_error,
            )
            return _PluginResult(
                InstallOutcome.skipped(
                    spec.name, SKIP_LATEST_UNKNOWN, duration_ms=elapsed(),
                    install_dir=str(local.install_dir), **common,
                ),
                local=local,
            )

        if installed and not self.force and resolved.is_up_to_date:
            self.sink.log(LogLevel.INFO, spec.name, f"Up to date ({installed})")
            return _PluginResult(
                InstallOutcome.skipped(
                    spec.name, SKIP_UP_TO_DATE, duration_ms=elapsed(),
                    install_dir=str(local.install_dir), **common,
                ),
                local=local,
            )

        release = resolved.release
        if release is None:
            raise InstallError(f"latest version unknown: {resolved.remote_error or 'no release'}")

        self._transition(RunState.INSTALLING)
        if not installed:
            verb = "Installing"
        elif resolved.is_up_to_date:
            verb = "Reinstalling"
        else:
            verb = "Upgrading"
        self.sink.log(
            LogLevel.INFO, spec.name,
            f"{verb} {release.version}" + (f" (installed {installed})" if installed else ""),
        )

        strategy = self._strategies[spec.name]
        asset = download_asset(release, self.root, self.services, self.settings.network)
        run_installer(
            strategy.mechanic,
            InstallRequest(
                spec=spec,
                asset=asset,
                root=self.root,
                services=self.services,
                archiver=self._report.commands.get(self.settings.archiver),
                silent_args=strategy.silent_args,
                timeout=self.settings.install_timeout,
            ),
        )

        after = self.resolver.probe_local(spec)
        if after is None or after.command is None:
            raise InstallError(
                f"{spec.command_name} not found under {self.root.root} after installing {asset.name}"
            )

        action = InstallAction.UPGRADED if installed else InstallAction.INSTALLED
        new_version = after.version or release.version
        self.sink.log(
            LogLevel.SUCCESS, spec.name,
            f"{action.value.capitalize()} {new_version} → {after.install_dir}",
        )
        return _PluginResult(
            InstallOutcome(
                name=spec.name,
                phase=phase.name,
                action=action,
                duration_ms=elapsed(),
                installed_version=new_version,
                latest_version=release.version,
                install_dir=str(after.install_dir),
            ),
            local=after,
        )


def resolve_plugins(
    manifest: Manifest,
    root: InstallRoot,
    services: Services,
    settings: Settings | None = None,
    *,
    force: bool = False,
    sink: LogSink | None = None,
    registry: StrategyRegistry | None = None,
    cancel: CancellationToken | None = None,
    env: Mapping[str, str] | None = None,
) -> RunReport:
    """Resolve and install every plugin in ``manifest`` under ``root``.

    Returns:
        ``RunReport`` with ordered outcomes and the plugin → install
        directory map.

    Raises:
        ManifestValidationError: Invalid manifest; nothing was run.
        FatalPluginError: Mandatory plugin with no prior install failed.
    """
    return PluginOrchestrator(
        manifest, root, services, settings,
        sink=sink, registry=registry, force=force, cancel=cancel, env=env,
    ).run()


def install_dir_map(report: RunReport) -> dict[str, Path]:
    """Read-only copy of plugin name → absolute install directory."""
    return {name: Path(p).resolve() for name, p in report.install_dirs.items()}

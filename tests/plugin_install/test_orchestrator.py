"""
Tests for phase-ordered plugin resolution.

End to end against a real temporary install root, with HTTP and
processes faked.
"""

import shutil
from pathlib import Path

import pytest

from media_toolchain.adapters.base import ProcessResult
from media_toolchain.core.errors import FatalPluginError, ManifestValidationError
from media_toolchain.core.models.outcome import InstallAction, RunState
from media_toolchain.core.models.plugin import Manifest, Phase, PluginSpec
from media_toolchain.core.observability.log_sink import LogLevel
from media_toolchain.core.services.plugin_install.detection.local_version import DirectoryNameProbe
from media_toolchain.core.services.plugin_install.execution.installers import InstallMechanic
from media_toolchain.core.services.plugin_install.orchestration.orchestrator import (
    SKIP_CANCELLED,
    SKIP_DISABLED,
    SKIP_LATEST_UNKNOWN,
    SKIP_UP_TO_DATE,
    CancellationToken,
    PluginOrchestrator,
    install_dir_map,
    resolve_plugins,
)
from media_toolchain.core.services.plugin_install.resolver.strategies import (
    PluginStrategy,
    StrategyRegistry,
)


def _tool(name: str = "Tool", **kw) -> PluginSpec:
    slug = name.lower()
    base = {
        "name": name,
        "repository_id": f"acme/{slug}",
        "asset_pattern": f"{slug}-*-x64.zip",
        "command_name": f"{slug}.exe",
    }
    base.update(kw)
    return PluginSpec(**base)


def _manifest(*phases: tuple[str, list[PluginSpec]]) -> Manifest:
    return Manifest(phases=tuple(Phase(name=n, plugins=tuple(p)) for n, p in phases))


def _preinstall(install_root, dirname: str, command: str = "tool.exe") -> Path:
    path = install_root.root / dirname / command
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"MZ")
    return path.parent


def _downloads(http) -> list[str]:
    return [url for method, url, _ in http.call_log if method == "DOWNLOAD"]


@pytest.fixture
def publish(http, make_zip, releases_api, release_json):
    """Publish ``<slug>-<version>-x64.zip`` as the latest release of ``acme/<slug>``."""

    def _publish(
        slug: str = "tool",
        version: str = "2.0.0",
        files: dict | None = None,
        tag: str | None = None,
    ) -> str:
        asset = f"{slug}-{version}-x64.zip"
        repo = f"acme/{slug}"
        release = release_json(tag or f"v{version}", asset, repo=repo)
        releases_api(repo, [release])
        url = release["assets"][0]["browser_download_url"]
        http.set_download(url, make_zip(asset, files or {f"{slug}.exe": b"MZ"}))
        return url

    return _publish


# ── Happy path ──────────────────────────────────────────────────────


class TestFreshInstall:
    def test_installs_into_asset_directory(self, install_root, services, settings, publish):
        publish("tool", "2.0.0")

        report = resolve_plugins(_manifest(("a", [_tool()])), install_root, services, settings)

        outcome = report.outcome("Tool")
        assert outcome.action == InstallAction.INSTALLED
        assert outcome.installed_version == "2.0.0"
        assert outcome.latest_version == "2.0.0"
        assert outcome.phase == "a"

        dest = install_root.root / "tool-2.0.0-x64"
        assert (dest / "tool.exe").is_file()
        assert (install_root.downloads_dir / "tool-2.0.0-x64.zip").is_file()
        assert report.install_dirs == {"Tool": dest}
        assert report.commands == {"Tool": dest / "tool.exe"}
        assert report.state == RunState.RUN_COMPLETE
        assert report.status == "ok"

    def test_install_dir_map_is_absolute(self, install_root, services, settings, publish):
        publish()
        report = resolve_plugins(_manifest(("a", [_tool()])), install_root, services, settings)
        dirs = install_dir_map(report)
        assert dirs["Tool"].is_absolute()
        dirs["Other"] = Path("x")
        assert "Other" not in report.install_dirs

    def test_success_logged_to_sink(self, install_root, services, settings, sink, publish):
        publish()
        resolve_plugins(_manifest(("a", [_tool()])), install_root, services, settings, sink=sink)
        successes = sink.at(LogLevel.SUCCESS)
        assert len(successes) == 1
        assert successes[0].context == "Tool"
        assert "Installed 2.0.0" in successes[0].message

    def test_creates_install_root(self, install_root, services, settings, publish):
        publish()
        resolve_plugins(_manifest(("a", [_tool()])), install_root, services, settings)
        assert install_root.downloads_dir.is_dir()
        assert install_root.temp_dir.is_dir()

    def test_missing_command_after_install_fails(self, install_root, services, settings, publish):
        publish("tool", "2.0.0", files={"readme.txt": "no binary here"})
        report = resolve_plugins(_manifest(("a", [_tool()])), install_root, services, settings)
        outcome = report.outcome("Tool")
        assert outcome.action == InstallAction.FAILED
        assert "tool.exe not found" in outcome.error
        assert "Tool" not in report.install_dirs


# ── Idempotence and upgrades ────────────────────────────────────────


class TestUpToDate:
    def test_second_run_does_not_download(self, install_root, services, settings, http, publish):
        publish()
        manifest = _manifest(("a", [_tool()]))
        resolve_plugins(manifest, install_root, services, settings)
        assert len(_downloads(http)) == 1

        report = resolve_plugins(manifest, install_root, services, settings)

        outcome = report.outcome("Tool")
        assert outcome.action == InstallAction.SKIPPED
        assert outcome.reason == SKIP_UP_TO_DATE
        assert len(_downloads(http)) == 1
        assert report.install_dirs["Tool"] == install_root.root / "tool-2.0.0-x64"

    def test_prefixed_tag_second_run_skips(self, install_root, services, settings, http, publish):
        publish("tool", "2.0.0", tag="release-2.0.0")
        manifest = _manifest(("a", [_tool()]))

        first = resolve_plugins(manifest, install_root, services, settings)
        assert first.outcome("Tool").action == InstallAction.INSTALLED
        assert first.outcome("Tool").latest_version == "2.0.0"

        second = resolve_plugins(manifest, install_root, services, settings)

        outcome = second.outcome("Tool")
        assert outcome.action == InstallAction.SKIPPED
        assert outcome.reason == SKIP_UP_TO_DATE
        assert len(_downloads(http)) == 1

    def test_upgrade(self, install_root, services, settings, sink, publish):
        old = _preinstall(install_root, "tool-1.0.0-x64")
        publish("tool", "2.0.0")

        report = resolve_plugins(_manifest(("a", [_tool()])), install_root, services, settings, sink=sink)

        outcome = report.outcome("Tool")
        assert outcome.action == InstallAction.UPGRADED
        assert outcome.installed_version == "2.0.0"
        assert report.install_dirs["Tool"] == install_root.root / "tool-2.0.0-x64"
        assert old.is_dir()     # old installs are never deleted
        assert any("Upgrading 2.0.0" in e.message for e in sink.at(LogLevel.INFO))

    def test_newer_local_is_up_to_date(self, install_root, services, settings, http, publish):
        _preinstall(install_root, "tool-3.0.0-x64")
        publish("tool", "2.0.0")
        report = resolve_plugins(_manifest(("a", [_tool()])), install_root, services, settings)
        assert report.outcome("Tool").reason == SKIP_UP_TO_DATE
        assert _downloads(http) == []

    def test_force_reinstalls(self, install_root, services, settings, http, publish):
        _preinstall(install_root, "tool-2.0.0-x64")
        publish("tool", "2.0.0")

        report = resolve_plugins(
            _manifest(("a", [_tool()])), install_root, services, settings, force=True,
        )

        assert report.outcome("Tool").action == InstallAction.UPGRADED
        assert len(_downloads(http)) == 1

    def test_force_skips_disabled(self, install_root, services, settings, http):
        report = resolve_plugins(
            _manifest(("a", [_tool(enabled=False)])), install_root, services, settings, force=True,
        )
        assert report.outcome("Tool").reason == SKIP_DISABLED
        assert http.call_count == 0


# ── Skips ───────────────────────────────────────────────────────────


class TestSkips:
    def test_disabled_does_no_io(self, install_root, services, settings, http, process):
        report = resolve_plugins(
            _manifest(("a", [_tool(enabled=False)])), install_root, services, settings,
        )
        outcome = report.outcome("Tool")
        assert outcome.action == InstallAction.SKIPPED
        assert outcome.reason == SKIP_DISABLED
        assert http.call_count == 0
        assert process.call_count == 0

    def test_latest_unknown_keeps_install(self, install_root, services, settings, sink):
        installed = _preinstall(install_root, "tool-1.0.0-x64")

        report = resolve_plugins(_manifest(("a", [_tool()])), install_root, services, settings, sink=sink)

        outcome = report.outcome("Tool")
        assert outcome.action == InstallAction.SKIPPED
        assert outcome.reason == SKIP_LATEST_UNKNOWN
        assert outcome.installed_version == "1.0.0"
        assert report.install_dirs["Tool"] == installed
        assert any(e.context == "Tool" for e in sink.at(LogLevel.WARNING))

    def test_latest_unknown_without_install_fails(self, install_root, services, settings):
        report = resolve_plugins(_manifest(("a", [_tool()])), install_root, services, settings)
        outcome = report.outcome("Tool")
        assert outcome.action == InstallAction.FAILED
        assert "latest version unknown" in outcome.error


# ── Failure isolation ───────────────────────────────────────────────


class TestFailureIsolation:
    def test_sibling_keeps_going(self, install_root, services, settings, http, release_json, releases_api, publish):
        releases_api("acme/tool", [release_json("v2.0.0", "tool-2.0.0-x64.zip")])  # no download
        publish("other", "1.0.0")
        manifest = _manifest(("a", [_tool(), _tool("Other")]))

        report = resolve_plugins(manifest, install_root, services, settings)

        assert [o.name for o in report.outcomes] == ["Tool", "Other"]
        assert report.outcome("Tool").action == InstallAction.FAILED
        assert report.outcome("Other").action == InstallAction.INSTALLED
        assert report.status == "partial"
        assert report.state == RunState.RUN_COMPLETE

    def test_failure_does_not_stop_later_phases(self, install_root, services, settings, publish):
        publish("other", "1.0.0")
        manifest = _manifest(("a", [_tool()]), ("b", [_tool("Other")]))
        report = resolve_plugins(manifest, install_root, services, settings)
        assert report.outcome("Other").action == InstallAction.INSTALLED

    def test_failed_upgrade_keeps_previous_install(self, install_root, services, settings, release_json, releases_api):
        old = _preinstall(install_root, "tool-1.0.0-x64")
        releases_api("acme/tool", [release_json("v2.0.0", "tool-2.0.0-x64.zip")])

        report = resolve_plugins(_manifest(("a", [_tool()])), install_root, services, settings)

        assert report.outcome("Tool").action == InstallAction.FAILED
        assert report.install_dirs["Tool"] == old

    def test_missing_dependency(self, install_root, services, settings, http):
        manifest = _manifest(("a", [_tool()]), ("b", [_tool("Dep", depends_on=("Tool",))]))

        report = resolve_plugins(manifest, install_root, services, settings)

        outcome = report.outcome("Dep")
        assert outcome.action == InstallAction.FAILED
        assert "required plugin(s) not available: Tool" in outcome.error
        assert http.calls_to("acme/dep") == []

    def test_failure_logged_as_warning(self, install_root, services, settings, sink):
        resolve_plugins(_manifest(("a", [_tool()])), install_root, services, settings, sink=sink)
        warnings = [e for e in sink.at(LogLevel.WARNING) if e.context == "Tool"]
        assert warnings and warnings[-1].message == "Failed"


# ── Mandatory escalation ────────────────────────────────────────────


class TestMandatory:
    def test_fatal_aborts_run(self, install_root, services, settings, http, sink):
        manifest = _manifest(("a", [_tool(mandatory=True)]), ("b", [_tool("Other")]))

        with pytest.raises(FatalPluginError) as exc:
            resolve_plugins(manifest, install_root, services, settings, sink=sink)

        assert exc.value.plugin == "Tool"
        report = exc.value.report
        assert [o.name for o in report.outcomes] == ["Tool"]
        assert report.state == RunState.RUN_ABORTED
        assert report.fatal_error.startswith("Tool: ")
        assert http.calls_to("acme/other") == []
        assert sink.at(LogLevel.ERROR)[0].context == "Tool"

    def test_fatal_stops_remaining_siblings(self, install_root, services, settings, http):
        manifest = _manifest(("a", [_tool(mandatory=True), _tool("Other")]))
        with pytest.raises(FatalPluginError):
            resolve_plugins(manifest, install_root, services, settings)
        assert http.calls_to("acme/other") == []

    def test_mandatory_with_install_is_not_fatal(self, install_root, services, settings, release_json, releases_api):
        _preinstall(install_root, "tool-1.0.0-x64")
        releases_api("acme/tool", [release_json("v2.0.0", "tool-2.0.0-x64.zip")])

        report = resolve_plugins(
            _manifest(("a", [_tool(mandatory=True)])), install_root, services, settings,
        )

        assert report.outcome("Tool").action == InstallAction.FAILED
        assert report.state == RunState.RUN_COMPLETE

    def test_disabled_mandatory_is_not_fatal(self, install_root, services, settings):
        report = resolve_plugins(
            _manifest(("a", [_tool(mandatory=True, enabled=False)])), install_root, services, settings,
        )
        assert report.outcome("Tool").reason == SKIP_DISABLED


# ── Validation ──────────────────────────────────────────────────────


class TestValidation:
    def test_invalid_manifest_rejected_before_io(self, install_root, services, settings, http):
        manifest = _manifest(("a", [_tool(depends_on=("Ghost",))]))
        with pytest.raises(ManifestValidationError, match="Ghost"):
            PluginOrchestrator(manifest, install_root, services, settings)
        assert http.call_count == 0
        assert not install_root.root.exists()


# ── Archiver hand-off ───────────────────────────────────────────────


class TestArchiver:
    def test_self_extracting_uses_installed_archiver(
        self, install_root, services, settings, http, process, release_json, releases_api,
    ):
        registry = StrategyRegistry([
            PluginStrategy("7-zip", DirectoryNameProbe(), InstallMechanic.SILENT_INSTALLER),
        ])
        manifest = _manifest(
            ("a", [_tool("7-Zip", repository_id="ip7z/7zip", asset_pattern="7z-*-x64.exe",
                         command_name="7z.exe", mandatory=True)]),
            ("b", [_tool("Bundle", asset_pattern="bundle-*.7z", depends_on=("7-Zip",))]),
        )

        sevenzip = release_json("24.09", "7z-24.09-x64.exe", repo="ip7z/7zip")
        releases_api("ip7z/7zip", [sevenzip])
        http.set_download(sevenzip["assets"][0]["browser_download_url"], b"installer")
        bundle = release_json("v1.0", "bundle-1.0.7z", repo="acme/bundle")
        releases_api("acme/bundle", [bundle])
        http.set_download(bundle["assets"][0]["browser_download_url"], b"7z archive")

        def _install_7zip(exe, args):
            dest = Path(args[1][len("/D="):])
            (dest / "7z.exe").write_bytes(b"MZ")
            return ProcessResult(exit_code=0)

        def _extract(exe, args):
            out = Path(args[2][2:])
            (out / "bundle.exe").write_bytes(b"MZ")
            return ProcessResult(exit_code=0)

        process.set_handler("7z-24.09-x64.exe", _install_7zip)
        process.set_handler("7z.exe", _extract)

        report = resolve_plugins(manifest, install_root, services, settings, registry=registry)

        archiver = install_root.root / "7z-24.09-x64" / "7z.exe"
        assert report.commands["7-Zip"] == archiver
        assert report.outcome("Bundle").action == InstallAction.INSTALLED
        assert report.install_dirs["Bundle"] == install_root.root / "bundle-1.0"
        exe, args = process.call_log[-1]
        assert exe == str(archiver)
        assert args[0] == "x"


# ── Cancellation ────────────────────────────────────────────────────


class TestCancellation:
    def test_cancel_before_start(self, install_root, services, settings, http):
        token = CancellationToken()
        token.cancel()

        report = resolve_plugins(
            _manifest(("a", [_tool()]), ("b", [_tool("Other")])),
            install_root, services, settings, cancel=token,
        )

        assert [o.reason for o in report.outcomes] == [SKIP_CANCELLED, SKIP_CANCELLED]
        assert report.cancelled
        assert report.status == "cancelled"
        assert report.state == RunState.RUN_ABORTED
        assert http.call_count == 0

    def test_in_flight_plugin_finishes(self, install_root, services, settings, http, make_zip, release_json, releases_api):
        token = CancellationToken()
        release = release_json("v2.0.0", "tool-2.0.0-x64.zip")
        releases_api("acme/tool", [release])
        archive = make_zip("tool-2.0.0-x64.zip", {"tool.exe": b"MZ"})

        def _write(dest):
            token.cancel()
            shutil.copyfile(archive, dest)

        http.set_download(release["assets"][0]["browser_download_url"], _write)

        report = resolve_plugins(
            _manifest(("a", [_tool(), _tool("Other")])),
            install_root, services, settings, cancel=token,
        )

        assert report.outcome("Tool").action == InstallAction.INSTALLED
        assert report.outcome("Other").reason == SKIP_CANCELLED
        assert report.cancelled
        assert http.calls_to("acme/other") == []


# ── Run state and ordering ──────────────────────────────────────────


class TestRunState:
    def test_state_history(self, install_root, services, settings, publish):
        publish()
        orchestrator = PluginOrchestrator(
            _manifest(("a", [_tool()]), ("b", [_tool("Other", enabled=False)])),
            install_root, services, settings,
        )
        orchestrator.run()
        assert orchestrator.state_history == [
            RunState.NOT_STARTED,
            RunState.PROBING,
            RunState.INSTALLING,
            RunState.PHASE_COMPLETE,
            RunState.PROBING,
            RunState.PHASE_COMPLETE,
            RunState.RUN_COMPLETE,
        ]

    def test_state_callback(self, install_root, services, settings):
        seen = []
        PluginOrchestrator(
            _manifest(("a", [_tool(enabled=False)])), install_root, services, settings,
            on_state=seen.append,
        ).run()
        assert seen == [RunState.PROBING, RunState.PHASE_COMPLETE, RunState.RUN_COMPLETE]

    def test_outcomes_in_declared_order(self, install_root, services, settings, publish):
        for slug in ("alpha", "beta", "gamma"):
            publish(slug, "1.0.0")
        manifest = _manifest(
            ("one", [_tool("Gamma"), _tool("Alpha", enabled=False)]),
            ("two", [_tool("Beta")]),
        )
        report = resolve_plugins(manifest, install_root, services, settings)
        assert [o.name for o in report.outcomes] == ["Gamma", "Alpha", "Beta"]

    def test_parallel_phase_keeps_declared_order(self, install_root, services, settings, publish):
        for slug in ("alpha", "beta", "gamma"):
            publish(slug, "1.0.0")
        parallel = settings.model_copy(update={"parallel_downloads": True, "max_workers": 3})
        manifest = _manifest(("a", [_tool("Gamma"), _tool("Alpha"), _tool("Beta")]))

        report = resolve_plugins(manifest, install_root, services, parallel)

        assert [o.name for o in report.outcomes] == ["Gamma", "Alpha", "Beta"]
        assert all(o.action == InstallAction.INSTALLED for o in report.outcomes)
        assert set(report.install_dirs) == {"Alpha", "Beta", "Gamma"}

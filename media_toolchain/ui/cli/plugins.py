"""
CLI commands for plugin resolution and installation.

Thin wrappers over ``media_toolchain.core.use_cases.resolve``.
"""

from __future__ import annotations

import json
import signal
import sys
from pathlib import Path

import click

from media_toolchain.core.models.outcome import InstallAction, InstallOutcome, RunReport

_ACTION_STYLE = {
    InstallAction.INSTALLED: ("✅", "green"),
    InstallAction.UPGRADED: ("⬆️ ", "cyan"),
    InstallAction.SKIPPED: ("⏭️ ", "white"),
    InstallAction.FAILED: ("❌", "red"),
}

_manifest_option = click.option(
    "--manifest", "-m", "manifest_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Manifest YAML (default: settings, then built-in).",
)
_json_option = click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")


def _load(ctx: click.Context, manifest_path: str | None):
    """Load settings + manifest; exit 1 on config or manifest errors."""
    from media_toolchain.core.config.loader import ConfigError
    from media_toolchain.core.errors import ManifestValidationError
    from media_toolchain.core.use_cases.resolve import load_context

    try:
        return load_context(
            ctx.obj.get("config_path"),
            Path(manifest_path) if manifest_path else None,
            services=ctx.obj.get("services"),
            env=ctx.obj.get("env"),
        )
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    except ManifestValidationError as e:
        _print_manifest_errors(e)
        sys.exit(1)


def _print_manifest_errors(error) -> None:
    click.secho("❌ Invalid plugin manifest:", fg="red", bold=True, err=True)
    for msg in error.errors:
        click.echo(f"   • {msg}", err=True)


def _version_cell(o: InstallOutcome) -> str:
    installed = o.installed_version or "-"
    latest = o.latest_version or "?"
    if o.action in (InstallAction.INSTALLED, InstallAction.UPGRADED) or installed == latest:
        return installed
    return f"{installed} → {latest}"


def _print_summary(report: RunReport) -> None:
    """One line per plugin, always printed, even on fatal abort."""
    if not report.outcomes:
        click.echo("   (no plugins processed)")
        return
    width = max(len(o.name) for o in report.outcomes)
    phase = None
    for o in report.outcomes:
        if o.phase != phase:
            phase = o.phase
            click.secho(f"   {phase}", fg="white", bold=True)
        icon, color = _ACTION_STYLE[o.action]
        label = o.action.value + (f" ({o.reason})" if o.reason else "")
        click.echo(f"     {icon} {o.name:<{width}}  ", nl=False)
        click.secho(f"{label:<24}", fg=color, nl=False)
        click.echo(f" {_version_cell(o):<22} {o.duration_ms:>6}ms")
    click.echo()
    click.echo(
        f"   {report.count(InstallAction.INSTALLED)} installed, "
        f"{report.count(InstallAction.UPGRADED)} upgraded, "
        f"{report.count(InstallAction.SKIPPED)} skipped, "
        f"{report.count(InstallAction.FAILED)} failed"
    )


@click.group()
def plugins() -> None:
    """Plugins — resolve, check, list."""


# ── Resolve ─────────────────────────────────────────────────────


@plugins.command()
@click.option("--force", "-f", is_flag=True, help="Reinstall even when up to date.")
@_manifest_option
@_json_option
@click.pass_context
def resolve(ctx: click.Context, force: bool, manifest_path: str | None, as_json: bool) -> None:
    """Install missing plugins and upgrade outdated ones."""
    from media_toolchain.core.errors import FatalPluginError, ManifestValidationError
    from media_toolchain.core.services.plugin_install.orchestration.orchestrator import (
        CancellationToken,
    )
    from media_toolchain.core.use_cases.resolve import run_resolve

    engine = _load(ctx, manifest_path)
    cancel = CancellationToken()

    def _on_sigint(signum, frame):
        click.secho("\n⚠️  Interrupted: finishing in-flight plugins...", fg="yellow", err=True)
        cancel.cancel()

    previous = signal.signal(signal.SIGINT, _on_sigint)
    try:
        report = run_resolve(engine, force=force, cancel=cancel)
    except ManifestValidationError as e:
        _print_manifest_errors(e)
        sys.exit(1)
    except FatalPluginError as e:
        report = e.report or RunReport()
        if as_json:
            click.echo(json.dumps(report.to_dict(), indent=2))
        else:
            click.secho("\n🔌 Plugins", fg="cyan", bold=True)
            _print_summary(report)
            click.echo()
        click.secho(f"❌ {e}", fg="red", bold=True, err=True)
        sys.exit(1)
    finally:
        signal.signal(signal.SIGINT, previous)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(130 if report.cancelled else 0)

    click.secho("\n🔌 Plugins", fg="cyan", bold=True)
    _print_summary(report)

    failed = report.failed
    if failed:
        click.echo()
        click.secho(f"⚠️  {len(failed)} plugin(s) failed:", fg="yellow")
        for o in failed:
            click.echo(f"   • {o.name}: {o.error}")
    if report.cancelled:
        click.secho("⚠️  Run cancelled", fg="yellow")
        click.echo()
        sys.exit(130)
    click.echo()


# ── Check ───────────────────────────────────────────────────────


@plugins.command()
@_manifest_option
@_json_option
@click.pass_context
def check(ctx: click.Context, manifest_path: str | None, as_json: bool) -> None:
    """Show installed vs latest versions without installing."""
    from media_toolchain.core.errors import ManifestValidationError
    from media_toolchain.core.use_cases.resolve import run_check

    engine = _load(ctx, manifest_path)
    try:
        result = run_check(engine)
    except ManifestValidationError as e:
        _print_manifest_errors(e)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    colors = {
        "up-to-date": "green", "outdated": "yellow", "missing": "red",
        "unknown": "yellow", "disabled": "white",
    }
    click.secho("\n🔍 Plugin versions:", fg="cyan", bold=True)
    width = max((len(e.name) for e in result.entries), default=0)
    for e in result.entries:
        click.echo(f"   {e.name:<{width}}  ", nl=False)
        click.secho(f"{e.status:<11}", fg=colors[e.status], nl=False)
        click.echo(f" {e.installed or '-':<14} {e.latest or '?'}")
        if e.error:
            click.echo(f"   {'':<{width}}  ⚠️  {e.error}")
    click.echo()


# ── List ────────────────────────────────────────────────────────


@plugins.command("list")
@_manifest_option
@_json_option
@click.pass_context
def list_cmd(ctx: click.Context, manifest_path: str | None, as_json: bool) -> None:
    """List the manifest's phases and plugins."""
    from media_toolchain.core.use_cases.resolve import list_plugins

    engine = _load(ctx, manifest_path)
    rows = list_plugins(engine.manifest)

    if as_json:
        click.echo(json.dumps({"plugins": rows}, indent=2))
        return

    phase = None
    for row in rows:
        if row["phase"] != phase:
            phase = row["phase"]
            click.secho(f"\n📦 {phase}", fg="cyan", bold=True)
        flags = []
        if row["mandatory"]:
            flags.append("mandatory")
        if not row["enabled"]:
            flags.append("disabled")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        click.echo(f"   • {row['name']}{suffix}  ({row['source']}: {row['origin']})")
        click.echo(f"      {row['command']}")
    click.echo()

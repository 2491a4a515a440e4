"""
media-toolchain — command-line entrypoint.

    media-toolchain plugins list
    media-toolchain plugins check --json
    media-toolchain plugins resolve --force
    media-toolchain -c ./media-toolchain.yml config

Global options are stored on ``ctx.obj`` for the subcommands. Tests may
pre-populate ``ctx.obj`` with ``services`` (fake capability services)
and ``env`` (environment overrides).
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from media_toolchain import __version__
from media_toolchain.core.observability.logging_config import (
    ENV_LOG_FILE,
    ENV_LOG_FILE_LEVEL,
    level_from_flags,
    setup_logging,
)
from media_toolchain.ui.cli.plugins import plugins


@click.group()
@click.version_option(version=__version__, prog_name="media-toolchain")
@click.option("--verbose", "-v", is_flag=True, help="Log engine progress (INFO).")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors.")
@click.option("--debug", is_flag=True, help="Log everything, with source locations.")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Settings file (default: nearest media-toolchain.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """media-toolchain — provision the tools a media manager depends on."""
    obj = ctx.ensure_object(dict)
    obj["config_path"] = Path(config_path) if config_path else None
    obj.setdefault("env", None)

    environ = os.environ
    setup_logging(
        level=level_from_flags(debug, verbose, quiet, environ),
        log_file=environ.get(ENV_LOG_FILE),
        log_file_level=environ.get(ENV_LOG_FILE_LEVEL),
        quiet_third_party=not debug,
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config(ctx: click.Context, as_json: bool) -> None:
    """Show the effective settings after file and env overrides."""
    from media_toolchain.core.config.loader import ConfigError, find_config_file, load_settings

    source = ctx.obj["config_path"] or find_config_file()
    try:
        settings = load_settings(source, env=ctx.obj["env"])
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        payload = {"config_file": str(source) if source else None}
        payload.update(settings.model_dump(mode="json"))
        click.echo(json.dumps(payload, indent=2))
        return

    rows = (
        ("File", source or "(defaults)"),
        ("Root", settings.paths.plugins_root),
        ("Downloads", settings.paths.downloads),
        ("Temp", settings.paths.temp),
        ("Manifest", settings.manifest or "(built-in)"),
        ("Archiver", settings.archiver),
        ("Parallel", f"yes ({settings.max_workers} workers)" if settings.parallel_downloads else "no"),
        ("Retries", f"{settings.network.retries} (backoff {settings.network.backoff_seconds}s)"),
    )
    click.secho("\n⚙️  Settings", fg="cyan", bold=True)
    for label, value in rows:
        click.echo(f"   {label + ':':<11} {value}")
    click.echo()


cli.add_command(plugins)


if __name__ == "__main__":
    cli()

"""
Configuration loader — reads media-toolchain.yml and manifest YAML files.

Settings and manifests are read from YAML, validated against the
pydantic models, and returned as typed objects. A missing settings file
is not an error: every setting has a default.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from media_toolchain.core.errors import ManifestValidationError
from media_toolchain.core.models.config import Settings
from media_toolchain.core.models.plugin import Manifest
from media_toolchain.core.services.plugin_install.data.default_manifest import default_manifest

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "media-toolchain.yml"

ENV_PLUGINS_ROOT = "MTC_PLUGINS_ROOT"
ENV_MANIFEST = "MTC_MANIFEST"


class ConfigError(Exception):
    """Raised when the settings file is unreadable or invalid."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for media-toolchain.yml starting from ``start_dir``, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to the settings file, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def _read_yaml(path: Path) -> Any:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e


def load_settings(
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Load engine settings.

    Relative paths are anchored at the settings file's directory (or the
    cwd when there is no file). ``MTC_PLUGINS_ROOT`` and ``MTC_MANIFEST``
    override the file.

    Raises:
        ConfigError: The file exists but is unreadable or invalid.
    """
    env = env if env is not None else os.environ
    if path is None:
        path = find_config_file()

    data: dict[str, Any] = {}
    base = Path.cwd()
    if path is not None:
        logger.debug("Loading settings from %s", path)
        loaded = _read_yaml(path)
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(
                f"Expected a YAML mapping in {path}, got {type(loaded).__name__}"
            )
        data = loaded
        base = path.parent.resolve()
    else:
        logger.debug("No %s found, using defaults", CONFIG_FILE)

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    paths = settings.paths
    if env.get(ENV_PLUGINS_ROOT):
        paths = paths.model_copy(update={"plugins_root": Path(env[ENV_PLUGINS_ROOT])})
    manifest = settings.manifest
    if env.get(ENV_MANIFEST):
        manifest = Path(env[ENV_MANIFEST])
    if manifest is not None and not manifest.is_absolute():
        manifest = (base / manifest).resolve()

    return settings.model_copy(update={"paths": paths.resolved(base), "manifest": manifest})


def parse_manifest(data: Any, source: str = "<manifest>") -> Manifest:
    """Validate raw manifest data (as loaded from YAML).

    Raises:
        ManifestValidationError: Shape or field types are wrong.
    """
    if not isinstance(data, dict) or "phases" not in data:
        raise ManifestValidationError(f"{source}: expected a mapping with a 'phases' list")
    try:
        return Manifest.model_validate(data)
    except ValidationError as e:
        raise ManifestValidationError(
            [f"{source}: {'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        ) from e


def load_manifest(path: Path) -> Manifest:
    """Load a manifest YAML file.

    Raises:
        ConfigError: File missing, unreadable, or not YAML.
        ManifestValidationError: Content does not describe a manifest.
    """
    logger.debug("Loading manifest from %s", path)
    manifest = parse_manifest(_read_yaml(path), source=str(path))
    logger.info("Loaded manifest %s: %d phases, %d plugins",
                path.name, len(manifest.phases), manifest.plugin_count)
    return manifest


def resolve_manifest(settings: Settings, override: Path | None = None) -> Manifest:
    """``override`` → ``settings.manifest`` → built-in default."""
    path = override or settings.manifest
    if path is None:
        return default_manifest()
    return load_manifest(path)

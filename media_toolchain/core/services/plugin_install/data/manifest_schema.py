"""
L0 Data — Manifest validator.

Structural checks run before any network or process work. The pydantic
models already enforce field types; this layer checks the cross-field
and cross-plugin rules:

  - every plugin names its command file
  - repository sources carry ``repository_id`` and ``asset_pattern``
  - direct-URL sources carry ``base_uri``
  - plugin names are unique within a phase
  - ``depends_on`` targets exist in an earlier phase
  - self-extracting assets have the archiver plugin in an earlier phase
  - patterns compile and strategy keys resolve
"""

from __future__ import annotations

import logging
import re

from media_toolchain.core.errors import ManifestValidationError
from media_toolchain.core.models.plugin import Manifest, PluginSource, PluginSpec
from media_toolchain.core.services.plugin_install.domain.asset_matching import compile_pattern
from media_toolchain.core.services.plugin_install.execution.installers import InstallMechanic
from media_toolchain.core.services.plugin_install.resolver.strategies import StrategyRegistry

logger = logging.getLogger(__name__)


def _validate_fields(spec: PluginSpec, prefix: str) -> list[str]:
    errors: list[str] = []

    if not spec.name.strip():
        errors.append(f"{prefix}: 'name' must be a non-empty string")
    if not spec.command_name.strip():
        errors.append(f"{prefix}: missing required field 'command_name'")

    if spec.source == PluginSource.REPOSITORY:
        if not spec.repository_id.strip():
            errors.append(f"{prefix}: repository source requires 'repository_id'")
        elif spec.repository_id.count("/") != 1:
            errors.append(
                f"{prefix}: 'repository_id' must be 'owner/name', got '{spec.repository_id}'"
            )
        if not spec.asset_pattern.strip():
            errors.append(f"{prefix}: repository source requires 'asset_pattern'")
    elif not spec.base_uri.strip():
        errors.append(f"{prefix}: direct_url source requires 'base_uri'")

    if spec.asset_pattern and spec.source == PluginSource.REPOSITORY:
        try:
            compile_pattern(spec.asset_pattern)
        except re.error as e:
            errors.append(f"{prefix}: invalid 'asset_pattern': {e}")
    if spec.version_pattern:
        try:
            re.compile(spec.version_pattern)
        except re.error as e:
            errors.append(f"{prefix}: invalid 'version_pattern': {e}")

    return errors


def validate_manifest(
    manifest: Manifest,
    registry: StrategyRegistry | None = None,
    archiver: str = "7-Zip",
) -> list[str]:
    """Validate a manifest.

    Args:
        manifest: Parsed manifest.
        registry: Strategy table used to resolve install mechanics.
        archiver: Plugin name used to expand self-extracting archives.

    Returns:
        List of error messages (empty = valid).
    """
    registry = registry or StrategyRegistry.default()
    errors: list[str] = []

    if not manifest.phases:
        errors.append("manifest declares no phases")

    phase_names: set[str] = set()
    for pi, phase in enumerate(manifest.phases):
        if phase.name in phase_names:
            errors.append(f"phase '{phase.name}': duplicate phase name")
        phase_names.add(phase.name)

        seen: set[str] = set()
        for spec in phase.plugins:
            prefix = f"{phase.name}/{spec.name}"
            if spec.name in seen:
                errors.append(f"{prefix}: duplicate plugin name within phase")
            seen.add(spec.name)

            errors.extend(_validate_fields(spec, prefix))

            for dep in spec.depends_on:
                dep_phase = manifest.phase_index(dep)
                if dep_phase is None:
                    errors.append(f"{prefix}: depends on unknown plugin '{dep}'")
                elif dep_phase >= pi:
                    errors.append(
                        f"{prefix}: depends on '{dep}' which is not in an earlier phase"
                    )

            try:
                bound = registry.bind_one(spec)
            except ManifestValidationError as e:
                errors.extend(f"{phase.name}/{msg}" for msg in e.errors)
                continue

            if spec.enabled and bound.mechanic == InstallMechanic.SELF_EXTRACTING:
                archiver_phase = manifest.phase_index(archiver)
                if archiver_phase is None or archiver_phase >= pi:
                    errors.append(
                        f"{prefix}: self-extracting asset requires archiver "
                        f"'{archiver}' in an earlier phase"
                    )

    if errors:
        logger.debug("Manifest validation: %d error(s)", len(errors))
    return errors


def ensure_valid(
    manifest: Manifest,
    registry: StrategyRegistry | None = None,
    archiver: str = "7-Zip",
) -> None:
    """Raise ``ManifestValidationError`` listing every problem found."""
    errors = validate_manifest(manifest, registry, archiver)
    if errors:
        raise ManifestValidationError(errors)

"""
Plugin manifest models — declarative, immutable tool definitions.

A manifest is an ordered list of phases; a phase is an ordered list of
plugin specs. Phases run strictly in order because later tools may need
earlier ones (the archiver before anything shipped as a self-extracting
archive, git before anything that shells out to git).
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PluginSource(str, Enum):
    """Where the latest version and the download come from."""

    REPOSITORY = "repository"     # releases API of a hosted repository
    DIRECT_URL = "direct_url"     # scrape a page, build the URL


class PluginSpec(BaseModel):
    """A single third-party tool the engine manages.

    ``asset_pattern`` is a glob (``tool-*-x64.zip``) or, when it contains
    a named group, a regex whose ``version`` group pulls the version out
    of the asset name. For ``direct_url`` sources it may contain a
    ``{version}`` placeholder and names the file to download.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    mandatory: bool = False
    enabled: bool = True
    source: PluginSource = PluginSource.REPOSITORY

    # repository source
    repository_id: str = ""                 # owner/name
    asset_pattern: str = ""

    # direct-url source
    base_uri: str = ""                      # may contain {version} / {asset}
    version_probe_url: str = ""             # defaults to base_uri
    version_pattern: str = ""               # regex with a (?P<version>...) group

    command_path: str = ""                  # subdirectory holding the executable
    command_name: str = ""
    register_to_path: bool = False          # advisory only, never acted on

    strategy: str = ""                      # strategy table key; "" = by name
    depends_on: tuple[str, ...] = ()

    @property
    def key(self) -> str:
        """Strategy lookup key: explicit ``strategy`` or the lowercased name."""
        return (self.strategy or self.name).lower()


class Phase(BaseModel):
    """An ordered group of plugins sharing an install-order boundary."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    plugins: tuple[PluginSpec, ...] = ()


class Manifest(BaseModel):
    """The full ordered plugin manifest."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    phases: tuple[Phase, ...] = Field(default_factory=tuple)

    def iter_plugins(self) -> Iterator[tuple[Phase, PluginSpec]]:
        """Yield ``(phase, spec)`` in declared order."""
        for phase in self.phases:
            for spec in phase.plugins:
                yield phase, spec

    def get(self, name: str) -> PluginSpec | None:
        for _, spec in self.iter_plugins():
            if spec.name == name:
                return spec
        return None

    def phase_index(self, name: str) -> int | None:
        """Index of the first phase declaring plugin ``name``."""
        for i, phase in enumerate(self.phases):
            if any(p.name == name for p in phase.plugins):
                return i
        return None

    @property
    def plugin_count(self) -> int:
        return sum(len(p.plugins) for p in self.phases)

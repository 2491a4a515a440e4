"""
Settings models — the typed configuration object the engine consumes.

Only ``paths`` is strictly required by the engine; everything else has
sensible defaults so an empty settings file is valid.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class PathsConfig(BaseModel):
    """Install-root locations.

    ``plugins_downloads`` and ``plugins_temp`` default to ``_Downloads``
    and ``_Temp`` under ``plugins_root``.
    """

    plugins_root: Path = Path("Plugins")
    plugins_downloads: Path | None = None
    plugins_temp: Path | None = None

    @property
    def downloads(self) -> Path:
        return self.plugins_downloads or self.plugins_root / "_Downloads"

    @property
    def temp(self) -> Path:
        return self.plugins_temp or self.plugins_root / "_Temp"

    def resolved(self, base: Path) -> PathsConfig:
        """Return a copy with relative paths anchored at ``base``."""

        def _anchor(p: Path | None) -> Path | None:
            if p is None:
                return None
            p = p.expanduser()
            return p if p.is_absolute() else (base / p).resolve()

        return PathsConfig(
            plugins_root=_anchor(self.plugins_root) or self.plugins_root,
            plugins_downloads=_anchor(self.plugins_downloads),
            plugins_temp=_anchor(self.plugins_temp),
        )


class NetworkConfig(BaseModel):
    """Timeouts and retry policy for metadata calls and downloads."""

    metadata_timeout: float = Field(default=30, gt=0)
    download_timeout: float = Field(default=600, gt=0)
    retries: int = Field(default=2, ge=0, le=10)
    backoff_seconds: float = Field(default=1.0, ge=0)
    github_api: str = "https://api.github.com"
    github_token_env: str = "GITHUB_TOKEN"
    releases_per_page: int = Field(default=20, ge=1, le=100)

    @field_validator("github_api")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")


class Settings(BaseModel):
    """Top-level engine configuration (``media-toolchain.yml``)."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    process_timeout: float = Field(default=60, gt=0)
    install_timeout: float = Field(default=900, gt=0)
    parallel_downloads: bool = False
    max_workers: int = Field(default=4, ge=1, le=32)
    archiver: str = "7-Zip"
    manifest: Path | None = None

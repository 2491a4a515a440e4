"""
Engine error taxonomy.

Capability services raise these; the per-plugin boundary in the
orchestrator converts them into ``InstallOutcome`` records. Only
``ManifestValidationError`` and ``FatalPluginError`` cross the
orchestrator boundary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from media_toolchain.core.models.outcome import RunReport


class PluginEngineError(Exception):
    """Base class for every error raised by the plugin engine."""


class ManifestValidationError(PluginEngineError):
    """The declarative plugin manifest is invalid.

    Raised before any network or process work starts.
    """

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("Invalid plugin manifest:\n  " + "\n  ".join(self.errors))


class NetworkError(PluginEngineError):
    """Transport failure or non-2xx HTTP status."""

    def __init__(self, message: str, *, url: str = "", status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class ProcessLaunchError(PluginEngineError):
    """An executable could not be located, spawned, or timed out."""

    def __init__(self, message: str, *, executable: str = ""):
        super().__init__(message)
        self.executable = executable


class ExtractionError(PluginEngineError):
    """Archive is corrupt, unsupported, or the extractor failed."""


class InstallError(PluginEngineError):
    """Installer exited non-zero or left no usable command behind."""


class AssetNotFoundError(PluginEngineError):
    """No release asset or scraped token matched the declared pattern."""


class FatalPluginError(PluginEngineError):
    """A mandatory plugin has no installed version and its install failed.

    Aborts the run. ``report`` holds the outcomes collected up to and
    including the failing plugin.
    """

    def __init__(self, plugin: str, cause: str, report: RunReport | None = None):
        super().__init__(f"Mandatory plugin '{plugin}' is unavailable: {cause}")
        self.plugin = plugin
        self.cause = cause
        self.report = report

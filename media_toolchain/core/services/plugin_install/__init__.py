"""
Plugin installation service — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → resolver → detection →
execution → orchestration)::

    from media_toolchain.core.services.plugin_install import resolve_plugins
"""

# ── L0: Data ──
from media_toolchain.core.services.plugin_install.data.default_manifest import (  # noqa: F401
    DEFAULT_MANIFEST_DATA,
    default_manifest,
)
from media_toolchain.core.services.plugin_install.data.manifest_schema import (  # noqa: F401
    ensure_valid,
    validate_manifest,
)

# ── L1: Domain ──
from media_toolchain.core.services.plugin_install.domain.version import (  # noqa: F401
    VersionOrder,
    compare_versions,
    is_up_to_date,
    normalize_version,
)

# ── L2: Resolver ──
from media_toolchain.core.services.plugin_install.resolver.strategies import (  # noqa: F401
    BoundStrategy,
    PluginStrategy,
    StrategyRegistry,
)
from media_toolchain.core.services.plugin_install.resolver.version_resolver import (  # noqa: F401
    VersionResolver,
)

# ── L3: Detection ──
from media_toolchain.core.services.plugin_install.detection.remote_version import (  # noqa: F401
    RemoteVersionSource,
)

# ── L4: Execution ──
from media_toolchain.core.services.plugin_install.execution.installers import (  # noqa: F401
    InstallMechanic,
    run_installer,
)

# ── L5: Orchestration ──
from media_toolchain.core.services.plugin_install.orchestration.orchestrator import (  # noqa: F401
    CancellationToken,
    PluginOrchestrator,
    install_dir_map,
    resolve_plugins,
)

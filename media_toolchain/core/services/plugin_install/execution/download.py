"""
L4 Execution — Asset download.

Downloads the selected release asset into ``<root>/_Downloads``,
retrying transient network failures.
"""

from __future__ import annotations

import logging
from pathlib import Path

from media_toolchain.adapters.registry import Services
from media_toolchain.core.errors import NetworkError
from media_toolchain.core.models.config import NetworkConfig
from media_toolchain.core.models.outcome import InstallRoot, RemoteRelease
from media_toolchain.core.reliability.retry import RetryPolicy, call_with_retry, is_transient

logger = logging.getLogger(__name__)


def download_asset(
    release: RemoteRelease,
    root: InstallRoot,
    services: Services,
    network: NetworkConfig | None = None,
) -> Path:
    """Download ``release``'s asset to ``root.downloads_dir``.

    Args:
        release: Output of the remote probe.
        root: Install root; the downloads directory is created on demand.
        services: Capability services (http, fs, clock).
        network: Timeouts and retry policy.

    Returns:
        Path of the downloaded file.

    Raises:
        NetworkError: The download failed after all retries.
    """
    network = network or NetworkConfig()
    if not release.download_url:
        raise NetworkError(f"No download URL for {release.asset_name}")

    services.fs.create_directory(root.downloads_dir)
    dest = root.downloads_dir / release.asset_name

    policy = RetryPolicy(network.retries, network.backoff_seconds)
    path = call_with_retry(
        lambda: services.http.download(
            release.download_url, dest, timeout=network.download_timeout,
        ),
        policy,
        services.clock,
        label=f"download {release.asset_name}",
        retry_if=is_transient,
    )
    logger.debug("Downloaded %s", path)
    return path

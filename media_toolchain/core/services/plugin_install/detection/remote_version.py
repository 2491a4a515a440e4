"""
L3 Detection — Latest available version probes.

Two sources:
    repository   releases API of ``owner/name``; the newest release with
                 an asset matching ``asset_pattern`` wins
    direct_url   fetch ``version_probe_url``, scrape version tokens with
                 ``version_pattern``, take the highest, build the URL

Failures raise ``NetworkError`` / ``AssetNotFoundError``. The resolver
decides what a failure means for the plugin.
"""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import urljoin, urlparse

from media_toolchain.adapters.registry import Services
from media_toolchain.core.errors import AssetNotFoundError, NetworkError
from media_toolchain.core.models.config import NetworkConfig
from media_toolchain.core.models.outcome import RemoteRelease
from media_toolchain.core.models.plugin import PluginSource, PluginSpec
from media_toolchain.core.reliability.retry import RetryPolicy, call_with_retry, is_transient
from media_toolchain.core.services.plugin_install.domain.asset_matching import (
    expand_placeholders,
    select_release_asset,
    version_from_tag,
)
from media_toolchain.core.services.plugin_install.domain.version import highest_version

logger = logging.getLogger(__name__)

DEFAULT_VERSION_PATTERN = r"(?P<version>\d+(?:\.\d+)+)"


class RemoteVersionSource:
    """Resolve the latest release of a plugin from its declared source."""

    def __init__(
        self,
        services: Services,
        network: NetworkConfig | None = None,
        env: Mapping[str, str] | None = None,
    ):
        self._services = services
        self._network = network or NetworkConfig()
        self._env = env if env is not None else os.environ
        self._retry = RetryPolicy(self._network.retries, self._network.backoff_seconds)

    # ── Public ──────────────────────────────────────────────────

    def latest(self, spec: PluginSpec) -> RemoteRelease:
        if spec.source == PluginSource.REPOSITORY:
            return self._latest_from_repository(spec)
        return self._latest_from_direct_url(spec)

    def list_releases(self, repository_id: str) -> list[dict[str, Any]]:
        """Releases of ``owner/name``, newest first."""
        url = (
            f"{self._network.github_api}/repos/{repository_id}/releases"
            f"?per_page={self._network.releases_per_page}"
        )
        body = self._get(url, self._api_headers(), label=f"releases {repository_id}")
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise NetworkError(f"Invalid releases payload from {url}: {e}", url=url) from e
        if not isinstance(data, list):
            message = data.get("message", "unexpected payload") if isinstance(data, dict) else "unexpected payload"
            raise NetworkError(f"Releases API for {repository_id}: {message}", url=url)
        return data

    # ── Repository releases ─────────────────────────────────────

    def _latest_from_repository(self, spec: PluginSpec) -> RemoteRelease:
        releases = self.list_releases(spec.repository_id)
        selected = select_release_asset(releases, spec.asset_pattern)
        if selected is None:
            raise AssetNotFoundError(
                f"No release of {spec.repository_id} has an asset matching "
                f"'{spec.asset_pattern}' (checked {len(releases)} releases)"
            )
        release, asset, match = selected
        tag = release.get("tag_name", "")
        version = match.version or version_from_tag(tag, match.name)
        logger.debug("%s: latest %s from %s (%s)", spec.name, version, tag, match.name)
        return RemoteRelease(
            version=version,
            asset_name=match.name,
            download_url=asset.get("browser_download_url", ""),
            tag=tag,
        )

    def _api_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        token = self._env.get(self._network.github_token_env, "")
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    # ── Direct URL scraping ─────────────────────────────────────

    def _latest_from_direct_url(self, spec: PluginSpec) -> RemoteRelease:
        probe_url = spec.version_probe_url or spec.base_uri
        page = self._get(probe_url, {}, label=f"version page {spec.name}")

        pattern = re.compile(spec.version_pattern or DEFAULT_VERSION_PATTERN)
        tokens: list[str] = []
        for m in pattern.finditer(page):
            token = m.groupdict().get("version") or (m.group(1) if m.groups() else m.group(0))
            if token:
                tokens.append(token)

        version = highest_version(tokens)
        if not version:
            raise AssetNotFoundError(
                f"No version token matching '{pattern.pattern}' at {probe_url}"
            )

        asset_name = expand_placeholders(spec.asset_pattern, version=version) if spec.asset_pattern else ""
        url = self._direct_download_url(spec.base_uri, version, asset_name)
        if not asset_name:
            asset_name = os.path.basename(urlparse(url).path)
        logger.debug("%s: latest %s at %s", spec.name, version, url)
        return RemoteRelease(version=version, asset_name=asset_name, download_url=url)

    @staticmethod
    def _direct_download_url(base_uri: str, version: str, asset_name: str) -> str:
        if "{version}" in base_uri or "{asset}" in base_uri:
            return expand_placeholders(base_uri, version=version, asset=asset_name)
        if base_uri.endswith("/") and asset_name:
            return urljoin(base_uri, asset_name)
        return base_uri

    # ── Transport ───────────────────────────────────────────────

    def _get(self, url: str, headers: dict[str, str], *, label: str) -> str:
        return call_with_retry(
            lambda: self._services.http.get(url, headers, timeout=self._network.metadata_timeout),
            self._retry,
            self._services.clock,
            label=label,
            retry_if=is_transient,
        )

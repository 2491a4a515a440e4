"""
L1 Domain — Release asset matching (pure).

An asset pattern is either a glob (``tool-*-x64.zip``, matched
case-insensitively) or a regex carrying a named group, e.g.
``PortableGit-(?P<version>[\\d.]+)-64-bit\\.7z\\.exe``. The ``version``
group wins over the release tag when the tag is unreliable.
"""

from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass
from typing import Any

from media_toolchain.core.services.plugin_install.domain.version import (
    normalize_version,
    parse_version,
)

_VERSION_IN_NAME = re.compile(r"(\d+(?:\.\d+)+)")

# Longest first so ".tar.gz" wins over ".gz".
_ARCHIVE_SUFFIXES = (
    ".7z.exe", ".tar.gz", ".tar.xz", ".tar.bz2",
    ".tgz", ".txz", ".zip", ".7z", ".tar", ".exe", ".msi",
)


@dataclass(frozen=True)
class AssetMatch:
    name: str
    version: str | None = None


def is_regex_pattern(pattern: str) -> bool:
    return "(?P<" in pattern


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a glob or named-group regex into an anchored regex."""
    if is_regex_pattern(pattern):
        return re.compile(rf"^(?:{pattern})$", re.IGNORECASE)
    return re.compile(fnmatch.translate(pattern), re.IGNORECASE)


def match_asset(pattern: str, name: str) -> AssetMatch | None:
    """Match one asset name; returns the embedded version when captured."""
    m = compile_pattern(pattern).match(name)
    if not m:
        return None
    version = m.groupdict().get("version") if is_regex_pattern(pattern) else None
    return AssetMatch(name=name, version=version or None)


def select_release_asset(
    releases: list[dict[str, Any]],
    pattern: str,
    *,
    include_prereleases: bool = False,
) -> tuple[dict[str, Any], dict[str, Any], AssetMatch] | None:
    """Pick the most recent release that carries a matching asset.

    ``releases`` is the releases API payload, newest first. Drafts are
    always skipped; pre-releases unless asked for.

    Returns:
        ``(release, asset, match)`` or None.
    """
    regex = compile_pattern(pattern)
    for release in releases:
        if release.get("draft"):
            continue
        if release.get("prerelease") and not include_prereleases:
            continue
        for asset in release.get("assets", []):
            name = asset.get("name", "")
            m = regex.match(name)
            if not m:
                continue
            version = m.groupdict().get("version") if is_regex_pattern(pattern) else None
            return release, asset, AssetMatch(name=name, version=version or None)
    return None


def version_from_tag(tag: str, asset_name: str | None = None) -> str:
    """Release tag → version (``v2.0.0`` → ``2.0.0``).

    Prefixed tags (``release-2.0.0``) fall back to the dotted-numeric
    token inside the tag, then inside ``asset_name``. A tag with no
    version anywhere is returned normalized as-is.
    """
    version = normalize_version(tag)
    if parse_version(version) is not None:
        return version
    return version_from_name(tag) or (version_from_name(asset_name) if asset_name else None) or version


def version_from_name(name: str) -> str | None:
    """Pull the first dotted-numeric token out of a file or directory name.

    ``tool-2.3.1-linux`` → ``2.3.1``.
    """
    m = _VERSION_IN_NAME.search(name)
    return m.group(1) if m else None


def asset_stem(name: str) -> str:
    """Asset file name without its packaging suffix."""
    lower = name.lower()
    for suffix in _ARCHIVE_SUFFIXES:
        if lower.endswith(suffix):
            return name[: -len(suffix)]
    return name


def expand_placeholders(template: str, **values: str) -> str:
    """Fill ``{version}`` / ``{asset}`` style placeholders, leaving others intact."""
    out = template
    for key, value in values.items():
        out = out.replace("{" + key + "}", value)
    return out

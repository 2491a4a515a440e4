"""
L1 Domain — Version normalization and comparison (pure).

Versions are normalized by trimming whitespace, dropping a leading
``v`` and any ``+build`` metadata. Dotted-numeric versions compare
numerically (missing components count as zero, a pre-release sorts
before its release). Anything else falls back to case-insensitive
string ordering, which is deterministic but not semantic:
``rc2`` sorts after ``rc10``.

No I/O, no subprocess.
"""

from __future__ import annotations

import re
from enum import IntEnum

_NUMERIC_CORE = re.compile(r"^\d+(?:\.\d+)*$")


class VersionOrder(IntEnum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


def normalize_version(version: str | None) -> str:
    """Strip whitespace, a leading ``v`` and ``+build`` metadata."""
    if not version:
        return ""
    v = version.strip()
    if v[:1] in ("v", "V") and v[1:2].isdigit():
        v = v[1:]
    return v.split("+", 1)[0].strip()


def parse_version(version: str | None) -> tuple[tuple[int, ...], str] | None:
    """Split into ``(numeric components, pre-release)``.

    Returns None when the core is not dotted-numeric, e.g.
    ``"nightly-build-42"``.
    """
    v = normalize_version(version)
    if not v:
        return None
    core, _, pre = v.partition("-")
    if not _NUMERIC_CORE.match(core):
        return None
    return tuple(int(x) for x in core.split(".")), pre


def _compare_prerelease(a: str, b: str) -> int:
    # A release sorts after any of its pre-releases.
    if a == b:
        return 0
    if not a:
        return 1
    if not b:
        return -1
    a_ids = re.split(r"[.\-]", a)
    b_ids = re.split(r"[.\-]", b)
    for x, y in zip(a_ids, b_ids):
        if x.lower() == y.lower():
            continue
        if x.isdigit() and y.isdigit():
            return 1 if int(x) > int(y) else -1
        if x.isdigit():
            return -1
        if y.isdigit():
            return 1
        return 1 if x.lower() > y.lower() else -1
    return (len(a_ids) > len(b_ids)) - (len(a_ids) < len(b_ids))


def compare_versions(a: str | None, b: str | None) -> VersionOrder:
    """Order two version strings."""
    pa, pb = parse_version(a), parse_version(b)

    if pa is not None and pb is not None:
        nums_a, nums_b = pa[0], pb[0]
        width = max(len(nums_a), len(nums_b))
        nums_a = nums_a + (0,) * (width - len(nums_a))
        nums_b = nums_b + (0,) * (width - len(nums_b))
        if nums_a != nums_b:
            return VersionOrder.GREATER if nums_a > nums_b else VersionOrder.LESS
        return VersionOrder(_compare_prerelease(pa[1], pb[1]))

    # Fallback: case-insensitive string ordering
    sa, sb = normalize_version(a).lower(), normalize_version(b).lower()
    if sa == sb:
        return VersionOrder.EQUAL
    return VersionOrder.GREATER if sa > sb else VersionOrder.LESS


def is_semver_like(version: str | None) -> bool:
    return parse_version(version) is not None


def is_up_to_date(installed: str | None, latest: str | None) -> bool:
    """``installed >= latest`` for dotted-numeric versions, equality otherwise.

    An absent installed version is never up to date. An absent latest
    version cannot prove anything either, so it is not up to date.
    """
    if not normalize_version(installed) or not normalize_version(latest):
        return False
    if is_semver_like(installed) and is_semver_like(latest):
        return compare_versions(installed, latest) >= VersionOrder.EQUAL
    return normalize_version(installed).lower() == normalize_version(latest).lower()


def highest_version(versions: list[str]) -> str | None:
    """Pick the highest of several candidate versions."""
    best: str | None = None
    for v in versions:
        if best is None or compare_versions(v, best) == VersionOrder.GREATER:
            best = v
    return best

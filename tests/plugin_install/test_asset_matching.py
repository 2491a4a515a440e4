"""
Tests for release asset matching and name helpers.
"""

from media_toolchain.core.services.plugin_install.domain.asset_matching import (
    asset_stem,
    expand_placeholders,
    is_regex_pattern,
    match_asset,
    select_release_asset,
    version_from_name,
    version_from_tag,
)


def _release(tag, *names, draft=False, prerelease=False):
    return {
        "tag_name": tag,
        "draft": draft,
        "prerelease": prerelease,
        "assets": [{"name": n, "browser_download_url": f"https://dl/{tag}/{n}"} for n in names],
    }


# ── Pattern matching ────────────────────────────────────────────────


class TestMatchAsset:
    def test_glob(self):
        m = match_asset("tool-*-x64.zip", "tool-2.0.0-x64.zip")
        assert m is not None
        assert m.name == "tool-2.0.0-x64.zip"
        assert m.version is None

    def test_glob_is_case_insensitive(self):
        assert match_asset("keepassxc-*-win64.zip", "KeePassXC-2.7.9-Win64.zip")

    def test_glob_is_anchored(self):
        assert match_asset("tool-*-x64.zip", "tool-2.0.0-x64.zip.sha256") is None

    def test_regex_captures_version(self):
        pattern = r"PortableGit-(?P<version>[\d.]+)-64-bit\.7z\.exe"
        assert is_regex_pattern(pattern)
        m = match_asset(pattern, "PortableGit-2.47.1-64-bit.7z.exe")
        assert m.version == "2.47.1"

    def test_regex_rejects_other_arch(self):
        pattern = r"PortableGit-(?P<version>[\d.]+)-64-bit\.7z\.exe"
        assert match_asset(pattern, "PortableGit-2.47.1-32-bit.7z.exe") is None


class TestSelectReleaseAsset:
    def test_newest_release_with_match_wins(self):
        releases = [
            _release("v3.0.0", "tool-3.0.0-arm64.zip"),
            _release("v2.0.0", "tool-2.0.0-x64.zip", "tool-2.0.0-arm64.zip"),
            _release("v1.0.0", "tool-1.0.0-x64.zip"),
        ]
        release, asset, match = select_release_asset(releases, "tool-*-x64.zip")
        assert release["tag_name"] == "v2.0.0"
        assert asset["browser_download_url"] == "https://dl/v2.0.0/tool-2.0.0-x64.zip"
        assert match.name == "tool-2.0.0-x64.zip"

    def test_skips_drafts_and_prereleases(self):
        releases = [
            _release("v3.0.0", "tool-3.0.0-x64.zip", draft=True),
            _release("v2.1.0-rc1", "tool-2.1.0-rc1-x64.zip", prerelease=True),
            _release("v2.0.0", "tool-2.0.0-x64.zip"),
        ]
        release, _, _ = select_release_asset(releases, "tool-*-x64.zip")
        assert release["tag_name"] == "v2.0.0"

    def test_prereleases_on_request(self):
        releases = [
            _release("v2.1.0-rc1", "tool-2.1.0-rc1-x64.zip", prerelease=True),
            _release("v2.0.0", "tool-2.0.0-x64.zip"),
        ]
        release, _, _ = select_release_asset(releases, "tool-*-x64.zip", include_prereleases=True)
        assert release["tag_name"] == "v2.1.0-rc1"

    def test_no_match(self):
        assert select_release_asset([_release("v1", "other.zip")], "tool-*.zip") is None
        assert select_release_asset([], "tool-*.zip") is None


# ── Name helpers ────────────────────────────────────────────────────


class TestNames:
    def test_version_from_tag(self):
        assert version_from_tag("v2.0.0") == "2.0.0"
        assert version_from_tag("24.09") == "24.09"

    def test_version_from_prefixed_tag(self):
        assert version_from_tag("release-2.0.0") == "2.0.0"
        assert version_from_tag("latest", "tool-2.1.0-x64.zip") == "2.1.0"
        assert version_from_tag("nightly") == "nightly"

    def test_version_from_name(self):
        assert version_from_name("tool-2.3.1-linux") == "2.3.1"
        assert version_from_name("mariadb-11.4.4-winx64") == "11.4.4"
        assert version_from_name("PortableGit-2.47.1-64-bit") == "2.47.1"
        assert version_from_name("7z2409-x64") is None

    def test_asset_stem(self):
        assert asset_stem("tool-2.0.0-x64.zip") == "tool-2.0.0-x64"
        assert asset_stem("PortableGit-2.47.1-64-bit.7z.exe") == "PortableGit-2.47.1-64-bit"
        assert asset_stem("tool-1.0.tar.gz") == "tool-1.0"
        assert asset_stem("README") == "README"

    def test_expand_placeholders(self):
        assert expand_placeholders("exiftool-{version}_64.zip", version="13.10") == "exiftool-13.10_64.zip"
        assert expand_placeholders("{other}/{version}", version="1") == "{other}/1"

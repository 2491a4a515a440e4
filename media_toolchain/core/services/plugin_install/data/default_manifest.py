"""
L0 Data — Built-in plugin manifest.

The media manager's tool set, in install order. Pure data, no logic:
same shape as a manifest YAML file, parsed by ``default_manifest()``.

Keys match the strategy table in ``resolver/strategies.py`` (plugin
name, lowercased).
"""

from __future__ import annotations

from typing import Any

from media_toolchain.core.models.plugin import Manifest

DEFAULT_MANIFEST_DATA: dict[str, Any] = {
    "phases": [

        # ── a: Essentials ───────────────────────────────────────
        # The archiver first: everything shipped as .7z depends on it.

        {
            "name": "a_Essentials",
            "plugins": [
                {
                    "name": "7-Zip",
                    "mandatory": True,
                    "source": "repository",
                    "repository_id": "ip7z/7zip",
                    "asset_pattern": "7z*-x64.exe",
                    "command_name": "7z.exe",
                },
            ],
        },

        # ── b: Git environment ──────────────────────────────────

        {
            "name": "b_GitEnv",
            "plugins": [
                {
                    "name": "PortableGit",
                    "source": "repository",
                    "repository_id": "git-for-windows/git",
                    "asset_pattern": r"PortableGit-(?P<version>[\d.]+)-64-bit\.7z\.exe",
                    "command_path": "cmd",
                    "command_name": "git.exe",
                    "register_to_path": True,
                    "depends_on": ["7-Zip"],
                },
                {
                    "name": "GitLFS",
                    "source": "repository",
                    "repository_id": "git-lfs/git-lfs",
                    "asset_pattern": "git-lfs-windows-amd64-v*.zip",
                    "command_name": "git-lfs.exe",
                    "register_to_path": True,
                },
                {
                    "name": "GitVersion",
                    "source": "repository",
                    "repository_id": "GitTools/GitVersion",
                    "asset_pattern": r"gitversion-win-x64-(?P<version>[\d.]+)\.zip",
                    "command_name": "gitversion.exe",
                },
            ],
        },

        # ── c: Media and misc tools ─────────────────────────────

        {
            "name": "c_Misc",
            "plugins": [
                {
                    "name": "ExifTool",
                    "source": "direct_url",
                    "version_probe_url": "https://exiftool.org/ver.txt",
                    "version_pattern": r"(?P<version>\d+\.\d+)",
                    "base_uri": "https://exiftool.org/{asset}",
                    "asset_pattern": "exiftool-{version}_64.zip",
                    "command_name": "exiftool(-k).exe",
                },
                {
                    "name": "FFmpeg",
                    "source": "repository",
                    "repository_id": "GyanD/codexffmpeg",
                    "asset_pattern": r"ffmpeg-(?P<version>[\d.]+)-full_build\.zip",
                    "command_path": "bin",
                    "command_name": "ffmpeg.exe",
                    "register_to_path": True,
                },
                {
                    "name": "ImageMagick",
                    "source": "repository",
                    "repository_id": "ImageMagick/ImageMagick",
                    "asset_pattern": r"ImageMagick-(?P<version>[\d.]+-\d+)-portable-Q16-HDRI-x64\.7z",
                    "command_name": "magick.exe",
                    "depends_on": ["7-Zip"],
                },
                {
                    "name": "MKVToolNix",
                    "source": "direct_url",
                    "version_probe_url": "https://mkvtoolnix.download/windows/releases/",
                    "version_pattern": r'href="(?P<version>\d+\.\d+(?:\.\d+)?)/"',
                    "base_uri": "https://mkvtoolnix.download/windows/releases/{version}/{asset}",
                    "asset_pattern": "mkvtoolnix-64-bit-{version}.7z",
                    "command_name": "mkvmerge.exe",
                    "depends_on": ["7-Zip"],
                },
                {
                    "name": "KeePassXC",
                    "source": "repository",
                    "repository_id": "keepassxreboot/keepassxc",
                    "asset_pattern": "KeePassXC-*-Win64.zip",
                    "command_name": "keepassxc-cli.exe",
                },
            ],
        },

        # ── d: Database ─────────────────────────────────────────

        {
            "name": "d_Database",
            "plugins": [
                {
                    "name": "MariaDB",
                    "source": "direct_url",
                    "version_probe_url": "https://archive.mariadb.org/",
                    "version_pattern": r"mariadb-(?P<version>\d+\.\d+\.\d+)/",
                    "base_uri": "https://archive.mariadb.org/mariadb-{version}/winx64-packages/{asset}",
                    "asset_pattern": "mariadb-{version}-winx64.zip",
                    "command_path": "bin",
                    "command_name": "mysqld.exe",
                },
            ],
        },

        # ── e: Management app ───────────────────────────────────

        {
            "name": "e_Management",
            "plugins": [
                {
                    "name": "digiKam",
                    "source": "direct_url",
                    "version_probe_url": "https://download.kde.org/stable/digikam/",
                    "version_pattern": r'href="(?P<version>\d+\.\d+\.\d+)/"',
                    "base_uri": "https://download.kde.org/stable/digikam/{version}/{asset}",
                    "asset_pattern": "digiKam-{version}-Windows-x86-64.exe",
                    "command_name": "digikam.exe",
                    "depends_on": ["MariaDB", "ExifTool"],
                },
            ],
        },
    ],
}


def default_manifest() -> Manifest:
    """The built-in manifest as a validated ``Manifest``."""
    return Manifest.model_validate(DEFAULT_MANIFEST_DATA)

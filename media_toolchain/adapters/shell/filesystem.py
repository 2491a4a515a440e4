"""
Local file-system service — pathlib, zipfile and tarfile on real disk.
"""

from __future__ import annotations

import logging
import shutil
import struct
import tarfile
import zipfile
from pathlib import Path

from media_toolchain.adapters.base import Entry, EntryKind, FileSystem
from media_toolchain.core.errors import ExtractionError

logger = logging.getLogger(__name__)

# VS_FIXEDFILEINFO.dwSignature, little-endian
_VS_SIGNATURE = struct.pack("<I", 0xFEEF04BD)
_CHUNK = 1024 * 1024

_TAR_SUFFIXES = (".tar.gz", ".tgz", ".tar.xz", ".txz", ".tar.bz2", ".tar")


class LocalFileSystem(FileSystem):
    """File-system operations on the local disk."""

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def list_children(
        self,
        path: Path,
        pattern: str = "*",
        kind: EntryKind = EntryKind.ANY,
        recursive: bool = False,
    ) -> list[Entry]:
        base = Path(path)
        if not base.is_dir():
            return []

        found = base.rglob(pattern) if recursive else base.glob(pattern)
        entries: list[Entry] = []
        for p in found:
            is_dir = p.is_dir()
            if kind == EntryKind.FILE and is_dir:
                continue
            if kind == EntryKind.DIRECTORY and not is_dir:
                continue
            entries.append(Entry(name=p.name, path=p, is_dir=is_dir))
        return sorted(entries, key=lambda e: str(e.path))

    def create_directory(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def remove_tree(self, path: Path) -> None:
        target = Path(path)
        if target.is_dir():
            shutil.rmtree(target)
        elif target.exists():
            target.unlink()

    def extract_archive(self, archive: Path, dest: Path, overwrite: bool = True) -> None:
        archive = Path(archive)
        dest = Path(dest)
        if not archive.is_file():
            raise ExtractionError(f"Archive not found: {archive}")

        if overwrite:
            self.remove_tree(dest)
        dest.mkdir(parents=True, exist_ok=True)

        name = archive.name.lower()
        logger.debug("Extracting %s → %s", archive, dest)
        try:
            if name.endswith(".zip"):
                with zipfile.ZipFile(archive, "r") as zf:
                    zf.extractall(dest)
            elif name.endswith(_TAR_SUFFIXES):
                with tarfile.open(archive, "r:*") as tf:
                    tf.extractall(dest, filter="data")
            else:
                raise ExtractionError(f"Unsupported archive format: {archive.name}")
        except (zipfile.BadZipFile, tarfile.TarError, EOFError) as e:
            raise ExtractionError(f"Corrupt archive {archive.name}: {e}") from e
        except OSError as e:
            raise ExtractionError(f"Cannot extract {archive.name}: {e}") from e

    def read_file_version(self, path: Path) -> str | None:
        """Scan a PE binary for its VS_FIXEDFILEINFO block.

        Returns ``"major.minor.build.revision"`` or None when the file is
        missing or carries no version resource.
        """
        target = Path(path)
        if not target.is_file():
            return None

        try:
            with open(target, "rb") as f:
                tail = b""
                while True:
                    chunk = f.read(_CHUNK)
                    if not chunk:
                        return None
                    data = tail + chunk
                    idx = data.find(_VS_SIGNATURE)
                    if idx >= 0 and len(data) >= idx + 16:
                        # signature, struct version, file version MS, file version LS
                        _, _, ms, ls = struct.unpack_from("<IIII", data, idx)
                        return f"{ms >> 16}.{ms & 0xFFFF}.{ls >> 16}.{ls & 0xFFFF}"
                    tail = data[-16:]
        except OSError as e:
            logger.debug("Cannot read file version of %s: %s", target, e)
            return None

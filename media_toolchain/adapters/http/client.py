"""
HTTP service — ``urllib.request`` based retrieval and downloads.

Downloads stream to ``<dest>.part`` and are renamed on completion, so a
half-finished file never sits at the final path.
"""

from __future__ import annotations

import logging
import os
import socket
import urllib.error
import urllib.request
from pathlib import Path

from media_toolchain.adapters.base import HttpClient
from media_toolchain.core.errors import NetworkError

logger = logging.getLogger(__name__)

USER_AGENT = "media-toolchain/0.1"


def _fmt_size(n: int) -> str:
    """Human-readable byte size."""
    size = float(n)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


class UrllibHttpClient(HttpClient):
    """HTTP GET and streaming download over ``urllib``."""

    def __init__(self, default_timeout: float = 30, user_agent: str = USER_AGENT):
        self._default_timeout = default_timeout
        self._user_agent = user_agent

    def _request(self, url: str, headers: dict[str, str] | None) -> urllib.request.Request:
        merged = {"User-Agent": self._user_agent}
        merged.update(headers or {})
        return urllib.request.Request(url, headers=merged)

    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> str:
        timeout = timeout if timeout is not None else self._default_timeout
        logger.debug("GET %s", url)
        try:
            with urllib.request.urlopen(self._request(url, headers), timeout=timeout) as resp:
                charset = resp.headers.get_content_charset() or "utf-8"
                return resp.read().decode(charset, errors="replace")
        except urllib.error.HTTPError as e:
            raise NetworkError(f"HTTP {e.code} for {url}", url=url, status=e.code) from e
        except (urllib.error.URLError, socket.timeout, TimeoutError, ConnectionError) as e:
            raise NetworkError(f"Request to {url} failed: {e}", url=url) from e

    def download(
        self,
        url: str,
        dest: Path,
        headers: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> Path:
        timeout = timeout if timeout is not None else self._default_timeout
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        partial = dest.with_name(dest.name + ".part")

        logger.info("Downloading %s → %s", url, dest)
        try:
            with urllib.request.urlopen(self._request(url, headers), timeout=timeout) as resp:
                total = int(resp.headers.get("Content-Length", 0) or 0)
                downloaded = 0
                last_progress = -1
                with open(partial, "wb") as f:
                    while True:
                        chunk = resp.read(65536)
                        if not chunk:
                            break
                        f.write(chunk)
                        downloaded += len(chunk)

                        # Progress tracking (log every 10%)
                        if total > 0:
                            pct = int(downloaded * 100 / total)
                            if pct >= last_progress + 10:
                                last_progress = pct
                                logger.debug(
                                    "Download progress: %d%% (%s / %s)",
                                    pct, _fmt_size(downloaded), _fmt_size(total),
                                )
        except urllib.error.HTTPError as e:
            partial.unlink(missing_ok=True)
            raise NetworkError(f"HTTP {e.code} for {url}", url=url, status=e.code) from e
        except (urllib.error.URLError, socket.timeout, TimeoutError, ConnectionError) as e:
            partial.unlink(missing_ok=True)
            raise NetworkError(f"Download of {url} failed: {e}", url=url) from e

        os.replace(partial, dest)
        logger.debug("Downloaded %s (%s)", dest.name, _fmt_size(dest.stat().st_size))
        return dest

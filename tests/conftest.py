"""
Shared test fixtures and configuration.

Services are real on the file system (``LocalFileSystem`` rooted at
``tmp_path``) and fake everywhere else (HTTP, processes, clock).
"""

import json
import zipfile
from pathlib import Path

import pytest

from media_toolchain.adapters.mock import FakeClock, MockHttpClient, MockProcessRunner
from media_toolchain.adapters.registry import Services
from media_toolchain.adapters.shell.filesystem import LocalFileSystem
from media_toolchain.core.models.config import NetworkConfig, PathsConfig, Settings
from media_toolchain.core.models.outcome import InstallRoot
from media_toolchain.core.observability.log_sink import MemorySink

GITHUB_API = "https://api.github.com"


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def install_root(tmp_path: Path) -> InstallRoot:
    """``<tmp>/Plugins`` with ``_Downloads`` / ``_Temp`` beneath it."""
    return InstallRoot.at(tmp_path / "Plugins")


@pytest.fixture
def http() -> MockHttpClient:
    return MockHttpClient()


@pytest.fixture
def process() -> MockProcessRunner:
    return MockProcessRunner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def services(http: MockHttpClient, process: MockProcessRunner, clock: FakeClock) -> Services:
    return Services(fs=LocalFileSystem(), process=process, http=http, clock=clock)


@pytest.fixture
def settings(install_root: InstallRoot) -> Settings:
    return Settings(
        paths=PathsConfig(plugins_root=install_root.root),
        network=NetworkConfig(retries=2, backoff_seconds=1.0),
    )


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def make_zip(tmp_path: Path):
    """Build a real zip archive: ``make_zip("tool.zip", {"tool.exe": b"..."})``."""

    def _make(name: str, files: dict[str, bytes | str]) -> Path:
        path = tmp_path / "assets" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as zf:
            for member, content in files.items():
                zf.writestr(member, content)
        return path

    return _make


@pytest.fixture
def release_json():
    """Build one entry of a releases API payload."""

    def _release(
        tag: str,
        *assets: str,
        repo: str = "acme/tool",
        draft: bool = False,
        prerelease: bool = False,
    ) -> dict:
        return {
            "tag_name": tag,
            "draft": draft,
            "prerelease": prerelease,
            "assets": [
                {
                    "name": name,
                    "browser_download_url": f"https://github.com/{repo}/releases/download/{tag}/{name}",
                }
                for name in assets
            ],
        }

    return _release


def releases_url(repo: str, per_page: int = 20) -> str:
    return f"{GITHUB_API}/repos/{repo}/releases?per_page={per_page}"


@pytest.fixture
def releases_api(http: MockHttpClient):
    """Serve a releases payload: ``releases_api("acme/tool", [release, ...])``."""
    def _serve(repo: str, releases: list[dict]) -> str:
        url = releases_url(repo)
        http.set_response(url, json.dumps(releases))
        return url

    return _serve

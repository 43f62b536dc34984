"""Download and install tool executables from GitHub releases."""

from __future__ import annotations

import io
from pathlib import Path
from typing import TYPE_CHECKING

import requests

from .assets import ArchiveFormat, select_asset
from .build import BuildStrategy, GoInstallStrategy
from .config import DEFAULT_ORGANIZATION
from .errors import AlreadyInstalledError, DownloadError, NoAssetFoundError, RateLimitError
from .extract import close_quietly, extract_executable
from .requirements import render_requirements
from .utils import console as default_console
from .utils import current_platform, executable_name, log

if TYPE_CHECKING:
    from rich.console import Console

    from .config import Tool
    from .github import ReleaseClient


class ResponseStream(io.RawIOBase):
    """Read-once file object over a streamed HTTP response body.

    Transport failures surface as :class:`DownloadError` so they are not
    mistaken for archive errors by the extractor.
    """

    def __init__(self, response: requests.Response, chunk_size: int = 64 * 1024) -> None:
        self._chunks = response.iter_content(chunk_size)
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # noqa: ANN001
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
            except requests.RequestException as e:
                msg = f"Failed to read download: {e}"
                raise DownloadError(msg) from e
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


def executable_path(path: str | Path, tool_name: str, os_name: str | None = None) -> Path:
    """Return where a tool's executable lives inside ``path``."""
    return Path(path) / executable_name(tool_name, os_name)


def is_installed(path: str | Path, tool_name: str, os_name: str | None = None) -> bool:
    """Whether the tool's executable already exists in ``path``."""
    return executable_path(path, tool_name, os_name).exists()


class Installer:
    """Install tools from their release archives.

    Every call to :meth:`install` is synchronous and owns its own response
    and file handles, so one ``Installer`` can serve several worker threads
    as long as they install into different directories. Two installs of the
    same tool into the same directory race on the output file.
    """

    def __init__(
        self,
        client: ReleaseClient,
        console: Console | None = None,
        session: requests.Session | None = None,
        timeout: float = 30,
        os_name: str | None = None,
        arch: str | None = None,
        organization: str = DEFAULT_ORGANIZATION,
        build_strategy: BuildStrategy | None = None,
    ) -> None:
        host_os, host_arch = current_platform()
        self.client = client
        self.console = console or default_console
        self.session = session or requests.Session()
        self.timeout = timeout
        self.os_name = os_name or host_os
        self.arch = arch or host_arch
        self.organization = organization
        self.build_strategy = build_strategy or GoInstallStrategy(organization)

    def _check_not_installed(self, tool: Tool, path: Path) -> None:
        target = executable_path(path, tool.name, self.os_name)
        if target.exists():
            raise AlreadyInstalledError(tool.name, str(target))

    def print_requirements(self, tool: Tool) -> None:
        """Print the requirements of ``tool`` the host is missing, if any."""
        block = render_requirements(tool, self.os_name)
        if block:
            self.console.print(block)

    def install(self, tool: Tool, path: str | Path) -> str:
        """Install ``tool`` into ``path`` and return the installed version.

        Raises:
            AlreadyInstalledError: If the executable is already in ``path``
            NoAssetFoundError: If the release has no asset for this platform
            MetadataFetchError: If GitHub does not hand out a download URL
            DownloadError: If the archive cannot be fetched
            ExtractionError: If the archive cannot be extracted

        """
        path = Path(path)
        self._check_not_installed(tool, path)
        log(f"installing {tool.name}...", "info", out=self.console)
        self.print_requirements(tool)

        selection = select_asset(tool, self.os_name, self.arch)
        if not selection.found:
            raise NoAssetFoundError(self.os_name, self.arch)
        log(f"Selected asset {selection.name} ({selection.asset_id})", "debug", out=self.console)

        owner, repo = tool.repository(self.organization)
        try:
            url = self.client.download_release_asset(owner, repo, selection.asset_id)
        except RateLimitError as e:
            log(
                f"error for remaining request per hour: {e}, RetryAfter: {e.retry_after}",
                "error",
                out=self.console,
            )
            raise

        self._download_and_extract(url, tool, selection.format, path)
        log(f"installed {tool.name} {tool.version} (latest)", "success", out=self.console)
        return tool.version

    def _download_and_extract(
        self,
        url: str,
        tool: Tool,
        archive_format: ArchiveFormat,
        path: Path,
    ) -> None:
        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            msg = f"Failed to download {tool.name}: {e}"
            raise DownloadError(msg) from e

        try:
            if response.status_code != 200:  # noqa: PLR2004
                msg = f"Failed to download {tool.name}: HTTP {response.status_code}"
                raise DownloadError(msg)
            stream = io.BufferedReader(ResponseStream(response))
            extract_executable(
                stream,
                archive_format,
                tool.name,
                path,
                os_name=self.os_name,
                out=self.console,
            )
        finally:
            close_quietly(response, "response body", self.console)

    def build_install(self, tool: Tool, path: str | Path) -> str:
        """Install ``tool`` by building it from source with the build strategy."""
        path = Path(path)
        self._check_not_installed(tool, path)
        log(f"installing {tool.name} with go install...", "info", out=self.console)
        self.print_requirements(tool)
        self.build_strategy.build(tool, path)
        log(f"installed {tool.name} {tool.version} (latest)", "success", out=self.console)
        return tool.version

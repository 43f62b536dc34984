"""Tests for the install orchestration in toolbins.download."""

from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock

import pytest
import requests
from conftest import console_text, create_tar_gz, create_zip
from rich.console import Console

from toolbins.config import RequirementSpecification, Tool
from toolbins.download import Installer, ResponseStream, executable_path, is_installed
from toolbins.errors import (
    AlreadyInstalledError,
    DownloadError,
    ExtractionError,
    MetadataFetchError,
    NoAssetFoundError,
    RateLimitError,
)

DOWNLOAD_URL = "https://objects.githubusercontent.com/foo.tar.gz?token=abc"


def fake_response(body: bytes, status_code: int = 200, chunk_size: int = 7) -> MagicMock:
    """A streamed response that yields ``body`` in small chunks."""
    response = MagicMock()
    response.status_code = status_code
    chunks = [body[i : i + chunk_size] for i in range(0, len(body), chunk_size)]
    response.iter_content.return_value = iter(chunks)
    return response


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock()
    client.download_release_asset.return_value = DOWNLOAD_URL
    return client


@pytest.fixture
def session() -> MagicMock:
    return MagicMock()


def make_installer(
    client: MagicMock,
    session: MagicMock,
    console: Console,
    os_name: str = "linux",
    arch: str = "amd64",
    **kwargs: object,
) -> Installer:
    return Installer(client, console=console, session=session, os_name=os_name, arch=arch, **kwargs)


def test_executable_path(tmp_path: Path) -> None:
    assert executable_path(tmp_path, "foo", "linux") == tmp_path / "foo"
    assert executable_path(tmp_path, "foo", "windows") == tmp_path / "foo.exe"
    assert not is_installed(tmp_path, "foo", "linux")
    (tmp_path / "foo").touch()
    assert is_installed(tmp_path, "foo", "linux")


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_install_end_to_end_tar_gz(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    """foo v1.2.0 on linux/amd64 picks asset 42 and installs only the binary."""
    tool = make_tool(name="foo", version="v1.2.0", assets={"foo_1.2.0_linux_amd64.tar.gz": "42"})
    session.get.return_value = fake_response(create_tar_gz({"foo": b"\x7fELF binary", "LICENSE": b"MIT"}))
    installer = make_installer(client, session, plain_console)

    version = installer.install(tool, tmp_path)

    assert version == "v1.2.0"
    client.download_release_asset.assert_called_once_with("projectdiscovery", "foo", 42)
    session.get.assert_called_once_with(DOWNLOAD_URL, stream=True, timeout=30)
    assert [p.name for p in tmp_path.iterdir()] == ["foo"]
    assert (tmp_path / "foo").read_bytes() == b"\x7fELF binary"
    assert (tmp_path / "foo").stat().st_mode & 0o777 == 0o755
    session.get.return_value.close.assert_called_once()
    text = console_text(plain_console)
    assert "installing foo..." in text
    assert "installed foo v1.2.0 (latest)" in text


def test_install_zip_on_windows(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    tool = make_tool(name="foo", assets={"foo_1.2.0_windows_amd64.zip": "5"})
    session.get.return_value = fake_response(create_zip({"foo.exe": b"MZ"}))
    installer = make_installer(client, session, plain_console, os_name="windows")

    installer.install(tool, tmp_path)

    assert (tmp_path / "foo.exe").read_bytes() == b"MZ"
    # the pre-check now finds foo.exe
    with pytest.raises(AlreadyInstalledError):
        installer.install(tool, tmp_path)


def test_install_uses_owner_from_repo(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    tool = make_tool(repo="someone/foo-releases")
    session.get.return_value = fake_response(create_tar_gz({"foo": b"bin"}))

    make_installer(client, session, plain_console).install(tool, tmp_path)

    client.download_release_asset.assert_called_once_with("someone", "foo-releases", 42)


def test_install_no_asset_makes_no_network_call(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    """foo on darwin/arm64 without a macOS_arm64 asset fails before any download."""
    tool = make_tool(name="foo", version="v1.2.0", assets={"foo_1.2.0_linux_amd64.tar.gz": "42"})
    installer = make_installer(client, session, plain_console, os_name="darwin", arch="arm64")

    with pytest.raises(NoAssetFoundError) as excinfo:
        installer.install(tool, tmp_path)

    assert "darwin" in str(excinfo.value)
    assert "arm64" in str(excinfo.value)
    assert excinfo.value.os_name == "darwin"
    assert excinfo.value.arch == "arm64"
    client.download_release_asset.assert_not_called()
    session.get.assert_not_called()
    assert list(tmp_path.iterdir()) == []


def test_install_twice_is_already_installed(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    tool = make_tool()
    session.get.return_value = fake_response(create_tar_gz({"foo": b"bin"}))
    installer = make_installer(client, session, plain_console)
    installer.install(tool, tmp_path)
    client.reset_mock()
    session.reset_mock()

    with pytest.raises(AlreadyInstalledError) as excinfo:
        installer.install(tool, tmp_path)

    assert excinfo.value.tool == "foo"
    client.download_release_asset.assert_not_called()
    session.get.assert_not_called()


@pytest.mark.parametrize(
    ("assets", "archive"),
    [
        (
            {"foo_1.2.0_linux_amd64.tar.gz": "42"},
            create_tar_gz({"foo_1.2.0_linux_amd64/foo": b"bin", "foo_1.2.0_linux_amd64/LICENSE": b"MIT"}),
        ),
        ({"foo_1.2.0_linux_amd64.zip": "42"}, create_zip({"FOO.EXE": b"bin"})),
    ],
    ids=["nested-tar-gz", "exe-zip-on-linux"],
)
def test_installed_executable_is_found_by_the_next_install(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
    assets: dict[str, str],
    archive: bytes,
) -> None:
    """Whatever the archive layout, the binary lands where the pre-check looks."""
    tool = make_tool(assets=assets)
    session.get.return_value = fake_response(archive)
    installer = make_installer(client, session, plain_console)

    installer.install(tool, tmp_path)

    assert [p.name for p in tmp_path.iterdir()] == ["foo"]
    assert is_installed(tmp_path, "foo", "linux")
    session.reset_mock()
    with pytest.raises(AlreadyInstalledError):
        installer.install(tool, tmp_path)
    session.get.assert_not_called()


def test_install_prints_unmet_requirements(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    spec = RequirementSpecification(
        name="definitely-not-a-real-program-xyz",
        os="linux",
        instruction="install it with $CMD",
        command="apt install xyz",
        required=True,
    )
    tool = make_tool(requirements=(spec,))
    session.get.return_value = fake_response(create_tar_gz({"foo": b"bin"}))

    make_installer(client, session, plain_console).install(tool, tmp_path)

    text = console_text(plain_console)
    assert "foo requirements:" in text
    assert "required install it with apt install xyz" in text
    # requirements never block the install
    assert (tmp_path / "foo").exists()


def test_install_rate_limited(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    client.download_release_asset.side_effect = RateLimitError("rate limit exceeded", retry_after=60.0)

    with pytest.raises(RateLimitError):
        make_installer(client, session, plain_console).install(make_tool(), tmp_path)

    assert "RetryAfter: 60.0" in console_text(plain_console)
    client.download_release_asset.assert_called_once()
    session.get.assert_not_called()


def test_install_metadata_error_propagates(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    client.download_release_asset.side_effect = MetadataFetchError("boom")

    with pytest.raises(MetadataFetchError, match="boom"):
        make_installer(client, session, plain_console).install(make_tool(), tmp_path)


def test_install_non_200_is_download_error(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    session.get.return_value = fake_response(b"not found", status_code=404)

    with pytest.raises(DownloadError, match="HTTP 404"):
        make_installer(client, session, plain_console).install(make_tool(), tmp_path)

    session.get.return_value.close.assert_called_once()
    assert list(tmp_path.iterdir()) == []


def test_install_transport_error_is_download_error(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    session.get.side_effect = requests.ConnectionError("connection reset")

    with pytest.raises(DownloadError, match="connection reset"):
        make_installer(client, session, plain_console).install(make_tool(), tmp_path)


def test_install_broken_stream_is_download_error(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    def broken_body(_chunk_size: int):  # noqa: ANN202
        yield create_tar_gz({"foo": b"bin"})[:10]
        raise requests.exceptions.ChunkedEncodingError("connection broken")

    response = fake_response(b"")
    response.iter_content.side_effect = broken_body
    session.get.return_value = response

    with pytest.raises(DownloadError, match="connection broken"):
        make_installer(client, session, plain_console).install(make_tool(), tmp_path)

    response.close.assert_called_once()


def test_install_path_traversal_leaves_nothing_behind(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    destination = tmp_path / "bin"
    session.get.return_value = fake_response(create_tar_gz({"foo": b"ok", "../foo": b"evil"}))

    with pytest.raises(ExtractionError):
        make_installer(client, session, plain_console).install(make_tool(), destination)

    assert not (destination / "foo").exists()
    assert not (tmp_path / "foo").exists()


def test_install_missing_executable_still_succeeds(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    session.get.return_value = fake_response(create_tar_gz({"README.md": b"docs"}))

    version = make_installer(client, session, plain_console).install(make_tool(), tmp_path)

    assert version == "v1.2.0"
    assert "foo not found in archive" in console_text(plain_console)


def test_build_install_uses_strategy(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    strategy = MagicMock()
    installer = make_installer(client, session, plain_console, build_strategy=strategy)
    tool = make_tool()

    assert installer.build_install(tool, tmp_path) == "v1.2.0"

    strategy.build.assert_called_once_with(tool, tmp_path)
    client.download_release_asset.assert_not_called()
    assert "installing foo with go install..." in console_text(plain_console)


def test_build_install_already_installed(
    tmp_path: Path,
    make_tool: Callable[..., Tool],
    client: MagicMock,
    session: MagicMock,
    plain_console: Console,
) -> None:
    (tmp_path / "foo").touch()
    strategy = MagicMock()

    with pytest.raises(AlreadyInstalledError):
        make_installer(client, session, plain_console, build_strategy=strategy).build_install(make_tool(), tmp_path)

    strategy.build.assert_not_called()


def test_response_stream_reassembles_chunks() -> None:
    response = fake_response(b"0123456789abcdef", chunk_size=3)
    stream = io.BufferedReader(ResponseStream(response))

    assert stream.read(5) == b"01234"
    assert stream.read() == b"56789abcdef"
    assert stream.read() == b""

"""Configuration for pytest fixtures used in toolbins tests."""

from __future__ import annotations

import io
import tarfile
import zipfile
from typing import Callable

import pytest
from rich.console import Console

from toolbins import utils
from toolbins.config import RequirementSpecification, Tool


def create_tar_gz(files: dict[str, bytes | None], mode: int = 0o644) -> bytes:
    """Create a gzip compressed tarball; ``None`` content makes a directory."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name=name)
            if content is None:
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tar.addfile(info)
            else:
                info.size = len(content)
                info.mode = mode
                tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def create_zip(files: dict[str, bytes | None], mode: int = 0o644) -> bytes:
    """Create a zip archive; ``None`` content makes a directory."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, mode="w") as zip_file:
        for name, content in files.items():
            if content is None:
                info = zipfile.ZipInfo(name if name.endswith("/") else f"{name}/")
                info.external_attr = (0o40755 << 16) | 0x10
                zip_file.writestr(info, "")
            else:
                info = zipfile.ZipInfo(name)
                info.external_attr = mode << 16
                zip_file.writestr(info, content)
    return buffer.getvalue()


@pytest.fixture
def make_tool() -> Callable[..., Tool]:
    """Build a Tool with sensible defaults for tests."""

    def _make_tool(
        name: str = "foo",
        version: str = "v1.2.0",
        assets: dict[str, str] | None = None,
        requirements: tuple[RequirementSpecification, ...] = (),
        repo: str = "",
    ) -> Tool:
        if assets is None:
            assets = {f"{name}_{version.lstrip('v')}_linux_amd64.tar.gz": "42"}
        return Tool(
            name=name,
            repo=repo or name,
            version=version,
            assets=assets,
            requirements=requirements,
        )

    return _make_tool


@pytest.fixture
def plain_console() -> Console:
    """A console that records plain text instead of writing to the terminal."""
    return Console(file=io.StringIO(), color_system=None, width=200)


def console_text(console: Console) -> str:
    return console.file.getvalue()


@pytest.fixture(autouse=True)
def _quiet_logging() -> None:
    utils.setup_logging(verbose=False)

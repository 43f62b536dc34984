"""Pick the release asset that matches the running platform."""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, NamedTuple

from .utils import platform_label

if TYPE_CHECKING:
    from .config import Tool


class ArchiveFormat(enum.Enum):
    """Container format of a release asset."""

    TAR_GZIP = "tar.gz"
    ZIP = "zip"
    UNKNOWN = "unknown"


class AssetSelection(NamedTuple):
    """The asset chosen for one install attempt."""

    asset_id: int
    format: ArchiveFormat
    name: str = ""

    @property
    def found(self) -> bool:
        """Whether an asset was selected."""
        return self.asset_id != 0


NO_ASSET = AssetSelection(0, ArchiveFormat.UNKNOWN)


def expected_asset_name(tool_name: str, version: str, os_name: str, arch: str) -> str:
    """Return the asset name (without extension) published for a platform.

    >>> expected_asset_name("nuclei", "v3.1.0", "darwin", "arm64")
    'nuclei_3.1.0_macOS_arm64'
    """
    return f"{tool_name}_{version.removeprefix('v')}_{platform_label(os_name)}_{arch}"


def _parse_asset_id(asset_id: str) -> int:
    try:
        return int(asset_id)
    except (TypeError, ValueError):
        return 0


def select_asset(tool: Tool, os_name: str, arch: str) -> AssetSelection:
    """Find the tool's asset for ``os_name``/``arch``.

    Assets are visited in the catalog's order and the first match wins.
    Returns ``NO_ASSET`` when nothing matches.
    """
    expected = expected_asset_name(tool.name, tool.version, os_name, arch).lower()
    for name, asset_id in tool.assets.items():
        lowered = name.lower()
        if ".zip" in lowered:
            if lowered == f"{expected}.zip":
                selection = AssetSelection(_parse_asset_id(asset_id), ArchiveFormat.ZIP, name)
                if selection.found:
                    return selection
        elif ".tar.gz" in lowered and lowered == f"{expected}.tar.gz":
            selection = AssetSelection(_parse_asset_id(asset_id), ArchiveFormat.TAR_GZIP, name)
            if selection.found:
                return selection
    return NO_ASSET

"""toolbins - install pre-built tools from GitHub releases.

Picks the release asset published for the running OS and architecture,
streams the archive and extracts the tool's executable into a directory,
and tells you which runtime libraries or programs the tool still needs.
"""

from __future__ import annotations

__version__ = "0.1.0"

from . import assets, build, cli, config, download, errors, extract, github, requirements, utils
from .assets import ArchiveFormat, AssetSelection, expected_asset_name, select_asset
from .cli import main
from .config import RequirementSpecification, Tool, ToolbinsConfig, resolve_tool
from .download import Installer, executable_path, is_installed
from .errors import (
    AlreadyInstalledError,
    BuildError,
    DownloadError,
    ExtractionError,
    MetadataFetchError,
    NoAssetFoundError,
    RateLimitError,
    ToolbinsError,
)
from .extract import extract_executable
from .github import ReleaseClient
from .requirements import requirement_satisfied, specs_for_os
from .utils import current_platform, library_candidate_names, platform_label, setup_logging

__all__ = [
    "AlreadyInstalledError",
    "ArchiveFormat",
    "AssetSelection",
    "BuildError",
    "DownloadError",
    "ExtractionError",
    "Installer",
    "MetadataFetchError",
    "NoAssetFoundError",
    "RateLimitError",
    "ReleaseClient",
    "RequirementSpecification",
    "Tool",
    "ToolbinsConfig",
    "ToolbinsError",
    "assets",
    "build",
    "cli",
    "config",
    "current_platform",
    "download",
    "errors",
    "executable_path",
    "expected_asset_name",
    "extract",
    "extract_executable",
    "github",
    "is_installed",
    "library_candidate_names",
    "main",
    "platform_label",
    "requirement_satisfied",
    "requirements",
    "resolve_tool",
    "select_asset",
    "setup_logging",
    "specs_for_os",
    "utils",
]

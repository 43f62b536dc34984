"""Exceptions raised while installing tools."""

from __future__ import annotations


class ToolbinsError(Exception):
    """Base class for all toolbins errors."""

    def __init__(self, message: str) -> None:
        """Initialize the error with a human readable message."""
        self.message = message
        super().__init__(message)


class AlreadyInstalledError(ToolbinsError):
    """The tool's executable already exists at the destination.

    Not a failure: callers usually report it and move on.
    """

    def __init__(self, tool: str, path: str = "") -> None:
        """Initialize the AlreadyInstalledError."""
        self.tool = tool
        self.path = path
        super().__init__(f"{tool} is already installed")


class NoAssetFoundError(ToolbinsError):
    """No release asset matches the running platform."""

    def __init__(self, os_name: str, arch: str) -> None:
        """Initialize the NoAssetFoundError."""
        self.os_name = os_name
        self.arch = arch
        super().__init__(f"no release asset found for {os_name} {arch}")


class MetadataFetchError(ToolbinsError):
    """The GitHub API request for release metadata failed."""


class RateLimitError(MetadataFetchError):
    """The GitHub API rejected a request because of rate limiting."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        """Initialize the RateLimitError."""
        self.retry_after = retry_after
        super().__init__(message)


class DownloadError(ToolbinsError):
    """The release archive could not be fetched."""


class ExtractionError(ToolbinsError):
    """Error during extraction process."""


class BuildError(ToolbinsError):
    """Building a tool from source failed."""

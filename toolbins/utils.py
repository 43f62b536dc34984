"""Utility functions for toolbins."""

from __future__ import annotations

import os
import platform
import sys

from rich.console import Console

# Initialize rich console
console = Console()

_VERBOSE = False

_LEVEL_STYLES = {
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "bold red",
    "debug": "dim",
}

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
}


def setup_logging(verbose: bool = False) -> None:  # noqa: FBT001, FBT002
    """Configure logging level based on verbosity."""
    global _VERBOSE  # noqa: PLW0603
    _VERBOSE = verbose


def log(
    message: str,
    level: str = "default",
    emoji: str = "",
    *,
    out: Console | None = None,
    print_exception: bool = False,
) -> None:
    """Print a message with a colour chosen by its level."""
    if level == "debug" and not _VERBOSE:
        return
    out = out or console
    prefix = f"{emoji} " if emoji else ""
    style = _LEVEL_STYLES.get(level)
    if style:
        out.print(f"{prefix}[{style}]{message}[/{style}]")
    else:
        out.print(f"{prefix}{message}")
    if print_exception:
        out.print_exception()


def current_platform() -> tuple[str, str]:
    """Detect the current OS and architecture, using Go's names."""
    if sys.platform.startswith("win"):
        os_name = "windows"
    elif sys.platform == "darwin":
        os_name = "darwin"
    elif sys.platform.startswith("linux"):
        os_name = "linux"
    else:
        os_name = sys.platform

    machine = platform.machine().lower()
    return os_name, _ARCH_ALIASES.get(machine, machine)


def platform_label(os_name: str) -> str:
    """Return the OS label release assets use: darwin is published as macOS."""
    if os_name.lower() == "darwin":
        return "macOS"
    return os_name


def library_candidate_names(os_name: str, base_name: str) -> list[str]:
    """Shared library file names to try for ``base_name``, extension first."""
    extension = {"windows": ".dll", "linux": ".so", "darwin": ".dylib"}.get(os_name)
    if extension is None:
        return [base_name]
    return [f"{base_name}{extension}", base_name]


def executable_name(tool_name: str, os_name: str | None = None) -> str:
    """Return the file name of a tool's executable on ``os_name``."""
    if os_name is None:
        os_name, _ = current_platform()
    if os_name == "windows":
        return f"{tool_name}.exe"
    return tool_name


def github_token() -> str | None:
    """Return the GitHub token from the environment, if any."""
    return os.environ.get("GITHUB_TOKEN") or None


def _maybe_github_token_header(token: str | None = None) -> dict[str, str]:
    token = token or github_token()
    if token is None:
        return {}
    return {"Authorization": f"token {token}"}

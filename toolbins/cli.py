"""Command-line interface for toolbins."""

from __future__ import annotations

import argparse
import concurrent.futures
import sys
from pathlib import Path
from typing import Any

import requests

from . import __version__
from .config import Tool, ToolbinsConfig, resolve_tool
from .download import Installer, is_installed
from .errors import AlreadyInstalledError, ToolbinsError
from .github import ReleaseClient
from .requirements import format_instruction, requirement_satisfied, requirement_status, specs_for_os
from .utils import console, current_platform, log, setup_logging


def list_tools(_args: Any, config: ToolbinsConfig) -> int:
    """List available tools."""
    log("Available tools:", "info", "🔧")
    for name, tool in config.tools.items():
        status = "[green]installed[/green]" if is_installed(config.tools_dir, name) else "[dim]not installed[/dim]"
        version = f" {tool.version}" if tool.version else ""
        console.print(f"  [green]{name}[/green]{version} (from {tool.repo}) {status}")
    return 0


def show_requirements(args: argparse.Namespace, config: ToolbinsConfig) -> int:
    """Print every requirement of a tool on this OS and whether it is met."""
    tool = _lookup_tools([args.tool], config)[0]
    os_name, _ = current_platform()
    specs = specs_for_os(tool, os_name)
    if not specs:
        log(f"{tool.name} has no requirements on {os_name}", "success", "✅")
        return 0
    for spec in specs:
        mark = "✅" if requirement_satisfied(spec.name, os_name) else "❌"
        console.print(f"{mark} {requirement_status(spec)} {spec.name}: {format_instruction(spec)}")
    return 0


def _lookup_tools(names: list[str], config: ToolbinsConfig) -> list[Tool]:
    """Validate that all tools exist in the configuration."""
    for name in names:
        if name not in config.tools:
            log(f"Unknown tool: {name}", "error", "❌")
            sys.exit(1)
    return [config.tools[name] for name in names]


def _install_one(tool: Tool, args: argparse.Namespace, config: ToolbinsConfig) -> bool:
    """Install a single tool, reporting the outcome. Returns False on failure."""
    try:
        # The token header must not reach the storage host serving the archive
        with requests.Session() as api_session, requests.Session() as download_session:
            client = ReleaseClient(token=config.github_token, session=api_session, timeout=config.timeout)
            installer = Installer(
                client,
                session=download_session,
                timeout=config.timeout,
                organization=config.organization,
            )
            if args.go_install:
                installer.build_install(tool, config.tools_dir)
            else:
                installer.install(resolve_tool(tool, client, config.organization), config.tools_dir)
    except AlreadyInstalledError:
        log(f"{tool.name} is already installed in {config.tools_dir}", "success", "✅")
        return True
    except ToolbinsError as e:
        log(f"Error installing {tool.name}: {e}", "error", "❌")
        return False
    return True


def install_tools(args: argparse.Namespace, config: ToolbinsConfig) -> int:
    """Install the requested tools in parallel."""
    tools = _lookup_tools(args.tools or list(config.tools), config)
    config.tools_dir.mkdir(parents=True, exist_ok=True)

    with concurrent.futures.ThreadPoolExecutor(
        max_workers=max(1, min(args.jobs, len(tools) or 1)),
    ) as executor:
        futures = [executor.submit(_install_one, tool, args, config) for tool in tools]
        results = [future.result() for future in concurrent.futures.as_completed(futures)]

    failed = results.count(False)
    log(f"Completed: {len(results) - failed}/{len(results)} tools installed", "info", "🔄")
    return 1 if failed else 0


def print_version(_args: Any, _config: ToolbinsConfig) -> int:
    console.print(f"[yellow]toolbins[/] [bold]v{__version__}[/]")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        description="toolbins - Install pre-built tools from GitHub releases",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--tools-dir",
        type=str,
        help="Directory the executables are installed into",
    )
    parser.add_argument(
        "--config-file",
        type=str,
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    list_parser = subparsers.add_parser("list", help="List available tools")
    list_parser.set_defaults(func=list_tools)

    install_parser = subparsers.add_parser("install", help="Install tools")
    install_parser.add_argument(
        "tools",
        nargs="*",
        help="Tools to install (all if not specified)",
    )
    install_parser.add_argument(
        "--go-install",
        action="store_true",
        help="Build from source with 'go install' instead of downloading a release",
    )
    install_parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=4,
        help="Number of tools to install in parallel",
    )
    install_parser.set_defaults(func=install_tools)

    requirements_parser = subparsers.add_parser(
        "requirements",
        help="Show the runtime requirements of a tool",
    )
    requirements_parser.add_argument("tool", help="Tool name")
    requirements_parser.set_defaults(func=show_requirements)

    version_parser = subparsers.add_parser("version", help="Print version information")
    version_parser.set_defaults(func=print_version)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main function to parse arguments and execute commands."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    config = ToolbinsConfig.load_from_file(args.config_file)
    if args.tools_dir:
        config.tools_dir = Path(args.tools_dir).expanduser()

    if not hasattr(args, "func"):
        parser.print_help()
        return
    sys.exit(args.func(args, config))


if __name__ == "__main__":
    main()

"""Configuration management for toolbins."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from .errors import MetadataFetchError
from .utils import github_token as _env_github_token
from .utils import log

if TYPE_CHECKING:
    from .github import ReleaseClient

DEFAULT_ORGANIZATION = "projectdiscovery"
DEFAULT_TOOLS_DIR = "~/.toolbins/bin"


@dataclass(frozen=True)
class RequirementSpecification:
    """A runtime dependency of a tool on one operating system."""

    name: str
    os: str
    instruction: str = ""
    command: str = ""
    required: bool = False


@dataclass(frozen=True)
class Tool:
    """An installable program and the assets of its current release."""

    name: str
    repo: str
    version: str = ""
    assets: dict[str, str] = field(default_factory=dict)
    requirements: tuple[RequirementSpecification, ...] = ()
    go_install_path: str = ""

    def repository(self, organization: str = DEFAULT_ORGANIZATION) -> tuple[str, str]:
        """Return ``(owner, name)`` of the GitHub repository."""
        if "/" in self.repo:
            owner, name = self.repo.split("/", 1)
            return owner, name
        return organization, self.repo


@dataclass
class ToolbinsConfig:
    """Configuration for toolbins."""

    tools_dir: Path = field(
        default_factory=lambda: Path(os.path.expanduser(DEFAULT_TOOLS_DIR)),
    )
    organization: str = DEFAULT_ORGANIZATION
    github_token: str | None = field(default_factory=_env_github_token)
    timeout: float = 30
    tools: dict[str, Tool] = field(default_factory=dict)

    def validate(self) -> None:
        """Warn about tools that cannot be installed as configured."""
        for tool in self.tools.values():
            if not tool.repo:
                log(f"Tool {tool.name} has no 'repo' defined", "warning", "⚠️")
            for spec in tool.requirements:
                if spec.os not in ("linux", "darwin", "windows"):
                    log(
                        f"Tool {tool.name} requirement '{spec.name}' targets unknown OS '{spec.os}'",
                        "warning",
                        "⚠️",
                    )

    @classmethod
    def load_from_file(cls, config_path: str | Path | None = None) -> ToolbinsConfig:
        """Load configuration from YAML file."""
        if not config_path:
            config_path = os.path.join(os.path.dirname(__file__), "..", "tools.yaml")

        try:
            with open(config_path) as file:
                config_data = yaml.safe_load(file) or {}
        except FileNotFoundError:
            log(f"Configuration file not found: {config_path}", "warning", "⚠️")
            return cls()
        except yaml.YAMLError:
            log(
                f"Invalid YAML in configuration file: {config_path}",
                "error",
                "❌",
                print_exception=True,
            )
            return cls()

        return _config_from_dict(config_data)


def _parse_requirements(raw: list[dict[str, Any]] | None) -> tuple[RequirementSpecification, ...]:
    """Flatten ``[{os, specification: [...]}]`` groups into specifications.

    Flat entries that carry their own ``os`` key are accepted as well.
    """
    specs: list[RequirementSpecification] = []
    for group in raw or []:
        if "specification" not in group:
            specs.append(_requirement_from_dict(group, group.get("os", "")))
            continue
        for entry in group["specification"] or []:
            specs.append(_requirement_from_dict(entry, group.get("os", "")))
    return tuple(specs)


def _requirement_from_dict(entry: dict[str, Any], os_name: str) -> RequirementSpecification:
    return RequirementSpecification(
        name=entry["name"],
        os=entry.get("os", os_name),
        instruction=entry.get("instruction", ""),
        command=entry.get("command", ""),
        required=bool(entry.get("required", False)),
    )


def _tool_from_dict(name: str, raw: dict[str, Any]) -> Tool:
    assets = {str(k): str(v) for k, v in (raw.get("assets") or {}).items()}
    return Tool(
        name=raw.get("name", name),
        repo=raw.get("repo", name),
        version=str(raw.get("version", "")),
        assets=assets,
        requirements=_parse_requirements(raw.get("requirements")),
        go_install_path=raw.get("go_install_path", ""),
    )


def _config_from_dict(data: dict[str, Any]) -> ToolbinsConfig:
    """Build a configuration from an already parsed YAML document."""
    config = ToolbinsConfig()
    if isinstance(data.get("tools_dir"), str):
        config.tools_dir = Path(os.path.expanduser(data["tools_dir"]))
    if data.get("organization"):
        config.organization = data["organization"]
    if data.get("github_token"):
        config.github_token = data["github_token"]
    if data.get("timeout") is not None:
        config.timeout = float(data["timeout"])
    config.tools = {
        name: _tool_from_dict(name, raw or {})
        for name, raw in (data.get("tools") or {}).items()
    }
    config.validate()
    return config


def resolve_tool(tool: Tool, client: ReleaseClient, organization: str = DEFAULT_ORGANIZATION) -> Tool:
    """Fill in a tool's version and assets from its GitHub release.

    A pinned version is looked up by tag, otherwise the latest release is
    used. Tools that already declare both are returned unchanged.
    """
    if tool.version and tool.assets:
        return tool
    owner, repo = tool.repository(organization)
    if tool.version:
        release = client.release_by_tag(owner, repo, tool.version)
    else:
        release = client.latest_release(owner, repo)
    tag = release.get("tag_name")
    if not tag:
        msg = f"Release of {owner}/{repo} has no tag name"
        raise MetadataFetchError(msg)
    return replace(
        tool,
        version=tool.version or tag,
        assets=tool.assets or client.release_assets(release),
    )

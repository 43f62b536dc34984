"""Check whether a tool's runtime requirements are present on the host."""

from __future__ import annotations

import ctypes
import shutil
from typing import TYPE_CHECKING, Callable

from .utils import current_platform, library_candidate_names

if TYPE_CHECKING:
    from .config import RequirementSpecification, Tool

LIBRARY_PREFIX = "lib"
COMMAND_PLACEHOLDER = "$CMD"


def _load_library(name: str) -> bool:
    try:
        ctypes.CDLL(name)
    except OSError:
        return False
    return True


def requirement_satisfied(name: str, os_name: str | None = None) -> bool:
    """Whether a library or executable requirement resolves on the host.

    Names starting with ``lib`` are loaded through the dynamic loader, trying
    the platform's shared-library extension before the bare name. Any other
    name is looked up on ``PATH``.
    """
    if name.startswith(LIBRARY_PREFIX):
        if os_name is None:
            os_name, _ = current_platform()
        return any(_load_library(candidate) for candidate in library_candidate_names(os_name, name))
    return shutil.which(name) is not None


def specs_for_os(tool: Tool, os_name: str) -> list[RequirementSpecification]:
    """Return the tool's requirements for ``os_name`` in declaration order."""
    return [spec for spec in tool.requirements if spec.os == os_name]


def format_instruction(spec: RequirementSpecification) -> str:
    """Fill the install command into the requirement's instruction."""
    return spec.instruction.replace(COMMAND_PLACEHOLDER, spec.command, 1)


def requirement_status(spec: RequirementSpecification) -> str:
    if spec.required:
        return "[yellow]required[/yellow]"
    return "[bright_green]optional[/bright_green]"


def unmet_requirements(
    tool: Tool,
    os_name: str,
    is_satisfied: Callable[[str], bool] | None = None,
) -> list[RequirementSpecification]:
    """Return the requirements for ``os_name`` that the host is missing."""
    check = is_satisfied or (lambda name: requirement_satisfied(name, os_name))
    return [spec for spec in specs_for_os(tool, os_name) if not check(spec.name)]


def render_requirements(
    tool: Tool,
    os_name: str,
    is_satisfied: Callable[[str], bool] | None = None,
) -> str | None:
    """Render the block listing unmet requirements as rich markup.

    Returns ``None`` when every requirement is met.
    """
    unmet = unmet_requirements(tool, os_name, is_satisfied)
    if not unmet:
        return None
    lines = [f"[bold]{tool.name} requirements:[/bold]"]
    lines.extend(f"{requirement_status(spec)} {format_instruction(spec)}" for spec in unmet)
    return "\n".join(lines)

"""Install tools by building them from source."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from .config import DEFAULT_ORGANIZATION
from .errors import BuildError

if TYPE_CHECKING:
    from .config import Tool


class BuildStrategy(Protocol):
    """Something that can put a tool's executable into a directory."""

    def build(self, tool: Tool, path: Path) -> None: ...


class GoInstallStrategy:
    """Build a tool with ``go install``, writing the binary to ``path``."""

    def __init__(self, organization: str = DEFAULT_ORGANIZATION, go: str = "go") -> None:
        self.organization = organization
        self.go = go

    def package(self, tool: Tool) -> str:
        """Return the Go package path to install for ``tool``."""
        owner, repo = tool.repository(self.organization)
        package = f"github.com/{owner}/{repo}"
        if tool.go_install_path:
            package = f"{package}/{tool.go_install_path.strip('/')}"
        return package

    def build(self, tool: Tool, path: Path) -> None:
        cmd = [self.go, "install", "-v", self.package(tool)]
        env = {**os.environ, "GOBIN": str(path)}
        try:
            result = subprocess.run(  # noqa: S603
                cmd,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as e:
            msg = f"go install failed: {e}"
            raise BuildError(msg) from e
        if result.returncode != 0:
            msg = f"go install failed {result.stdout}"
            raise BuildError(msg)

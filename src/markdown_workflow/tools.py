"""
External tools - locating and running the CLIs that render diagrams and documents.

Renderers (dot, plantuml, mmdc) and the converter (pandoc) are plain
executables; everything that starts one goes through run_tool() so that
timeouts and missing binaries are reported the same way everywhere.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .constants import DEFAULT_TOOL_TIMEOUT, EXTERNAL_TOOLS
from .errors import ExternalToolError

logger = logging.getLogger(__name__)

# Standard user bin directory following XDG spec
USER_BIN_DIR = Path.home() / ".local" / "share" / "markdown-workflow" / "bin"


@dataclass
class ToolResult:
    """Completed external process."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def message(self) -> str:
        """Best single-line description of a failure."""
        text = (self.stderr or self.stdout).strip()
        if not text:
            return f"exit code {self.exit_code}"
        return text.splitlines()[-1]


def get_tool_path(tool_name: str) -> Path | None:
    """
    Find a tool in standard locations.

    Search order:
    1. User local bin (~/.local/share/markdown-workflow/bin)
    2. System PATH
    """
    user_path = USER_BIN_DIR / tool_name
    if user_path.exists():
        return user_path

    sys_path = shutil.which(tool_name)
    if sys_path:
        return Path(sys_path)

    return None


def find_tool(tool_name: str, configured: str | None = None) -> Path | None:
    """
    Resolve tool path with config override.

    Search order:
    1. Config file override (absolute path, or a command name on PATH)
    2. User local bin
    3. System PATH

    Args:
        tool_name: Name of the tool to find
        configured: Value from config file (may be empty string or None)

    Returns:
        Path to tool, or None if not found
    """
    if configured:
        p = Path(configured).expanduser()
        if p.exists():
            return p
        if found := shutil.which(configured):
            return Path(found)
        logger.warning(f"Configured {tool_name} not found: {configured}")

    return get_tool_path(tool_name)


def run_tool(args: list[str], cwd: Path | None = None, timeout: float = DEFAULT_TOOL_TIMEOUT) -> ToolResult:
    """
    Run an external command and capture its output.

    Args:
        args: Command and arguments (args[0] is the executable)
        cwd: Working directory
        timeout: Seconds before the process is killed

    Returns:
        ToolResult; a non-zero exit code is returned, not raised

    Raises:
        ExternalToolError: If the command times out or cannot be started
    """
    logger.debug(f"Running: {' '.join(str(a) for a in args)}")
    try:
        result = subprocess.run(
            [str(a) for a in args],
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ExternalToolError(f"{Path(str(args[0])).name} timed out after {timeout}s") from e
    except OSError as e:
        raise ExternalToolError(f"Cannot run {args[0]}: {e}") from e

    return ToolResult(exit_code=result.returncode, stdout=result.stdout or "", stderr=result.stderr or "")


def check_tools_status(configured: dict[str, str | None] | None = None) -> dict[str, Path | None]:
    """
    Check status of all external tools.

    Args:
        configured: Command overrides from the config file, keyed by tool name

    Returns:
        Dict mapping tool name to path (None if not found)
    """
    configured = configured or {}
    return {tool: find_tool(tool, configured.get(tool)) for tool in EXTERNAL_TOOLS}

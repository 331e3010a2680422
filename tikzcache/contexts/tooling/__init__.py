"""
Tooling Context

Responsibilities:
- Resolves logical tool names to executables (search path, then registry on Windows)
- Runs external processes with bounded waits
- Reads and writes file modification times

Owns: Executable discovery, process creation, platform differences
Never: Decides what a tool's output means
"""

from tikzcache.contexts.tooling.exceptions import (
    ToolError,
    ToolLaunchError,
    ToolNotFoundError,
    ToolTimeoutError,
)
from tikzcache.contexts.tooling.platform_ops import (
    PlatformOps,
    PosixOps,
    WindowsOps,
    current_platform,
)
from tikzcache.contexts.tooling.resolver import ToolHandle, ToolResolver, resolve_candidates

__all__ = [
    "PlatformOps",
    "PosixOps",
    "ToolError",
    "ToolHandle",
    "ToolLaunchError",
    "ToolNotFoundError",
    "ToolResolver",
    "ToolTimeoutError",
    "WindowsOps",
    "current_platform",
    "resolve_candidates",
]

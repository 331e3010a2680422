"""Exceptions raised when invoking external tools."""

from typing import Optional, Sequence


class ToolError(Exception):
    """Base class for failures that happen while running an external tool."""

    def __init__(self, message: str, tool: Optional[str] = None):
        self.message = message
        self.tool = tool
        super().__init__(message)


class ToolNotFoundError(ToolError):
    """
    Exception raised when an executable cannot be started.

    Resolution never raises: an unresolved tool is handed out under its first
    candidate name and this error surfaces only at the invocation site.

    Attributes:
        tool: Executable name or path that was attempted
        command: Full argument vector of the failed invocation
    """

    def __init__(self, tool: str, command: Sequence[str] = ()):
        self.command = list(command)
        super().__init__(
            f"Executable not found: {tool}. Install it or add its directory to PATH.", tool=tool
        )


class ToolTimeoutError(ToolError):
    """
    Exception raised when a tool runs longer than the configured timeout.

    The process has already been killed when this is raised.
    """

    def __init__(self, tool: str, timeout: float):
        self.timeout = timeout
        super().__init__(f"{tool} did not finish within {timeout:g}s and was killed", tool=tool)


class ToolLaunchError(ToolError):
    """
    Exception raised when an executable exists but the OS refuses to start it.

    Typical causes are a resolved path without the execute bit, a directory,
    or a file in a format the platform cannot load.
    """

    def __init__(self, tool: str, command: Sequence[str] = (), reason: str = ""):
        self.command = list(command)
        self.reason = reason
        super().__init__(f"Cannot execute {tool}: {reason}", tool=tool)

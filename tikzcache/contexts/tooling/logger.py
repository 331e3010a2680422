"""
Tooling context logger.

Provides logging interface for tooling context with automatic [tools] prefix.
All tooling modules should import from this module, not from loguru directly.
"""

from loguru import logger

CONTEXT_PREFIX = "[tools]"


def _log_warning(message: str) -> None:
    """Log warning message with [tools] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [tools] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_command(quoted: str) -> None:
    """Log the command line about to be executed."""
    _log_debug(f"$ {quoted}")


def log_resolution(tool: str, path: str, strategy: str) -> None:
    """Log how a logical tool name was resolved."""
    if strategy == "unresolved":
        _log_warning(f"{tool}: no candidate found, deferring failure to invocation of '{path}'")
    else:
        _log_debug(f"{tool}: {path} (via {strategy})")

"""
Figures context logger.

Provides logging interface for figures context with automatic [figure] prefix.
All figures modules should import from this module, not from loguru directly.
"""

from loguru import logger

CONTEXT_PREFIX = "[figure]"


def _log_info(message: str) -> None:
    """Log info message with [figure] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [figure] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [figure] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [figure] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_render_start(basename: str, formats: list, stale: list) -> None:
    """Log that a figure is being (re)generated."""
    _log_info(f"Generating TikZ image: {basename} ({','.join(formats)})")
    _log_debug(f"  Stale: {', '.join(str(path) for path in stale)}")


def log_render_result(result, elapsed_time: float) -> None:
    """
    Log the outcome of a figure render.

    Args:
        result: FigureResult from FigureRenderer.render()
        elapsed_time: Time taken to render
    """
    name = result.request.basename
    if result.success:
        _log_success(f"{name}: {len(result.outputs)} image(s) ready ({elapsed_time:.2f}s)")
    else:
        _log_error(f"{name}: {len(result.errors)} error(s) ({elapsed_time:.2f}s)")
        for i, err in enumerate(result.errors, 1):
            _log_error(f"  Error {i}: {err}")

"""
Rendering context logger.

Provides logging interface for rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from loguru directly.
"""

from loguru import logger

CONTEXT_PREFIX = "[render]"


def _log_error(message: str) -> None:
    """Log error message with [render] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [render] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [render] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_compilation_result(
    name: str,
    result,  # CompilationResult
    elapsed_time: float,
    verbose: bool = False,
) -> None:
    """
    Log typesetting result with diagnostics.

    Args:
        name: Figure or document identifier
        result: CompilationResult from compile_latex()
        elapsed_time: Time taken to compile
        verbose: Show more warnings/errors (default: False)
    """
    if result.success:
        _log_debug(f"{name}: typeset with {len(result.warnings)} warnings ({elapsed_time:.2f}s)")
    else:
        _log_error(f"{name}: typesetting failed with {len(result.errors)} errors ({elapsed_time:.2f}s)")
        error_limit = 10 if verbose else 5
        for i, err in enumerate(result.errors[:error_limit], 1):
            _log_error(f"  Error {i}: {err}")
        if len(result.errors) > error_limit:
            _log_error(f"  ... and {len(result.errors) - error_limit} more errors")

    if result.warnings:
        warning_limit = 10 if verbose else 3
        for i, warn in enumerate(result.warnings[:warning_limit], 1):
            _log_debug(f"  Warning {i}: {warn}")
        if len(result.warnings) > warning_limit:
            _log_debug(f"  ... and {len(result.warnings) - warning_limit} more warnings")


def log_conversion_results(name: str, jobs: dict) -> None:
    """Log one line per conversion job (format -> ConversionJob)."""
    for fmt, job in jobs.items():
        if job.succeeded:
            _log_debug(f"{name}: {fmt} -> {job.destination}")
        else:
            _log_error(f"{name}: {fmt} conversion failed: {job.error}")
            if job.output:
                # Renderer output is multi-line; bypass the format template
                logger.opt(raw=True).debug(
                    f"\n{'=' * 80}\n{fmt.upper()} RENDERER OUTPUT:\n{'=' * 80}\n{job.output}\n"
                )

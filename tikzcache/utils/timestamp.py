"""Timestamp formatting utilities."""

from datetime import datetime


def now() -> str:
    """Current local time formatted for directory names (e.g. 20251114_123456)."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def now_exact() -> str:
    """Current local time as an ISO 8601 string with microseconds."""
    return datetime.now().isoformat()


def format_mtime_ns(mtime_ns: int) -> str:
    """
    Format a nanosecond modification time for log output.

    Args:
        mtime_ns: Modification time in nanoseconds since the epoch

    Returns:
        Readable timestamp with the raw value appended, e.g.
        "2025-11-13 18:45:40 (1763055940572549000)"
    """
    dt = datetime.fromtimestamp(mtime_ns / 1e9)
    return f"{dt.strftime('%Y-%m-%d %H:%M:%S')} ({mtime_ns})"

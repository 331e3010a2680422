"""Figure file naming: fig<NN>[-<caption slug>]."""

import re

WHITESPACE = re.compile(r"\s+")
DISALLOWED = re.compile(r"[^A-Za-z0-9-]")
DASH_RUNS = re.compile(r"-+")


def sanitize_filename(text: str) -> str:
    """
    Turn free text into a lowercase, dash-separated file name fragment.

    Examples:
        sanitize_filename("Data flow: v2 (draft)")   # "data-flow-v2-draft"
        sanitize_filename("  --  ")                  # ""
    """
    slug = WHITESPACE.sub("-", text)
    slug = DISALLOWED.sub("", slug)
    slug = DASH_RUNS.sub("-", slug)
    return slug.strip("-").lower()


def make_basename(sequence: int, caption: str = "", max_length: int = 32) -> str:
    """
    Build the file stem for a figure.

    Args:
        sequence: Figure number (1-based, zero padded to two digits)
        caption: Optional caption; its slug is appended when non-empty
        max_length: Maximum slug length

    Returns:
        "fig03" or "fig03-system-overview"
    """
    number = f"{sequence:02d}"

    slug = sanitize_filename(caption or "")
    if len(slug) > max_length:
        slug = slug[:max_length].rstrip("-")

    if not slug:
        return f"fig{number}"
    return f"fig{number}-{slug}"

"""Custom exceptions for rendering context stages."""

from pathlib import Path
from typing import List, Optional


class RenderError(Exception):
    """
    Base exception for a failed render stage.

    Attributes:
        message: Error description
        path: File the stage was working on
        details: Extra diagnostic lines (e.g., parsed engine errors)
    """

    def __init__(
        self,
        message: str,
        path: Optional[Path] = None,
        details: Optional[List[str]] = None,
    ):
        self.message = message
        self.path = path
        self.details = list(details or [])

        parts = [message]
        if path is not None:
            parts.append(f"File: {path}")
        for line in self.details[:5]:
            parts.append(f"  {line}")

        super().__init__("\n".join(parts))


class BoundingBoxParseError(RenderError):
    """Raised when the raster interpreter reported no usable bounding box."""

    pass


class TypesetError(RenderError):
    """Raised when the typesetting engine ran but produced no PDF."""

    pass


class RelocationError(RenderError):
    """Raised when an artifact could be neither renamed nor copied into place."""

    pass


class ConversionError(RenderError):
    """
    Raised when a format renderer failed.

    Attributes:
        fmt: Output format tag (e.g., "png")
    """

    def __init__(self, fmt: str, message: str, path: Optional[Path] = None, details=None):
        self.fmt = fmt
        super().__init__(f"{fmt}: {message}", path=path, details=details)

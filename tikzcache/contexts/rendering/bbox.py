"""
Bounding Box Measurement

Runs Ghostscript's bbox device on a single-page PDF and parses the reported
%%BoundingBox line.
"""

import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from tikzcache.contexts.rendering.exceptions import BoundingBoxParseError
from tikzcache.contexts.rendering.logger import _log_debug
from tikzcache.contexts.tooling.platform_ops import PlatformOps

NUMBER = r"([-\d.]+)"
BOUNDING_BOX_PATTERN = re.compile(
    rf"%%BoundingBox:\s*{NUMBER}\s+{NUMBER}\s+{NUMBER}\s+{NUMBER}"
)


@dataclass(frozen=True)
class BoundingBox:
    """
    Rectangle enclosing all marks on a page, in PostScript points (bp).

    (x1, y1) is the lower-left corner and (x2, y2) the upper-right one.
    """

    x1: float
    y1: float
    x2: float
    y2: float

    def __post_init__(self):
        if self.x2 < self.x1 or self.y2 < self.y1:
            raise ValueError(
                f"Inverted bounding box: ({self.x1}, {self.y1}, {self.x2}, {self.y2})"
            )

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def __str__(self) -> str:
        return f"{self.x1:g} {self.y1:g} {self.x2:g} {self.y2:g}"


def parse_bounding_box(lines: Iterable[str], source: Optional[Path] = None) -> BoundingBox:
    """
    Parse the first %%BoundingBox line from Ghostscript output.

    Later matches (and the %%HiResBoundingBox line) are ignored.

    Args:
        lines: Ghostscript output lines
        source: PDF the output belongs to (for error messages)

    Returns:
        BoundingBox of the page

    Raises:
        BoundingBoxParseError: If no line matches, a coordinate is not a number,
            or the box is inverted or empty
    """
    for line in lines:
        match = BOUNDING_BOX_PATTERN.search(line)
        if not match:
            continue

        try:
            coords = [float(token) for token in match.groups()]
            bbox = BoundingBox(*coords)
        except ValueError as e:
            raise BoundingBoxParseError(
                f"Malformed bounding box line: {line.strip()}", path=source, details=[str(e)]
            ) from e

        if bbox.is_empty:
            raise BoundingBoxParseError(f"Empty bounding box ({bbox}): page has no marks", path=source)

        return bbox

    raise BoundingBoxParseError("Ghostscript reported no bounding box", path=source)


def extract_bounding_box(
    pdf_file: Path,
    ops: PlatformOps,
    interpreter: str,
    timeout: Optional[float] = None,
    work_dir: Optional[Path] = None,
) -> BoundingBox:
    """
    Measure the bounding box of a single-page PDF with Ghostscript.

    Combined interpreter output is captured in a temporary file that is removed
    whether or not parsing succeeds.

    Args:
        pdf_file: PDF to measure
        ops: Platform operations
        interpreter: Ghostscript executable
        timeout: Seconds before the interpreter is killed
        work_dir: Directory for the capture file (default: system temp dir)

    Returns:
        BoundingBox of page 1

    Raises:
        BoundingBoxParseError: If the output contains no usable bounding box
        ToolNotFoundError, ToolTimeoutError: From the interpreter invocation
    """
    fd, capture_name = tempfile.mkstemp(prefix="bbox-", suffix=".gsout", dir=work_dir)
    os.close(fd)
    capture_file = Path(capture_name)

    try:
        cmd = [
            interpreter,
            "-sDEVICE=bbox",
            "-dBATCH",
            "-dNOPAUSE",
            "-c",
            "save",
            "pop",
            "-f",
            str(pdf_file),
        ]
        ops.run(cmd, output=capture_file, timeout=timeout)

        with open(capture_file, "r", encoding="latin-1") as f:
            bbox = parse_bounding_box(f, source=pdf_file)
    finally:
        capture_file.unlink(missing_ok=True)

    _log_debug(f"Bounding box of {pdf_file.name}: {bbox}")
    return bbox

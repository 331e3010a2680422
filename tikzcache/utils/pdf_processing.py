"""PDF helpers for inspecting typeset artifacts."""

from pathlib import Path
from typing import Optional

from PyPDF2 import PdfReader


def page_count(pdf_path: Path) -> Optional[int]:
    """Get page count from PDF, or None if unreadable."""
    try:
        reader = PdfReader(str(pdf_path))
        return len(reader.pages)
    except Exception:
        return None


def is_pdf(path: Path) -> bool:
    """Check the file starts with the PDF magic bytes."""
    try:
        with open(path, "rb") as f:
            return f.read(5) == b"%PDF-"
    except OSError:
        return False

"""
PDF Cropping

Crops a single-page PDF to its bounding box without pdfcrop: a tiny plain
LuaTeX program re-ships page 1 of the input as an image resource on a page
exactly the size of the bounding box.

Stages: MEASURING -> GENERATING_PROGRAM -> TYPESETTING -> RELOCATING -> DONE,
any of which can end in FAILED. Nothing is retried.
"""

import os
import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from tikzcache.contexts.rendering.bbox import BoundingBox, extract_bounding_box
from tikzcache.contexts.rendering.exceptions import RelocationError, RenderError, TypesetError
from tikzcache.contexts.rendering.logger import _log_debug, _log_error
from tikzcache.contexts.rendering.templates import templates
from tikzcache.contexts.rendering.typesetter import compile_latex
from tikzcache.contexts.tooling.exceptions import ToolError
from tikzcache.contexts.tooling.platform_ops import PlatformOps
from tikzcache.contexts.tooling.resolver import ToolResolver
from tikzcache.utils.pdf_processing import is_pdf

CROP_PROGRAM_NAME = "crop.tex"


class CropStage(Enum):
    MEASURING = "measuring"
    GENERATING_PROGRAM = "generating_program"
    TYPESETTING = "typesetting"
    RELOCATING = "relocating"
    DONE = "done"
    FAILED = "failed"


@dataclass
class CropResult:
    """
    Result of cropping one PDF.

    Attributes:
        success: Whether output_path now holds the cropped PDF
        stage: DONE on success, FAILED otherwise
        output_path: Requested output location
        bounding_box: Box the page was cropped to (None if measuring failed)
        failed_stage: Stage that failed (None on success)
        errors: Error messages from the failed stage
    """

    success: bool
    stage: CropStage
    output_path: Path
    bounding_box: Optional[BoundingBox] = None
    failed_stage: Optional[CropStage] = None
    errors: List[str] = field(default_factory=list)


def format_dimen(value: float) -> str:
    """
    Format a length in big points for TeX (no exponent notation).

    Example:
        format_dimen(-10.0)   # "-10bp"
        format_dimen(0.25)    # "0.25bp"
    """
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return f"{text}bp"


def hex_encode(text: str) -> str:
    """Uppercase hex of the UTF-8 bytes, so any path survives TeX tokenization."""
    return text.encode("utf-8").hex().upper()


def crop_program(pdf_path: Path, bbox: BoundingBox) -> str:
    """
    Generate the LuaTeX program that crops pdf_path to bbox.

    The page is bbox.width x bbox.height and the origin is shifted by
    (-x1, y1) so the box's lower-left corner lands on the page origin.

    Args:
        pdf_path: Absolute path of the PDF to crop
        bbox: Bounding box in bp

    Returns:
        Plain LuaTeX source
    """
    return templates.render(
        "crop",
        pdf_file_hex=hex_encode(Path(pdf_path).as_posix()),
        h_origin=format_dimen(-bbox.x1),
        v_origin=format_dimen(bbox.y1),
        page_width=format_dimen(bbox.width),
        page_height=format_dimen(bbox.height),
    )


def make_work_dir(parent: Optional[Path] = None) -> Path:
    """
    Create a private working directory for one crop job.

    Names come from mkdtemp's random suffix, so jobs started in the same
    second never share a directory.
    """
    return Path(tempfile.mkdtemp(prefix="tmp-pdfcrop-", dir=parent))


def relocate(source: Path, destination: Path) -> None:
    """
    Move source to destination, replacing any existing file.

    Tries an atomic rename first and falls back to copy-then-delete (e.g.
    across volumes).

    Raises:
        RelocationError: If both rename and copy fail
    """
    try:
        os.replace(source, destination)
        return
    except OSError as e:
        _log_debug(f"Rename {source} -> {destination} failed ({e}), copying instead")

    try:
        shutil.copyfile(source, destination)
        source.unlink()
    except OSError as e:
        raise RelocationError(
            f"Could not move {source.name} to {destination}", path=source, details=[str(e)]
        ) from e


class Cropper:
    """Crops single-page PDFs to their content using Ghostscript and LuaTeX."""

    def __init__(self, ops: PlatformOps, resolver: ToolResolver, timeout: Optional[float] = None):
        self.ops = ops
        self.resolver = resolver
        self.timeout = timeout

    def crop(
        self, input_pdf: Path, output_pdf: Path, bbox: Optional[BoundingBox] = None
    ) -> CropResult:
        """
        Crop input_pdf to its bounding box and write the result to output_pdf.

        Args:
            input_pdf: Single-page PDF to crop
            output_pdf: Where the cropped PDF goes
            bbox: Known bounding box (measured with Ghostscript when None)

        Returns:
            CropResult; intermediate files are removed in every case
        """
        input_pdf = Path(input_pdf).resolve()
        output_pdf = Path(output_pdf).resolve()
        stage = CropStage.MEASURING
        work_dir = None

        try:
            if not is_pdf(input_pdf):
                raise RenderError("Input is not a PDF file", path=input_pdf)
            work_dir = make_work_dir(output_pdf.parent)

            if bbox is None:
                bbox = extract_bounding_box(
                    input_pdf,
                    self.ops,
                    self.resolver.path("raster_interpreter"),
                    timeout=self.timeout,
                    work_dir=work_dir,
                )

            stage = CropStage.GENERATING_PROGRAM
            tex_file = work_dir / CROP_PROGRAM_NAME
            tex_file.write_text(crop_program(input_pdf, bbox), encoding="utf-8")

            stage = CropStage.TYPESETTING
            result = compile_latex(
                tex_file,
                self.ops,
                self.resolver.path("crop_engine"),
                interaction="batchmode",
                extra_args=["-no-shell-escape"],
                timeout=self.timeout,
            )
            if not result.success:
                raise TypesetError(
                    "LuaTeX failed to produce the cropped PDF", path=tex_file, details=result.errors
                )

            stage = CropStage.RELOCATING
            relocate(result.pdf_path, output_pdf)

        except (RenderError, ToolError, OSError) as e:
            _log_error(f"pdfcrop: {stage.value} failed for {input_pdf.name}: {e}")
            return CropResult(
                success=False,
                stage=CropStage.FAILED,
                output_path=output_pdf,
                bounding_box=bbox,
                failed_stage=stage,
                errors=[str(e)],
            )
        finally:
            if work_dir is not None:
                shutil.rmtree(work_dir, ignore_errors=True)

        _log_debug(f"Cropped {input_pdf.name} to {bbox.width:g}x{bbox.height:g}bp")
        return CropResult(
            success=True, stage=CropStage.DONE, output_path=output_pdf, bounding_box=bbox
        )

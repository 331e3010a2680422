"""
Rendering Context

Responsibilities:
- Typesets diagram source into a single-page PDF
- Measures the page's bounding box and crops the PDF to it
- Converts the cropped PDF into image formats concurrently
- Decides artifact freshness by modification-time equality

Owns: TeX program generation, intermediate files, artifact stamping
Never: Chooses figure names or output paths
"""

from tikzcache.contexts.rendering.bbox import BoundingBox, extract_bounding_box, parse_bounding_box
from tikzcache.contexts.rendering.cache import CacheEntry, CacheManager
from tikzcache.contexts.rendering.conversion import (
    ConversionJob,
    ConversionPipeline,
    JobStatus,
    Renderer,
    default_renderers,
)
from tikzcache.contexts.rendering.cropper import CropResult, CropStage, Cropper, crop_program
from tikzcache.contexts.rendering.exceptions import (
    BoundingBoxParseError,
    ConversionError,
    RelocationError,
    RenderError,
    TypesetError,
)
from tikzcache.contexts.rendering.typesetter import CompilationResult, compile_latex, typeset_figure

__all__ = [
    "BoundingBox",
    "BoundingBoxParseError",
    "CacheEntry",
    "CacheManager",
    "CompilationResult",
    "ConversionError",
    "ConversionJob",
    "ConversionPipeline",
    "CropResult",
    "CropStage",
    "Cropper",
    "JobStatus",
    "RelocationError",
    "RenderError",
    "Renderer",
    "TypesetError",
    "compile_latex",
    "crop_program",
    "default_renderers",
    "extract_bounding_box",
    "parse_bounding_box",
    "typeset_figure",
]

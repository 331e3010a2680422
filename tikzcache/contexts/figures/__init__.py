"""
Figures Context

Responsibilities:
- Numbers figure occurrences deterministically
- Names image files from number and caption
- Sequences cache check, typesetting, cropping and conversion per figure
- Absorbs and reports failures so the host document keeps building

Owns: Figure numbering, image naming, the single render entry point
Never: Parses document markup or lays out captions
"""

from tikzcache.contexts.figures.naming import make_basename, sanitize_filename
from tikzcache.contexts.figures.orchestrator import FigureRenderer, FigureResult, RenderRequest

__all__ = ["FigureRenderer", "FigureResult", "RenderRequest", "make_basename", "sanitize_filename"]

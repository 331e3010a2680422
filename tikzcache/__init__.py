"""
TIKZCACHE - TikZ Images Kept Zippy: Cached Artifacts Converted for Host Embedding

Turns embedded TikZ diagram sources into cropped, cached PNG/SVG images that a
document processor (e.g. a Pandoc filter) can embed by path.

Architecture:
- Tooling Context: Executable discovery and platform-specific process/mtime operations
- Rendering Context: Typesetting, bounding box measurement, cropping, caching, conversion
- Figures Context: Per-figure orchestration, naming and sequence assignment
"""

__version__ = "0.1.0"

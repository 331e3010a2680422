"""
Figure Rendering Orchestration

Entry point for document processors: hand over diagram source, get back image
paths. Each call gets the next figure number immediately (before any
subprocess runs), checks the cache, and only when an artifact is stale
typesets, crops and converts the figure.

Failures never propagate out of render(): they are logged and reported in the
FigureResult so the document can still be produced.
"""

import shutil
import tempfile
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from tikzcache.contexts.figures.logger import (
    _log_debug,
    _log_error,
    _log_info,
    log_render_result,
    log_render_start,
)
from tikzcache.contexts.figures.naming import make_basename
from tikzcache.contexts.rendering.cache import CacheManager
from tikzcache.contexts.rendering.conversion import (
    ConversionJob,
    ConversionPipeline,
    default_renderers,
)
from tikzcache.contexts.rendering.cropper import Cropper
from tikzcache.contexts.rendering.exceptions import RenderError
from tikzcache.contexts.rendering.logger import log_conversion_results
from tikzcache.contexts.rendering.typesetter import typeset_figure
from tikzcache.contexts.tooling.exceptions import ToolError
from tikzcache.contexts.tooling.platform_ops import PlatformOps, current_platform
from tikzcache.contexts.tooling.resolver import ToolResolver
from tikzcache.utils.config import load_settings, validate_formats
from tikzcache.utils.event_logging import log_figure_event


@dataclass(frozen=True)
class RenderRequest:
    """
    One occurrence of a diagram in a document.

    Attributes:
        code: Diagram source
        sequence: Figure number, unique within a FigureRenderer
        caption: Caption text ("" for none)
        output_dir: Directory the images are written to
        source_file: Document whose mtime keys the cache
        basename: File stem derived from sequence and caption
    """

    code: str
    sequence: int
    caption: str
    output_dir: Path
    source_file: Path
    basename: str

    def artifact_path(self, fmt: str) -> Path:
        return self.output_dir / f"{self.basename}.{fmt}"


@dataclass
class FigureResult:
    """
    Outcome of rendering one figure.

    Attributes:
        request: The request that was rendered
        outputs: Format -> image path, for every image that is fresh on disk
        regenerated: Whether any external tool ran
        jobs: Conversion jobs of this run (empty on a cache hit)
        errors: Failures absorbed while rendering
        display_format: Preferred format for embedding
    """

    request: RenderRequest
    outputs: Dict[str, Path] = field(default_factory=dict)
    regenerated: bool = False
    jobs: Dict[str, ConversionJob] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    display_format: str = "svg"

    @property
    def success(self) -> bool:
        return not self.errors

    def image_path(self, fmt: Optional[str] = None) -> Path:
        """
        Path the document should reference.

        Prefers fmt (default: the display format), falls back to any produced
        format, and finally to the expected path of the preferred format so
        the document still points at where the image belongs.
        """
        preferred = fmt or self.display_format
        if preferred in self.outputs:
            return self.outputs[preferred]
        for path in self.outputs.values():
            return path
        return self.request.artifact_path(preferred)


class FigureRenderer:
    """
    Renders diagram sources into cached images.

    Owns the figure counter, the tool resolver and the pipeline components.
    A single instance can be shared by threads: numbering is serialized and
    every render works in its own temporary directory.
    """

    def __init__(
        self,
        settings=None,
        ops: Optional[PlatformOps] = None,
        resolver: Optional[ToolResolver] = None,
        output_dir: Optional[Path] = None,
    ):
        """
        Initialize the renderer.

        Args:
            settings: Settings DictConfig (default: load_settings())
            ops: Platform operations (default: current_platform())
            resolver: Tool resolver (default: built from settings)
            output_dir: Images directory (default: settings.images_dir)

        Raises:
            ValueError: If the configured formats are unsupported
        """
        self.settings = settings if settings is not None else load_settings()
        self.output_formats = list(self.settings.output_formats)
        self.display_format = self.settings.display_format
        validate_formats(self.output_formats, self.display_format)

        self.ops = ops if ops is not None else current_platform()
        self.resolver = resolver if resolver is not None else ToolResolver.from_settings(self.settings, self.ops)
        self.output_dir = Path(output_dir if output_dir is not None else self.settings.images_dir)
        self.timeout = self.settings.tool_timeout
        self.keep_artifacts = self.settings.keep_artifacts
        self.events_file = Path(self.settings.events_file) if self.settings.events_file else None

        self.cache = CacheManager(self.ops)
        self.cropper = Cropper(self.ops, self.resolver, timeout=self.timeout)
        self.pipeline = ConversionPipeline(
            self.ops,
            self.resolver,
            self.cache,
            renderers=default_renderers(self.settings.bitmap.density, self.settings.bitmap.quality),
            timeout=self.timeout,
        )

        self._sequence = 0
        self._sequence_lock = threading.Lock()

    @property
    def figure_count(self) -> int:
        """Number of figure numbers handed out so far."""
        return self._sequence

    def next_request(self, code: str, source_file: Path, caption: str = "") -> RenderRequest:
        """Assign the next figure number and build a request for it."""
        with self._sequence_lock:
            self._sequence += 1
            sequence = self._sequence

        return RenderRequest(
            code=code,
            sequence=sequence,
            caption=caption or "",
            output_dir=self.output_dir,
            source_file=Path(source_file),
            basename=make_basename(sequence, caption or "", self.settings.caption_max_length),
        )

    def render(self, code: str, source_file: Path, caption: str = "") -> FigureResult:
        """
        Render one diagram occurrence.

        Args:
            code: Diagram source (e.g., a tikzpicture environment)
            source_file: Document containing the diagram (cache key)
            caption: Optional caption, used in the file name

        Returns:
            FigureResult; never raises for tool or rendering failures
        """
        return self.render_request(self.next_request(code, source_file, caption))

    def render_all(
        self,
        figures: Iterable[Tuple[str, str]],
        source_file: Path,
        max_workers: int = 4,
    ) -> List[FigureResult]:
        """
        Render several diagrams of one document concurrently.

        Figure numbers are assigned in input order before any work starts.

        Args:
            figures: (code, caption) pairs in document order
            source_file: Document containing the diagrams
            max_workers: Maximum figures rendered at once

        Returns:
            FigureResults in input order
        """
        requests = [self.next_request(code, source_file, caption) for code, caption in figures]
        if not requests:
            return []

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(self.render_request, requests))

    def render_request(self, request: RenderRequest) -> FigureResult:
        """Render an already numbered request (see render())."""
        result = FigureResult(request=request, display_format=self.display_format)
        start_time = time.time()

        if not request.source_file.exists():
            result.errors.append(f"Source file not found: {request.source_file}")
            log_render_result(result, time.time() - start_time)
            self._log_event("figure_failed", request, errors=result.errors)
            return result

        try:
            request.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            result.errors.append(f"Cannot create images directory {request.output_dir}: {e}")
            log_render_result(result, time.time() - start_time)
            self._log_event("figure_failed", request, errors=result.errors)
            return result

        artifacts = {fmt: request.artifact_path(fmt) for fmt in self.output_formats}
        stale = self.cache.stale_artifacts(artifacts.values(), request.source_file)
        stale_formats = [fmt for fmt, path in artifacts.items() if path in stale]

        result.outputs = {fmt: path for fmt, path in artifacts.items() if fmt not in stale_formats}

        if not stale_formats:
            _log_debug(f"{request.basename}: up to date")
            self._log_event("figure_cached", request, formats=self.output_formats)
            return result

        log_render_start(request.basename, self.output_formats, stale)
        result.regenerated = True

        try:
            result.jobs = self._generate(request, stale_formats)
        except (RenderError, ToolError, OSError) as e:
            result.errors.append(str(e))
        else:
            log_conversion_results(request.basename, result.jobs)
            for fmt, job in result.jobs.items():
                if job.succeeded:
                    result.outputs[fmt] = job.destination
                else:
                    result.errors.append(job.error)

        log_render_result(result, time.time() - start_time)
        self._log_event(
            "figure_rendered" if result.success else "figure_failed",
            request,
            formats=stale_formats,
            produced=sorted(result.outputs),
            errors=result.errors,
            elapsed_s=round(time.time() - start_time, 2),
        )
        return result

    def _generate(self, request: RenderRequest, formats: List[str]) -> Dict[str, ConversionJob]:
        work_dir = Path(tempfile.mkdtemp(prefix=f"tikzcache-{request.basename}-"))
        try:
            pdf_file = typeset_figure(
                request.code,
                work_dir,
                self.ops,
                self.resolver.path("typesetter"),
                packages=list(self.settings.preamble.packages),
                tikz_libraries=list(self.settings.preamble.tikz_libraries),
                timeout=self.timeout,
                name=request.basename,
            )

            cropped_file = work_dir / "tikz-crop.pdf"
            crop = self.cropper.crop(pdf_file, cropped_file)
            if not crop.success:
                raise RenderError(
                    f"Cropping failed while {crop.failed_stage.value}",
                    path=pdf_file,
                    details=crop.errors,
                )

            destinations = {fmt: request.artifact_path(fmt) for fmt in formats}
            return self.pipeline.convert(cropped_file, destinations, request.source_file)
        finally:
            if self.keep_artifacts:
                _log_info(f"Keeping intermediate files in {work_dir}")
            else:
                shutil.rmtree(work_dir, ignore_errors=True)

    def _log_event(self, event_type: str, request: RenderRequest, **extra_fields) -> None:
        try:
            log_figure_event(
                self.events_file,
                event_type=event_type,
                figure=request.basename,
                source=request.source_file,
                **extra_fields,
            )
        except OSError as e:
            _log_error(f"Could not write figure event to {self.events_file}: {e}")

    def tool_provenance(self) -> Dict[str, str]:
        """Resolved executables, for log headers."""
        return {f"Tool {handle.name}": handle.path for handle in self.resolver.resolve_all()}

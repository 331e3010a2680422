"""
Format Conversion

Converts a cropped PDF into the requested image formats. All renderer
processes are started before any is waited on, then joined as a batch with
one shared deadline. A failed format does not affect its siblings: every
artifact that was actually produced gets stamped with the source's mtime.
Each renderer writes its merged output to its own temporary capture file.
"""

import os
import subprocess
import tempfile
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from tikzcache.contexts.rendering.cache import CacheManager
from tikzcache.contexts.rendering.exceptions import ConversionError
from tikzcache.contexts.tooling.exceptions import ToolError, ToolTimeoutError
from tikzcache.contexts.tooling.platform_ops import PlatformOps
from tikzcache.contexts.tooling.resolver import ToolResolver


class JobStatus(Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class ConversionJob:
    """
    One output format for one cropped PDF.

    Attributes:
        fmt: Output format tag ("png", "svg")
        source: Cropped PDF (read-only, shared by sibling jobs)
        destination: File the renderer writes
        status: PENDING until the renderer has been joined
        error: Failure description (FAILED only)
        output: Merged stdout/stderr of the renderer
        returncode: Renderer exit code (None if it never ran to completion)
    """

    fmt: str
    source: Path
    destination: Path
    status: JobStatus = JobStatus.PENDING
    error: Optional[str] = None
    output: str = ""
    returncode: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status is JobStatus.SUCCEEDED


@dataclass(frozen=True)
class Renderer:
    """
    External program producing one format.

    Attributes:
        fmt: Format tag it produces
        tool: Logical tool name resolved through ToolResolver
        build_args: (source, destination) -> arguments after the executable
    """

    fmt: str
    tool: str
    build_args: Callable[[Path, Path], List[str]]


def bitmap_renderer(density: int = 300, quality: int = 100) -> Renderer:
    """ImageMagick PNG renderer: rasterize at density dpi and trim the border."""

    def build_args(source: Path, destination: Path) -> List[str]:
        return [
            "-density",
            str(density),
            str(source),
            "-trim",
            "+repage",
            "-quality",
            str(quality),
            str(destination),
        ]

    return Renderer(fmt="png", tool="bitmap_converter", build_args=build_args)


def vector_renderer() -> Renderer:
    """dvisvgm SVG renderer: exact bounding box, glyphs as paths (no fonts)."""

    def build_args(source: Path, destination: Path) -> List[str]:
        return ["--pdf", "--exact-bbox", "--no-fonts", str(source), "-o", str(destination)]

    return Renderer(fmt="svg", tool="vector_converter", build_args=build_args)


def default_renderers(density: int = 300, quality: int = 100) -> Dict[str, Renderer]:
    return {"png": bitmap_renderer(density, quality), "svg": vector_renderer()}


class ConversionPipeline:
    """Runs format renderers concurrently and stamps what they produce."""

    def __init__(
        self,
        ops: PlatformOps,
        resolver: ToolResolver,
        cache: CacheManager,
        renderers: Optional[Dict[str, Renderer]] = None,
        timeout: Optional[float] = None,
    ):
        self.ops = ops
        self.resolver = resolver
        self.cache = cache
        self.renderers = renderers if renderers is not None else default_renderers()
        self.timeout = timeout

    def command(self, job: ConversionJob) -> List[str]:
        """Full argument vector for a job."""
        renderer = self.renderers[job.fmt]
        return [self.resolver.path(renderer.tool), *renderer.build_args(job.source, job.destination)]

    def convert(
        self, cropped_pdf: Path, destinations: Dict[str, Path], source_file: Path
    ) -> Dict[str, ConversionJob]:
        """
        Produce every requested format from a cropped PDF.

        Args:
            cropped_pdf: Cropped single-page PDF
            destinations: Format tag -> output path
            source_file: File whose mtime the outputs are stamped with

        Returns:
            Format tag -> finished ConversionJob (SUCCEEDED or FAILED)
        """
        jobs = {
            fmt: ConversionJob(fmt=fmt, source=Path(cropped_pdf), destination=Path(destination))
            for fmt, destination in destinations.items()
        }

        running: Dict[str, Tuple[subprocess.Popen, Path]] = {}
        try:
            for fmt, job in jobs.items():
                if fmt not in self.renderers:
                    self._fail(job, "no renderer for this format")
                    continue
                capture = _capture_file(fmt)
                try:
                    running[fmt] = (self.ops.start(self.command(job), output=capture), capture)
                except ToolError as e:
                    capture.unlink(missing_ok=True)
                    self._fail(job, str(e))

            deadline = None if self.timeout is None else time.monotonic() + self.timeout
            for fmt, (process, capture) in running.items():
                self._join(jobs[fmt], process, capture, deadline)
        finally:
            for process, capture in running.values():
                if process.poll() is None:
                    process.kill()
                    process.wait()
                capture.unlink(missing_ok=True)

        for job in jobs.values():
            if job.succeeded:
                try:
                    self.cache.stamp([job.destination], source_file)
                except OSError as e:
                    self._fail(job, f"could not stamp output: {e}")

        return jobs

    def _join(
        self,
        job: ConversionJob,
        process: subprocess.Popen,
        capture: Path,
        deadline: Optional[float],
    ):
        timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
            job.output = _read_capture(capture)
            self._fail(job, str(ToolTimeoutError(self.renderers[job.fmt].tool, self.timeout)))
            return

        job.output = _read_capture(capture)
        job.returncode = process.returncode

        if process.returncode != 0:
            self._fail(job, f"renderer exited with status {process.returncode}")
        elif not job.destination.exists():
            self._fail(job, "renderer produced no output file")
        else:
            job.status = JobStatus.SUCCEEDED

    def _fail(self, job: ConversionJob, message: str):
        job.status = JobStatus.FAILED
        job.error = str(ConversionError(job.fmt, message))
        # A partial file left behind must not be mistaken for a fresh artifact
        job.destination.unlink(missing_ok=True)


def _capture_file(fmt: str) -> Path:
    """Empty temporary file that receives one renderer's merged output."""
    fd, name = tempfile.mkstemp(prefix=f"tikzcache-{fmt}-", suffix=".out")
    os.close(fd)
    return Path(name)


def _read_capture(capture: Path) -> str:
    try:
        return _decode(capture.read_bytes())
    except OSError:
        return ""


def _decode(output: Optional[bytes]) -> str:
    if not output:
        return ""
    return output.decode("utf-8", errors="replace")

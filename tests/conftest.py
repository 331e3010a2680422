"""Shared fixtures and test doubles."""

import subprocess
import sys
import threading
from pathlib import Path

import pytest
from loguru import logger

from tikzcache.contexts.tooling.platform_ops import PosixOps

FAKE_PDF = b"%PDF-1.5\n% fake single-page document\n%%EOF\n"
DEFAULT_BBOX_OUTPUT = "%%BoundingBox: 10 20 110 220\n%%HiResBoundingBox: 10.5 20.5 109.5 219.5\n"


@pytest.fixture(autouse=True)
def quiet_logging():
    """Only let warnings and errors through to the test output."""
    logger.remove()
    logger.add(sys.stderr, level="WARNING")
    yield
    logger.remove()


class FakeOps(PosixOps):
    """
    Platform double that simulates the external tools.

    Every tool "resolves" to /usr/bin/<name>. run() and start() record the
    command and write the file the real tool would have produced, except for
    tools listed in fail_tools, which exit non-zero and produce nothing.
    """

    def __init__(self, bbox_output: str = DEFAULT_BBOX_OUTPUT, fail_tools=(), available=None):
        self.bbox_output = bbox_output
        self.fail_tools = set(fail_tools)
        self.available = available
        self.commands = []
        self.cwds = []
        self.programs = []
        self._lock = threading.Lock()

    def which(self, name):
        if self.available is None:
            return f"/usr/bin/{name}"
        return self.available.get(name)

    def _record(self, args, cwd=None):
        with self._lock:
            self.commands.append(args)
            self.cwds.append(cwd)

    def tools_run(self):
        return [Path(command[0]).name for command in self.commands]

    def run(self, args, cwd=None, output=None, timeout=None):
        args = [str(arg) for arg in args]
        self._record(args, cwd)
        tool = Path(args[0]).name

        if output is not None:
            Path(output).write_text("" if tool in self.fail_tools else self._output_for(tool))
        if tool in self.fail_tools:
            return 1

        if tool in ("lualatex", "luatex"):
            tex_file = Path(cwd) / args[-1]
            with self._lock:
                self.programs.append(tex_file.read_text())
            (Path(cwd) / f"{tex_file.stem}.pdf").write_bytes(FAKE_PDF)
        return 0

    def _output_for(self, tool):
        if tool == "gs":
            return self.bbox_output
        return ""

    def start(self, args, cwd=None, output=None):
        args = [str(arg) for arg in args]
        self._record(args, cwd)
        tool = Path(args[0]).name

        code = 1 if tool in self.fail_tools else 0
        if code == 0:
            # Both renderers take the destination as their last argument
            Path(args[-1]).write_bytes(b"image:" + tool.encode())

        if output is not None:
            Path(output).write_text(f"{tool}: exit {code}\n")
        return subprocess.Popen(
            [sys.executable, "-c", f"raise SystemExit({code})"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )


@pytest.fixture
def fake_ops():
    return FakeOps()


@pytest.fixture
def fake_pdf(tmp_path):
    pdf = tmp_path / "figure.pdf"
    pdf.write_bytes(FAKE_PDF)
    return pdf


@pytest.fixture
def source_file(tmp_path):
    """A document whose mtime keys the cache."""
    source = tmp_path / "doc.md"
    source.write_text("# Document\n")
    return source


@pytest.fixture
def make_ops():
    """FakeOps factory for tests that need non-default tool behaviour."""
    return FakeOps

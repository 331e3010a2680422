"""
TeX Typesetting Module

Wraps diagram source in a standalone document and runs a TeX engine on it.
Also used by the cropper to run its generated program.
"""

import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from tikzcache.contexts.rendering.exceptions import TypesetError
from tikzcache.contexts.rendering.logger import _log_warning, log_compilation_result
from tikzcache.contexts.rendering.templates import templates
from tikzcache.contexts.tooling.platform_ops import PlatformOps
from tikzcache.utils.pdf_processing import page_count

# TeX intermediate files created during compilation
LATEX_ARTIFACTS = [".aux", ".log", ".out", ".toc"]

DEFAULT_PACKAGES = ["tikz", "xcolor"]
DEFAULT_TIKZ_LIBRARIES = ["trees", "positioning", "arrows.meta", "shadows"]


@dataclass
class CompilationResult:
    """
    Result of a TeX engine run.

    Attributes:
        success: Whether the engine produced a PDF
        pdf_path: Path to generated PDF (None if failed)
        returncode: Engine exit code
        errors: List of parsed TeX errors
        warnings: List of parsed TeX warnings
        page_count: Number of pages in generated PDF (None if not available)
    """

    success: bool
    pdf_path: Optional[Path] = None
    returncode: Optional[int] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    page_count: Optional[int] = None


def _parse_latex_log(log_content: str) -> tuple[List[str], List[str]]:
    """
    Parse TeX log file for errors and warnings.

    Args:
        log_content: Content of the .log file

    Returns:
        Tuple of (errors, warnings)
    """
    errors = []
    warnings = []

    # TeX error pattern: "! Error message"
    error_pattern = re.compile(r"^! (.+)$", re.MULTILINE)
    for match in error_pattern.finditer(log_content):
        errors.append(match.group(1).strip())

    # Additional error patterns that don't start with "!"
    additional_error_patterns = [
        r"Undefined control sequence",
        r"File ended while scanning use of",
        r"Emergency stop",
    ]
    for pattern in additional_error_patterns:
        if re.search(pattern, log_content):
            match = re.search(rf"({pattern}.*?)$", log_content, re.MULTILINE)
            if match and match.group(1) not in errors:
                errors.append(match.group(1))

    warning_patterns = [
        r"LaTeX Warning: (.+)",
        r"Package \w+ Warning: (.+)",
        r"Overfull \\hbox \((.+)\)",
        r"Underfull \\hbox \((.+)\)",
    ]

    for pattern in warning_patterns:
        compiled = re.compile(pattern, re.MULTILINE)
        for match in compiled.finditer(log_content):
            warnings.append(match.group(1).strip())

    return errors, warnings


def standalone_document(
    code: str,
    packages: Sequence[str] = DEFAULT_PACKAGES,
    tikz_libraries: Sequence[str] = DEFAULT_TIKZ_LIBRARIES,
) -> str:
    """
    Wrap diagram source in a minimal standalone LaTeX document.

    Args:
        code: Diagram source (e.g., a tikzpicture environment)
        packages: Packages loaded with \\usepackage
        tikz_libraries: Libraries loaded with \\usetikzlibrary

    Returns:
        Complete LaTeX document text
    """
    return templates.render(
        "standalone",
        code=code.strip("\n"),
        packages=list(packages),
        tikz_libraries=list(tikz_libraries),
    )


def compile_latex(
    tex_file: Path,
    ops: PlatformOps,
    engine: str,
    interaction: str = "nonstopmode",
    extra_args: Sequence[str] = (),
    timeout: Optional[float] = None,
) -> CompilationResult:
    """
    Run a TeX engine on a file, in the file's directory.

    Pure compilation function - assumes the directory is private to this run.

    Args:
        tex_file: Path to the .tex file to compile
        ops: Platform operations used to run the engine
        engine: Engine executable (e.g., resolved lualatex path)
        interaction: TeX interaction mode ("nonstopmode", "batchmode")
        extra_args: Arguments placed before the interaction flag
        timeout: Seconds before the engine is killed

    Returns:
        CompilationResult; success means a PDF exists afterwards

    Raises:
        ToolNotFoundError: If the engine does not exist
        ToolLaunchError: If the engine exists but cannot be started
        ToolTimeoutError: If the engine hangs past the timeout
    """
    compile_dir = tex_file.parent
    stem = tex_file.stem

    # Clean any existing output files to ensure unambiguous success detection
    for ext in [".pdf"] + LATEX_ARTIFACTS:
        old_file = compile_dir / f"{stem}{ext}"
        if old_file.exists():
            old_file.unlink()

    cmd = [engine, *extra_args, f"-interaction={interaction}", tex_file.name]
    returncode = ops.run(cmd, cwd=compile_dir, timeout=timeout)

    errors = []
    warnings = []
    log_file = compile_dir / f"{stem}.log"
    if log_file.exists():
        # TeX writes log files in latin-1 (font metadata contains non-UTF-8)
        errors, warnings = _parse_latex_log(log_file.read_text(encoding="latin-1"))

    pdf_path = compile_dir / f"{stem}.pdf"
    if not pdf_path.exists():
        if not errors:
            errors.append("PDF file was not generated")
        return CompilationResult(
            success=False, returncode=returncode, errors=errors, warnings=warnings
        )

    return CompilationResult(
        success=True,
        pdf_path=pdf_path,
        returncode=returncode,
        errors=errors,
        warnings=warnings,
        page_count=page_count(pdf_path),
    )


def typeset_figure(
    code: str,
    work_dir: Path,
    ops: PlatformOps,
    engine: str,
    packages: Sequence[str] = DEFAULT_PACKAGES,
    tikz_libraries: Sequence[str] = DEFAULT_TIKZ_LIBRARIES,
    timeout: Optional[float] = None,
    name: str = "tikz",
) -> Path:
    """
    Typeset diagram source into a single-page PDF inside work_dir.

    Args:
        code: Diagram source
        work_dir: Private directory for this figure (must exist)
        ops: Platform operations
        engine: Typesetting engine executable
        packages: Preamble packages
        tikz_libraries: Preamble TikZ libraries
        timeout: Seconds before the engine is killed
        name: Figure name used in log messages

    Returns:
        Path to the typeset PDF (work_dir/tikz.pdf)

    Raises:
        TypesetError: If the engine produced no PDF
        ToolNotFoundError, ToolTimeoutError: From the engine invocation
    """
    tex_file = work_dir / "tikz.tex"
    tex_file.write_text(standalone_document(code, packages, tikz_libraries), encoding="utf-8")

    start_time = time.time()
    result = compile_latex(tex_file, ops, engine, interaction="nonstopmode", timeout=timeout)
    log_compilation_result(name, result, time.time() - start_time)

    if not result.success:
        raise TypesetError(
            f"{Path(engine).name} produced no PDF for {name}", path=tex_file, details=result.errors
        )

    if result.page_count is not None and result.page_count > 1:
        _log_warning(f"{name}: document has {result.page_count} pages, only page 1 is used")

    return result.pdf_path

#!/usr/bin/env python3
"""
TikZ Figure Rendering CLI

Renders TikZ diagram sources to cached PNG/SVG images and exposes the
individual pipeline stages for debugging.

Commands:
    render - Render diagram source files to images
    status - Show whether a figure's images are fresh
    tools  - Show which executables the pipeline will use
    bbox   - Print the bounding box of a single-page PDF
    crop   - Crop a single-page PDF to its bounding box
    events - Show recent figure events

Examples:\n

    render_figures.py render diagram.tikz                       # Cache keyed on diagram.tikz

    render_figures.py render a.tikz b.tikz --source notes.md    # Cache keyed on notes.md

    render_figures.py render diagram.tikz -c "System overview"  # fig01-system-overview.*

    render_figures.py tools                                     # Resolved executables

    render_figures.py crop figure.pdf figure-crop.pdf           # Crop only
"""

import json
from pathlib import Path
from typing import List, Optional

import typer
from typing_extensions import Annotated

from tikzcache.contexts.figures import FigureRenderer, make_basename
from tikzcache.contexts.rendering import Cropper, extract_bounding_box
from tikzcache.contexts.rendering.exceptions import RenderError
from tikzcache.contexts.tooling import ToolError, ToolResolver, current_platform
from tikzcache.utils.config import load_settings, validate_formats
from tikzcache.utils.event_logging import get_recent_events
from tikzcache.utils.logger import setup_logger
from tikzcache.utils.timestamp import now

app = typer.Typer(
    help="Render TikZ diagrams to cached PNG/SVG images",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _load(config: Optional[Path], formats: Optional[List[str]] = None):
    try:
        settings = load_settings(config)
        if formats:
            settings.output_formats = [fmt.lower() for fmt in formats]
            if settings.display_format not in settings.output_formats:
                settings.display_format = settings.output_formats[0]
            validate_formats(list(settings.output_formats), settings.display_format)
        return settings
    except (FileNotFoundError, ValueError) as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def _setup_logging(settings, verbose: bool, extra_provenance: dict = None) -> Optional[Path]:
    log_dir = Path(settings.logs_path) / f"render_{now()}" if settings.logs_path else None
    return setup_logger(
        context_name="render",
        log_dir=log_dir,
        extra_provenance=extra_provenance,
        console_level="DEBUG" if verbose else "INFO",
    )


@app.command("render")
def render_command(
    inputs: Annotated[
        List[Path],
        typer.Argument(help="Files containing TikZ source (one figure per file)", exists=True),
    ],
    source: Annotated[
        Optional[Path],
        typer.Option(
            "--source",
            "-s",
            help="Document whose modification time keys the cache (default: each input file)",
            exists=True,
        ),
    ] = None,
    caption: Annotated[
        Optional[str],
        typer.Option("--caption", "-c", help="Caption used in the file name (single input only)"),
    ] = None,
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--output-dir", "-o", help="Images directory (default: settings images_dir)"),
    ] = None,
    formats: Annotated[
        Optional[List[str]],
        typer.Option("--format", "-f", help="Output format (repeatable): png, svg"),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", help="YAML settings file"),
    ] = None,
    workers: Annotated[
        int,
        typer.Option("--workers", "-w", help="Figures rendered concurrently", min=1, max=16),
    ] = 1,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show commands and cache decisions"),
    ] = False,
):
    """
    Render TikZ source files to images.

    Figures are numbered in argument order. Images are only regenerated when
    missing or when their mtime differs from the source document's.

    Examples:\n

        $ render_figures.py render diagram.tikz

        $ render_figures.py render fig1.tikz fig2.tikz --source paper.md -w 2

        $ render_figures.py render diagram.tikz -f png -o build/images
    """
    if caption and len(inputs) > 1:
        typer.secho("Error: --caption only applies to a single input\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    settings = _load(config, formats)
    renderer = FigureRenderer(settings=settings, output_dir=output_dir)
    log_file = _setup_logging(settings, verbose, renderer.tool_provenance())

    figures = [(path.read_text(encoding="utf-8"), caption or "") for path in inputs]
    if source is not None:
        results = renderer.render_all(figures, source_file=source, max_workers=workers)
    else:
        results = [
            renderer.render(code, source_file=path, caption=figure_caption)
            for path, (code, figure_caption) in zip(inputs, figures)
        ]

    typer.echo("")
    failed = 0
    for result in results:
        name = result.request.basename
        state = "regenerated" if result.regenerated else "cached"
        if result.success:
            typer.secho(f"✓ {name} ({state})", fg=typer.colors.GREEN, bold=True)
        else:
            failed += 1
            typer.secho(f"✗ {name} ({len(result.errors)} errors)", fg=typer.colors.RED, bold=True)
            for error in result.errors[:10]:
                typer.secho(f"  - {error.splitlines()[0]}", fg=typer.colors.RED)
        for fmt, path in sorted(result.outputs.items()):
            typer.echo(f"  {fmt}: {path}")

    if log_file:
        typer.echo(f"  Log: {log_file}")
    typer.echo("")

    raise typer.Exit(code=0 if failed == 0 else 1)


@app.command("status")
def status_command(
    source: Annotated[Path, typer.Argument(help="Document the figure belongs to", exists=True)],
    sequence: Annotated[int, typer.Argument(help="Figure number", min=1)],
    caption: Annotated[
        Optional[str], typer.Option("--caption", "-c", help="Caption of the figure")
    ] = None,
    output_dir: Annotated[
        Optional[Path], typer.Option("--output-dir", "-o", help="Images directory")
    ] = None,
    config: Annotated[Optional[Path], typer.Option("--config", help="YAML settings file")] = None,
):
    """
    Show whether a figure's images are fresh with respect to its document.

    Examples:\n

        $ render_figures.py status paper.md 3 --caption "System overview"
    """
    settings = _load(config)
    renderer = FigureRenderer(settings=settings, output_dir=output_dir)
    basename = make_basename(sequence, caption or "", settings.caption_max_length)

    stale_count = 0
    for fmt in settings.output_formats:
        artifact = renderer.output_dir / f"{basename}.{fmt}"
        entry = renderer.cache.entry(artifact, source)
        if entry.is_fresh:
            typer.secho(f"✓ {artifact} is fresh", fg=typer.colors.GREEN)
        else:
            stale_count += 1
            reason = "missing" if entry.artifact_mtime is None else "mtime differs from source"
            typer.secho(f"✗ {artifact} is stale ({reason})", fg=typer.colors.YELLOW)

    raise typer.Exit(code=0 if stale_count == 0 else 1)


@app.command("tools")
def tools_command(
    config: Annotated[Optional[Path], typer.Option("--config", help="YAML settings file")] = None,
):
    """Show which executable each pipeline tool resolves to."""
    settings = _load(config)
    ops = current_platform()
    resolver = ToolResolver.from_settings(settings, ops)

    missing = 0
    for handle in resolver.resolve_all():
        if handle.resolved:
            typer.secho(f"✓ {handle.name}: {handle.path} ({handle.strategy})", fg=typer.colors.GREEN)
        else:
            missing += 1
            candidates = ", ".join(resolver.candidates[handle.name])
            typer.secho(f"✗ {handle.name}: not found (tried {candidates})", fg=typer.colors.RED)

    raise typer.Exit(code=0 if missing == 0 else 1)


@app.command("bbox")
def bbox_command(
    pdf: Annotated[Path, typer.Argument(help="Single-page PDF", exists=True)],
    config: Annotated[Optional[Path], typer.Option("--config", help="YAML settings file")] = None,
):
    """Print the bounding box (x1 y1 x2 y2, in bp) of a PDF's first page."""
    settings = _load(config)
    ops = current_platform()
    resolver = ToolResolver.from_settings(settings, ops)

    try:
        bbox = extract_bounding_box(
            pdf, ops, resolver.path("raster_interpreter"), timeout=settings.tool_timeout
        )
    except (RenderError, ToolError) as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.echo(f"{bbox}  ({bbox.width:g} x {bbox.height:g} bp)")


@app.command("crop")
def crop_command(
    pdf: Annotated[Path, typer.Argument(help="Single-page PDF", exists=True)],
    output: Annotated[Path, typer.Argument(help="Cropped PDF to write")],
    config: Annotated[Optional[Path], typer.Option("--config", help="YAML settings file")] = None,
):
    """Crop a single-page PDF to its bounding box."""
    settings = _load(config)
    ops = current_platform()
    cropper = Cropper(ops, ToolResolver.from_settings(settings, ops), timeout=settings.tool_timeout)

    result = cropper.crop(pdf, output)
    if not result.success:
        typer.secho(
            f"✗ Crop failed while {result.failed_stage.value}", fg=typer.colors.RED, bold=True
        )
        for error in result.errors:
            typer.secho(f"  - {error}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.secho(f"✓ Cropped to {result.bounding_box}", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  PDF: {result.output_path}")


@app.command("events")
def events_command(
    n: Annotated[int, typer.Option("--num", "-n", help="Number of recent events to show")] = 10,
    figure: Annotated[
        Optional[str], typer.Option("--figure", help="Filter to events for this figure basename")
    ] = None,
    event_type: Annotated[
        Optional[str], typer.Option("--event-type", "-e", help="Filter to events of this type")
    ] = None,
    compact: Annotated[
        bool, typer.Option("--compact", help="Print one event per line (no pretty formatting)")
    ] = False,
    config: Annotated[Optional[Path], typer.Option("--config", help="YAML settings file")] = None,
):
    """
    Show the last n figure events (cache hits, regenerations, failures).

    Examples:\n

        $ render_figures.py events                       # Last 10 events

        $ render_figures.py events -e figure_failed      # Last 10 failures

        $ render_figures.py events --figure fig03 -n 5   # Last 5 events for one figure
    """
    settings = _load(config)
    if not settings.events_file:
        typer.secho(
            "Event logging is disabled (set events_file or TIKZCACHE_EVENTS_FILE)",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    events = get_recent_events(Path(settings.events_file), n=n, figure=figure, event_type=event_type)
    if not events:
        typer.secho("No events found", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)

    if not compact:
        typer.secho(f"\nShowing last {len(events)} event(s):", fg=typer.colors.BLUE)
        typer.echo("")

    for event in events:
        if compact:
            typer.echo(json.dumps(event))
        else:
            typer.echo(json.dumps(event, indent=2))
            typer.echo("")


if __name__ == "__main__":
    app()

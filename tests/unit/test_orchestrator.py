"""Unit tests for FigureRenderer with simulated external tools."""

import json
import os
import tempfile

import pytest

from tikzcache.contexts.figures.orchestrator import FigureRenderer
from tikzcache.utils.config import load_settings
from tikzcache.utils.event_logging import get_recent_events

DIAGRAM = r"""
\begin{tikzpicture}
  \node[draw] (a) {A};
  \node[draw, right=of a] (b) {B};
  \draw[->] (a) -- (b);
\end{tikzpicture}
"""

FULL_RUN = ["lualatex", "gs", "luatex", "magick", "dvisvgm"]


@pytest.fixture
def settings(tmp_path):
    settings = load_settings()
    settings.images_dir = str(tmp_path / "images")
    settings.events_file = str(tmp_path / "logs" / "figure_events.jsonl")
    settings.output_formats = ["png", "svg"]
    settings.display_format = "svg"
    settings.keep_artifacts = False
    return settings


@pytest.fixture(autouse=True)
def private_tempdir(tmp_path, monkeypatch):
    """Route per-figure work directories into the test's tmp_path."""
    tempdir = tmp_path / "tmp"
    tempdir.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(tempdir))
    return tempdir


def _renderer(settings, ops):
    return FigureRenderer(settings=settings, ops=ops)


@pytest.mark.unit
def test_first_render_generates_all_formats(settings, fake_ops, source_file, tmp_path):
    result = _renderer(settings, fake_ops).render(DIAGRAM, source_file, caption="Pipeline")

    assert result.success, result.errors
    assert result.regenerated
    assert result.request.basename == "fig01-pipeline"
    assert fake_ops.tools_run() == FULL_RUN

    images = tmp_path / "images"
    for fmt in ("png", "svg"):
        path = images / f"fig01-pipeline.{fmt}"
        assert result.outputs[fmt] == path
        assert path.exists()
        assert os.stat(path).st_mtime_ns == os.stat(source_file).st_mtime_ns


@pytest.mark.unit
def test_typeset_document_contains_diagram_and_preamble(settings, fake_ops, source_file):
    _renderer(settings, fake_ops).render(DIAGRAM, source_file)

    document = fake_ops.programs[0]
    assert r"\documentclass[border=0pt]{standalone}" in document
    assert r"\usepackage{tikz}" in document
    assert r"\usetikzlibrary{trees, positioning, arrows.meta, shadows}" in document
    assert r"\node[draw] (a) {A};" in document


@pytest.mark.unit
def test_second_run_is_a_cache_hit(settings, make_ops, source_file):
    """Test an unchanged document runs no external tool at all."""
    first = _renderer(settings, make_ops()).render(DIAGRAM, source_file)
    assert first.success

    ops = make_ops()
    second = _renderer(settings, ops).render(DIAGRAM, source_file)

    assert second.success
    assert not second.regenerated
    assert ops.commands == []
    assert second.outputs == first.outputs


@pytest.mark.unit
def test_source_change_triggers_regeneration(settings, make_ops, source_file):
    _renderer(settings, make_ops()).render(DIAGRAM, source_file)

    stat = os.stat(source_file)
    os.utime(source_file, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5 * 10**9))

    ops = make_ops()
    result = _renderer(settings, ops).render(DIAGRAM, source_file)

    assert result.regenerated
    assert ops.tools_run() == FULL_RUN


@pytest.mark.unit
def test_figures_numbered_in_call_order(settings, fake_ops, source_file):
    renderer = _renderer(settings, fake_ops)

    names = [
        renderer.render(DIAGRAM, source_file).request.basename,
        renderer.render(DIAGRAM, source_file, caption="Data Flow").request.basename,
        renderer.render(DIAGRAM, source_file).request.basename,
    ]

    assert names == ["fig01", "fig02-data-flow", "fig03"]
    assert renderer.figure_count == 3


@pytest.mark.unit
def test_failed_format_keeps_sibling_and_is_retried_alone(settings, make_ops, source_file, tmp_path):
    """Test only the missing format is converted on the next run."""
    first = _renderer(settings, make_ops(fail_tools={"dvisvgm"})).render(DIAGRAM, source_file)

    assert not first.success
    assert first.regenerated
    assert set(first.outputs) == {"png"}
    assert any(error.startswith("svg:") for error in first.errors)
    assert not (tmp_path / "images" / "fig01.svg").exists()
    # Display format missing: fall back to what was produced
    assert first.image_path() == tmp_path / "images" / "fig01.png"

    ops = make_ops()
    second = _renderer(settings, ops).render(DIAGRAM, source_file)

    assert second.success
    assert ops.tools_run() == ["lualatex", "gs", "luatex", "dvisvgm"]
    assert set(second.outputs) == {"png", "svg"}
    assert second.image_path() == tmp_path / "images" / "fig01.svg"


@pytest.mark.unit
def test_typeset_failure_is_reported_not_raised(settings, make_ops, source_file, tmp_path):
    ops = make_ops(fail_tools={"lualatex"})

    result = _renderer(settings, ops).render(r"\begin{tikzpicture} \undefined \end{tikzpicture}", source_file)

    assert not result.success
    assert result.outputs == {}
    assert "produced no PDF" in result.errors[0]
    assert ops.tools_run() == ["lualatex"]
    assert list((tmp_path / "images").iterdir()) == []
    # The expected location is still reported for the document to reference
    assert result.image_path() == tmp_path / "images" / "fig01.svg"


@pytest.mark.unit
def test_crop_failure_is_reported(settings, make_ops, source_file):
    ops = make_ops(bbox_output="")

    result = _renderer(settings, ops).render(DIAGRAM, source_file)

    assert not result.success
    assert "Cropping failed while measuring" in result.errors[0]
    assert ops.tools_run() == ["lualatex", "gs"]


@pytest.mark.unit
def test_missing_source_file(settings, fake_ops, tmp_path):
    result = _renderer(settings, fake_ops).render(DIAGRAM, tmp_path / "missing.md")

    assert not result.success
    assert "Source file not found" in result.errors[0]
    assert fake_ops.commands == []


@pytest.mark.unit
def test_work_directories_removed(settings, fake_ops, source_file, private_tempdir):
    _renderer(settings, fake_ops).render(DIAGRAM, source_file)

    assert list(private_tempdir.iterdir()) == []


@pytest.mark.unit
def test_keep_artifacts_leaves_work_directory(settings, fake_ops, source_file, private_tempdir):
    settings.keep_artifacts = True

    _renderer(settings, fake_ops).render(DIAGRAM, source_file)

    kept = list(private_tempdir.glob("tikzcache-fig01-*"))
    assert len(kept) == 1
    assert (kept[0] / "tikz.tex").exists()


@pytest.mark.unit
def test_render_all_numbers_in_input_order(settings, fake_ops, source_file, tmp_path):
    renderer = _renderer(settings, fake_ops)
    figures = [(DIAGRAM, "First"), (DIAGRAM, ""), (DIAGRAM, "Third one"), (DIAGRAM, "")]

    results = renderer.render_all(figures, source_file, max_workers=4)

    assert [r.request.basename for r in results] == ["fig01-first", "fig02", "fig03-third-one", "fig04"]
    assert all(r.success for r in results)
    assert renderer.figure_count == 4
    assert len(list((tmp_path / "images").iterdir())) == 8


@pytest.mark.unit
def test_render_all_empty(settings, fake_ops, source_file):
    assert _renderer(settings, fake_ops).render_all([], source_file) == []


@pytest.mark.unit
def test_single_output_format(settings, fake_ops, source_file):
    settings.output_formats = ["png"]
    settings.display_format = "png"

    result = _renderer(settings, fake_ops).render(DIAGRAM, source_file)

    assert set(result.outputs) == {"png"}
    assert "dvisvgm" not in fake_ops.tools_run()


@pytest.mark.unit
def test_unsupported_format_rejected(settings, fake_ops):
    settings.output_formats = ["png", "eps"]

    with pytest.raises(ValueError, match="eps"):
        _renderer(settings, fake_ops)


@pytest.mark.unit
def test_events_are_logged(settings, make_ops, source_file, tmp_path):
    _renderer(settings, make_ops()).render(DIAGRAM, source_file, caption="Pipeline")
    _renderer(settings, make_ops()).render(DIAGRAM, source_file, caption="Pipeline")

    events_file = tmp_path / "logs" / "figure_events.jsonl"
    lines = events_file.read_text().splitlines()
    assert [json.loads(line)["event_type"] for line in lines] == ["figure_rendered", "figure_cached"]

    rendered = get_recent_events(events_file, event_type="figure_rendered")
    assert rendered[0]["figure"] == "fig01-pipeline"
    assert rendered[0]["source"] == str(source_file)
    assert rendered[0]["produced"] == ["png", "svg"]

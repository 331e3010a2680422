"""Unit tests for bounding box parsing and measurement."""

import pytest

from tikzcache.contexts.rendering.bbox import BoundingBox, extract_bounding_box, parse_bounding_box
from tikzcache.contexts.rendering.exceptions import BoundingBoxParseError


@pytest.mark.unit
def test_parse_integer_box():
    bbox = parse_bounding_box(["%%BoundingBox: 10 20 110 220\n"])

    assert bbox == BoundingBox(10, 20, 110, 220)
    assert bbox.width == 100
    assert bbox.height == 200


@pytest.mark.unit
def test_parse_negative_and_fractional_values():
    bbox = parse_bounding_box(["%%BoundingBox: -12.5 -3 40.25 7\n"])

    assert bbox == BoundingBox(-12.5, -3, 40.25, 7)


@pytest.mark.unit
def test_parse_skips_noise_and_ignores_hires_line():
    lines = [
        "GPL Ghostscript 10.02.1 (2023-11-01)\n",
        "Processing pages 1 through 1.\n",
        "%%HiResBoundingBox: 1.5 2.5 3.5 4.5\n",
        "%%BoundingBox: 1 2 4 5\n",
    ]

    assert parse_bounding_box(lines) == BoundingBox(1, 2, 4, 5)


@pytest.mark.unit
def test_parse_first_match_wins():
    lines = ["%%BoundingBox: 0 0 10 10\n", "%%BoundingBox: 0 0 99 99\n"]

    assert parse_bounding_box(lines) == BoundingBox(0, 0, 10, 10)


@pytest.mark.unit
def test_parse_no_match_raises():
    with pytest.raises(BoundingBoxParseError, match="no bounding box"):
        parse_bounding_box(["Error: /undefined in --file--\n"])


@pytest.mark.unit
def test_parse_empty_page_raises():
    """Test a blank page (zero-size box) is rejected rather than cropped to nothing."""
    with pytest.raises(BoundingBoxParseError, match="Empty bounding box"):
        parse_bounding_box(["%%BoundingBox: 0 0 0 0\n"])


@pytest.mark.unit
def test_parse_malformed_number_raises():
    with pytest.raises(BoundingBoxParseError, match="Malformed"):
        parse_bounding_box(["%%BoundingBox: 1.2.3 0 10 10\n"])


@pytest.mark.unit
def test_parse_inverted_box_raises():
    with pytest.raises(BoundingBoxParseError):
        parse_bounding_box(["%%BoundingBox: 50 50 10 10\n"])


@pytest.mark.unit
def test_bounding_box_str():
    assert str(BoundingBox(-1.5, 0, 10, 20.25)) == "-1.5 0 10 20.25"


@pytest.mark.unit
def test_extract_runs_bbox_device_and_cleans_up(fake_ops, fake_pdf, tmp_path):
    work_dir = tmp_path / "work"
    work_dir.mkdir()

    bbox = extract_bounding_box(fake_pdf, fake_ops, "gs", work_dir=work_dir)

    assert bbox == BoundingBox(10, 20, 110, 220)
    command = fake_ops.commands[0]
    assert command[0] == "gs"
    assert "-sDEVICE=bbox" in command
    assert command[-1] == str(fake_pdf)
    assert list(work_dir.iterdir()) == []


@pytest.mark.unit
def test_extract_cleans_up_on_parse_failure(make_ops, fake_pdf, tmp_path):
    ops = make_ops(bbox_output="nothing useful\n")
    work_dir = tmp_path / "work"
    work_dir.mkdir()

    with pytest.raises(BoundingBoxParseError):
        extract_bounding_box(fake_pdf, ops, "gs", work_dir=work_dir)

    assert list(work_dir.iterdir()) == []

"""Unit tests for figure file naming."""

import pytest

from tikzcache.contexts.figures.naming import make_basename, sanitize_filename


@pytest.mark.unit
@pytest.mark.parametrize(
    "text, expected",
    [
        ("System Overview", "system-overview"),
        ("Data flow: v2 (draft)", "data-flow-v2-draft"),
        ("  leading and trailing  ", "leading-and-trailing"),
        ("a -- b", "a-b"),
        ("Ünïcode ñame", "ncode-ame"),
        ("  --  ", ""),
        ("", ""),
    ],
)
def test_sanitize_filename(text, expected):
    assert sanitize_filename(text) == expected


@pytest.mark.unit
def test_basename_without_caption():
    assert make_basename(1) == "fig01"
    assert make_basename(12, "") == "fig12"


@pytest.mark.unit
def test_basename_with_caption():
    assert make_basename(3, "System Overview") == "fig03-system-overview"


@pytest.mark.unit
def test_basename_three_digit_sequence():
    """Test sequences past 99 are not truncated."""
    assert make_basename(100) == "fig100"


@pytest.mark.unit
def test_basename_caption_that_sanitizes_to_nothing():
    assert make_basename(2, "!!!") == "fig02"


@pytest.mark.unit
def test_basename_truncates_long_caption():
    caption = "A very long caption describing the entire architecture in detail"
    basename = make_basename(1, caption)

    slug = basename[len("fig01-"):]
    assert len(slug) <= 32
    assert caption.lower().replace(" ", "-").startswith(slug)
    assert not slug.endswith("-")


@pytest.mark.unit
def test_basename_custom_max_length():
    assert make_basename(4, "alpha beta gamma", max_length=5) == "fig04-alpha"
    assert make_basename(4, "alpha beta gamma", max_length=6) == "fig04-alpha"

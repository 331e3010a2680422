"""Unit tests for the TeX template registry and standalone document generation."""

import pytest
from jinja2 import TemplateNotFound
from jinja2.exceptions import UndefinedError

from tikzcache.contexts.rendering.templates import TemplateRegistry
from tikzcache.contexts.rendering.typesetter import standalone_document


@pytest.mark.unit
def test_template_registry_init():
    registry = TemplateRegistry()
    assert registry.templates_path.exists()
    assert registry._cache == {}


@pytest.mark.unit
def test_template_caching():
    """Test that templates are cached after first load."""
    registry = TemplateRegistry()

    template1 = registry.get_template("crop")
    assert registry.is_cached("crop")

    template2 = registry.get_template("crop")
    assert template1 is template2

    registry.clear_cache()
    assert not registry.is_cached("crop")


@pytest.mark.unit
def test_get_template_not_found():
    registry = TemplateRegistry()

    with pytest.raises(TemplateNotFound):
        registry.get_template("nonexistent")


@pytest.mark.unit
def test_missing_variable_is_an_error():
    """Test StrictUndefined catches a forgotten template variable."""
    registry = TemplateRegistry()

    with pytest.raises(UndefinedError):
        registry.render("crop", pdf_file_hex="00")


@pytest.mark.unit
def test_standalone_document_defaults():
    document = standalone_document("\\begin{tikzpicture}\\end{tikzpicture}\n")

    assert document == (
        "\\documentclass[border=0pt]{standalone}\n"
        "\\usepackage{tikz}\n"
        "\\usepackage{xcolor}\n"
        "\\usetikzlibrary{trees, positioning, arrows.meta, shadows}\n"
        "\\begin{document}\n"
        "\\begin{tikzpicture}\\end{tikzpicture}\n"
        "\\end{document}\n"
    )


@pytest.mark.unit
def test_standalone_document_without_libraries():
    document = standalone_document("x", packages=["tikz", "amsmath"], tikz_libraries=[])

    assert "\\usetikzlibrary" not in document
    assert "\\usepackage{amsmath}\n" in document


@pytest.mark.unit
def test_standalone_document_keeps_tex_braces_and_comments():
    """Test TeX syntax in the diagram is not interpreted by the template engine."""
    code = "{# not a comment #} {{ braces }} {% percent %}"

    document = standalone_document(code)

    assert code in document

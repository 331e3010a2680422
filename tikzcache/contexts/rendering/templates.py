"""
TeX Template Registry

Loads and caches the Jinja2 templates used to generate TeX sources.
"""

from pathlib import Path
from typing import Dict

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template, TemplateNotFound

TEMPLATES_PATH = Path(__file__).parent / "templates"


class TemplateRegistry:
    """
    Registry for loading and caching Jinja2 templates for TeX generation.

    Templates are stored in tikzcache/contexts/rendering/templates/{name}.tex.jinja
    and use custom delimiters to avoid conflicts with TeX syntax:
    - Variable: <<< var >>>
    - Block: <%% block %%>
    - Comment: <# comment #>
    """

    def __init__(self, templates_path: Path = None):
        if templates_path is None:
            templates_path = TEMPLATES_PATH

        self.templates_path = templates_path
        self._cache: Dict[str, Template] = {}

        self.env = Environment(
            loader=FileSystemLoader(str(templates_path)),
            # Catches silent failures
            undefined=StrictUndefined,
            # Custom delimiters to avoid TeX brace and comment conflicts
            variable_start_string="<<<",
            variable_end_string=">>>",
            block_start_string="<%%",
            block_end_string="%%>",
            comment_start_string="<#",
            comment_end_string="#>",
            trim_blocks=False,
            lstrip_blocks=False,
            keep_trailing_newline=True,
        )

    def get_template(self, name: str) -> Template:
        """
        Get a template by name, loading and caching it if necessary.

        Args:
            name: Template name without extension (e.g., 'crop')

        Raises:
            TemplateNotFound: If template file doesn't exist
        """
        if name in self._cache:
            return self._cache[name]

        template_file = f"{name}.tex.jinja"
        try:
            template = self.env.get_template(template_file)
        except TemplateNotFound as e:
            raise TemplateNotFound(
                f"Template '{name}' not found at {self.templates_path / template_file}"
            ) from e

        self._cache[name] = template
        return template

    def render(self, name: str, **context) -> str:
        """Render a template with the given variables."""
        return self.get_template(name).render(**context)

    def is_cached(self, name: str) -> bool:
        return name in self._cache

    def clear_cache(self):
        """Clear the template cache."""
        self._cache.clear()


# Shared registry; templates are immutable once loaded
templates = TemplateRegistry()

"""
Varnishkit Manifest - Template rendering.

Generated configuration files are Jinja2 templates shipped in the
``templates`` directory next to this module.
"""

from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateRenderer:
    """Render configuration file templates."""

    def __init__(self, template_dir: Optional[Path] = None):
        """
        Initialize renderer with template directory.

        Args:
            template_dir: Path to Jinja2 templates (default: bundled templates)
        """
        self.template_dir = template_dir or TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )

    def render(self, name: str, **context: Any) -> str:
        """
        Render a template.

        Args:
            name: Template file name
            **context: Template variables

        Returns:
            Rendered text
        """
        return self.env.get_template(name).render(**context)

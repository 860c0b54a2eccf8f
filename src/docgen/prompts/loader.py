"""Template loader for the stage prompt templates.

Prompt templates ship inside the package under ``docgen/prompts/templates``
so that an installed wheel carries them.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound, select_autoescape

if TYPE_CHECKING:
    from jinja2 import Template

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateLoader:
    """Loads and caches Jinja2 prompt templates.

    Undefined variables raise instead of rendering as empty strings, so a
    stage can never silently send a prompt with a missing input.

    Attributes:
        template_dir: Directory holding the ``*.j2`` templates
        env: Jinja2 Environment with configured loader and caching
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        """Initialize the template loader.

        Args:
            template_dir: Directory containing templates. Defaults to the
                packaged ``templates`` directory.
        """
        self.template_dir = template_dir or DEFAULT_TEMPLATE_DIR

        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
            cache_size=50,
            auto_reload=False,
        )

    def load_template(self, template_name: str) -> Template:
        """Load a template by name (e.g. ``"dev_plan.j2"``).

        Raises:
            jinja2.TemplateNotFound: If the template doesn't exist
        """
        return self.env.get_template(template_name)

    def list_templates(self) -> list[str]:
        """List all available template names."""
        return sorted(self.env.list_templates())

    def template_exists(self, template_name: str) -> bool:
        try:
            self.env.get_template(template_name)
            return True
        except TemplateNotFound:
            return False

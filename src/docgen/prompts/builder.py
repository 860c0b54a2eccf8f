"""Prompt builder for the text-generation stages.

Renders a stage template with the user prompt and the documents produced by
earlier stages. Document texts are exposed to templates under their kind
name (``dev_plan``, ``architecture``, ...).
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import structlog

from docgen.prompts.loader import TemplateLoader

logger = structlog.get_logger(__name__)


class PromptBuilder:
    """Builds stage prompts from Jinja2 templates.

    Attributes:
        loader: TemplateLoader instance for accessing templates
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        self.loader = TemplateLoader(template_dir=template_dir)

    def build(self, template_name: str, prompt: str, documents: Mapping[str, str]) -> str:
        """Render one stage prompt.

        Args:
            template_name: Template file name, e.g. ``"architecture.j2"``.
            prompt: The user's original request.
            documents: Earlier stage outputs keyed by document kind name.

        Returns:
            Rendered prompt text.

        Raises:
            jinja2.TemplateNotFound: If the template doesn't exist.
            jinja2.UndefinedError: If the template needs a document that
                was not supplied.
        """
        template = self.loader.load_template(template_name)
        rendered = template.render(prompt=prompt, **documents)

        logger.debug(
            "prompt_rendered",
            template=template_name,
            inputs=sorted(documents),
            length=len(rendered),
        )
        return rendered

"""Stage prompt templates for DocGen.

Public API:
    TemplateLoader: Loads the packaged Jinja2 templates.
    PromptBuilder: Renders a stage prompt from the user request and prior outputs.
"""

from docgen.prompts.builder import PromptBuilder
from docgen.prompts.loader import TemplateLoader

__all__ = [
    "TemplateLoader",
    "PromptBuilder",
]

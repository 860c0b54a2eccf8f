"""Text-generation providers for DocGen.

Public API:
    CompletionProvider: Protocol every backend satisfies.
    OpenAIProvider: Chat completions client.
    ClaudeProvider: Messages API client.
"""

from docgen.providers.base import CompletionProvider
from docgen.providers.claude_client import ClaudeProvider
from docgen.providers.openai_client import OpenAIProvider

__all__ = [
    "CompletionProvider",
    "OpenAIProvider",
    "ClaudeProvider",
]

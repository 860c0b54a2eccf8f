"""Provider capability shared by the text-generation backends.

The orchestrator binds each stage statically to one provider and one of
the two calls below. Implementations are constructed once and shared
read-only across concurrent jobs.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class CompletionProvider(Protocol):
    """Anything that can turn a prompt into text."""

    async def chat_completion(self, system_prompt: str, user_prompt: str) -> str:
        """Run a system + user chat exchange and return the assistant text."""
        ...

    async def generate(self, prompt: str) -> str:
        """Run a single-prompt completion and return the generated text."""
        ...

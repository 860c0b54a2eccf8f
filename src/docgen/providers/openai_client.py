"""OpenAI chat completions client.

Async httpx client for the ``/chat/completions`` endpoint of an
OpenAI-compatible API. Every failure surfaces as ``ProviderError``; the
client never retries, so a stage failure is reported as soon as it
happens.

Example usage:
    >>> from docgen.config import OpenAIConfig
    >>> async with OpenAIProvider(OpenAIConfig(api_key="sk-...")) as openai:
    ...     plan = await openai.chat_completion("You are an architect.", "Plan a todo app")
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from docgen.config import OpenAIConfig
from docgen.errors import ProviderError

logger = structlog.get_logger(__name__)

PROVIDER_NAME = "openai"


class OpenAIProvider:
    """Async client for the OpenAI chat completions API.

    Attributes:
        config: OpenAI configuration (key, base URL, model, limits)
    """

    def __init__(self, config: OpenAIConfig) -> None:
        self.config = config
        headers = {"Content-Type": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers=headers,
            timeout=httpx.Timeout(config.timeout_seconds),
        )
        logger.info(
            "openai_provider_initialized",
            base_url=config.base_url,
            model=config.model,
        )

    async def __aenter__(self) -> OpenAIProvider:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def chat_completion(self, system_prompt: str, user_prompt: str) -> str:
        """Send a system + user exchange and return the first choice's text.

        Raises:
            ProviderError: On missing key, transport failure, timeout,
                non-2xx response or an empty/malformed body.
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        return await self._complete(messages)

    async def generate(self, prompt: str) -> str:
        """Single-prompt completion, sent as one user message."""
        return await self._complete([{"role": "user", "content": prompt}])

    async def _complete(self, messages: list[dict[str, str]]) -> str:
        if not self.config.api_key:
            raise ProviderError("OpenAI API key is not configured", provider=PROVIDER_NAME)

        payload = {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": self.config.max_tokens,
        }
        logger.debug(
            "openai_request",
            model=self.config.model,
            prompt_length=sum(len(m["content"]) for m in messages),
        )

        try:
            response = await self._client.post("/chat/completions", json=payload)
        except httpx.TimeoutException as e:
            logger.error("openai_timeout", timeout_seconds=self.config.timeout_seconds)
            raise ProviderError(
                f"OpenAI request timed out after {self.config.timeout_seconds}s",
                provider=PROVIDER_NAME,
            ) from e
        except httpx.HTTPError as e:
            logger.error("openai_transport_error", error=str(e))
            raise ProviderError(f"OpenAI request failed: {e}", provider=PROVIDER_NAME) from e

        if response.status_code != 200:
            logger.error(
                "openai_api_error",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise ProviderError(
                f"OpenAI API error: HTTP {response.status_code}: {response.text[:200]}",
                provider=PROVIDER_NAME,
                status_code=response.status_code,
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(
                "OpenAI response has no completion content",
                provider=PROVIDER_NAME,
                status_code=response.status_code,
            ) from e

        if not isinstance(content, str) or not content.strip():
            raise ProviderError(
                "OpenAI returned an empty completion",
                provider=PROVIDER_NAME,
                status_code=response.status_code,
            )

        logger.info("openai_completion", model=self.config.model, length=len(content))
        return content

"""Anthropic Claude messages client.

Async httpx client for the ``/v1/messages`` endpoint. Text blocks of the
response are concatenated in order. Like the OpenAI client it wraps every
failure in ``ProviderError`` and never retries.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from docgen.config import ClaudeConfig
from docgen.errors import ProviderError

logger = structlog.get_logger(__name__)

PROVIDER_NAME = "claude"


class ClaudeProvider:
    """Async client for the Anthropic messages API.

    Attributes:
        config: Claude configuration (key, base URL, model, API version)
    """

    def __init__(self, config: ClaudeConfig) -> None:
        self.config = config
        headers = {
            "Content-Type": "application/json",
            "anthropic-version": config.api_version,
        }
        if config.api_key:
            headers["x-api-key"] = config.api_key
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers=headers,
            timeout=httpx.Timeout(config.timeout_seconds),
        )
        logger.info(
            "claude_provider_initialized",
            base_url=config.base_url,
            model=config.model,
        )

    async def __aenter__(self) -> ClaudeProvider:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def generate(self, prompt: str) -> str:
        """Send a single user message and return the concatenated text.

        Raises:
            ProviderError: On missing key, transport failure, timeout,
                non-2xx response or a response without text.
        """
        return await self._complete(None, prompt)

    async def chat_completion(self, system_prompt: str, user_prompt: str) -> str:
        """System prompt goes in the top-level ``system`` field."""
        return await self._complete(system_prompt, user_prompt)

    async def _complete(self, system_prompt: str | None, user_prompt: str) -> str:
        if not self.config.api_key:
            raise ProviderError("Claude API key is not configured", provider=PROVIDER_NAME)

        payload: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if system_prompt:
            payload["system"] = system_prompt

        logger.debug("claude_request", model=self.config.model, prompt_length=len(user_prompt))

        try:
            response = await self._client.post("/v1/messages", json=payload)
        except httpx.TimeoutException as e:
            logger.error("claude_timeout", timeout_seconds=self.config.timeout_seconds)
            raise ProviderError(
                f"Claude request timed out after {self.config.timeout_seconds}s",
                provider=PROVIDER_NAME,
            ) from e
        except httpx.HTTPError as e:
            logger.error("claude_transport_error", error=str(e))
            raise ProviderError(f"Claude request failed: {e}", provider=PROVIDER_NAME) from e

        if response.status_code != 200:
            logger.error(
                "claude_api_error",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise ProviderError(
                f"Claude API error: HTTP {response.status_code}: {response.text[:200]}",
                provider=PROVIDER_NAME,
                status_code=response.status_code,
            )

        try:
            blocks = response.json()["content"]
            text = "".join(
                block.get("text", "") for block in blocks if block.get("type") == "text"
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ProviderError(
                "Claude response has no content blocks",
                provider=PROVIDER_NAME,
                status_code=response.status_code,
            ) from e

        if not text.strip():
            raise ProviderError(
                "Claude returned no text",
                provider=PROVIDER_NAME,
                status_code=response.status_code,
            )

        logger.info("claude_completion", model=self.config.model, length=len(text))
        return text

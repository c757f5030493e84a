# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Anthropic provider (single messages call)."""
import logging
from typing import Optional

from promptlab.errors import InvocationError, RateLimitedError
from promptlab.providers.base import LLMProvider
from promptlab.providers.openai import _retry_after

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """Anthropic Claude provider."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-sonnet-20241022",
        temperature: float = 0.7,
        max_tokens: int = 2048,
        top_p: float = 1.0,
    ) -> None:
        super().__init__(api_key, model, temperature, max_tokens, top_p)

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        import anthropic

        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        client = self._client

        # top_p is not sent: Anthropic advises tuning temperature only
        try:
            response = await client.messages.create(
                model=self._model,
                system=system_prompt,
                messages=[{"role": "user", "content": user_message}],
                max_tokens=max_tokens or self._max_tokens,
                temperature=self._temperature if temperature is None else temperature,
            )
        except anthropic.RateLimitError as e:
            raise RateLimitedError(
                "Anthropic rate limit: {}".format(e), retry_after=_retry_after(e),
            ) from e

        text_parts = [block.text for block in response.content if block.type == "text"]
        if not text_parts:
            raise InvocationError("Unexpected response format from Anthropic")
        content = "\n".join(text_parts)
        if response.stop_reason == "max_tokens":
            logger.debug("Anthropic response truncated at %d tokens", max_tokens or self._max_tokens)
        return content

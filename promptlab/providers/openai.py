# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""OpenAI and OpenAI-compatible provider (single chat completion)."""
import logging
from typing import Optional

from promptlab.errors import InvocationError, RateLimitedError
from promptlab.providers.base import LLMProvider

logger = logging.getLogger(__name__)


def _retry_after(exc) -> Optional[float]:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None) or {}
    value = headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions provider."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        temperature: float = 0.7,
        max_tokens: int = 2048,
        top_p: float = 1.0,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(api_key, model, temperature, max_tokens, top_p)
        self._base_url = base_url

    def _make_client(self):
        if self._client is None:
            import openai
            kwargs = {"api_key": self._api_key}
            if self._base_url:
                kwargs["base_url"] = self._base_url
            self._client = openai.AsyncOpenAI(**kwargs)
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        import openai

        client = self._make_client()
        try:
            response = await client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                temperature=self._temperature if temperature is None else temperature,
                max_tokens=max_tokens or self._max_tokens,
                top_p=self._top_p,
            )
        except openai.RateLimitError as e:
            raise RateLimitedError(
                "OpenAI rate limit: {}".format(e), retry_after=_retry_after(e),
            ) from e

        if not response.choices:
            raise InvocationError("OpenAI returned empty response")
        return response.choices[0].message.content or ""

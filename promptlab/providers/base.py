# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Abstract LLM provider interface."""
import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)

# Shared constants for prompt previews in logs
MAX_PREVIEW_LEN = 100


def preview(text: str, limit: int = MAX_PREVIEW_LEN) -> str:
    """Shorten text for log lines."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class LLMProvider(ABC):
    """Abstract base class for LLM providers (OpenAI, Anthropic, etc.).

    One call = one system prompt + one user message -> one text completion.
    Implementations translate SDK rate-limit errors into
    :class:`promptlab.errors.RateLimitedError` and let everything else raise.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        top_p: float = 1.0,
    ) -> None:
        if not api_key:
            raise ValueError("{} requires an API key".format(type(self).__name__))
        if not model:
            raise ValueError("{} requires a model name".format(type(self).__name__))
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._top_p = top_p
        self._client = None

    @property
    def model(self) -> str:
        return self._model

    def __repr__(self) -> str:
        key_hint = "{}...".format(self._api_key[:4]) if len(self._api_key) > 4 else "***"
        return "{}(model={!r}, api_key={!r})".format(type(self).__name__, self._model, key_hint)

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Return the model's text reply.

        ``temperature`` / ``max_tokens`` override the constructor defaults
        for this call only.
        """

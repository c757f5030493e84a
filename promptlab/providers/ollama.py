# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Local Ollama provider (OpenAI-compatible endpoint)."""
from promptlab.providers.openai import OpenAIProvider


class OllamaProvider(OpenAIProvider):
    """Ollama provider using the OpenAI-compatible API endpoint."""

    def __init__(
        self,
        api_key: str = "ollama",
        model: str = "llama3.2",
        temperature: float = 0.7,
        max_tokens: int = 2048,
        top_p: float = 1.0,
        base_url: str = "http://localhost:11434/v1",
    ) -> None:
        super().__init__(
            api_key=api_key or "ollama",  # Ollama doesn't need a real key
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            top_p=top_p,
            base_url=base_url,
        )

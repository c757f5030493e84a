# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
from typing import Optional

from promptlab.models import ModelConfig, ModelProvider
from promptlab.providers.base import LLMProvider

__all__ = ["LLMProvider", "PROVIDER_REGISTRY", "create_provider"]


# Provider registry: maps provider kind to (module_path, class_name)
PROVIDER_REGISTRY = {
    ModelProvider.OPENAI: {
        "module": "promptlab.providers.openai",
        "class": "OpenAIProvider",
    },
    ModelProvider.ANTHROPIC: {
        "module": "promptlab.providers.anthropic",
        "class": "AnthropicProvider",
    },
    ModelProvider.OLLAMA: {
        "module": "promptlab.providers.ollama",
        "class": "OllamaProvider",
    },
}


def create_provider(config: ModelConfig, base_url: Optional[str] = None) -> LLMProvider:
    """Create an LLM provider for a model configuration.

    Raises ValueError when the configuration cannot back a client
    (missing key or model); callers decide whether that is fatal.
    """
    import importlib

    entry = PROVIDER_REGISTRY[ModelProvider(config.provider)]
    mod = importlib.import_module(entry["module"])
    cls = getattr(mod, entry["class"])

    kwargs = {
        "api_key": config.api_key,
        "model": config.model,
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
        "top_p": config.top_p,
    }
    if base_url and config.provider != ModelProvider.ANTHROPIC:
        kwargs["base_url"] = base_url
    return cls(**kwargs)

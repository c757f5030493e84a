# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Prompt lab configuration."""
import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from promptlab.models import ModelConfig, ModelProvider

logger = logging.getLogger(__name__)

# Default models per provider (generation stage).
DEFAULT_MODELS = {
    ModelProvider.OPENAI: "gpt-4o",
    ModelProvider.ANTHROPIC: "claude-3-5-sonnet-20241022",
    ModelProvider.OLLAMA: "llama3.2",
}

DEFAULT_EVALUATOR_TIMEOUT = 120.0  # seconds per judge call
DEFAULT_PACING_DELAY = 0.5  # seconds between cells


@dataclass
class LabConfig:
    """Configuration for generation and evaluation runs.

    Can be created directly, from a dict, or from environment variables.
    """
    provider: str = "openai"
    model: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    base_url: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 2048
    top_p: float = 1.0

    # Evaluation
    evaluator_timeout: float = DEFAULT_EVALUATOR_TIMEOUT
    pacing_delay: float = DEFAULT_PACING_DELAY
    fallback_score_min: float = 5.0
    fallback_score_max: float = 8.0
    max_retries: int = 2

    @classmethod
    def from_dict(cls, data: dict) -> "LabConfig":
        return cls(
            provider=data.get("provider", "openai"),
            model=data.get("model", ""),
            openai_api_key=data.get("openai_api_key", ""),
            anthropic_api_key=data.get("anthropic_api_key", ""),
            base_url=data.get("base_url") or None,
            temperature=data.get("temperature", 0.7),
            max_tokens=data.get("max_tokens", 2048),
            top_p=data.get("top_p", 1.0),
            evaluator_timeout=data.get("evaluator_timeout", DEFAULT_EVALUATOR_TIMEOUT),
            pacing_delay=data.get("pacing_delay", DEFAULT_PACING_DELAY),
            fallback_score_min=data.get("fallback_score_min", 5.0),
            fallback_score_max=data.get("fallback_score_max", 8.0),
            max_retries=data.get("max_retries", 2),
        )

    @classmethod
    def from_env(cls) -> "LabConfig":
        """Create config from environment variables.

        Reads PROMPTLAB_PROVIDER, PROMPTLAB_MODEL, PROMPTLAB_PACING_DELAY, etc.
        API keys come from OPENAI_API_KEY / ANTHROPIC_API_KEY. When no provider
        is named, the first provider with a key wins.
        """
        openai_key = os.getenv("OPENAI_API_KEY", "")
        anthropic_key = os.getenv("ANTHROPIC_API_KEY", "")

        provider = os.getenv("PROMPTLAB_PROVIDER", "")
        if not provider:
            if openai_key:
                provider = "openai"
            elif anthropic_key:
                provider = "anthropic"
            else:
                provider = "openai"

        return cls(
            provider=provider,
            model=os.getenv("PROMPTLAB_MODEL", ""),
            openai_api_key=openai_key,
            anthropic_api_key=anthropic_key,
            base_url=os.getenv("PROMPTLAB_BASE_URL") or None,
            temperature=float(os.getenv("PROMPTLAB_TEMPERATURE", "0.7")),
            max_tokens=int(os.getenv("PROMPTLAB_MAX_TOKENS", "2048")),
            top_p=float(os.getenv("PROMPTLAB_TOP_P", "1.0")),
            evaluator_timeout=float(os.getenv(
                "PROMPTLAB_EVALUATOR_TIMEOUT", str(DEFAULT_EVALUATOR_TIMEOUT))),
            pacing_delay=float(os.getenv("PROMPTLAB_PACING_DELAY", str(DEFAULT_PACING_DELAY))),
            max_retries=int(os.getenv("PROMPTLAB_MAX_RETRIES", "2")),
        )

    def __post_init__(self):
        """Validate config values."""
        if self.provider not in {p.value for p in ModelProvider}:
            logger.warning("unknown provider %r, using openai", self.provider)
            self.provider = ModelProvider.OPENAI.value

        if self.temperature < 0.0:
            logger.warning("temperature %s < 0, clamping to 0.0", self.temperature)
            self.temperature = 0.0
        elif self.temperature > 2.0:
            logger.warning("temperature %s > 2.0, clamping to 2.0", self.temperature)
            self.temperature = 2.0

        if self.max_tokens < 1:
            logger.warning("max_tokens %s < 1, setting to 1", self.max_tokens)
            self.max_tokens = 1

        if not 0.0 <= self.top_p <= 1.0:
            logger.warning("top_p %s out of [0, 1], resetting to 1.0", self.top_p)
            self.top_p = 1.0

        if self.evaluator_timeout <= 0:
            logger.warning("evaluator_timeout %s <= 0, using default", self.evaluator_timeout)
            self.evaluator_timeout = DEFAULT_EVALUATOR_TIMEOUT

        if self.pacing_delay < 0:
            self.pacing_delay = 0.0

        if self.max_retries < 0:
            self.max_retries = 0

        for name in ("fallback_score_min", "fallback_score_max"):
            value = getattr(self, name)
            if not 1.0 <= value <= 10.0:
                clamped = min(10.0, max(1.0, value))
                logger.warning("%s %s out of [1, 10], clamping to %s", name, value, clamped)
                setattr(self, name, clamped)

        if self.fallback_score_min > self.fallback_score_max:
            self.fallback_score_min, self.fallback_score_max = (
                self.fallback_score_max, self.fallback_score_min,
            )

    @property
    def provider_kind(self) -> ModelProvider:
        return ModelProvider(self.provider)

    @property
    def resolved_model(self) -> str:
        """Return model with sensible defaults per provider."""
        if self.model:
            return self.model
        return DEFAULT_MODELS[self.provider_kind]

    @property
    def fallback_score_range(self) -> Tuple[float, float]:
        return (self.fallback_score_min, self.fallback_score_max)

    def api_key_for(self, provider: ModelProvider) -> str:
        if provider == ModelProvider.OPENAI:
            return self.openai_api_key
        if provider == ModelProvider.ANTHROPIC:
            return self.anthropic_api_key
        # Ollama doesn't need a real key
        return "ollama"

    def model_config(self) -> ModelConfig:
        """Model configuration for the generation stage."""
        kind = self.provider_kind
        return ModelConfig(
            provider=kind,
            model=self.resolved_model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            top_p=self.top_p,
            api_key=self.api_key_for(kind),
        )

    def __repr__(self) -> str:
        return "LabConfig(provider={!r}, model={!r}, pacing_delay={!r})".format(
            self.provider, self.resolved_model, self.pacing_delay,
        )

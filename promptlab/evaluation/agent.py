# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Agent evaluators: one named LLM judge behind a uniform ``evaluate`` call.

Each evaluator owns exactly one provider client. Construction can fail
(missing key, unknown SDK); ``build_evaluators`` drops those and keeps the
rest, so a run survives as long as one judge is usable.
"""
import asyncio
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from promptlab.config import LabConfig
from promptlab.errors import InitializationError, InvocationError, RateLimitedError
from promptlab.models import CriterionRef, JudgeVerdict, ModelConfig, ModelProvider
from promptlab.prompts import JUDGE_SYSTEM, build_judge_message
from promptlab.providers import LLMProvider, create_provider
from promptlab.providers.base import preview

logger = logging.getLogger(__name__)

SCORE_MIN = 1.0
SCORE_MAX = 10.0
DEFAULT_SCORE = 5.0
NO_REASONING = "No reasoning provided"
JUDGE_TEMPERATURE = 0.2
JUDGE_MAX_TOKENS = 1024

_SCORE_RE = re.compile(r"Score:\s*(-?\d+(?:\.\d+)?)", re.IGNORECASE)
_REASONING_RE = re.compile(r"Reasoning:\s*([\s\S]*?)(?:$|Score:)", re.IGNORECASE)


@dataclass(frozen=True)
class EvaluatorSpec:
    """Which judge to build: display name + provider + model."""
    name: str
    provider: ModelProvider
    model: str
    temperature: float = JUDGE_TEMPERATURE
    # Endpoint override for this judge only
    base_url: Optional[str] = None


# Invocation order within a cell follows this list.
DEFAULT_EVALUATOR_SPECS = (
    EvaluatorSpec("GPT-4o Evaluator", ModelProvider.OPENAI, "gpt-4o"),
    EvaluatorSpec("Claude 3.5 Evaluator", ModelProvider.ANTHROPIC, "claude-3-5-sonnet-20241022"),
)


def clamp_score(value: float, low: float = SCORE_MIN, high: float = SCORE_MAX) -> float:
    return min(high, max(low, value))


def parse_judge_output(content: str) -> JudgeVerdict:
    """Parse ``Score: N`` / ``Reasoning: ...`` judge output.

    An unparsable score becomes 5; a missing reasoning becomes
    "No reasoning provided". The score is always clamped to [1, 10].
    """
    content = content or ""
    score_match = _SCORE_RE.search(content)
    reasoning_match = _REASONING_RE.search(content)

    score = float(score_match.group(1)) if score_match else DEFAULT_SCORE
    reasoning = reasoning_match.group(1).strip() if reasoning_match else ""
    if not score_match:
        logger.debug("No score in judge output: %r", preview(content))

    return JudgeVerdict(score=clamp_score(score), reasoning=reasoning or NO_REASONING)


class AgentEvaluator:
    """One external judge (provider + model) with a bounded ``evaluate``.

    Every failure inside ``evaluate`` surfaces as InvocationError so the
    orchestrator can substitute a fallback row.
    """

    def __init__(
        self,
        name: str,
        provider: LLMProvider,
        provider_kind: ModelProvider,
        timeout: float = 120.0,
        max_retries: int = 2,
        backoff_base: float = 1.0,
    ) -> None:
        self.name = name
        self.provider_kind = provider_kind
        self._provider = provider
        self._timeout = timeout
        self._max_retries = max_retries
        self._backoff_base = backoff_base

    @classmethod
    def from_spec(
        cls,
        spec: EvaluatorSpec,
        config: LabConfig,
    ) -> "AgentEvaluator":
        """Build an evaluator, raising InitializationError on any failure."""
        model_config = ModelConfig(
            provider=spec.provider,
            model=spec.model,
            temperature=spec.temperature,
            max_tokens=JUDGE_MAX_TOKENS,
            top_p=config.top_p,
            api_key=config.api_key_for(spec.provider),
        )
        # The configured base_url belongs to the generation provider
        base_url = spec.base_url
        if base_url is None and spec.provider == config.provider_kind:
            base_url = config.base_url
        try:
            provider = create_provider(model_config, base_url=base_url)
        except Exception as e:
            raise InitializationError(
                "Failed to initialize {}: {}".format(spec.name, e)) from e
        return cls(
            name=spec.name,
            provider=provider,
            provider_kind=spec.provider,
            timeout=config.evaluator_timeout,
            max_retries=config.max_retries,
        )

    @property
    def model(self) -> str:
        return self._provider.model

    def __repr__(self) -> str:
        return "AgentEvaluator(name={!r}, provider={!r})".format(self.name, self._provider)

    async def evaluate(
        self,
        system_prompt: str,
        user_input: str,
        criterion: CriterionRef,
    ) -> JudgeVerdict:
        """Score how well ``system_prompt`` handles ``user_input`` on ``criterion``."""
        message = build_judge_message(
            system_prompt, user_input, criterion.name, criterion.description,
        )
        raw = await self._call_with_retries(message)
        return parse_judge_output(raw)

    async def _call_with_retries(self, message: str) -> str:
        # One deadline covers every attempt and every backoff sleep
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout
        attempt = 0
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise InvocationError("timed out after {:.0f}s".format(self._timeout))
            try:
                return await asyncio.wait_for(
                    self._provider.complete(JUDGE_SYSTEM, message),
                    timeout=remaining,
                )
            except RateLimitedError as e:
                if attempt >= self._max_retries:
                    raise InvocationError("rate limited after {} retries: {}".format(
                        attempt, e)) from e
                delay = e.retry_after if e.retry_after is not None else (
                    self._backoff_base * (2 ** attempt))
                if delay >= deadline - loop.time():
                    raise InvocationError(
                        "rate limited, retry in {:.1f}s would pass the {:.0f}s timeout".format(
                            delay, self._timeout)) from e
                logger.warning("%s rate limited, retrying in %.1fs", self.name, delay)
                await asyncio.sleep(delay)
                attempt += 1
            except asyncio.TimeoutError as e:
                raise InvocationError("timed out after {:.0f}s".format(self._timeout)) from e
            except InvocationError:
                raise
            except Exception as e:
                raise InvocationError(str(e) or type(e).__name__) from e


def build_evaluators(
    config: LabConfig,
    specs: Optional[Sequence[EvaluatorSpec]] = None,
) -> List[AgentEvaluator]:
    """Construct evaluators in spec order, dropping the ones that fail.

    May return an empty list; the orchestrator treats that as fatal.
    """
    evaluators: List[AgentEvaluator] = []
    for spec in specs if specs is not None else DEFAULT_EVALUATOR_SPECS:
        try:
            evaluators.append(AgentEvaluator.from_spec(spec, config))
        except InitializationError as e:
            logger.warning("Dropping evaluator %s: %s", spec.name, e)
    logger.info("Active evaluators: %s", ", ".join(
        "{} ({})".format(ev.name, ev.provider_kind.value) for ev in evaluators) or "(none)")
    return evaluators

# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Generation stage: meta prompt, variations, test cases.

Unlike evaluation, generation has no degraded mode: any provider failure or
unparsable output is raised to the caller.
"""
import logging
import re
from typing import List, Optional

from promptlab.errors import GenerationError, ParseError
from promptlab.models import CriterionRef, ModelConfig
from promptlab.prompts import (
    META_PROMPT_SYSTEM, RESPONSE_SCORE_SYSTEM, TEST_CASE_PREFIX,
    TEST_CASES_SYSTEM, VARIATION_DELIMITER, VARIATIONS_SYSTEM,
)
from promptlab.providers import LLMProvider, create_provider
from promptlab.providers.base import preview

logger = logging.getLogger(__name__)

MIN_META_PROMPT_LEN = 50
VARIATIONS_MAX_TOKENS = 4000
TEST_CASES_MAX_TOKENS = 2000
RESPONSE_MAX_TOKENS = 1000

_DELIMITER_LINE_RE = re.compile(
    r"^[ \t]*" + re.escape(VARIATION_DELIMITER) + r"[ \t]*$", re.MULTILINE)
_SCORE_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


# ---------------------------------------------------------------------------
# Output-format parsers
# ---------------------------------------------------------------------------

def parse_variations(raw: str) -> List[str]:
    """Split a blob of variations on lines holding only the ``---`` delimiter.

    Pieces are trimmed and empty pieces dropped. Raises ParseError when
    nothing is left.
    """
    pieces = [p.strip() for p in _DELIMITER_LINE_RE.split(raw or "")]
    variations = [p for p in pieces if p]
    if not variations:
        raise ParseError("Failed to parse variations from model response")
    return variations


def parse_test_cases(raw: str) -> List[str]:
    """Keep only ``Test case:`` lines, with the prefix stripped."""
    cases = []
    for line in (raw or "").splitlines():
        stripped = line.strip()
        if stripped.startswith(TEST_CASE_PREFIX):
            cases.append(stripped[len(TEST_CASE_PREFIX):].strip())
    if not cases:
        raise ParseError("Failed to parse test cases from model response")
    return cases


def validate_meta_prompt(base_prompt: str, generated: str) -> str:
    """Reject meta prompts that are too short or just echo the input."""
    if len(generated) < MIN_META_PROMPT_LEN or generated == base_prompt:
        raise GenerationError("Generated meta prompt is too short or identical to input")
    return generated


def parse_response_score(raw: str) -> float:
    """Parse a bare-number judge reply into a score clamped to [0, 10]."""
    m = _SCORE_NUMBER_RE.search(raw or "")
    if not m:
        raise ParseError("Judge reply is not a number: {!r}".format(preview(raw or "")))
    return min(10.0, max(0.0, float(m.group())))


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------

class PromptGenerator:
    """Runs the text-generation stages against one provider.

    Usage:
        gen = PromptGenerator(config.model_config())
        meta = await gen.generate_meta_prompt("a boxing coach")
        variations = await gen.generate_variations(meta)
    """

    def __init__(
        self,
        model_config: ModelConfig,
        provider: Optional[LLMProvider] = None,
        base_url: Optional[str] = None,
    ) -> None:
        self._config = model_config
        self._provider = provider
        self._base_url = base_url

    @property
    def model_config(self) -> ModelConfig:
        return self._config

    def _get_provider(self) -> LLMProvider:
        if self._provider is None:
            try:
                self._provider = create_provider(self._config, base_url=self._base_url)
            except Exception as e:
                raise GenerationError("Cannot create {} provider: {}".format(
                    self._config.provider.value, e)) from e
        return self._provider

    async def _complete(
        self,
        stage: str,
        system_prompt: str,
        user_message: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        provider = self._get_provider()
        logger.info("[%s] calling %s (%s)", stage, self._config.provider.value, self._config.model)
        try:
            text = await provider.complete(
                system_prompt, user_message,
                temperature=temperature, max_tokens=max_tokens,
            )
        except GenerationError:
            raise
        except Exception as e:
            logger.error("[%s] provider call failed: %s", stage, e)
            raise GenerationError("{} failed: {}".format(stage, e)) from e
        logger.debug("[%s] response length %d", stage, len(text))
        return text

    async def generate_meta_prompt(self, base_prompt: str) -> str:
        logger.info("Generating meta prompt for %r", preview(base_prompt))
        text = await self._complete("meta_prompt", META_PROMPT_SYSTEM, base_prompt)
        return validate_meta_prompt(base_prompt, text.strip())

    async def generate_variations(self, meta_prompt: str) -> List[str]:
        # Hotter sampling so siblings actually differ
        temperature = min(self._config.temperature * 1.5, 1.0)
        raw = await self._complete(
            "variations", VARIATIONS_SYSTEM, meta_prompt,
            temperature=temperature,
            max_tokens=max(self._config.max_tokens, VARIATIONS_MAX_TOKENS),
        )
        variations = parse_variations(raw)
        logger.info("Parsed %d variations", len(variations))
        return variations

    async def generate_test_cases(self, meta_prompt: str) -> List[str]:
        raw = await self._complete(
            "test_cases", TEST_CASES_SYSTEM, meta_prompt,
            max_tokens=max(self._config.max_tokens, TEST_CASES_MAX_TOKENS),
        )
        cases = parse_test_cases(raw)
        logger.info("Parsed %d test cases", len(cases))
        return cases

    async def generate_response(self, system_prompt: str, user_input: str) -> str:
        """Run a system prompt against one sample input."""
        return await self._complete(
            "response", system_prompt, user_input, max_tokens=RESPONSE_MAX_TOKENS,
        )

    async def score_response(self, response: str, criterion: CriterionRef) -> float:
        """Single-judge score of a finished response, bounded to [0, 10]."""
        message = "Criterion: \"{}\" - {}\n\nResponse to evaluate:\n{}".format(
            criterion.name, criterion.description, response,
        )
        raw = await self._complete("score_response", RESPONSE_SCORE_SYSTEM, message)
        return parse_response_score(raw)

# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Shared fakes: no network, no API keys."""
import asyncio
from typing import Callable, List, Optional, Union

import pytest

from promptlab.errors import InvocationError
from promptlab.models import (
    EvaluationCriterion, JudgeVerdict, ModelConfig, ModelProvider,
    PromptVariation, TestCase,
)
from promptlab.providers.base import LLMProvider


class FakeProvider(LLMProvider):
    """LLMProvider that replays canned replies and records calls."""

    def __init__(self, replies: Union[str, List[str], Callable[[str, str], str]] = "", delay: float = 0.0):
        super().__init__(api_key="test-key", model="fake-model")
        self._replies = replies
        self._delay = delay
        self.calls: List[dict] = []

    async def complete(self, system_prompt, user_message, temperature=None, max_tokens=None):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_message": user_message,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self._delay:
            await asyncio.sleep(self._delay)
        if callable(self._replies):
            reply = self._replies(system_prompt, user_message)
        elif isinstance(self._replies, list):
            reply = self._replies.pop(0)
        else:
            reply = self._replies
        if isinstance(reply, BaseException):
            raise reply
        return reply


class FakeEvaluator:
    """Duck-typed AgentEvaluator: fixed score, or raise."""

    def __init__(self, name: str, score: float = 7.0, error: Optional[BaseException] = None):
        self.name = name
        self._score = score
        self._error = error
        self.calls = 0

    async def evaluate(self, system_prompt, user_input, criterion):
        self.calls += 1
        if self._error is not None:
            raise self._error
        return JudgeVerdict(score=self._score, reasoning="{} likes it".format(self.name))


def make_variations(n: int, meta_prompt_id: int = 1) -> List[PromptVariation]:
    return [
        PromptVariation(id=i, meta_prompt_id=meta_prompt_id, content="You are variation {}".format(i))
        for i in range(1, n + 1)
    ]


def make_test_cases(n: int, meta_prompt_id: int = 1) -> List[TestCase]:
    return [TestCase(id=i, meta_prompt_id=meta_prompt_id, input="question {}".format(i)) for i in range(1, n + 1)]


def make_criteria(n: int) -> List[EvaluationCriterion]:
    return [
        EvaluationCriterion(
            id=i, name="criterion{}".format(i), description="desc {}".format(i),
            llm_config=ModelConfig(provider=ModelProvider.ANTHROPIC, model="judge-{}".format(i)),
        )
        for i in range(1, n + 1)
    ]


@pytest.fixture
def evaluators():
    return [FakeEvaluator("Alpha Evaluator", 6.0), FakeEvaluator("Beta Evaluator", 8.0)]


@pytest.fixture
def failing_evaluator():
    return FakeEvaluator("Broken Evaluator", error=InvocationError("connection reset"))

# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Pydantic models for the prompt workflow and evaluation pipeline."""
import math
from enum import Enum
from typing import Callable, Dict

from pydantic import BaseModel, Field


class ModelProvider(str, Enum):
    """Closed set of judge / generator backends."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


class ModelConfig(BaseModel):
    """Provider + model + sampling parameters for one LLM call site."""
    provider: ModelProvider = ModelProvider.OPENAI
    model: str = "gpt-4o"
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(2048, ge=1)
    top_p: float = Field(1.0, ge=0.0, le=1.0)
    # Never rendered in repr or dumps
    api_key: str = Field("", repr=False, exclude=True)


class MetaPrompt(BaseModel):
    """Expanded system-prompt draft produced from a base instruction."""
    id: int = 0
    base_prompt: str
    generated_prompt: str
    llm_config: ModelConfig = Field(default_factory=ModelConfig)


class PromptVariation(BaseModel):
    """One candidate rewrite of a meta prompt."""
    id: int = 0
    meta_prompt_id: int
    content: str
    llm_config: ModelConfig = Field(default_factory=ModelConfig)


class TestCase(BaseModel):
    """A sample user input run against every variation."""
    __test__ = False  # not a pytest class

    id: int = 0
    meta_prompt_id: int
    input: str


class CriterionRef(BaseModel):
    """The slice of a criterion a judge needs to see."""
    id: int
    name: str
    description: str = ""
    weight: float = 1.0


class EvaluationCriterion(BaseModel):
    """A named, weighted axis of judgment with its own model configuration.

    ``weight`` is carried for display only; aggregation is unweighted.
    """
    id: int = 0
    name: str
    description: str = ""
    weight: float = 1.0
    llm_config: ModelConfig = Field(default_factory=ModelConfig)

    def ref(self) -> CriterionRef:
        return CriterionRef(
            id=self.id, name=self.name,
            description=self.description, weight=self.weight,
        )


class ResultOutcome(str, Enum):
    """Whether a raw row is a real judgment or a fallback placeholder."""
    SCORED = "scored"
    DEGRADED = "degraded"


class JudgeVerdict(BaseModel):
    """What one judge returns for one cell."""
    score: float
    reasoning: str


class AgentEvaluationResult(BaseModel):
    """Raw, pre-aggregation row: one agent's judgment of one cell."""
    variation_id: int
    test_case_id: int
    criterion_id: int
    score: float
    reasoning: str
    agent: str
    outcome: ResultOutcome = ResultOutcome.SCORED

    @property
    def cell_key(self):
        return (self.variation_id, self.test_case_id, self.criterion_id)

    @property
    def degraded(self) -> bool:
        return self.outcome == ResultOutcome.DEGRADED


class EvaluationResult(BaseModel):
    """Aggregated row: one per (variation, test case, criterion) cell."""
    id: int = 0
    variation_id: int
    test_case_id: int
    criterion_id: int
    score: float
    response: str = ""
    evaluator_model: str = ""
    degraded_count: int = 0


class BestModelPair(BaseModel):
    provider: ModelProvider = ModelProvider.OPENAI
    model: str = ""
    score: float = 0.0


class LeaderboardEntry(BaseModel):
    """Ranked summary row for one variation. Derived, never persisted."""
    variation_id: int
    content: str
    average_score: float
    scores: Dict[str, float] = Field(default_factory=dict)
    best_model_pair: BestModelPair = Field(default_factory=BestModelPair)
    degraded_count: int = 0

    @property
    def is_evaluated(self) -> bool:
        """False when no criterion has been scored yet (average is NaN)."""
        return not math.isnan(self.average_score)


# Type alias for the progress callback
ProgressCallback = Callable[[float], None]

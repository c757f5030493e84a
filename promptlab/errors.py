# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Exception hierarchy for the prompt lab pipeline."""
from typing import List, Optional


class PromptLabError(Exception):
    """Base class for all promptlab errors."""


class InitializationError(PromptLabError):
    """An evaluator (or its provider client) could not be constructed."""


class NoEvaluatorsError(InitializationError):
    """No evaluator survived initialization; nothing to evaluate with."""

    def __init__(self, message: str = "no evaluators available") -> None:
        super().__init__(message)


class InvocationError(PromptLabError):
    """A judge call failed (timeout, network, auth, malformed response)."""


class RateLimitedError(InvocationError):
    """The provider explicitly signalled a rate limit."""

    def __init__(self, message: str, retry_after: Optional[float] = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class GenerationError(PromptLabError):
    """A text-generation stage failed. Never masked."""


class ParseError(GenerationError):
    """Generation output could not be split into variations or test cases."""


class AggregationError(PromptLabError):
    """A cell group reached the aggregator without any rows."""


class EvaluationCancelled(PromptLabError):
    """The run was cancelled between cells. ``results`` holds rows produced so far."""

    def __init__(self, results: Optional[List] = None) -> None:
        super().__init__("evaluation cancelled")
        self.results = list(results or [])


class EntityNotFoundError(PromptLabError, LookupError):
    """Repository update targeted an entity that does not exist."""

    def __init__(self, kind: str, entity_id: int) -> None:
        super().__init__("{} not found: {}".format(kind, entity_id))
        self.kind = kind
        self.entity_id = entity_id

# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Evaluation orchestrator: runs the variation × test case × criterion matrix.

Flow:
  1. For each variation (outer), test case (middle), criterion (inner):
     a. Ask every active evaluator, in order, for a verdict
     b. Replace any failed verdict with a degraded fallback row
     c. Report progress, then pause before the next cell
  2. Return the flat list of raw rows in loop order

A cell always yields exactly one row per evaluator, so the aggregator never
sees a missing or short cell. The only fatal condition is having no
evaluators at all.
"""
import asyncio
import logging
import random
import time
from typing import List, Optional, Sequence, Tuple

from promptlab.config import LabConfig
from promptlab.errors import EvaluationCancelled, InvocationError, NoEvaluatorsError
from promptlab.evaluation.agent import (
    AgentEvaluator, EvaluatorSpec, build_evaluators, clamp_score,
)
from promptlab.models import (
    AgentEvaluationResult, EvaluationCriterion, ProgressCallback,
    PromptVariation, ResultOutcome, TestCase,
)

logger = logging.getLogger(__name__)

FALLBACK_SUFFIX = " (Fallback)"
FALLBACK_REASONING = (
    "Fallback evaluation for \"{criterion}\". No judgment was returned by this "
    "evaluator; the score is a placeholder, not an assessment."
)


def _fire_progress(on_progress: Optional[ProgressCallback], percent: float) -> None:
    """Safely invoke the progress callback."""
    if on_progress is None:
        return
    try:
        on_progress(percent)
    except Exception as e:
        logger.debug("Progress callback error: %s", e)


class EvaluationOrchestrator:
    """Drives every cell through every evaluator, sequentially.

    Usage:
        orch = EvaluationOrchestrator.from_config(LabConfig.from_env())
        rows = await orch.run(variations, test_cases, criteria, on_progress=print)
    """

    def __init__(
        self,
        evaluators: Sequence[AgentEvaluator],
        pacing_delay: float = 0.5,
        fallback_range: Tuple[float, float] = (5.0, 8.0),
        rng: Optional[random.Random] = None,
    ) -> None:
        self._evaluators = list(evaluators)
        self._pacing_delay = pacing_delay
        self._fallback_range = fallback_range
        self._rng = rng or random.Random()

    @classmethod
    def from_config(
        cls,
        config: LabConfig,
        specs: Optional[Sequence[EvaluatorSpec]] = None,
        rng: Optional[random.Random] = None,
    ) -> "EvaluationOrchestrator":
        return cls(
            build_evaluators(config, specs),
            pacing_delay=config.pacing_delay,
            fallback_range=config.fallback_score_range,
            rng=rng,
        )

    @property
    def evaluators(self) -> List[AgentEvaluator]:
        return list(self._evaluators)

    async def run(
        self,
        variations: Sequence[PromptVariation],
        test_cases: Sequence[TestCase],
        criteria: Sequence[EvaluationCriterion],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[AgentEvaluationResult]:
        """Evaluate the full matrix.

        Parameters
        ----------
        on_progress : callable, optional
            Called with the completed percentage (0-100) after every cell.
        cancel_event : asyncio.Event, optional
            Checked before every cell; when set, EvaluationCancelled is raised
            with the rows produced so far.

        Raises
        ------
        NoEvaluatorsError
            If there are no active evaluators.
        """
        if not self._evaluators:
            raise NoEvaluatorsError()

        total = len(variations) * len(test_cases) * len(criteria)
        results: List[AgentEvaluationResult] = []
        if total == 0:
            logger.info("Nothing to evaluate (empty matrix)")
            _fire_progress(on_progress, 100.0)
            return results

        logger.info(
            "Evaluating %d cells (%d variations x %d test cases x %d criteria) with %d evaluators",
            total, len(variations), len(test_cases), len(criteria), len(self._evaluators),
        )
        t0 = time.monotonic()
        completed = 0

        for variation in variations:
            for test_case in test_cases:
                for criterion in criteria:
                    if cancel_event is not None and cancel_event.is_set():
                        logger.warning("Evaluation cancelled after %d/%d cells", completed, total)
                        raise EvaluationCancelled(results)

                    try:
                        rows = await self._evaluate_cell(variation, test_case, criterion)
                    except Exception as e:
                        logger.exception(
                            "Evaluation failed for variation %d, test case %d, criterion %d",
                            variation.id, test_case.id, criterion.id,
                        )
                        rows = [
                            self._fallback_row(
                                variation, test_case, criterion, ev.name,
                                "Evaluation failed: {}".format(e),
                            )
                            for ev in self._evaluators
                        ]
                    results.extend(rows)

                    completed += 1
                    _fire_progress(on_progress, 100.0 * completed / total)

                    # Backpressure for provider rate limits
                    if self._pacing_delay > 0 and completed < total:
                        await asyncio.sleep(self._pacing_delay)

        degraded = sum(1 for r in results if r.degraded)
        logger.info(
            "Evaluation finished: %d rows (%d degraded) in %.1fs",
            len(results), degraded, time.monotonic() - t0,
        )
        return results

    async def _evaluate_cell(
        self,
        variation: PromptVariation,
        test_case: TestCase,
        criterion: EvaluationCriterion,
    ) -> List[AgentEvaluationResult]:
        ref = criterion.ref()
        rows: List[AgentEvaluationResult] = []
        for evaluator in self._evaluators:
            try:
                verdict = await evaluator.evaluate(variation.content, test_case.input, ref)
            except InvocationError as e:
                logger.warning(
                    "%s failed on (variation %d, test case %d, criterion %d): %s",
                    evaluator.name, variation.id, test_case.id, criterion.id, e,
                )
                rows.append(self._fallback_row(
                    variation, test_case, criterion, evaluator.name,
                    "{} evaluation failed: {}".format(evaluator.name, e),
                ))
                continue

            rows.append(AgentEvaluationResult(
                variation_id=variation.id,
                test_case_id=test_case.id,
                criterion_id=criterion.id,
                score=clamp_score(verdict.score),
                reasoning=verdict.reasoning,
                agent=evaluator.name,
            ))
        return rows

    def _fallback_row(
        self,
        variation: PromptVariation,
        test_case: TestCase,
        criterion: EvaluationCriterion,
        agent_name: str,
        cause: str,
    ) -> AgentEvaluationResult:
        low, high = self._fallback_range
        return AgentEvaluationResult(
            variation_id=variation.id,
            test_case_id=test_case.id,
            criterion_id=criterion.id,
            score=clamp_score(self._rng.uniform(low, high)),
            reasoning="{}. {}".format(
                cause.rstrip("."), FALLBACK_REASONING.format(criterion=criterion.name),
            ),
            agent=agent_name + FALLBACK_SUFFIX,
            outcome=ResultOutcome.DEGRADED,
        )

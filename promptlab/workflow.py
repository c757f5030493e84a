# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Prompt workflow: base prompt to ranked leaderboard.

Flow:
  1. Base prompt -> meta prompt (generation, validated)
  2. Meta prompt -> variations + test cases (generation, parsed)
  3. Variations x test cases x criteria -> raw judge rows (orchestrator)
  4. Raw rows -> one stored EvaluationResult per cell (aggregator)
  5. Stored results -> leaderboard (recomputed on demand)

Generation failures stop the workflow at their stage. Evaluation failures
never do; they show up as degraded rows.
"""
import asyncio
import logging
import time
from typing import Iterable, List, Optional, Sequence

from promptlab.audit import EvaluationAuditEntry
from promptlab.config import LabConfig
from promptlab.errors import EntityNotFoundError
from promptlab.evaluation.aggregator import aggregate_results
from promptlab.evaluation.agent import EvaluatorSpec
from promptlab.evaluation.criteria import default_criteria
from promptlab.evaluation.orchestrator import EvaluationOrchestrator
from promptlab.generation import PromptGenerator
from promptlab.models import (
    EvaluationCriterion, EvaluationResult, LeaderboardEntry, MetaPrompt,
    ProgressCallback, PromptVariation, TestCase,
)
from promptlab.storage import MemoryRepository, Repository

logger = logging.getLogger(__name__)


class PromptWorkflow:
    """Wires a repository, a generator and an orchestrator together.

    Usage:
        wf = PromptWorkflow.from_config(LabConfig.from_env())
        board = await wf.run("a patient boxing coach", on_progress=print)
        print(board[0].content, board[0].average_score)
    """

    def __init__(
        self,
        repository: Repository,
        generator: PromptGenerator,
        orchestrator: EvaluationOrchestrator,
        include_degraded: bool = True,
    ) -> None:
        self._repo = repository
        self._generator = generator
        self._orchestrator = orchestrator
        self._include_degraded = include_degraded

    @classmethod
    def from_config(
        cls,
        config: LabConfig,
        repository: Optional[Repository] = None,
        specs: Optional[Sequence[EvaluatorSpec]] = None,
    ) -> "PromptWorkflow":
        return cls(
            repository=repository if repository is not None else MemoryRepository(),
            generator=PromptGenerator(config.model_config(), base_url=config.base_url),
            orchestrator=EvaluationOrchestrator.from_config(config, specs),
        )

    @property
    def repository(self) -> Repository:
        return self._repo

    def _require_meta_prompt(self, meta_prompt_id: int) -> MetaPrompt:
        meta = self._repo.get_meta_prompt(meta_prompt_id)
        if meta is None:
            raise EntityNotFoundError("meta_prompt", meta_prompt_id)
        return meta

    # ── generation stages ──────────────────────────────────────

    async def create_meta_prompt(self, base_prompt: str) -> MetaPrompt:
        generated = await self._generator.generate_meta_prompt(base_prompt)
        return self._repo.create_meta_prompt(MetaPrompt(
            base_prompt=base_prompt,
            generated_prompt=generated,
            llm_config=self._generator.model_config,
        ))

    async def create_variations(self, meta_prompt_id: int) -> List[PromptVariation]:
        meta = self._require_meta_prompt(meta_prompt_id)
        contents = await self._generator.generate_variations(meta.generated_prompt)
        return [
            self._repo.create_variation(PromptVariation(
                meta_prompt_id=meta.id, content=content,
                llm_config=self._generator.model_config,
            ))
            for content in contents
        ]

    async def create_test_cases(self, meta_prompt_id: int) -> List[TestCase]:
        meta = self._require_meta_prompt(meta_prompt_id)
        inputs = await self._generator.generate_test_cases(meta.generated_prompt)
        return [
            self._repo.create_test_case(TestCase(meta_prompt_id=meta.id, input=text))
            for text in inputs
        ]

    def ensure_criteria(
        self,
        criteria: Optional[Iterable[EvaluationCriterion]] = None,
    ) -> List[EvaluationCriterion]:
        """Store and return the given criteria.

        With no criteria, the built-in defaults are seeded once, on an empty
        repository; every stored criterion is returned.
        """
        if criteria is not None:
            return [self._repo.create_criterion(c) for c in criteria]
        existing = self._repo.get_all_criteria()
        if existing:
            return existing
        return [
            self._repo.create_criterion(
                c.model_copy(update={"llm_config": self._generator.model_config}))
            for c in default_criteria()
        ]

    # ── evaluation ─────────────────────────────────────────────

    async def evaluate(
        self,
        meta_prompt_id: int,
        criterion_ids: Optional[Sequence[int]] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[EvaluationResult]:
        """Judge every stored variation of a meta prompt and store the aggregates."""
        meta = self._require_meta_prompt(meta_prompt_id)
        variations = self._repo.get_variations_for_meta_prompt(meta.id)
        test_cases = self._repo.get_test_cases_for_meta_prompt(meta.id)
        criteria = self._repo.get_all_criteria()
        if criterion_ids is not None:
            wanted = set(criterion_ids)
            criteria = [c for c in criteria if c.id in wanted]

        audit = EvaluationAuditEntry(
            meta_prompt_id=meta.id,
            evaluators=[ev.name for ev in self._orchestrator.evaluators],
            variations=len(variations),
            test_cases=len(test_cases),
            criteria=len(criteria),
        )
        t0 = time.monotonic()
        try:
            rows = await self._orchestrator.run(
                variations, test_cases, criteria,
                on_progress=on_progress, cancel_event=cancel_event,
            )
        except Exception as e:
            audit.ok = False
            audit.error = str(e)
            audit.duration_ms = int((time.monotonic() - t0) * 1000)
            audit.emit()
            raise

        aggregated = aggregate_results(rows, include_degraded=self._include_degraded)
        stored = [self._repo.create_evaluation_result(r) for r in aggregated]

        audit.raw_rows = len(rows)
        audit.degraded_rows = sum(1 for r in rows if r.degraded)
        audit.cells = len(stored)
        audit.duration_ms = int((time.monotonic() - t0) * 1000)
        audit.emit()
        return stored

    def leaderboard(self, meta_prompt_id: int) -> List[LeaderboardEntry]:
        self._require_meta_prompt(meta_prompt_id)
        return self._repo.get_leaderboard(meta_prompt_id)

    async def run(
        self,
        base_prompt: str,
        criteria: Optional[Iterable[EvaluationCriterion]] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[LeaderboardEntry]:
        """All stages end to end. Returns the leaderboard for the new meta prompt."""
        meta = await self.create_meta_prompt(base_prompt)
        logger.info("Meta prompt %d created (%d chars)", meta.id, len(meta.generated_prompt))
        await self.create_variations(meta.id)
        await self.create_test_cases(meta.id)
        stored = self.ensure_criteria(criteria)
        criterion_ids = [c.id for c in stored] if criteria is not None else None
        await self.evaluate(
            meta.id, criterion_ids=criterion_ids,
            on_progress=on_progress, cancel_event=cancel_event,
        )
        return self.leaderboard(meta.id)

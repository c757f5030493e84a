# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Repository contract and an in-memory implementation.

The repository is an explicit object handed to the workflow; create one per
process (or per test) and drop it when done.
"""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from promptlab.errors import EntityNotFoundError
from promptlab.evaluation.leaderboard import build_leaderboard
from promptlab.models import (
    EvaluationCriterion, EvaluationResult, LeaderboardEntry,
    MetaPrompt, PromptVariation, TestCase,
)

logger = logging.getLogger(__name__)


class Repository(ABC):
    """CRUD contract consumed by the workflow.

    ``create_*`` ignores the incoming ``id`` and returns the stored copy with
    its assigned id. ``get_*`` returns None for unknown ids; ``update_*``
    raises EntityNotFoundError; ``delete_*`` of an unknown id is a no-op.
    """

    # Meta prompts
    @abstractmethod
    def create_meta_prompt(self, data: MetaPrompt) -> MetaPrompt: ...

    @abstractmethod
    def get_meta_prompt(self, meta_prompt_id: int) -> Optional[MetaPrompt]: ...

    @abstractmethod
    def get_all_meta_prompts(self) -> List[MetaPrompt]: ...

    @abstractmethod
    def update_meta_prompt(self, meta_prompt_id: int, generated_prompt: str) -> MetaPrompt: ...

    # Variations
    @abstractmethod
    def create_variation(self, data: PromptVariation) -> PromptVariation: ...

    @abstractmethod
    def get_variation(self, variation_id: int) -> Optional[PromptVariation]: ...

    @abstractmethod
    def get_variations_for_meta_prompt(self, meta_prompt_id: int) -> List[PromptVariation]: ...

    @abstractmethod
    def update_variation(self, variation_id: int, content: str) -> PromptVariation: ...

    @abstractmethod
    def delete_variation(self, variation_id: int) -> None: ...

    # Test cases
    @abstractmethod
    def create_test_case(self, data: TestCase) -> TestCase: ...

    @abstractmethod
    def get_test_case(self, test_case_id: int) -> Optional[TestCase]: ...

    @abstractmethod
    def get_test_cases_for_meta_prompt(self, meta_prompt_id: int) -> List[TestCase]: ...

    @abstractmethod
    def update_test_case(self, test_case_id: int, input: str) -> TestCase: ...

    @abstractmethod
    def delete_test_case(self, test_case_id: int) -> None: ...

    # Criteria
    @abstractmethod
    def create_criterion(self, data: EvaluationCriterion) -> EvaluationCriterion: ...

    @abstractmethod
    def get_criterion(self, criterion_id: int) -> Optional[EvaluationCriterion]: ...

    @abstractmethod
    def get_all_criteria(self) -> List[EvaluationCriterion]: ...

    @abstractmethod
    def update_criterion(self, criterion_id: int, **changes: Any) -> EvaluationCriterion: ...

    @abstractmethod
    def delete_criterion(self, criterion_id: int) -> None: ...

    # Evaluation results
    @abstractmethod
    def create_evaluation_result(self, data: EvaluationResult) -> EvaluationResult: ...

    @abstractmethod
    def get_evaluation_result(self, result_id: int) -> Optional[EvaluationResult]: ...

    @abstractmethod
    def get_results_for_variation(self, variation_id: int) -> List[EvaluationResult]: ...

    @abstractmethod
    def get_results_for_test_case(self, test_case_id: int) -> List[EvaluationResult]: ...

    def get_leaderboard(self, meta_prompt_id: int) -> List[LeaderboardEntry]:
        """Ranked entries for every variation of a meta prompt."""
        variations = self.get_variations_for_meta_prompt(meta_prompt_id)
        results: List[EvaluationResult] = []
        for v in variations:
            results.extend(self.get_results_for_variation(v.id))
        return build_leaderboard(variations, results, self.get_all_criteria())


class MemoryRepository(Repository):
    """Dict-backed repository with per-kind ids starting at 1.

    Writes are serialized by one lock, so a single instance may be shared
    between concurrent runs.
    """

    _KINDS = ("meta_prompt", "variation", "test_case", "criterion", "result")

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tables: Dict[str, Dict[int, Any]] = {kind: {} for kind in self._KINDS}
        self._next_ids: Dict[str, int] = {kind: 1 for kind in self._KINDS}

    # ── internals ──────────────────────────────────────────────

    def _insert(self, kind: str, data):
        with self._lock:
            entity_id = self._next_ids[kind]
            self._next_ids[kind] += 1
            stored = data.model_copy(update={"id": entity_id}, deep=True)
            self._tables[kind][entity_id] = stored
        logger.debug("created %s %d", kind, entity_id)
        return stored.model_copy(deep=True)

    def _get(self, kind: str, entity_id: int):
        stored = self._tables[kind].get(entity_id)
        return stored.model_copy(deep=True) if stored is not None else None

    def _list(self, kind: str, **filters) -> list:
        rows = []
        for stored in list(self._tables[kind].values()):
            if all(getattr(stored, k) == v for k, v in filters.items()):
                rows.append(stored.model_copy(deep=True))
        return rows

    def _update(self, kind: str, entity_id: int, changes: Dict[str, Any]):
        changes = {k: v for k, v in changes.items() if k != "id"}
        with self._lock:
            stored = self._tables[kind].get(entity_id)
            if stored is None:
                raise EntityNotFoundError(kind, entity_id)
            unknown = set(changes) - set(type(stored).model_fields)
            if unknown:
                raise ValueError("unknown {} fields: {}".format(kind, ", ".join(sorted(unknown))))
            updated = stored.model_copy(update=changes, deep=True)
            self._tables[kind][entity_id] = updated
        return updated.model_copy(deep=True)

    def _delete(self, kind: str, entity_id: int) -> None:
        with self._lock:
            self._tables[kind].pop(entity_id, None)

    # ── meta prompts ───────────────────────────────────────────

    def create_meta_prompt(self, data: MetaPrompt) -> MetaPrompt:
        return self._insert("meta_prompt", data)

    def get_meta_prompt(self, meta_prompt_id: int) -> Optional[MetaPrompt]:
        return self._get("meta_prompt", meta_prompt_id)

    def get_all_meta_prompts(self) -> List[MetaPrompt]:
        return self._list("meta_prompt")

    def update_meta_prompt(self, meta_prompt_id: int, generated_prompt: str) -> MetaPrompt:
        return self._update("meta_prompt", meta_prompt_id, {"generated_prompt": generated_prompt})

    # ── variations ─────────────────────────────────────────────

    def create_variation(self, data: PromptVariation) -> PromptVariation:
        return self._insert("variation", data)

    def get_variation(self, variation_id: int) -> Optional[PromptVariation]:
        return self._get("variation", variation_id)

    def get_variations_for_meta_prompt(self, meta_prompt_id: int) -> List[PromptVariation]:
        return self._list("variation", meta_prompt_id=meta_prompt_id)

    def update_variation(self, variation_id: int, content: str) -> PromptVariation:
        return self._update("variation", variation_id, {"content": content})

    def delete_variation(self, variation_id: int) -> None:
        self._delete("variation", variation_id)

    # ── test cases ─────────────────────────────────────────────

    def create_test_case(self, data: TestCase) -> TestCase:
        return self._insert("test_case", data)

    def get_test_case(self, test_case_id: int) -> Optional[TestCase]:
        return self._get("test_case", test_case_id)

    def get_test_cases_for_meta_prompt(self, meta_prompt_id: int) -> List[TestCase]:
        return self._list("test_case", meta_prompt_id=meta_prompt_id)

    def update_test_case(self, test_case_id: int, input: str) -> TestCase:
        return self._update("test_case", test_case_id, {"input": input})

    def delete_test_case(self, test_case_id: int) -> None:
        self._delete("test_case", test_case_id)

    # ── criteria ───────────────────────────────────────────────

    def create_criterion(self, data: EvaluationCriterion) -> EvaluationCriterion:
        return self._insert("criterion", data)

    def get_criterion(self, criterion_id: int) -> Optional[EvaluationCriterion]:
        return self._get("criterion", criterion_id)

    def get_all_criteria(self) -> List[EvaluationCriterion]:
        return self._list("criterion")

    def update_criterion(self, criterion_id: int, **changes: Any) -> EvaluationCriterion:
        return self._update("criterion", criterion_id, changes)

    def delete_criterion(self, criterion_id: int) -> None:
        self._delete("criterion", criterion_id)

    # ── evaluation results ─────────────────────────────────────

    def create_evaluation_result(self, data: EvaluationResult) -> EvaluationResult:
        return self._insert("result", data)

    def get_evaluation_result(self, result_id: int) -> Optional[EvaluationResult]:
        return self._get("result", result_id)

    def get_results_for_variation(self, variation_id: int) -> List[EvaluationResult]:
        return self._list("result", variation_id=variation_id)

    def get_results_for_test_case(self, test_case_id: int) -> List[EvaluationResult]:
        return self._list("result", test_case_id=test_case_id)

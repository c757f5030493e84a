# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Leaderboard: one ranked row per variation."""
import math
from typing import Dict, List, Sequence

from promptlab.models import (
    BestModelPair, EvaluationCriterion, EvaluationResult,
    LeaderboardEntry, ModelProvider, PromptVariation,
)


def _rank_key(entry: LeaderboardEntry):
    # NaN (not yet evaluated) sinks to the bottom
    if math.isnan(entry.average_score):
        return (1, 0.0)
    return (0, -entry.average_score)


def build_entry(
    variation: PromptVariation,
    results: Sequence[EvaluationResult],
    criteria: Sequence[EvaluationCriterion],
) -> LeaderboardEntry:
    """Summarize one variation's aggregated results.

    ``results`` must be this variation's rows in stored order; the first
    row holding the maximum score decides ``best_model_pair``.
    """
    scores: Dict[str, float] = {}
    for criterion in criteria:
        values = [r.score for r in results if r.criterion_id == criterion.id]
        if values:
            scores[criterion.name] = sum(values) / len(values)

    # Criteria count equally, however many test cases fed each one
    average = sum(scores.values()) / len(scores) if scores else float("nan")

    by_id = {c.id: c for c in criteria}
    best = BestModelPair(provider=ModelProvider.OPENAI, model="", score=0.0)
    for r in results:
        if r.score > best.score:
            criterion = by_id.get(r.criterion_id)
            if criterion is not None:
                best = BestModelPair(
                    provider=criterion.llm_config.provider,
                    model=criterion.llm_config.model,
                    score=r.score,
                )
            else:
                best = BestModelPair(provider=best.provider, model=best.model, score=r.score)

    return LeaderboardEntry(
        variation_id=variation.id,
        content=variation.content,
        average_score=average,
        scores=scores,
        best_model_pair=best,
        degraded_count=sum(r.degraded_count for r in results),
    )


def build_leaderboard(
    variations: Sequence[PromptVariation],
    results: Sequence[EvaluationResult],
    criteria: Sequence[EvaluationCriterion],
) -> List[LeaderboardEntry]:
    """Rank variations by average score, best first.

    Equal averages keep the order of ``variations``; unevaluated variations
    (NaN average) come last.
    """
    by_variation: Dict[int, List[EvaluationResult]] = {v.id: [] for v in variations}
    for r in results:
        if r.variation_id in by_variation:
            by_variation[r.variation_id].append(r)

    entries = [build_entry(v, by_variation[v.id], criteria) for v in variations]
    return sorted(entries, key=_rank_key)

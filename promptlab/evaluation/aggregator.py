# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Collapse raw per-agent rows into one EvaluationResult per cell."""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Tuple

from promptlab.errors import AggregationError
from promptlab.models import AgentEvaluationResult, EvaluationResult

logger = logging.getLogger(__name__)

CellKey = Tuple[int, int, int]


def _mean(values: List[float], key: CellKey) -> float:
    if not values:
        raise AggregationError("empty result group for cell {}".format(key))
    return sum(values) / len(values)


def _one_decimal(score: float) -> str:
    # Half-up, so 7.25 shows as 7.3
    return str(Decimal(repr(score)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def format_agent_response(row: AgentEvaluationResult) -> str:
    return "**{}** (Score: {}/10):\n{}\n".format(row.agent, _one_decimal(row.score), row.reasoning)


def group_by_cell(
    rows: Iterable[AgentEvaluationResult],
) -> Dict[CellKey, List[AgentEvaluationResult]]:
    """Group rows by (variation, test case, criterion), first-seen order."""
    groups: Dict[CellKey, List[AgentEvaluationResult]] = {}
    for row in rows:
        groups.setdefault(row.cell_key, []).append(row)
    return groups


def aggregate_results(
    rows: Iterable[AgentEvaluationResult],
    include_degraded: bool = True,
) -> List[EvaluationResult]:
    """Reduce raw agent rows to one aggregated row per cell.

    The score is the unweighted mean over every row of the cell. With
    ``include_degraded=False`` fallback rows are left out of the mean unless
    the whole cell is degraded, in which case every row is used.
    IDs are assigned 0, 1, 2... in first-seen cell order.
    """
    aggregated: List[EvaluationResult] = []
    for index, (key, group) in enumerate(group_by_cell(rows).items()):
        scored = group
        if not include_degraded:
            real = [r for r in group if not r.degraded]
            scored = real or group
        degraded_count = sum(1 for r in group if r.degraded)

        variation_id, test_case_id, criterion_id = key
        aggregated.append(EvaluationResult(
            id=index,
            variation_id=variation_id,
            test_case_id=test_case_id,
            criterion_id=criterion_id,
            score=_mean([r.score for r in scored], key),
            response="\n".join(format_agent_response(r) for r in group),
            evaluator_model="+".join(r.agent for r in group),
            degraded_count=degraded_count,
        ))

    logger.debug("Aggregated %d cells", len(aggregated))
    return aggregated

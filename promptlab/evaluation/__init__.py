# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Evaluation pipeline: judges, orchestration, aggregation, leaderboard.

Data flow:
    variations x test cases x criteria
        -> EvaluationOrchestrator (x AgentEvaluator)  raw AgentEvaluationResult rows
        -> aggregate_results                          one EvaluationResult per cell
        -> build_leaderboard                          ranked LeaderboardEntry list
"""
from promptlab.evaluation.agent import (
    AgentEvaluator, EvaluatorSpec, DEFAULT_EVALUATOR_SPECS, build_evaluators,
)
from promptlab.evaluation.aggregator import aggregate_results
from promptlab.evaluation.leaderboard import build_leaderboard
from promptlab.evaluation.orchestrator import EvaluationOrchestrator

__all__ = [
    "AgentEvaluator", "EvaluatorSpec", "DEFAULT_EVALUATOR_SPECS", "build_evaluators",
    "EvaluationOrchestrator", "aggregate_results", "build_leaderboard",
]

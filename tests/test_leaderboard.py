# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Tests for leaderboard ranking."""
import math

from conftest import make_criteria, make_variations
from promptlab.evaluation.leaderboard import build_entry, build_leaderboard
from promptlab.models import EvaluationResult, ModelProvider


def _result(v, t, c, score, degraded_count=0):
    return EvaluationResult(
        variation_id=v, test_case_id=t, criterion_id=c,
        score=score, degraded_count=degraded_count,
    )


class TestBuildEntry:

    def test_average_of_criterion_means(self):
        variation = make_variations(1)[0]
        criteria = make_criteria(2)
        # criterion1 over three test cases, criterion2 over one
        results = [
            _result(1, 1, 1, 4.0), _result(1, 2, 1, 6.0), _result(1, 3, 1, 8.0),
            _result(1, 1, 2, 9.0),
        ]
        entry = build_entry(variation, results, criteria)
        assert entry.scores == {"criterion1": 6.0, "criterion2": 9.0}
        assert entry.average_score == 7.5

    def test_no_results_is_nan(self):
        entry = build_entry(make_variations(1)[0], [], make_criteria(2))
        assert math.isnan(entry.average_score)
        assert entry.scores == {}
        assert not entry.is_evaluated

    def test_best_model_pair_from_criterion_config(self):
        criteria = make_criteria(3)
        results = [_result(1, 1, 1, 6.0), _result(1, 1, 2, 9.0), _result(1, 1, 3, 7.0)]
        entry = build_entry(make_variations(1)[0], results, criteria)
        assert entry.best_model_pair.provider == ModelProvider.ANTHROPIC
        assert entry.best_model_pair.model == "judge-2"
        assert entry.best_model_pair.score == 9.0

    def test_best_model_pair_tie_keeps_first(self):
        results = [_result(1, 1, 1, 8.0), _result(1, 1, 2, 8.0)]
        entry = build_entry(make_variations(1)[0], results, make_criteria(2))
        assert entry.best_model_pair.model == "judge-1"

    def test_best_model_pair_unknown_criterion(self):
        results = [_result(1, 1, 99, 8.0)]
        entry = build_entry(make_variations(1)[0], results, make_criteria(1))
        assert entry.best_model_pair.score == 8.0
        assert entry.best_model_pair.model == ""
        assert math.isnan(entry.average_score)

    def test_degraded_count_summed(self):
        results = [_result(1, 1, 1, 6.0, degraded_count=1), _result(1, 2, 1, 6.0, degraded_count=2)]
        entry = build_entry(make_variations(1)[0], results, make_criteria(1))
        assert entry.degraded_count == 3


class TestBuildLeaderboard:

    def test_sorted_descending(self):
        variations = make_variations(2)
        criteria = make_criteria(1)
        results = [_result(1, 1, 1, 6.9), _result(2, 1, 1, 7.2)]
        board = build_leaderboard(variations, results, criteria)
        assert [e.variation_id for e in board] == [2, 1]
        assert board[0].average_score == 7.2

    def test_one_entry_per_variation(self):
        board = build_leaderboard(make_variations(3), [_result(2, 1, 1, 5.0)], make_criteria(1))
        assert sorted(e.variation_id for e in board) == [1, 2, 3]

    def test_unevaluated_last(self):
        variations = make_variations(3)
        results = [_result(2, 1, 1, 3.0), _result(3, 1, 1, 9.0)]
        board = build_leaderboard(variations, results, make_criteria(1))
        assert [e.variation_id for e in board] == [3, 2, 1]
        assert math.isnan(board[-1].average_score)

    def test_ties_keep_variation_order(self):
        variations = make_variations(3)
        results = [_result(1, 1, 1, 7.0), _result(2, 1, 1, 7.0), _result(3, 1, 1, 7.0)]
        board = build_leaderboard(variations, results, make_criteria(1))
        assert [e.variation_id for e in board] == [1, 2, 3]

    def test_results_for_unknown_variations_ignored(self):
        board = build_leaderboard(make_variations(1), [_result(5, 1, 1, 10.0)], make_criteria(1))
        assert len(board) == 1
        assert not board[0].is_evaluated

    def test_empty(self):
        assert build_leaderboard([], [], make_criteria(1)) == []

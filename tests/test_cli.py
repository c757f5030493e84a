# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Tests for CLI entry point."""
import pytest

from promptlab import __version__
from promptlab.cli import format_leaderboard, main
from promptlab.models import LeaderboardEntry


def test_version_output(capsys):
    """promptlab version prints the version string."""
    main(["version"])
    out = capsys.readouterr().out
    assert "v{}".format(__version__) in out


def test_version_shows_deps_status(capsys):
    main(["version"])
    out = capsys.readouterr().out.lower()
    assert "openai" in out
    assert "anthropic" in out


def test_help_no_crash(capsys):
    """Running with no args prints help without crashing."""
    main([])
    out = capsys.readouterr().out
    assert "usage" in out.lower()


def test_criteria_defaults(capsys):
    main(["criteria"])
    out = capsys.readouterr().out
    for name in ("Clarity", "Relevance", "Completeness", "Safety"):
        assert name in out


def test_criteria_from_yaml(tmp_path, capsys):
    path = tmp_path / "criteria.yaml"
    path.write_text(
        "criteria:\n"
        "  - name: Tone\n"
        "    description: Friendly but firm\n"
        "    weight: 2\n"
        "    llm_config:\n"
        "      provider: anthropic\n"
        "      model: claude-x\n",
        encoding="utf-8",
    )
    main(["criteria", "--file", str(path)])
    out = capsys.readouterr().out
    assert "Tone" in out
    assert "anthropic/claude-x" in out
    assert "Friendly but firm" in out


def test_criteria_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["criteria", "-f", str(tmp_path / "nope.yaml")])
    assert exc_info.value.code == 1
    assert "Error" in capsys.readouterr().err


def test_criteria_malformed_yaml(tmp_path, capsys):
    path = tmp_path / "broken.yaml"
    path.write_text("criteria: [name: Tone\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc_info:
        main(["criteria", "-f", str(path)])
    assert exc_info.value.code == 1
    assert "Error" in capsys.readouterr().err


def test_run_invalid_criteria_entry(tmp_path, monkeypatch, capsys):
    """A criterion without a name is reported, not raised as a traceback."""
    for key in ["OPENAI_API_KEY", "ANTHROPIC_API_KEY", "PROMPTLAB_PROVIDER"]:
        monkeypatch.delenv(key, raising=False)
    path = tmp_path / "criteria.yaml"
    path.write_text("criteria:\n  - description: no name here\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc_info:
        main(["run", "coach", "-c", str(path)])
    assert exc_info.value.code == 1
    assert "Error" in capsys.readouterr().err


def test_run_without_keys_shows_error(monkeypatch, capsys):
    """Run without any API key fails at generation, not with a traceback."""
    for key in ["OPENAI_API_KEY", "ANTHROPIC_API_KEY", "PROMPTLAB_PROVIDER", "PROMPTLAB_MODEL"]:
        monkeypatch.delenv(key, raising=False)
    with pytest.raises(SystemExit) as exc_info:
        main(["run", "boxing", "coach", "--pacing", "0"])
    assert exc_info.value.code == 1
    assert "Error" in capsys.readouterr().err


def test_format_leaderboard():
    board = [
        LeaderboardEntry(variation_id=2, content="You are strong.\nMore text", average_score=7.2,
                         scores={"Clarity": 7.2}, degraded_count=1),
        LeaderboardEntry(variation_id=1, content="You are plain.", average_score=float("nan")),
    ]
    text = format_leaderboard(board)
    lines = text.splitlines()
    assert lines[0].startswith(" 1.  7.20  variation 2  You are strong.")
    assert "Clarity=7.2" in lines[1]
    assert "1 fallback judgment(s) included" in lines[2]
    assert "n/a" in lines[3]


def test_format_empty_leaderboard():
    assert format_leaderboard([]) == "No variations."

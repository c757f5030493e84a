# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Tests for LabConfig loading and clamping."""
import logging

from promptlab.config import LabConfig
from promptlab.models import ModelProvider


def _clear_env(monkeypatch):
    for key in ["PROMPTLAB_PROVIDER", "PROMPTLAB_MODEL", "OPENAI_API_KEY",
                "ANTHROPIC_API_KEY", "PROMPTLAB_PACING_DELAY", "PROMPTLAB_BASE_URL"]:
        monkeypatch.delenv(key, raising=False)


class TestLabConfig:

    def test_defaults(self):
        cfg = LabConfig()
        assert cfg.provider == "openai"
        assert cfg.evaluator_timeout == 120.0
        assert cfg.pacing_delay == 0.5
        assert cfg.fallback_score_range == (5.0, 8.0)

    def test_from_dict(self):
        cfg = LabConfig.from_dict({
            "provider": "anthropic",
            "anthropic_api_key": "sk-ant",
            "model": "claude-x",
            "temperature": 0.3,
            "pacing_delay": 0,
        })
        assert cfg.provider == "anthropic"
        assert cfg.anthropic_api_key == "sk-ant"
        assert cfg.resolved_model == "claude-x"
        assert cfg.temperature == 0.3
        assert cfg.pacing_delay == 0

    def test_from_dict_defaults(self):
        cfg = LabConfig.from_dict({})
        assert cfg.provider == "openai"
        assert cfg.max_tokens == 2048

    def test_resolved_model_per_provider(self):
        assert LabConfig(provider="openai").resolved_model == "gpt-4o"
        assert LabConfig(provider="anthropic").resolved_model == "claude-3-5-sonnet-20241022"
        assert LabConfig(provider="ollama").resolved_model == "llama3.2"

    def test_unknown_provider_falls_back(self):
        cfg = LabConfig(provider="gemini")
        assert cfg.provider == "openai"

    def test_clamps_out_of_range_values(self):
        cfg = LabConfig(temperature=5.0, max_tokens=0, top_p=3.0,
                        pacing_delay=-1, fallback_score_min=9, fallback_score_max=2)
        assert cfg.temperature == 2.0
        assert cfg.max_tokens == 1
        assert cfg.top_p == 1.0
        assert cfg.pacing_delay == 0.0
        assert cfg.fallback_score_range == (2, 9)

    def test_api_key_for(self):
        cfg = LabConfig(openai_api_key="sk-o", anthropic_api_key="sk-a")
        assert cfg.api_key_for(ModelProvider.OPENAI) == "sk-o"
        assert cfg.api_key_for(ModelProvider.ANTHROPIC) == "sk-a"
        assert cfg.api_key_for(ModelProvider.OLLAMA) == "ollama"

    def test_model_config(self):
        cfg = LabConfig(provider="anthropic", anthropic_api_key="sk-a", temperature=0.4)
        mc = cfg.model_config()
        assert mc.provider == ModelProvider.ANTHROPIC
        assert mc.model == "claude-3-5-sonnet-20241022"
        assert mc.api_key == "sk-a"
        assert mc.temperature == 0.4

    def test_repr_hides_keys(self):
        cfg = LabConfig(openai_api_key="sk-secret-123")
        assert "sk-secret" not in repr(cfg)

    def test_from_env_openai(self, monkeypatch):
        _clear_env(monkeypatch)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        cfg = LabConfig.from_env()
        assert cfg.provider == "openai"
        assert cfg.openai_api_key == "sk-test"

    def test_from_env_anthropic_only(self, monkeypatch):
        _clear_env(monkeypatch)
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        cfg = LabConfig.from_env()
        assert cfg.provider == "anthropic"
        assert cfg.anthropic_api_key == "sk-ant-test"

    def test_from_env_explicit_settings(self, monkeypatch):
        _clear_env(monkeypatch)
        monkeypatch.setenv("PROMPTLAB_PROVIDER", "ollama")
        monkeypatch.setenv("PROMPTLAB_PACING_DELAY", "0.1")
        cfg = LabConfig.from_env()
        assert cfg.provider == "ollama"
        assert cfg.pacing_delay == 0.1

    def test_fallback_range_clamped_to_score_bounds(self, caplog):
        with caplog.at_level(logging.WARNING, logger="promptlab.config"):
            cfg = LabConfig(fallback_score_min=-5, fallback_score_max=20)
        assert cfg.fallback_score_range == (1.0, 10.0)
        assert "fallback_score_min" in caplog.text
        assert "fallback_score_max" in caplog.text

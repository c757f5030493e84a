# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""promptlab: multi-judge prompt evaluation and ranking."""
from promptlab.config import LabConfig
from promptlab.models import (
    AgentEvaluationResult, EvaluationCriterion, EvaluationResult, LeaderboardEntry,
    MetaPrompt, ModelConfig, ModelProvider, PromptVariation, TestCase,
)

__version__ = "0.3.0"
__all__ = [
    "LabConfig",
    "ModelConfig", "ModelProvider",
    "MetaPrompt", "PromptVariation", "TestCase", "EvaluationCriterion",
    "AgentEvaluationResult", "EvaluationResult", "LeaderboardEntry",
    "PromptWorkflow",
    "create_workflow",
    "__version__",
]


def __getattr__(name):
    # Lazy: keeps `import promptlab` cheap for model-only users
    if name == "PromptWorkflow":
        from promptlab.workflow import PromptWorkflow
        return PromptWorkflow
    raise AttributeError("module 'promptlab' has no attribute '{}'".format(name))


def create_workflow(
    provider: str = "",
    model: str = "",
    **kwargs,
):
    """Convenience factory: config from the environment, overridden by arguments."""
    from promptlab.workflow import PromptWorkflow

    config = LabConfig.from_env()
    if provider:
        config.provider = provider
    if model:
        config.model = model
    for key, value in kwargs.items():
        setattr(config, key, value)
    config.__post_init__()
    return PromptWorkflow.from_config(config)

# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Evaluation criteria: built-in defaults and YAML loading.

YAML format::

    criteria:
      - name: Clarity
        description: Instructions are unambiguous
        weight: 1.0
        llm_config:
          provider: anthropic
          model: claude-3-5-sonnet-20241022
"""
import logging
from pathlib import Path
from typing import List, Optional

import yaml

from promptlab.models import EvaluationCriterion

logger = logging.getLogger(__name__)

DEFAULT_CRITERIA = [
    {
        "name": "Clarity",
        "description": "The instructions are unambiguous and easy for a model to follow.",
    },
    {
        "name": "Relevance",
        "description": "The prompt steers answers toward what the user actually asked.",
    },
    {
        "name": "Completeness",
        "description": "Role, format, constraints and edge cases are all covered.",
    },
    {
        "name": "Safety",
        "description": "The prompt sets sensible boundaries for harmful or out-of-scope requests.",
    },
]


def default_criteria() -> List[EvaluationCriterion]:
    """Unsaved (id=0) copies of the built-in criteria."""
    return [EvaluationCriterion(**item) for item in DEFAULT_CRITERIA]


def load_criteria(path: Optional[str] = None) -> List[EvaluationCriterion]:
    """Load criteria from a YAML file. Falls back to the defaults when no path is given."""
    if path is None:
        return default_criteria()

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError("Criteria file not found: {}".format(path))

    with open(p, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    criteria = [EvaluationCriterion(**item) for item in data.get("criteria", [])]
    if not criteria:
        logger.warning("No criteria in %s, using defaults", path)
        return default_criteria()
    return criteria

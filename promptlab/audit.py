# Copyright 2024 Flyto
# Licensed under the Apache License, Version 2.0
"""Structured audit logging for evaluation runs."""
import json
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger("promptlab.audit")


@dataclass
class EvaluationAuditEntry:
    """One evaluation run audit record.

    Emitted as structured JSON to the ``promptlab.audit`` logger at INFO level.
    """
    timestamp: float = field(default_factory=time.time)
    meta_prompt_id: int = 0
    evaluators: List[str] = field(default_factory=list)
    variations: int = 0
    test_cases: int = 0
    criteria: int = 0
    raw_rows: int = 0
    degraded_rows: int = 0
    cells: int = 0
    duration_ms: int = 0
    ok: bool = True
    error: Optional[str] = None

    @property
    def degraded_ratio(self) -> float:
        return self.degraded_rows / self.raw_rows if self.raw_rows else 0.0

    def emit(self) -> None:
        """Emit this entry as a structured JSON log line."""
        record = {
            "event": "evaluation_audit",
            "ts": self.timestamp,
            "meta_prompt_id": self.meta_prompt_id,
            "evaluators": self.evaluators,
            "variations": self.variations,
            "test_cases": self.test_cases,
            "criteria": self.criteria,
            "cells": self.cells,
            "raw_rows": self.raw_rows,
            "degraded_rows": self.degraded_rows,
            "degraded_ratio": round(self.degraded_ratio, 3),
            "duration_ms": self.duration_ms,
            "ok": self.ok,
        }
        if self.error:
            record["error"] = self.error
        logger.info(json.dumps(record, ensure_ascii=False))

"""Structured stage events for scenario runs driven by an ops task."""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, TextIO

EVENT_PREFIX = "SCENARIO_STAGE"
TASK_ENV = "OPS_TASK"


@dataclass(frozen=True)
class StageEvent:
    task: str
    stage: str
    step: int
    steps: int
    status: str
    timestamp: str
    values: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        payload = {
            "task": self.task,
            "stage": self.stage,
            "step": self.step,
            "steps": self.steps,
            "status": self.status,
            "timestamp": self.timestamp,
            # Token amounts exceed JSON's safe integer range.
            "values": {key: str(value) for key, value in self.values.items()},
        }
        return json.dumps(payload, separators=(",", ":"))


def emit_stage(
    stage: str,
    step: int,
    steps: int,
    *,
    status: str = "ok",
    values: dict[str, Any] | None = None,
    stream: TextIO | None = None,
) -> StageEvent | None:
    """Print a stage event when an ops task is active; return what was emitted."""
    task = os.environ.get(TASK_ENV)
    if not task or steps <= 0:
        return None
    event = StageEvent(
        task=task,
        stage=stage,
        step=step,
        steps=steps,
        status=status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        values=dict(values or {}),
    )
    print(f"{EVENT_PREFIX} {event.to_json()}", file=stream or sys.stdout, flush=True)
    return event

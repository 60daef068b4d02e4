"""Tabular summaries of a schedule and a scenario run."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pandas as pd

from . import config as cfg
from .schedule import ScheduleEntry
from .scenario import ScenarioReport


def schedule_frame(entries: Sequence[ScheduleEntry], duration_seconds: int) -> pd.DataFrame:
    """One row per schedule entry with the amount it will actually deliver.

    Integer columns are stored as strings; uint88 rates and 18-decimal totals do
    not fit in int64.
    """
    records = [
        {
            "target": entry.target,
            "rate_per_second": str(entry.rate_per_second),
            "scheduled_total": str(entry.rate_per_second * duration_seconds),
            "schedule_end": entry.schedule_end,
        }
        for entry in entries
    ]
    return pd.DataFrame(
        records, columns=["target", "rate_per_second", "scheduled_total", "schedule_end"]
    )


def outcome_frame(report: ScenarioReport) -> pd.DataFrame:
    outcome = report.outcome
    row = {
        "balance_before": str(outcome.balance_before),
        "balance_after": str(outcome.balance_after),
        "delta": str(outcome.delta),
        "expected_accrued": str(outcome.expected_accrued),
        "tolerated_deviation": str(outcome.tolerated_deviation),
        "claimed_amount": str(report.claimed_amount),
        "elapsed_seconds": report.elapsed_seconds,
        "final_stage": report.stages[-1].value,
    }
    for name, deviation in report.deviations.items():
        row[f"{name}_deviation"] = str(deviation)
    return pd.DataFrame([row])


def write_report(report: ScenarioReport, duration_seconds: int, label: str = "claim_scenario") -> tuple[Path, Path]:
    """Write the schedule and outcome tables as CSV under out/."""
    schedule_path = cfg.report_path(f"{label}_schedule")
    outcome_path = cfg.report_path(f"{label}_outcome")
    schedule_path.parent.mkdir(parents=True, exist_ok=True)
    schedule_frame(report.program.entries, duration_seconds).to_csv(schedule_path, index=False)
    outcome_frame(report).to_csv(outcome_path, index=False)
    return schedule_path, outcome_path

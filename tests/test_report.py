from __future__ import annotations

import pandas as pd

from src import config
from src import emission_constants as const
from src import report as report_mod
from src.scenario import ScenarioConfig, run_claim_scenario
from src.schedule import EmissionTarget, build_schedule
from src.simulated import build_simulated_world

ASSET = "0x" + "88" * 20


def test_schedule_frame_keeps_big_integers_exact():
    entries = build_schedule([EmissionTarget(ASSET, 10_000 * const.WAD)], 5_184_000, 10_000 * const.WAD)
    df = report_mod.schedule_frame(entries, 5_184_000)

    assert list(df.columns) == ["target", "rate_per_second", "scheduled_total", "schedule_end"]
    assert df.loc[0, "rate_per_second"] == "1929012345679012"
    assert int(df.loc[0, "scheduled_total"]) == 9_999_999_999_999_998_208_000


def test_write_report_outputs_csvs(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "OUT_DIR", tmp_path)
    world = build_simulated_world(
        reward_token="0x" + "11" * 20,
        reward_oracle="0x" + "22" * 20,
        transfer_strategy="0x" + "55" * 20,
        emission_admin="0x" + "66" * 20,
        whale="0x" + "77" * 20,
        whale_reward_balance=10_000 * const.WAD,
    )
    world.controller.set_holding(ASSET, "0x" + "99" * 20, const.WAD)
    scenario_config = ScenarioConfig(
        targets=(EmissionTarget(ASSET, 10_000 * const.WAD),),
        reward_asset="0x" + "11" * 20,
        reward_oracle="0x" + "22" * 20,
        transfer_strategy="0x" + "55" * 20,
        emission_admin="0x" + "66" * 20,
        funder="0x" + "77" * 20,
        claimant="0x" + "99" * 20,
    )
    result = run_claim_scenario(scenario_config, world.collaborators())

    schedule_path, outcome_path = report_mod.write_report(
        result, scenario_config.duration_seconds, label="unit"
    )

    assert schedule_path == tmp_path / "unit_schedule.csv"
    outcome = pd.read_csv(outcome_path, dtype=str)
    assert outcome.loc[0, "final_stage"] == "verified"
    assert outcome.loc[0, "delta"] == outcome.loc[0, "expected_accrued"]
    assert outcome.loc[0, "accrual_proximity_deviation"] == "0"

from __future__ import annotations

import dataclasses

import pytest

from src import emission_constants as const
from src.collaborators import ExternalCallReverted
from src.scenario import (
    STAGE_ORDER,
    ScenarioConfig,
    ScenarioStage,
    ScenarioStepFailed,
    run_claim_scenario,
)
from src.schedule import EmissionTarget, InvalidProgramSum
from src.simulated import build_simulated_world
from src.verification import AssertionMode, ToleranceExceeded

TOKEN = "0x" + "11" * 20
ORACLE = "0x" + "22" * 20
STRATEGY = "0x" + "55" * 20
ADMIN = "0x" + "66" * 20
WHALE = "0x" + "77" * 20
ASSET = "0x" + "88" * 20
CLAIMANT = "0x" + "99" * 20

TOTAL = 10_000 * const.WAD
EXAMPLE_RATE = 1_929_012_345_679_012
EXAMPLE_ACCRUAL = 4_999_999_999_999_999_104_000


def _world(whale_balance: int = TOTAL):
    world = build_simulated_world(
        reward_token=TOKEN,
        reward_oracle=ORACLE,
        transfer_strategy=STRATEGY,
        emission_admin=ADMIN,
        whale=WHALE,
        whale_reward_balance=whale_balance,
    )
    world.controller.set_holding(ASSET, CLAIMANT, 1_000 * const.WAD)
    return world


def _config(**overrides) -> ScenarioConfig:
    base = ScenarioConfig(
        targets=(EmissionTarget(ASSET, TOTAL),),
        reward_asset=TOKEN,
        reward_oracle=ORACLE,
        transfer_strategy=STRATEGY,
        emission_admin=ADMIN,
        funder=WHALE,
        claimant=CLAIMANT,
    )
    return dataclasses.replace(base, **overrides)


def test_example_program_claims_expected_accrual():
    world = _world()
    report = run_claim_scenario(_config(), world.collaborators())

    assert report.stages == STAGE_ORDER
    assert report.program.entries[0].rate_per_second == EXAMPLE_RATE
    assert report.elapsed_seconds == 30 * const.SECONDS_PER_DAY
    assert report.claimed_amount == EXAMPLE_ACCRUAL
    assert report.outcome.balance_before == 0
    assert report.outcome.balance_after == EXAMPLE_ACCRUAL
    assert report.outcome.expected_accrued == EXAMPLE_ACCRUAL
    assert report.deviations == {"accrual_proximity": 0}


def test_scenario_leaves_expected_chain_state():
    world = _world()
    run_claim_scenario(_config(), world.collaborators())

    assert world.oracle.latest_answer() == const.DEFAULT_ORACLE_ANSWER
    assert world.reward_token.balance_of(WHALE) == 0
    assert world.reward_token.balance_of(ADMIN) == TOTAL - EXAMPLE_ACCRUAL
    assert world.reward_token.allowance(ADMIN, STRATEGY) == TOTAL - EXAMPLE_ACCRUAL


def test_balance_proximity_mode_flags_large_accrual():
    world = _world()
    with pytest.raises(ScenarioStepFailed) as excinfo:
        run_claim_scenario(
            _config(assertion_mode=AssertionMode.BALANCE_PROXIMITY), world.collaborators()
        )

    err = excinfo.value
    assert err.stage is ScenarioStage.VERIFIED
    assert isinstance(err.cause, ToleranceExceeded)
    assert err.values["balance_before"] == 0
    assert err.values["balance_after"] == EXAMPLE_ACCRUAL


def test_balance_proximity_mode_passes_small_claim():
    world = _world()
    report = run_claim_scenario(
        _config(
            assertion_mode=AssertionMode.BALANCE_PROXIMITY,
            advance_seconds=const.SECONDS_PER_DAY,
        ),
        world.collaborators(),
    )
    assert report.deviations["balance_proximity"] == EXAMPLE_RATE * const.SECONDS_PER_DAY


def test_both_mode_requires_both_properties():
    world = _world()
    with pytest.raises(ScenarioStepFailed) as excinfo:
        run_claim_scenario(_config(assertion_mode=AssertionMode.BOTH), world.collaborators())
    assert excinfo.value.stage is ScenarioStage.VERIFIED


def test_zero_accrual_fails_accrual_proximity():
    world = _world()
    world.controller.set_holding(ASSET, CLAIMANT, 0)
    with pytest.raises(ScenarioStepFailed) as excinfo:
        run_claim_scenario(_config(), world.collaborators())

    err = excinfo.value
    assert err.stage is ScenarioStage.VERIFIED
    assert err.values["delta"] == 0
    assert err.values["expected_accrued"] == EXAMPLE_ACCRUAL


def test_expected_accrual_caps_at_distribution_end():
    world = _world()
    report = run_claim_scenario(
        _config(advance_seconds=90 * const.SECONDS_PER_DAY), world.collaborators()
    )
    assert report.outcome.expected_accrued == EXAMPLE_RATE * 60 * const.SECONDS_PER_DAY
    assert report.claimed_amount == report.outcome.expected_accrued


def test_invalid_program_sum_aborts_at_configuration():
    world = _world()
    with pytest.raises(ScenarioStepFailed) as excinfo:
        run_claim_scenario(_config(program_total=TOTAL + 1), world.collaborators())

    err = excinfo.value
    assert err.stage is ScenarioStage.PROGRAM_CONFIGURED
    assert isinstance(err.cause, InvalidProgramSum)
    assert err.values["program_total"] == TOTAL + 1
    # Nothing was submitted.
    assert world.controller.distributions == {}


def test_unfunded_payer_aborts_at_funding():
    world = _world(whale_balance=TOTAL - 1)
    with pytest.raises(ScenarioStepFailed) as excinfo:
        run_claim_scenario(_config(), world.collaborators())
    assert excinfo.value.stage is ScenarioStage.FUNDED
    assert isinstance(excinfo.value.cause, ExternalCallReverted)


def test_underfunded_payer_makes_claim_revert():
    world = _world()
    with pytest.raises(ScenarioStepFailed) as excinfo:
        run_claim_scenario(_config(funding_amount=const.WAD), world.collaborators())

    err = excinfo.value
    assert err.stage is ScenarioStage.CLAIMED
    assert isinstance(err.cause, ExternalCallReverted)
    assert err.values["balance_before"] == 0
    # Accrual happened even though it could not be paid out.
    assert world.controller.accrued_rewards(CLAIMANT, TOKEN) == EXAMPLE_ACCRUAL


def test_configuration_by_non_admin_is_reverted():
    world = _world()
    world.emission_manager.emission_admins[TOKEN] = WHALE
    with pytest.raises(ScenarioStepFailed) as excinfo:
        run_claim_scenario(_config(), world.collaborators())
    assert excinfo.value.stage is ScenarioStage.PROGRAM_CONFIGURED
    assert "ONLY_EMISSION_ADMIN" in str(excinfo.value)


def test_zero_price_is_rejected_by_configurator():
    world = _world()
    with pytest.raises(ScenarioStepFailed) as excinfo:
        run_claim_scenario(_config(oracle_answer=0), world.collaborators())
    assert excinfo.value.stage is ScenarioStage.PROGRAM_CONFIGURED


def test_allowance_below_total_is_rejected_up_front():
    with pytest.raises(ValueError):
        _config(allowance=TOTAL - 1)


def test_stage_events_are_emitted_for_ops_tasks(monkeypatch, capsys):
    monkeypatch.setenv("OPS_TASK", "claim-scenario")
    run_claim_scenario(_config(), _world().collaborators())

    lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith("SCENARIO_STAGE")]
    assert len(lines) == len(STAGE_ORDER) - 1
    assert '"stage":"verified"' in lines[-1]

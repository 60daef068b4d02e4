"""End-to-end claim scenario for a freshly configured emission program.

The run is strictly linear::

    INIT -> PRICE_SEEDED -> PROGRAM_CONFIGURED -> FUNDED
         -> TIME_ADVANCED -> CLAIMED -> VERIFIED

Each stage blocks on its collaborator calls. The first failure aborts the run
with ScenarioStepFailed naming the stage and the raw values gathered so far;
nothing is retried at this level.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Sequence

from . import emission_constants as const
from .collaborators import ScenarioCollaborators
from .progress import emit_stage
from .schedule import EmissionTarget, Program, build_program
from .verification import AssertionMode, ClaimOutcome, expected_accrual, verify_claim

logger = logging.getLogger(__name__)


class ScenarioStage(str, Enum):
    INIT = "init"
    PRICE_SEEDED = "price_seeded"
    PROGRAM_CONFIGURED = "program_configured"
    FUNDED = "funded"
    TIME_ADVANCED = "time_advanced"
    CLAIMED = "claimed"
    VERIFIED = "verified"


STAGE_ORDER: tuple[ScenarioStage, ...] = tuple(ScenarioStage)


class ScenarioStepFailed(RuntimeError):
    """Raised when a stage fails; the original error is kept as ``cause``."""

    def __init__(self, stage: ScenarioStage, cause: BaseException, values: dict[str, Any]):
        rendered = ", ".join(f"{key}={value}" for key, value in values.items())
        super().__init__(
            f"Scenario failed at {stage.value}: {type(cause).__name__}: {cause}"
            + (f" [{rendered}]" if rendered else "")
        )
        self.stage = stage
        self.cause = cause
        self.values = values


@dataclass(frozen=True)
class ScenarioConfig:
    targets: Sequence[EmissionTarget]
    reward_asset: str
    reward_oracle: str
    transfer_strategy: str
    emission_admin: str
    funder: str
    claimant: str
    program_total: int = const.DEFAULT_PROGRAM_TOTAL
    duration_seconds: int = const.DEFAULT_DURATION_DAYS * const.SECONDS_PER_DAY
    advance_seconds: int = const.DEFAULT_ADVANCE_DAYS * const.SECONDS_PER_DAY
    tolerance: int = const.DEFAULT_TOLERANCE
    oracle_answer: int = const.DEFAULT_ORACLE_ANSWER
    allowance: int | None = None  # defaults to program_total
    funding_amount: int | None = None  # defaults to program_total
    expected_accrued: int | None = None  # defaults to rate * elapsed
    assertion_mode: AssertionMode = AssertionMode.ACCRUAL_PROXIMITY
    rate_width_bits: int = const.EMISSION_RATE_BITS

    def __post_init__(self) -> None:
        if self.allowance is not None and self.allowance < self.program_total:
            raise ValueError(
                f"Allowance {self.allowance} is below the program total {self.program_total}"
            )
        if self.advance_seconds < 0:
            raise ValueError(f"Cannot advance time by {self.advance_seconds} seconds")
        if self.tolerance < 0:
            raise ValueError(f"Tolerance cannot be negative: {self.tolerance}")

    @property
    def effective_allowance(self) -> int:
        return self.program_total if self.allowance is None else self.allowance

    @property
    def effective_funding(self) -> int:
        return self.program_total if self.funding_amount is None else self.funding_amount


@dataclass(frozen=True)
class ScenarioReport:
    program: Program
    outcome: ClaimOutcome
    claimed_amount: int
    elapsed_seconds: int
    stages: tuple[ScenarioStage, ...]
    deviations: dict[str, int] = field(default_factory=dict)


class _StageTracker:
    def __init__(self) -> None:
        self.completed: list[ScenarioStage] = [ScenarioStage.INIT]
        self.values: dict[str, Any] = {}

    @contextmanager
    def step(self, stage: ScenarioStage) -> Iterator[dict[str, Any]]:
        step_number = STAGE_ORDER.index(stage)
        try:
            yield self.values
        except Exception as exc:
            logger.error("Stage %s failed: %s", stage.value, exc)
            emit_stage(
                stage.value,
                step_number,
                len(STAGE_ORDER) - 1,
                status="failed",
                values=self.values,
            )
            raise ScenarioStepFailed(stage, exc, dict(self.values)) from exc
        self.completed.append(stage)
        logger.info("Stage %s complete", stage.value)
        emit_stage(stage.value, step_number, len(STAGE_ORDER) - 1, values=self.values)


def _expected_accrued(config: ScenarioConfig, program: Program, elapsed: int) -> int:
    if config.expected_accrued is not None:
        return config.expected_accrued
    return sum(
        expected_accrual(
            entry.rate_per_second,
            elapsed,
            duration_seconds=config.duration_seconds,
        )
        for entry in program.entries
    )


def run_claim_scenario(
    config: ScenarioConfig, collaborators: ScenarioCollaborators
) -> ScenarioReport:
    """Configure a program, let it accrue, claim and verify the claimed amount."""
    tracker = _StageTracker()
    token = collaborators.reward_token

    with tracker.step(ScenarioStage.PRICE_SEEDED) as values:
        collaborators.oracle.set_answer(config.oracle_answer)
        values["oracle_answer"] = config.oracle_answer

    with tracker.step(ScenarioStage.PROGRAM_CONFIGURED) as values:
        values["program_total"] = config.program_total
        start = collaborators.clock.now()
        program = build_program(
            targets=config.targets,
            duration_seconds=config.duration_seconds,
            program_total=config.program_total,
            reward_asset=config.reward_asset,
            reward_oracle=config.reward_oracle,
            payer=config.emission_admin,
            transfer_strategy=config.transfer_strategy,
            start_timestamp=start,
            rate_width_bits=config.rate_width_bits,
        )
        values["rates"] = [entry.rate_per_second for entry in program.entries]
        values["distribution_end"] = program.distribution_end
        token.approve(
            config.transfer_strategy,
            config.effective_allowance,
            sender=config.emission_admin,
        )
        collaborators.configurator.configure_assets(program, sender=config.emission_admin)
        configured_at = collaborators.clock.now()

    # Rewards accrue regardless of funding, but stay unclaimable until the
    # payer holds both the balance and the strategy allowance.
    with tracker.step(ScenarioStage.FUNDED) as values:
        token.transfer(config.emission_admin, config.effective_funding, sender=config.funder)
        values["funding_amount"] = config.effective_funding
        values["payer_balance"] = token.balance_of(config.emission_admin)

    with tracker.step(ScenarioStage.TIME_ADVANCED) as values:
        collaborators.clock.advance_time(config.advance_seconds)
        values["advance_seconds"] = config.advance_seconds

    with tracker.step(ScenarioStage.CLAIMED) as values:
        balance_before = token.balance_of(config.claimant)
        values["balance_before"] = balance_before
        claimed = collaborators.controller.claim_rewards(
            program.targets,
            const.CLAIM_ALL,
            config.claimant,
            config.reward_asset,
            sender=config.claimant,
        )
        balance_after = token.balance_of(config.claimant)
        elapsed = collaborators.clock.now() - configured_at
        values["claimed"] = claimed
        values["balance_after"] = balance_after
        values["elapsed_seconds"] = elapsed

    with tracker.step(ScenarioStage.VERIFIED) as values:
        outcome = ClaimOutcome(
            balance_before=balance_before,
            balance_after=balance_after,
            tolerated_deviation=config.tolerance,
            expected_accrued=_expected_accrued(config, program, elapsed),
        )
        values["delta"] = outcome.delta
        values["expected_accrued"] = outcome.expected_accrued
        values["tolerance"] = config.tolerance
        deviations = verify_claim(outcome, config.assertion_mode)

    return ScenarioReport(
        program=program,
        outcome=outcome,
        claimed_amount=claimed,
        elapsed_seconds=elapsed,
        stages=tuple(tracker.completed),
        deviations=deviations,
    )

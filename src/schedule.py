"""Emission schedule construction for a rewards distribution program."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from . import emission_constants as const
from .numeric import to_fixed_width

logger = logging.getLogger(__name__)


class InvalidScheduleInput(ValueError):
    """Raised when the schedule inputs violate a precondition."""


def _require_int(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidScheduleInput(
            f"{name} must be an integer amount, got {type(value).__name__}: {value!r}"
        )


class InvalidProgramSum(ValueError):
    """Raised when per-target totals do not add up to the declared program total."""

    def __init__(self, declared: int, actual: int):
        super().__init__(
            f"Program total mismatch: declared {declared}, targets sum to {actual}"
        )
        self.declared = declared
        self.actual = actual


@dataclass(frozen=True)
class EmissionTarget:
    target: str
    total_amount: int


@dataclass(frozen=True)
class ScheduleEntry:
    target: str
    rate_per_second: int
    schedule_end: int


@dataclass(frozen=True)
class RewardsConfigInput:
    """One record of the configurator's configureAssets payload."""

    emission_per_second: int
    total_supply: int
    distribution_end: int
    asset: str
    reward: str
    transfer_strategy: str
    reward_oracle: str

    def as_tuple(self) -> tuple[int, int, int, str, str, str, str]:
        return (
            self.emission_per_second,
            self.total_supply,
            self.distribution_end,
            self.asset,
            self.reward,
            self.transfer_strategy,
            self.reward_oracle,
        )


@dataclass(frozen=True)
class Program:
    reward_asset: str
    reward_oracle: str
    payer: str
    transfer_strategy: str
    entries: tuple[ScheduleEntry, ...]
    distribution_end: int

    @property
    def targets(self) -> list[str]:
        return [entry.target for entry in self.entries]

    def rate_for(self, target: str) -> int:
        for entry in self.entries:
            if entry.target == target:
                return entry.rate_per_second
        raise KeyError(f"No schedule entry for target {target}")

    def config_inputs(self) -> list[RewardsConfigInput]:
        """Expand the program into the records the configurator accepts.

        ``total_supply`` is left at zero; the controller fills it from the
        asset's live supply when the configuration is applied.
        """
        return [
            RewardsConfigInput(
                emission_per_second=entry.rate_per_second,
                total_supply=0,
                distribution_end=entry.schedule_end,
                asset=entry.target,
                reward=self.reward_asset,
                transfer_strategy=self.transfer_strategy,
                reward_oracle=self.reward_oracle,
            )
            for entry in self.entries
        ]


def build_schedule(
    targets: Sequence[EmissionTarget],
    duration_seconds: int,
    program_total: int,
    *,
    start_timestamp: int = 0,
    rate_width_bits: int = const.EMISSION_RATE_BITS,
) -> list[ScheduleEntry]:
    """Turn per-target totals into per-second emission rates.

    Rates use integer floor division, so each target under-delivers by at most
    ``duration_seconds - 1`` smallest units. Entries keep the input order and a
    zero total yields an explicit zero-rate entry.

    Args:
        targets: Assets to incentivize with the amount each should receive.
        duration_seconds: Length of the distribution window.
        program_total: Declared total; must equal the sum of target amounts.
        start_timestamp: Distribution start; ``schedule_end`` is offset from it.
        rate_width_bits: Storage width the rates must fit in.

    Returns:
        One ScheduleEntry per target.
    """
    _require_int("Duration", duration_seconds)
    _require_int("Program total", program_total)
    if duration_seconds <= 0:
        raise InvalidScheduleInput(
            f"Duration must be a positive number of seconds, got {duration_seconds}"
        )
    if not targets:
        raise InvalidScheduleInput("At least one emission target is required")
    for item in targets:
        _require_int(f"Total for {item.target}", item.total_amount)
        if item.total_amount < 0:
            raise InvalidScheduleInput(
                f"Negative total for {item.target}: {item.total_amount}"
            )

    actual_total = sum(item.total_amount for item in targets)
    if actual_total != program_total:
        raise InvalidProgramSum(program_total, actual_total)

    schedule_end = to_fixed_width(
        start_timestamp + duration_seconds, const.DISTRIBUTION_END_BITS
    )
    entries = [
        ScheduleEntry(
            target=item.target,
            rate_per_second=to_fixed_width(
                item.total_amount // duration_seconds, rate_width_bits
            ),
            schedule_end=schedule_end,
        )
        for item in targets
    ]
    for entry in entries:
        logger.debug(
            "Schedule entry %s: %d per second until %d",
            entry.target,
            entry.rate_per_second,
            entry.schedule_end,
        )
    return entries


def build_program(
    *,
    targets: Sequence[EmissionTarget],
    duration_seconds: int,
    program_total: int,
    reward_asset: str,
    reward_oracle: str,
    payer: str,
    transfer_strategy: str,
    start_timestamp: int = 0,
    rate_width_bits: int = const.EMISSION_RATE_BITS,
) -> Program:
    """Build the schedule and wrap it with the program's reward metadata."""
    entries = build_schedule(
        targets,
        duration_seconds,
        program_total,
        start_timestamp=start_timestamp,
        rate_width_bits=rate_width_bits,
    )
    return Program(
        reward_asset=reward_asset,
        reward_oracle=reward_oracle,
        payer=payer,
        transfer_strategy=transfer_strategy,
        entries=tuple(entries),
        distribution_end=entries[0].schedule_end,
    )


def undistributed_remainder(
    entries: Sequence[ScheduleEntry], targets: Sequence[EmissionTarget], duration_seconds: int
) -> int:
    """Amount lost to floor division across the whole program."""
    scheduled = sum(entry.rate_per_second * duration_seconds for entry in entries)
    return sum(item.total_amount for item in targets) - scheduled

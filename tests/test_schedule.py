from __future__ import annotations

import pytest

from src import emission_constants as const
from src.numeric import FixedWidthOverflow
from src.schedule import (
    EmissionTarget,
    InvalidProgramSum,
    InvalidScheduleInput,
    build_program,
    build_schedule,
    undistributed_remainder,
)

ASSET_A = "0x" + "aa" * 20
ASSET_B = "0x" + "bb" * 20
SIXTY_DAYS = 60 * const.SECONDS_PER_DAY


def test_example_program_rate_is_floored():
    targets = [EmissionTarget(ASSET_A, 10_000 * const.WAD)]
    entries = build_schedule(targets, SIXTY_DAYS, 10_000 * const.WAD)

    assert len(entries) == 1
    assert entries[0].target == ASSET_A
    assert entries[0].rate_per_second == 1_929_012_345_679_012
    assert entries[0].schedule_end == SIXTY_DAYS
    # 10_000e18 mod 5_184_000 is lost to flooring.
    assert undistributed_remainder(entries, targets, SIXTY_DAYS) == 1_792_000


def test_rates_never_overshoot_targets():
    targets = [
        EmissionTarget(ASSET_A, 1_000_003),
        EmissionTarget(ASSET_B, 7 * 1_000),
    ]
    duration = 1_000
    entries = build_schedule(targets, duration, 1_007_003)

    assert [entry.rate_per_second for entry in entries] == [1_000, 7]
    assert sum(entry.rate_per_second * duration for entry in entries) <= 1_007_003
    # Only the non-multiple target loses its remainder.
    assert undistributed_remainder(entries, targets, duration) == 3


def test_entries_keep_input_order():
    targets = [EmissionTarget(ASSET_B, 200), EmissionTarget(ASSET_A, 100)]
    entries = build_schedule(targets, 10, 300)
    assert [entry.target for entry in entries] == [ASSET_B, ASSET_A]


def test_schedule_end_offsets_from_start():
    entries = build_schedule(
        [EmissionTarget(ASSET_A, 100)], 10, 100, start_timestamp=1_700_000_000
    )
    assert entries[0].schedule_end == 1_700_000_010


def test_zero_total_yields_zero_rate_entry():
    targets = [EmissionTarget(ASSET_A, 0), EmissionTarget(ASSET_B, 500)]
    entries = build_schedule(targets, 100, 500)
    assert len(entries) == 2
    assert entries[0].rate_per_second == 0
    assert entries[1].rate_per_second == 5


def test_mismatched_total_raises_invalid_program_sum():
    targets = [EmissionTarget(ASSET_A, 100), EmissionTarget(ASSET_B, 200)]
    with pytest.raises(InvalidProgramSum) as excinfo:
        build_schedule(targets, 10, 301)
    assert excinfo.value.declared == 301
    assert excinfo.value.actual == 300


def test_zero_duration_fails_before_dividing():
    with pytest.raises(InvalidScheduleInput):
        build_schedule([EmissionTarget(ASSET_A, 100)], 0, 100)


def test_empty_targets_rejected():
    with pytest.raises(InvalidScheduleInput):
        build_schedule([], 10, 0)


def test_negative_amount_rejected():
    with pytest.raises(InvalidScheduleInput):
        build_schedule([EmissionTarget(ASSET_A, -1), EmissionTarget(ASSET_B, 1)], 10, 0)


def test_rate_above_width_overflows():
    total = 2**88 * 10
    with pytest.raises(FixedWidthOverflow):
        build_schedule([EmissionTarget(ASSET_A, total)], 10, total)


def test_width_is_parameterizable():
    entries = build_schedule([EmissionTarget(ASSET_A, 2**64)], 1, 2**64, rate_width_bits=128)
    assert entries[0].rate_per_second == 2**64
    with pytest.raises(FixedWidthOverflow):
        build_schedule([EmissionTarget(ASSET_A, 2**64)], 1, 2**64, rate_width_bits=64)


def test_build_is_deterministic():
    targets = [EmissionTarget(ASSET_A, 12_345), EmissionTarget(ASSET_B, 67_890)]
    first = build_schedule(targets, 77, 80_235)
    second = build_schedule(targets, 77, 80_235)
    assert first == second


def test_build_program_exposes_config_inputs():
    program = build_program(
        targets=[EmissionTarget(ASSET_A, 600), EmissionTarget(ASSET_B, 0)],
        duration_seconds=60,
        program_total=600,
        reward_asset="0x" + "11" * 20,
        reward_oracle="0x" + "22" * 20,
        payer="0x" + "33" * 20,
        transfer_strategy="0x" + "44" * 20,
        start_timestamp=1_000,
    )

    assert program.distribution_end == 1_060
    assert program.targets == [ASSET_A, ASSET_B]
    assert program.rate_for(ASSET_A) == 10
    inputs = program.config_inputs()
    assert [record.as_tuple() for record in inputs] == [
        (10, 0, 1_060, ASSET_A, "0x" + "11" * 20, "0x" + "44" * 20, "0x" + "22" * 20),
        (0, 0, 1_060, ASSET_B, "0x" + "11" * 20, "0x" + "44" * 20, "0x" + "22" * 20),
    ]
    with pytest.raises(KeyError):
        program.rate_for("0x" + "ff" * 20)


def test_float_amounts_are_rejected():
    total = 1e22 + 12_345_678.0
    with pytest.raises(InvalidScheduleInput):
        build_schedule([EmissionTarget(ASSET_A, total)], SIXTY_DAYS, total)


@pytest.mark.parametrize(
    "duration, program_total",
    [(float(SIXTY_DAYS), 100), (True, 100), (SIXTY_DAYS, 100.0)],
)
def test_non_integer_duration_or_total_rejected(duration, program_total):
    with pytest.raises(InvalidScheduleInput):
        build_schedule([EmissionTarget(ASSET_A, 100)], duration, program_total)

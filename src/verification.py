"""Approximate-equality checks for claimed reward amounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class ToleranceExceeded(AssertionError):
    """Raised when an observed amount falls outside the tolerated deviation."""

    def __init__(self, label: str, actual: int, expected: int, tolerance: int):
        super().__init__(
            f"{label}: actual {actual} vs expected {expected} "
            f"differs by {abs(actual - expected)} (tolerance {tolerance})"
        )
        self.label = label
        self.actual = actual
        self.expected = expected
        self.tolerance = tolerance


class AssertionMode(str, Enum):
    """Which claim property a run asserts.

    BALANCE_PROXIMITY reproduces the historical check that compares the
    balances before and after the claim with each other. It passes even with
    zero accrual when the tolerance is large. ACCRUAL_PROXIMITY compares the
    balance increase against the amount the schedule should have emitted.
    """

    BALANCE_PROXIMITY = "balance"
    ACCRUAL_PROXIMITY = "accrual"
    BOTH = "both"


@dataclass(frozen=True)
class ClaimOutcome:
    balance_before: int
    balance_after: int
    tolerated_deviation: int
    expected_accrued: int | None = None

    @property
    def delta(self) -> int:
        return self.balance_after - self.balance_before


def expected_accrual(
    rate_per_second: int,
    elapsed_seconds: int,
    *,
    duration_seconds: int | None = None,
) -> int:
    """Amount a sole claimant should have accrued after ``elapsed_seconds``.

    Accrual stops at the distribution end, so elapsed time is capped at
    ``duration_seconds`` when given.
    """
    if elapsed_seconds < 0:
        raise ValueError(f"Elapsed time cannot be negative: {elapsed_seconds}")
    effective = elapsed_seconds
    if duration_seconds is not None:
        effective = min(elapsed_seconds, duration_seconds)
    return rate_per_second * effective


def within_tolerance(actual: int, expected: int, tolerance: int) -> bool:
    if tolerance < 0:
        raise ValueError(f"Tolerance cannot be negative: {tolerance}")
    return abs(actual - expected) <= tolerance


def check_within_tolerance(
    actual: int, expected: int, tolerance: int, *, label: str = "value"
) -> int:
    """Raise ToleranceExceeded unless ``|actual - expected| <= tolerance``.

    Returns the absolute difference.
    """
    if not within_tolerance(actual, expected, tolerance):
        raise ToleranceExceeded(label, actual, expected, tolerance)
    return abs(actual - expected)


def check_balance_proximity(outcome: ClaimOutcome) -> int:
    """Assert the post-claim balance stays close to the pre-claim balance."""
    return check_within_tolerance(
        outcome.balance_after,
        outcome.balance_before,
        outcome.tolerated_deviation,
        label="balance proximity",
    )


def check_accrual_proximity(outcome: ClaimOutcome) -> int:
    """Assert the balance increase approximates the expected accrual."""
    if outcome.expected_accrued is None:
        raise ValueError("Accrual proximity requires an expected accrued amount")
    return check_within_tolerance(
        outcome.delta,
        outcome.expected_accrued,
        outcome.tolerated_deviation,
        label="accrual proximity",
    )


def verify_claim(outcome: ClaimOutcome, mode: AssertionMode) -> dict[str, int]:
    """Run the checks selected by ``mode`` and return each deviation by name."""
    deviations: dict[str, int] = {}
    if mode in (AssertionMode.BALANCE_PROXIMITY, AssertionMode.BOTH):
        deviations["balance_proximity"] = check_balance_proximity(outcome)
    if mode in (AssertionMode.ACCRUAL_PROXIMITY, AssertionMode.BOTH):
        deviations["accrual_proximity"] = check_accrual_proximity(outcome)
    logger.info(
        "Claim verified (%s): before=%d after=%d delta=%d expected=%s deviations=%s",
        mode.value,
        outcome.balance_before,
        outcome.balance_after,
        outcome.delta,
        outcome.expected_accrued,
        deviations,
    )
    return deviations

"""Emission program and protocol constants.

This module centralizes the magic numbers used by the schedule builder and the
claim scenario. Each constant documents its source.
"""

from __future__ import annotations

# =============================================================================
# Time
# =============================================================================

SECONDS_PER_DAY = 86_400

# =============================================================================
# Token denominations
# =============================================================================

# 18-decimal fixed point unit (1 token = 10**18 smallest units)
WAD = 10**18

# Chainlink style price feeds report 8 decimals
ORACLE_DECIMALS = 8

# =============================================================================
# Storage widths of the rewards controller
# =============================================================================

# Source: RewardsConfigInput.emissionPerSecond is declared uint88
EMISSION_RATE_BITS = 88

# Source: RewardsConfigInput.distributionEnd is declared uint32
DISTRIBUTION_END_BITS = 32

UINT256_MAX = 2**256 - 1

# claimRewards amount sentinel meaning "claim everything accrued"
CLAIM_ALL = UINT256_MAX

# =============================================================================
# Default scenario parameters
# =============================================================================

# 10,000 reward tokens distributed over 60 days
DEFAULT_PROGRAM_TOTAL = 10_000 * WAD
DEFAULT_DURATION_DAYS = 60

# Accrual period simulated before claiming
DEFAULT_ADVANCE_DAYS = 30

# Maximum accepted deviation of the claimed amount
DEFAULT_TOLERANCE = 2_000 * WAD

# Price seeded into the reward oracle (1.00 with 8 decimals)
DEFAULT_ORACLE_ANSWER = 1 * 10**ORACLE_DECIMALS

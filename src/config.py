"""Configuration helpers for the rewards emission fork scenario."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

OUT_DIR = Path(os.getenv("SCENARIO_OUT_DIR", "out"))

FORK_RPC_URL = os.getenv("FORK_RPC_URL", "http://127.0.0.1:8545")
RPC_USER_AGENT = "rewards-emission-scenario/1.0"

# Environment variable names for the contracts and accounts on the fork.
ADDRESS_ENV_VARS: dict[str, str] = {
    "reward_token": "REWARD_TOKEN_ADDRESS",
    "reward_oracle": "REWARD_ORACLE_ADDRESS",
    "emission_manager": "EMISSION_MANAGER_ADDRESS",
    "rewards_controller": "REWARDS_CONTROLLER_ADDRESS",
    "transfer_strategy": "TRANSFER_STRATEGY_ADDRESS",
    "emission_admin": "EMISSION_ADMIN_ADDRESS",
    "reward_whale": "REWARD_WHALE_ADDRESS",
    "incentivized_asset": "INCENTIVIZED_ASSET_ADDRESS",
    "claimant": "CLAIMANT_ADDRESS",
}

OUT_DIR.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class RetryConfig:
    """Settings for JSON-RPC retry/backoff behaviour."""

    wait_min_seconds: float = 0.5
    wait_max_seconds: float = 8.0
    max_attempts: int = 5
    status_forcelist: tuple[int, ...] = field(
        default_factory=lambda: (429, 500, 502, 503, 504)
    )


DEFAULT_RETRY_CONFIG = RetryConfig()


@dataclass(frozen=True)
class ForkAddresses:
    reward_token: str
    reward_oracle: str
    emission_manager: str
    rewards_controller: str
    transfer_strategy: str
    emission_admin: str
    reward_whale: str
    incentivized_asset: str
    claimant: str


def load_fork_addresses() -> ForkAddresses:
    """Read every fork address from the environment, failing on any gap."""
    values: dict[str, str] = {}
    missing: list[str] = []
    for attr, env_name in ADDRESS_ENV_VARS.items():
        value = os.getenv(env_name)
        if not value:
            missing.append(env_name)
            continue
        values[attr] = value.strip()
    if missing:
        raise ValueError(
            "Missing fork address configuration: " + ", ".join(missing)
        )
    return ForkAddresses(**values)


def report_path(label: str, suffix: str = ".csv") -> Path:
    """Return a deterministic report path under out/ for a given label."""
    sanitized = label.replace("/", "_").replace(" ", "_")
    return OUT_DIR / f"{sanitized}{suffix}"

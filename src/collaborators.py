"""Capability interfaces for the contracts the claim scenario talks to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from .schedule import Program


class ExternalCallReverted(RuntimeError):
    """Raised when a contract call reverts, carrying the revert reason."""

    def __init__(self, method: str, reason: str):
        super().__init__(f"{method} reverted: {reason}")
        self.method = method
        self.reason = reason


class PriceOracle(Protocol):
    def set_answer(self, value: int) -> None: ...


class EmissionConfigurator(Protocol):
    def configure_assets(self, program: Program, *, sender: str) -> None: ...


class RewardsClaimer(Protocol):
    def claim_rewards(
        self,
        assets: Sequence[str],
        amount: int,
        to: str,
        reward: str,
        *,
        sender: str,
    ) -> int: ...


class RewardToken(Protocol):
    def balance_of(self, account: str) -> int: ...

    def transfer(self, to: str, amount: int, *, sender: str) -> None: ...

    def approve(self, spender: str, amount: int, *, sender: str) -> None: ...


class ChainClock(Protocol):
    def now(self) -> int: ...

    def advance_time(self, seconds: int) -> None: ...


@dataclass(frozen=True)
class ScenarioCollaborators:
    oracle: PriceOracle
    configurator: EmissionConfigurator
    controller: RewardsClaimer
    reward_token: RewardToken
    clock: ChainClock

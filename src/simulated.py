"""Deterministic in-memory chain used to run the claim scenario without a fork.

The doubles mirror the behaviour the scenario depends on: ERC-20 balances and
allowances, a settable price feed, an emission manager that only accepts its
admin and a positive reward price, and a rewards controller that accrues per
second until the distribution end and pays claims by pulling from the program
payer through the transfer strategy allowance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from .collaborators import ExternalCallReverted, ScenarioCollaborators
from .schedule import Program

logger = logging.getLogger(__name__)

# Fixed-point precision of the per-unit reward index
INDEX_PRECISION = 10**27

DEFAULT_START_TIMESTAMP = 1_700_000_000


class SimulatedClock:
    def __init__(self, start_timestamp: int = DEFAULT_START_TIMESTAMP):
        self.timestamp = start_timestamp

    def now(self) -> int:
        return self.timestamp

    def advance_time(self, seconds: int) -> None:
        if seconds < 0:
            raise ValueError(f"Cannot move time backwards by {seconds} seconds")
        self.timestamp += seconds


class SimulatedToken:
    def __init__(self, address: str, symbol: str = "RWD"):
        self.address = address
        self.symbol = symbol
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}

    def mint(self, account: str, amount: int) -> None:
        self.balances[account] = self.balances.get(account, 0) + amount

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def _move(self, sender: str, to: str, amount: int, method: str) -> None:
        if amount < 0:
            raise ExternalCallReverted(method, "negative amount")
        if self.balance_of(sender) < amount:
            raise ExternalCallReverted(method, "transfer amount exceeds balance")
        self.balances[sender] = self.balance_of(sender) - amount
        self.balances[to] = self.balance_of(to) + amount

    def transfer(self, to: str, amount: int, *, sender: str) -> None:
        self._move(sender, to, amount, "transfer")

    def approve(self, spender: str, amount: int, *, sender: str) -> None:
        if amount < 0:
            raise ExternalCallReverted("approve", "negative amount")
        self.allowances[(sender, spender)] = amount

    def transfer_from(self, owner: str, to: str, amount: int, *, spender: str) -> None:
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise ExternalCallReverted("transferFrom", "insufficient allowance")
        self._move(owner, to, amount, "transferFrom")
        self.allowances[(owner, spender)] = allowed - amount


class SimulatedPriceFeed:
    def __init__(self, address: str, answer: int = 0):
        self.address = address
        self.answer = answer

    def set_answer(self, value: int) -> None:
        self.answer = value

    def latest_answer(self) -> int:
        return self.answer


class SimulatedTransferStrategy:
    """Pulls rewards from the vault, which must hold and approve the funds."""

    def __init__(self, address: str, token: SimulatedToken, rewards_vault: str):
        self.address = address
        self.token = token
        self.rewards_vault = rewards_vault

    def perform_transfer(self, to: str, amount: int) -> None:
        self.token.transfer_from(self.rewards_vault, to, amount, spender=self.address)


@dataclass
class _Distribution:
    rate_per_second: int
    distribution_end: int
    last_updated: int
    transfer_strategy: str
    reward_oracle: str
    index: int = 0
    user_index: dict[str, int] = field(default_factory=dict)
    accrued: dict[str, int] = field(default_factory=dict)


class SimulatedRewardsController:
    def __init__(
        self,
        clock: SimulatedClock,
        strategies: dict[str, SimulatedTransferStrategy],
    ):
        self.clock = clock
        self.strategies = strategies
        self.holdings: dict[str, dict[str, int]] = {}
        self.distributions: dict[tuple[str, str], _Distribution] = {}

    def total_supply(self, asset: str) -> int:
        return sum(self.holdings.get(asset, {}).values())

    def _update_index(self, asset: str, dist: _Distribution) -> None:
        now = min(self.clock.now(), dist.distribution_end)
        elapsed = now - dist.last_updated
        supply = self.total_supply(asset)
        if elapsed > 0 and supply > 0:
            dist.index += dist.rate_per_second * elapsed * INDEX_PRECISION // supply
        if now > dist.last_updated:
            dist.last_updated = now

    def _update_user(self, asset: str, dist: _Distribution, user: str) -> None:
        self._update_index(asset, dist)
        balance = self.holdings.get(asset, {}).get(user, 0)
        previous = dist.user_index.get(user, 0)
        if dist.index != previous:
            gained = balance * (dist.index - previous) // INDEX_PRECISION
            dist.accrued[user] = dist.accrued.get(user, 0) + gained
            dist.user_index[user] = dist.index

    def set_holding(self, asset: str, user: str, amount: int) -> None:
        """Change a user's position, settling accrual at the old balance first."""
        for (dist_asset, _reward), dist in self.distributions.items():
            if dist_asset == asset:
                self._update_user(asset, dist, user)
        self.holdings.setdefault(asset, {})[user] = amount

    def configure(self, program: Program) -> None:
        now = self.clock.now()
        for record in program.config_inputs():
            if record.transfer_strategy not in self.strategies:
                raise ExternalCallReverted("configureAssets", "unknown transfer strategy")
            key = (record.asset, record.reward)
            existing = self.distributions.get(key)
            if existing is not None:
                for user in self.holdings.get(record.asset, {}):
                    self._update_user(record.asset, existing, user)
                existing.last_updated = max(existing.last_updated, now)
                existing.rate_per_second = record.emission_per_second
                existing.distribution_end = record.distribution_end
                existing.transfer_strategy = record.transfer_strategy
                existing.reward_oracle = record.reward_oracle
                continue
            dist = _Distribution(
                rate_per_second=record.emission_per_second,
                distribution_end=record.distribution_end,
                last_updated=now,
                transfer_strategy=record.transfer_strategy,
                reward_oracle=record.reward_oracle,
            )
            # Users start at the current index so nothing accrues retroactively.
            for user in self.holdings.get(record.asset, {}):
                dist.user_index[user] = dist.index
            self.distributions[key] = dist

    def accrued_rewards(self, user: str, reward: str) -> int:
        total = 0
        for (asset, dist_reward), dist in self.distributions.items():
            if dist_reward == reward:
                self._update_user(asset, dist, user)
                total += dist.accrued.get(user, 0)
        return total

    def claim_rewards(
        self,
        assets: Sequence[str],
        amount: int,
        to: str,
        reward: str,
        *,
        sender: str,
    ) -> int:
        if amount == 0:
            raise ExternalCallReverted("claimRewards", "invalid amount")
        remaining = amount
        taken: list[tuple[_Distribution, int]] = []
        strategy_address: str | None = None
        for asset in assets:
            dist = self.distributions.get((asset, reward))
            if dist is None:
                continue
            self._update_user(asset, dist, sender)
            available = dist.accrued.get(sender, 0)
            portion = min(available, remaining)
            if portion:
                taken.append((dist, portion))
                remaining -= portion
                strategy_address = dist.transfer_strategy
            if remaining == 0:
                break
        claimed = amount - remaining
        if claimed == 0 or strategy_address is None:
            return 0
        # Pay out before settling so a failed pull leaves accrual untouched.
        self.strategies[strategy_address].perform_transfer(to, claimed)
        for dist, portion in taken:
            dist.accrued[sender] -= portion
        logger.debug("Claimed %d of %s for %s to %s", claimed, reward, sender, to)
        return claimed


class SimulatedEmissionManager:
    def __init__(
        self,
        controller: SimulatedRewardsController,
        oracles: dict[str, SimulatedPriceFeed],
        emission_admins: dict[str, str],
    ):
        self.controller = controller
        self.oracles = oracles
        self.emission_admins = emission_admins

    def configure_assets(self, program: Program, *, sender: str) -> None:
        if self.emission_admins.get(program.reward_asset) != sender:
            raise ExternalCallReverted("configureAssets", "ONLY_EMISSION_ADMIN")
        oracle = self.oracles.get(program.reward_oracle)
        if oracle is None or oracle.latest_answer() <= 0:
            raise ExternalCallReverted("configureAssets", "Oracle must return price")
        self.controller.configure(program)


@dataclass
class SimulatedWorld:
    """A complete in-memory deployment for one scenario run."""

    clock: SimulatedClock
    reward_token: SimulatedToken
    oracle: SimulatedPriceFeed
    strategy: SimulatedTransferStrategy
    controller: SimulatedRewardsController
    emission_manager: SimulatedEmissionManager

    def collaborators(self) -> ScenarioCollaborators:
        return ScenarioCollaborators(
            oracle=self.oracle,
            configurator=self.emission_manager,
            controller=self.controller,
            reward_token=self.reward_token,
            clock=self.clock,
        )


def build_simulated_world(
    *,
    reward_token: str,
    reward_oracle: str,
    transfer_strategy: str,
    emission_admin: str,
    whale: str,
    whale_reward_balance: int,
    start_timestamp: int = DEFAULT_START_TIMESTAMP,
) -> SimulatedWorld:
    """Deploy the doubles with the admin acting as the rewards vault."""
    clock = SimulatedClock(start_timestamp)
    token = SimulatedToken(reward_token)
    token.mint(whale, whale_reward_balance)
    oracle = SimulatedPriceFeed(reward_oracle)
    strategy = SimulatedTransferStrategy(transfer_strategy, token, emission_admin)
    controller = SimulatedRewardsController(clock, {transfer_strategy: strategy})
    manager = SimulatedEmissionManager(
        controller,
        oracles={reward_oracle: oracle},
        emission_admins={reward_token: emission_admin},
    )
    return SimulatedWorld(
        clock=clock,
        reward_token=token,
        oracle=oracle,
        strategy=strategy,
        controller=controller,
        emission_manager=manager,
    )

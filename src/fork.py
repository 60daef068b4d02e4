"""Collaborator adapters backed by contracts on a forked chain."""

from __future__ import annotations

import logging
from typing import Sequence

from . import abi
from .collaborators import ScenarioCollaborators
from .config import ForkAddresses
from .rpc import ForkNode, JsonRpcClient
from .schedule import Program

logger = logging.getLogger(__name__)


class ForkPriceOracle:
    def __init__(self, node: ForkNode, address: str, *, admin: str):
        self.node = node
        self.address = address
        self.admin = admin

    def set_answer(self, value: int) -> None:
        self.node.send_transaction(
            self.admin,
            self.address,
            abi.set_answer_calldata(value),
            label="setAnswer",
        )


class ForkEmissionManager:
    def __init__(self, node: ForkNode, address: str):
        self.node = node
        self.address = address

    def configure_assets(self, program: Program, *, sender: str) -> None:
        records = [record.as_tuple() for record in program.config_inputs()]
        self.node.send_transaction(
            sender,
            self.address,
            abi.configure_assets_calldata(records),
            label="configureAssets",
        )


class ForkRewardsController:
    def __init__(self, node: ForkNode, address: str):
        self.node = node
        self.address = address

    def accrued_rewards(self, user: str, reward: str) -> int:
        return abi.decode_uint(
            self.node.eth_call(self.address, abi.user_accrued_rewards_calldata(user, reward))
        )

    def claim_rewards(
        self,
        assets: Sequence[str],
        amount: int,
        to: str,
        reward: str,
        *,
        sender: str,
    ) -> int:
        accrued = self.accrued_rewards(sender, reward)
        # Transactions do not surface return values; report the balance change.
        before = _token_balance(self.node, reward, to)
        self.node.send_transaction(
            sender,
            self.address,
            abi.claim_rewards_calldata(assets, amount, to, reward),
            label="claimRewards",
        )
        claimed = _token_balance(self.node, reward, to) - before
        logger.info("Claimed %d of %d accrued for %s", claimed, accrued, sender)
        return claimed


class ForkToken:
    def __init__(self, node: ForkNode, address: str):
        self.node = node
        self.address = address

    def balance_of(self, account: str) -> int:
        return _token_balance(self.node, self.address, account)

    def allowance(self, owner: str, spender: str) -> int:
        return abi.decode_uint(
            self.node.eth_call(self.address, abi.allowance_calldata(owner, spender))
        )

    def transfer(self, to: str, amount: int, *, sender: str) -> None:
        self.node.send_transaction(
            sender, self.address, abi.transfer_calldata(to, amount), label="transfer"
        )

    def approve(self, spender: str, amount: int, *, sender: str) -> None:
        self.node.send_transaction(
            sender, self.address, abi.approve_calldata(spender, amount), label="approve"
        )


class ForkClock:
    def __init__(self, node: ForkNode):
        self.node = node

    def now(self) -> int:
        return self.node.block_timestamp()

    def advance_time(self, seconds: int) -> None:
        self.node.increase_time(seconds)


def _token_balance(node: ForkNode, token: str, account: str) -> int:
    return abi.decode_uint(node.eth_call(token, abi.balance_of_calldata(account)))


def build_fork_collaborators(
    rpc_url: str,
    addresses: ForkAddresses,
    *,
    gas_funding_wei: int = 10**20,
    cheat_prefix: str = "anvil",
) -> ScenarioCollaborators:
    """Wire every collaborator against the fork and fund impersonated senders with gas."""
    node = ForkNode(JsonRpcClient(rpc_url), cheat_prefix=cheat_prefix)
    for account in (addresses.emission_admin, addresses.reward_whale, addresses.claimant):
        node.set_balance(account, gas_funding_wei)
    logger.info("Connected to fork at %s (block time %d)", rpc_url, node.block_timestamp())
    return ScenarioCollaborators(
        oracle=ForkPriceOracle(node, addresses.reward_oracle, admin=addresses.emission_admin),
        configurator=ForkEmissionManager(node, addresses.emission_manager),
        controller=ForkRewardsController(node, addresses.rewards_controller),
        reward_token=ForkToken(node, addresses.reward_token),
        clock=ForkClock(node),
    )

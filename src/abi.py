"""Calldata builders for the handful of contract calls the scenario makes."""

from __future__ import annotations

from typing import Any, Sequence

from eth_abi import decode, encode
from eth_utils import encode_hex, function_signature_to_4byte_selector, to_bytes, to_int

SIG_BALANCE_OF = "balanceOf(address)"
SIG_TRANSFER = "transfer(address,uint256)"
SIG_APPROVE = "approve(address,uint256)"
SIG_ALLOWANCE = "allowance(address,address)"
SIG_SET_ANSWER = "setAnswer(int256)"
SIG_CONFIGURE_ASSETS = (
    "configureAssets((uint88,uint256,uint32,address,address,address,address)[])"
)
SIG_CLAIM_REWARDS = "claimRewards(address[],uint256,address,address)"
SIG_GET_USER_ACCRUED_REWARDS = "getUserAccruedRewards(address,address)"

# emissionPerSecond, totalSupply, distributionEnd, asset, reward,
# transferStrategy, rewardOracle
CONFIG_INPUT_TYPE = "(uint88,uint256,uint32,address,address,address,address)"


def selector(signature: str) -> str:
    return encode_hex(function_signature_to_4byte_selector(signature))


def _calldata(signature: str, types: Sequence[str], args: Sequence[Any]) -> str:
    return encode_hex(
        function_signature_to_4byte_selector(signature) + encode(list(types), list(args))
    )


def hex_to_int(hex_str: str) -> int:
    return to_int(hexstr=hex_str)


def balance_of_calldata(account: str) -> str:
    return _calldata(SIG_BALANCE_OF, ["address"], [account])


def allowance_calldata(owner: str, spender: str) -> str:
    return _calldata(SIG_ALLOWANCE, ["address", "address"], [owner, spender])


def transfer_calldata(to: str, amount: int) -> str:
    return _calldata(SIG_TRANSFER, ["address", "uint256"], [to, amount])


def approve_calldata(spender: str, amount: int) -> str:
    return _calldata(SIG_APPROVE, ["address", "uint256"], [spender, amount])


def set_answer_calldata(value: int) -> str:
    return _calldata(SIG_SET_ANSWER, ["int256"], [value])


def configure_assets_calldata(
    records: Sequence[tuple[int, int, int, str, str, str, str]],
) -> str:
    return _calldata(SIG_CONFIGURE_ASSETS, [f"{CONFIG_INPUT_TYPE}[]"], [list(records)])


def claim_rewards_calldata(
    assets: Sequence[str], amount: int, to: str, reward: str
) -> str:
    return _calldata(
        SIG_CLAIM_REWARDS,
        ["address[]", "uint256", "address", "address"],
        [list(assets), amount, to, reward],
    )


def user_accrued_rewards_calldata(user: str, reward: str) -> str:
    return _calldata(SIG_GET_USER_ACCRUED_REWARDS, ["address", "address"], [user, reward])


def decode_uint(data: str) -> int:
    """Decode return data holding a single uint256."""
    (value,) = decode(["uint256"], to_bytes(hexstr=data))
    return value

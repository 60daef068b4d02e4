"""JSON-RPC client for a forked development node with retry on transport errors."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import requests
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .abi import hex_to_int
from .collaborators import ExternalCallReverted
from .config import DEFAULT_RETRY_CONFIG, RPC_USER_AGENT, RetryConfig

logger = logging.getLogger(__name__)

REVERT_MARKERS = ("revert", "execution reverted")


class RpcError(RuntimeError):
    """Raised when the node returns a JSON-RPC error that is not a revert."""

    def __init__(self, message: str, *, code: int | None = None):
        super().__init__(message)
        self.code = code


class TransientRpcError(RpcError):
    """Raised when the transport indicates a retryable failure."""


def build_session(default_headers: Mapping[str, str] | None = None) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": RPC_USER_AGENT})
    if default_headers:
        session.headers.update(default_headers)
    return session


def _is_revert(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in REVERT_MARKERS)


def _retry_condition(exc: BaseException) -> bool:
    return isinstance(exc, TransientRpcError)


class JsonRpcClient:
    def __init__(
        self,
        rpc_url: str,
        *,
        session: requests.Session | None = None,
        retry_config: RetryConfig = DEFAULT_RETRY_CONFIG,
        timeout: tuple[float, float] = (10, 120),
    ):
        self.rpc_url = rpc_url
        self.session = session or build_session()
        self.retry_config = retry_config
        self.timeout = timeout
        self._id = 0

    def _request_once(self, method: str, params: list) -> Any:
        self._id += 1
        payload = {"jsonrpc": "2.0", "id": self._id, "method": method, "params": params}
        try:
            response = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransientRpcError(f"RPC transport error: {exc}") from exc

        if response.status_code in self.retry_config.status_forcelist:
            raise TransientRpcError(f"Status {response.status_code} for {method}")
        response.raise_for_status()
        try:
            data = response.json()
        except ValueError as exc:
            raise RpcError(f"Non-JSON response for {method}") from exc

        error = data.get("error") if isinstance(data, dict) else None
        if error:
            message = str(error.get("message", error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            if _is_revert(message):
                raise ExternalCallReverted(method, message)
            raise RpcError(f"{method} failed: {message}", code=code)
        return data.get("result") if isinstance(data, dict) else data

    def call(self, method: str, params: list | None = None) -> Any:
        """Perform a JSON-RPC request, retrying transient transport failures."""
        config = self.retry_config

        @retry(
            retry=retry_if_exception(_retry_condition),
            wait=wait_exponential_jitter(
                initial=config.wait_min_seconds,
                max=config.wait_max_seconds,
            ),
            stop=stop_after_attempt(config.max_attempts),
            reraise=True,
            before_sleep=lambda retry_state: logger.warning(
                "Retrying %s (attempt %d/%d) - %s",
                method,
                retry_state.attempt_number,
                config.max_attempts,
                str(retry_state.outcome.exception()) if retry_state.outcome else "unknown error",
            ),
        )
        def _execute() -> Any:
            return self._request_once(method, params or [])

        return _execute()


class ForkNode:
    """Cheat-code and transaction helpers for an anvil/hardhat fork."""

    def __init__(self, client: JsonRpcClient, *, cheat_prefix: str = "anvil"):
        self.client = client
        self.cheat_prefix = cheat_prefix

    def impersonate(self, account: str) -> None:
        self.client.call(f"{self.cheat_prefix}_impersonateAccount", [account])

    def stop_impersonating(self, account: str) -> None:
        self.client.call(f"{self.cheat_prefix}_stopImpersonatingAccount", [account])

    def set_balance(self, account: str, wei: int) -> None:
        self.client.call(f"{self.cheat_prefix}_setBalance", [account, hex(wei)])

    def increase_time(self, seconds: int) -> None:
        self.client.call("evm_increaseTime", [seconds])
        self.client.call("evm_mine", [])

    def block_timestamp(self) -> int:
        block = self.client.call("eth_getBlockByNumber", ["latest", False])
        return hex_to_int(block["timestamp"])

    def eth_call(self, to: str, data: str, block_tag: str = "latest") -> str:
        return str(self.client.call("eth_call", [{"to": to, "data": data}, block_tag]))

    def send_transaction(self, sender: str, to: str, data: str, *, label: str) -> dict:
        """Send a transaction from an impersonated account and require success."""
        self.impersonate(sender)
        try:
            tx_hash = self.client.call(
                "eth_sendTransaction", [{"from": sender, "to": to, "data": data}]
            )
            receipt = self.client.call("eth_getTransactionReceipt", [tx_hash])
        except ExternalCallReverted as exc:
            raise ExternalCallReverted(label, exc.reason) from exc
        finally:
            self.stop_impersonating(sender)
        if receipt is None:
            raise RpcError(f"{label}: no receipt for {tx_hash}")
        if hex_to_int(receipt.get("status", "0x0")) != 1:
            raise ExternalCallReverted(label, f"transaction {tx_hash} failed")
        logger.debug("%s mined in tx %s", label, tx_hash)
        return receipt

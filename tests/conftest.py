"""Shared fixtures: an in-memory JSON-RPC node patched over the real client."""

from __future__ import annotations

from typing import Any, Optional
from unittest.mock import patch

import pytest
from eth_abi import encode

from bridgeops.errors import RpcError
from bridgeops.onchain.abi import canonical_type, parse_signature
from bridgeops.onchain.rpc import encode_call
from bridgeops.onchain.selectors import selector


class FakeNode:
    """
    Answers the JSON-RPC methods bridgeops uses from canned data.

    eth_call results are keyed by (address, calldata); a response registered
    without args matches any calldata with the same selector.
    """

    def __init__(self) -> None:
        self.calls: dict[tuple[str, str], Any] = {}
        self.code: dict[str, str] = {}
        self.balances: dict[str, int] = {}
        self.transactions: dict[str, dict] = {}
        self.receipts: dict[str, dict] = {}
        self.sent: list[str] = []
        self.requests: list[tuple[str, list, str]] = []
        self.chain_id = 146
        self.nonce = 7
        self.gas_price = 1_000_000_000
        self.send_status = "0x1"

    def respond(self, address: str, fragment: str, values: list, args: Optional[list] = None) -> None:
        entry = parse_signature(fragment)
        types = [canonical_type(o) for o in entry["outputs"]]
        data = "0x" + encode(types, values).hex()
        self.calls[self._key(address, fragment, args)] = data

    def revert(self, address: str, fragment: str, data: Optional[str] = None, args: Optional[list] = None) -> None:
        self.calls[self._key(address, fragment, args)] = RpcError(
            "execution reverted", code=3, data=data
        )

    def _key(self, address: str, fragment: str, args: Optional[list]) -> tuple[str, str]:
        if args is None:
            return address.lower(), selector(fragment)
        entry = parse_signature(fragment)
        return address.lower(), encode_call([entry], entry["name"], args)

    def __call__(self, method: str, params: list, rpc_url: str) -> Any:
        self.requests.append((method, params, rpc_url))
        handler = getattr(self, "_" + method, None)
        if handler is None:
            raise RpcError(f"RPC error: method {method} not supported")
        return handler(*params)

    def _eth_call(self, call: dict, block: str = "latest") -> str:
        address = call["to"].lower()
        data = call["data"]
        result = self.calls.get((address, data), self.calls.get((address, data[:10]), "0x"))
        if isinstance(result, Exception):
            raise result
        return result

    def _eth_getCode(self, address: str, block: str) -> str:
        return self.code.get(address.lower(), "0x")

    def _eth_getBalance(self, address: str, block: str) -> str:
        return hex(self.balances.get(address.lower(), 0))

    def _eth_getTransactionCount(self, address: str, block: str) -> str:
        return hex(self.nonce)

    def _eth_gasPrice(self) -> str:
        return hex(self.gas_price)

    def _eth_chainId(self) -> str:
        return hex(self.chain_id)

    def _eth_blockNumber(self) -> str:
        return hex(1_000_000)

    def _eth_getTransactionByHash(self, tx_hash: str) -> Optional[dict]:
        return self.transactions.get(tx_hash)

    def _eth_getTransactionReceipt(self, tx_hash: str) -> Optional[dict]:
        return self.receipts.get(tx_hash)

    def _eth_sendRawTransaction(self, raw: str) -> str:
        self.sent.append(raw)
        tx_hash = "0x" + f"{len(self.sent):064x}"
        self.receipts[tx_hash] = {"transactionHash": tx_hash, "status": self.send_status, "logs": []}
        return tx_hash


@pytest.fixture()
def node() -> FakeNode:
    fake = FakeNode()
    with patch("bridgeops.onchain.rpc._rpc_call", fake):
        yield fake


# Throwaway key from the eth-account documentation; never funded.
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


@pytest.fixture()
def signer(monkeypatch: pytest.MonkeyPatch, tmp_path) -> tuple[str, str]:
    from eth_account import Account

    monkeypatch.setenv("PRIVATE_KEY", TEST_PRIVATE_KEY)
    monkeypatch.setattr("bridgeops.identity.eth.BRIDGEOPS_ENV", tmp_path / "missing.env")
    return TEST_PRIVATE_KEY, Account.from_key(TEST_PRIVATE_KEY).address

"""
Transaction Builder - Build, simulate, sign, and send admin transactions.

Uses eth-account for signing and the httpx-based JSON-RPC client for
sending. Every write is simulated with eth_call from the signer first so a
revert is reported with its decoded reason instead of burning gas.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..errors import RevertError, RpcError
from ..identity.eth import get_account
from ..utils import to_checksum_address
from .rpc import (
    call_raw,
    encode_call,
    get_chain_id,
    get_gas_price,
    get_nonce,
    hex_quantity,
    send_raw_transaction,
    wait_for_receipt,
)
from .selectors import decode_revert

logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 500_000


def build_contract_tx(
    contract_address: str,
    function_name: str,
    args: list,
    abi: list,
    rpc_url: str,
    value: int = 0,
    gas_limit: Optional[int] = None,
    private_key: Optional[str] = None,
    chain_id: Optional[int] = None,
) -> dict:
    """
    Build a contract call transaction (unsigned).

    Args:
        contract_address: 0x-prefixed contract address
        function_name: Function name or full signature
        args: Function arguments
        abi: ABI entries or human-readable fragments
        rpc_url: RPC endpoint URL of the target chain
        value: Native value in wei (default: 0)
        gas_limit: Gas limit (default: DEFAULT_GAS_LIMIT)
        private_key: For nonce lookup
        chain_id: Chain ID (default: asked from the node)

    Returns:
        Unsigned transaction dict
    """
    calldata = encode_call(abi, function_name, args)

    account = get_account(private_key)
    nonce = get_nonce(account.address, rpc_url=rpc_url)
    gas_price = get_gas_price(rpc_url=rpc_url)

    return {
        "from": account.address,
        "to": to_checksum_address(contract_address),
        "data": calldata,
        "value": value,
        "nonce": nonce,
        "gas": gas_limit or DEFAULT_GAS_LIMIT,
        "gasPrice": gas_price,
        "chainId": chain_id if chain_id is not None else get_chain_id(rpc_url=rpc_url),
    }


def simulate_tx(tx: dict, rpc_url: str) -> str:
    """
    Dry-run a transaction with eth_call from its sender.

    Returns:
        Hex return data

    Raises:
        RevertError: If the call reverts; reason decoded from revert data
    """
    try:
        return call_raw(
            tx["to"],
            tx["data"],
            rpc_url=rpc_url,
            sender=tx.get("from"),
            value=tx.get("value", 0),
        )
    except RpcError as exc:
        if exc.data is not None:
            raise RevertError(str(decode_revert(exc.data)), data=exc.data) from exc
        if "revert" in str(exc).lower():
            raise RevertError(str(exc)) from exc
        raise


def sign_and_send(
    tx: dict,
    rpc_url: str,
    private_key: Optional[str] = None,
    wait: bool = True,
    timeout: int = 120,
) -> dict:
    """
    Sign a transaction and send it.

    Returns:
        Dict with tx_hash and, when waiting, receipt and status
    """
    account = get_account(private_key)
    unsigned = {k: v for k, v in tx.items() if k != "from"}
    signed = account.sign_transaction(unsigned)
    raw_tx = "0x" + signed.raw_transaction.hex().removeprefix("0x")

    tx_hash = send_raw_transaction(raw_tx, rpc_url=rpc_url)
    logger.debug("sent %s", tx_hash)
    result: dict[str, Any] = {"tx_hash": tx_hash}

    if wait:
        receipt = wait_for_receipt(tx_hash, rpc_url=rpc_url, timeout=timeout)
        result["receipt"] = receipt
        result["status"] = hex_quantity(receipt.get("status", "0x0"))

    return result


def send_contract_tx(
    contract_address: str,
    function_name: str,
    args: list,
    abi: list,
    rpc_url: str,
    value: int = 0,
    gas_limit: Optional[int] = None,
    private_key: Optional[str] = None,
    chain_id: Optional[int] = None,
    simulate: bool = True,
    wait: bool = True,
) -> dict:
    """
    Build, simulate, sign, and send a contract call transaction.

    Returns:
        Dict with tx_hash, receipt, status

    Raises:
        RevertError: If simulation reverts (nothing is sent)
    """
    tx = build_contract_tx(
        contract_address=contract_address,
        function_name=function_name,
        args=args,
        abi=abi,
        rpc_url=rpc_url,
        value=value,
        gas_limit=gas_limit,
        private_key=private_key,
        chain_id=chain_id,
    )
    if simulate:
        simulate_tx(tx, rpc_url=rpc_url)
    return sign_and_send(tx, rpc_url=rpc_url, private_key=private_key, wait=wait)

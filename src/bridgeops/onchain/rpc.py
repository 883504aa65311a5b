"""
JSON-RPC Client for the bridge chains.

Lightweight alternative to web3.py: uses httpx for HTTP + eth-abi for encoding.
Every call takes an explicit rpc_url since a single command usually talks to
the hub chain and one or more gateway chains in turn.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional, Union

import httpx
from eth_abi import decode, encode
from eth_abi.exceptions import EncodingError

from ..errors import RpcError
from ..utils import hex_to_bytes, keccak256, strip_0x
from .abi import build_abi, canonical_type, find_function

logger = logging.getLogger(__name__)

RPC_TIMEOUT = 30


def _rpc_call(method: str, params: list, rpc_url: str) -> Any:
    """
    Make a JSON-RPC call.

    Args:
        method: RPC method name (e.g., "eth_call")
        params: RPC parameters
        rpc_url: RPC endpoint URL

    Returns:
        Result field from the RPC response

    Raises:
        RpcError: If the transport fails or the node returns an error
    """
    payload = {
        "jsonrpc": "2.0",
        "method": method,
        "params": params,
        "id": 1,
    }
    logger.debug("%s -> %s", method, rpc_url)

    try:
        with httpx.Client(timeout=RPC_TIMEOUT) as client:
            response = client.post(rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise RpcError(f"{method} failed against {rpc_url}: {exc}") from exc

    if "error" in data:
        error = data["error"] or {}
        if isinstance(error, dict):
            raise RpcError(
                f"RPC error: {error.get('message', error)}",
                code=error.get("code"),
                data=_revert_data(error.get("data")),
            )
        raise RpcError(f"RPC error: {error}")

    return data.get("result")


def _revert_data(data: Any) -> Optional[str]:
    # Nodes disagree on where revert bytes live: "0x..." or {"data": "0x..."}
    if isinstance(data, str) and data.startswith("0x"):
        return data
    if isinstance(data, dict):
        return _revert_data(data.get("data"))
    return None


def encode_call(abi: list, function_name: str, args: list) -> str:
    """
    ABI-encode a function call.

    Args:
        abi: Contract ABI (entries or human-readable fragments)
        function_name: Function name or full signature
        args: Function arguments

    Returns:
        0x-prefixed hex encoded calldata
    """
    func = find_function(build_abi(abi), function_name)
    input_types = [canonical_type(inp) for inp in func.get("inputs", [])]
    sig = f"{func['name']}({','.join(input_types)})"
    selector = keccak256(sig.encode("utf-8"))[:4]

    if len(args) != len(input_types):
        raise ValueError(
            f"{sig} takes {len(input_types)} argument(s), got {len(args)}"
        )
    try:
        encoded_args = encode(input_types, list(args)) if args else b""
    except EncodingError as exc:
        raise ValueError(f"Cannot encode arguments for {sig}: {exc}") from exc
    return "0x" + selector.hex() + encoded_args.hex()


def decode_result(abi: list, function_name: str, data: Union[str, bytes]) -> Any:
    """
    ABI-decode a function call result.

    Returns:
        Decoded result (single value or tuple), None for empty output
    """
    func = find_function(build_abi(abi), function_name)
    output_types = [canonical_type(out) for out in func.get("outputs", [])]
    if not output_types:
        return None

    decoded = decode(output_types, hex_to_bytes(data))
    if len(decoded) == 1:
        return decoded[0]
    return decoded


def call_raw(
    contract_address: str,
    data: str,
    rpc_url: str,
    sender: Optional[str] = None,
    value: int = 0,
    block: str = "latest",
) -> str:
    """
    eth_call with raw calldata.

    Returns:
        0x-prefixed hex return data
    """
    call: dict[str, Any] = {"to": contract_address, "data": data}
    if sender:
        call["from"] = sender
    if value:
        call["value"] = hex(value)
    result = _rpc_call("eth_call", [call, block], rpc_url=rpc_url)
    return result or "0x"


def read_contract(
    contract_address: str,
    function_name: str,
    args: Optional[list] = None,
    abi: Optional[list] = None,
    rpc_url: str = "",
) -> Any:
    """
    Read from a smart contract (eth_call).

    Args:
        contract_address: 0x-prefixed contract address
        function_name: Function to call
        args: Function arguments (default: [])
        abi: ABI entries or human-readable fragments
        rpc_url: RPC endpoint URL

    Returns:
        Decoded return value(s), None when the call returned no data
    """
    if abi is None:
        raise ValueError("abi must be provided")
    if not rpc_url:
        raise ValueError("rpc_url must be provided")

    calldata = encode_call(abi, function_name, args or [])
    result = call_raw(contract_address, calldata, rpc_url=rpc_url)

    if result in (None, "0x"):
        return None

    return decode_result(abi, function_name, result)


def get_code(address: str, rpc_url: str) -> str:
    """Runtime bytecode at an address ("0x" for an EOA)."""
    return _rpc_call("eth_getCode", [address, "latest"], rpc_url=rpc_url) or "0x"


def get_balance(address: str, rpc_url: str) -> int:
    """Native balance in wei."""
    result = _rpc_call("eth_getBalance", [address, "latest"], rpc_url=rpc_url)
    return int(result, 16)


def get_nonce(address: str, rpc_url: str) -> int:
    """Pending-agnostic transaction count for an address."""
    result = _rpc_call("eth_getTransactionCount", [address, "latest"], rpc_url=rpc_url)
    return int(result, 16)


def get_gas_price(rpc_url: str) -> int:
    result = _rpc_call("eth_gasPrice", [], rpc_url=rpc_url)
    return int(result, 16)


def get_chain_id(rpc_url: str) -> int:
    result = _rpc_call("eth_chainId", [], rpc_url=rpc_url)
    return int(result, 16)


def get_block_number(rpc_url: str) -> int:
    result = _rpc_call("eth_blockNumber", [], rpc_url=rpc_url)
    return int(result, 16)


def get_transaction(tx_hash: str, rpc_url: str) -> Optional[dict]:
    return _rpc_call("eth_getTransactionByHash", [tx_hash], rpc_url=rpc_url)


def get_transaction_receipt(tx_hash: str, rpc_url: str) -> Optional[dict]:
    return _rpc_call("eth_getTransactionReceipt", [tx_hash], rpc_url=rpc_url)


def send_raw_transaction(raw_tx: str, rpc_url: str) -> str:
    """
    Send a signed raw transaction.

    Returns:
        Transaction hash (0x-prefixed hex)
    """
    return _rpc_call("eth_sendRawTransaction", [raw_tx], rpc_url=rpc_url)


def wait_for_receipt(
    tx_hash: str,
    rpc_url: str,
    timeout: int = 120,
    poll_interval: float = 2.0,
) -> dict:
    """
    Wait for a transaction receipt.

    Raises:
        TimeoutError: If receipt not found within timeout
    """
    start = time.time()
    while time.time() - start < timeout:
        receipt = get_transaction_receipt(tx_hash, rpc_url=rpc_url)
        if receipt is not None:
            return receipt
        time.sleep(poll_interval)

    raise TimeoutError(f"Transaction {tx_hash} not confirmed within {timeout}s")


def hex_quantity(value: Optional[str]) -> Optional[int]:
    """Decode a JSON-RPC hex quantity such as a receipt status."""
    if value is None:
        return None
    return int(strip_0x(value) or "0", 16)

"""
Invoke - Send a single contract transaction from a human-readable signature.

Escape hatch for owner actions that have no dedicated command, e.g.

    bridgeops invoke --contract hub --function "setBalancer(address)" \\
        --args '["0x3a27..."]'
"""

from __future__ import annotations

import json
import sys
from typing import Any, Optional

import click

from ..book import Deployment, rpc_url_for
from ..errors import AbiError
from ..onchain.abi import parse_signature
from ..utils import hex_to_bytes
from ._common import get_deployment, heading, require_signer, resolve_chain, send_admin_tx


def resolve_contract(deployment: Deployment, name_or_address: str) -> str:
    """Accept an address or a book name: hub, balancer, a contract or a token."""
    if name_or_address.startswith("0x"):
        return name_or_address
    key = name_or_address.lower()
    if key == "hub":
        return deployment.hub
    if key == "balancer" and deployment.balancer:
        return deployment.balancer
    if key in deployment.contracts:
        return deployment.contracts[key]
    return deployment.token(name_or_address)


def coerce_args(entry: dict[str, Any], values: list) -> list:
    """JSON values to what eth-abi expects: bytes for bytesN, ints for quoted numbers."""
    inputs = entry["inputs"]
    if len(inputs) != len(values):
        raise ValueError(
            f"{entry['name']} takes {len(inputs)} argument(s), got {len(values)}"
        )
    return [_coerce(param["type"], value) for param, value in zip(inputs, values)]


def _coerce(type_: str, value: Any) -> Any:
    if type_.endswith("]") and isinstance(value, list):
        element = type_[: type_.rindex("[")]
        return [_coerce(element, item) for item in value]
    if type_.startswith("bytes") and isinstance(value, str):
        return hex_to_bytes(value)
    if type_.startswith(("uint", "int")) and isinstance(value, str):
        return int(value, 0)
    return value


@click.command()
@click.option("--contract", required=True, help="Target address or book name (hub, staking_vault, ...)")
@click.option("--function", "signature", required=True, help='Signature, e.g. "setPeer(uint32,bytes32)"')
@click.option("--args", "args_json", default="[]", help="Function args as JSON array")
@click.option("--value", default=0, type=int, help="Native value in wei")
@click.option("--chain", "chain_name", default=None, help="Chain (default: hub chain)")
@click.option("--gas-limit", default=500_000, type=int, help="Gas limit")
@click.option("--rpc-url", default=None, help="RPC URL override")
@click.option("--dry-run", is_flag=True, help="Simulate only, send nothing")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not prompt before sending")
@click.pass_context
def invoke(
    ctx: click.Context,
    contract: str,
    signature: str,
    args_json: str,
    value: int,
    chain_name: Optional[str],
    gas_limit: int,
    rpc_url: Optional[str],
    dry_run: bool,
    assume_yes: bool,
) -> None:
    """
    Execute an on-chain contract call.

    Sends a transaction from the PRIVATE_KEY account to the given contract
    after simulating it.
    """
    deployment = get_deployment(ctx)
    chain = resolve_chain(ctx, chain_name) if chain_name else deployment.hub_chain_info

    heading("Invoke")

    try:
        entry = parse_signature(signature)
        if entry["type"] != "function":
            raise AbiError(f"{signature!r} is not a function")
        raw_args = json.loads(args_json)
        if not isinstance(raw_args, list):
            raise ValueError("Args must be a JSON array")
        args = coerce_args(entry, raw_args)
        target = resolve_contract(deployment, contract)
    except (json.JSONDecodeError, ValueError) as exc:
        click.secho(f"ERROR: Invalid args: {exc}", fg="red")
        sys.exit(1)
    except AbiError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(exc.exit_code)
    except Exception as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(getattr(exc, "exit_code", 1))

    private_key, address = require_signer()
    send_admin_tx(
        chain=chain,
        rpc_url=rpc_url or rpc_url_for(chain),
        contract=target,
        function=entry["name"],
        args=args,
        abi=[entry],
        private_key=private_key,
        sender=address,
        value=value,
        gas_limit=gas_limit,
        dry_run=dry_run,
        assume_yes=assume_yes,
    )

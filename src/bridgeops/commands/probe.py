"""
Probe - Find out what an unverified contract actually implements.

Works from candidate signatures only: call them, look for their selectors
in the runtime bytecode, match them against a selector seen in a
transaction or revert, or decode a sent transaction's calldata.
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..book import rpc_url_for
from ..errors import AbiError, RpcError
from ..onchain.abi import known_functions
from ..onchain.rpc import call_raw, get_code, get_transaction, hex_quantity
from ..onchain.selectors import (
    bytecode_selectors,
    decode_calldata,
    decode_revert,
    match_signatures,
    selector,
)
from ..utils import code_size, hex_to_bytes, to_checksum_address, truncate
from ._common import get_deployment, heading, resolve_chain, row


def interpret_word(word: bytes) -> str:
    """Best-effort reading of a 32-byte return word."""
    value = int.from_bytes(word, "big")
    if value == 0:
        return "0 / false / address(0)"
    if word[:12] == bytes(12) and value >= 2**96:
        return f"address {to_checksum_address('0x' + word[12:].hex())}"
    if value == 1:
        return "1 / true"
    return f"uint {value}"


def _target(ctx: click.Context, chain_name: Optional[str], rpc_url: Optional[str]) -> tuple[str, str]:
    chain = resolve_chain(ctx, chain_name) if chain_name else get_deployment(ctx).hub_chain_info
    return chain.name, rpc_url or rpc_url_for(chain)


@click.group()
def probe() -> None:
    """Probe contracts by selector."""


@probe.command("call")
@click.argument("address")
@click.argument("signatures", nargs=-1, required=True)
@click.option("--chain", "chain_name", default=None, help="Chain (default: hub chain)")
@click.option("--rpc-url", default=None, help="RPC URL override")
@click.pass_context
def call_cmd(
    ctx: click.Context,
    address: str,
    signatures: tuple[str, ...],
    chain_name: Optional[str],
    rpc_url: Optional[str],
) -> None:
    """Call each zero-argument SIGNATURE on ADDRESS."""
    chain, rpc = _target(ctx, chain_name, rpc_url)
    heading(f"Probe {address} on {chain}")

    answered = 0
    for sig in signatures:
        try:
            sel = selector(sig)
        except AbiError as exc:
            row(sig, f"(bad signature: {exc})", fg="red")
            continue
        try:
            data = hex_to_bytes(call_raw(address, sel, rpc_url=rpc))
        except RpcError as exc:
            reason = decode_revert(exc.data) if exc.data else truncate(exc)
            row(sig, f"revert ({reason})", fg="red")
            continue
        answered += 1
        if not data:
            row(sig, "ok (no data)", fg="green")
            continue
        word = data[:32].rjust(32, b"\0")
        row(sig, click.style("ok ", fg="green") + "0x" + word.hex())
        click.echo(f"  {'':<22}{interpret_word(word)}")

    click.echo()
    if not answered:
        sys.exit(1)


@probe.command()
@click.argument("address")
@click.argument("signatures", nargs=-1, required=True)
@click.option("--chain", "chain_name", default=None, help="Chain (default: hub chain)")
@click.option("--rpc-url", default=None, help="RPC URL override")
@click.pass_context
def bytecode(
    ctx: click.Context,
    address: str,
    signatures: tuple[str, ...],
    chain_name: Optional[str],
    rpc_url: Optional[str],
) -> None:
    """Check whether each SIGNATURE's selector is in ADDRESS's bytecode."""
    chain, rpc = _target(ctx, chain_name, rpc_url)
    try:
        code = get_code(address, rpc_url=rpc)
    except RpcError as exc:
        click.secho(f"ERROR: {truncate(exc)}", fg="red")
        sys.exit(exc.exit_code)

    heading(f"Bytecode of {address} on {chain}")
    size = code_size(code)
    row("Code size", f"{size} bytes")
    if size == 0:
        click.secho("  No code at this address", fg="red")
        sys.exit(1)

    present = bytecode_selectors(code)
    row("PUSH4 constants", len(present))
    click.echo()
    for sig in signatures:
        try:
            sel = selector(sig)
        except AbiError as exc:
            row(sig, f"(bad signature: {exc})", fg="red")
            continue
        found = sel in present
        row(sig, f"{sel} {'FOUND' if found else 'absent'}", fg="green" if found else "yellow")


@probe.command()
@click.argument("target")
@click.argument("signatures", nargs=-1, required=True)
def match(target: str, signatures: tuple[str, ...]) -> None:
    """Find which SIGNATURE hashes to the 4-byte TARGET selector."""
    try:
        results = match_signatures(target, signatures)
    except AbiError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(exc.exit_code)

    heading(f"Matching {target}")
    for result in results:
        if not result.selector:
            row(result.signature, "(unparseable)", fg="red")
        elif result.matched:
            row(result.signature, f"{result.selector} MATCH", fg="green", bold=True)
        else:
            row(result.signature, result.selector, dim=True)

    if not any(r.matched for r in results):
        click.echo()
        click.secho("  No candidate matches.", fg="yellow")
        sys.exit(1)


@probe.command("selector")
@click.argument("signatures", nargs=-1, required=True)
def selector_cmd(signatures: tuple[str, ...]) -> None:
    """Print the 4-byte selector of each SIGNATURE."""
    failed = False
    for sig in signatures:
        try:
            click.echo(f"{selector(sig)}  {sig}")
        except AbiError as exc:
            click.secho(f"ERROR: {exc}", fg="red", err=True)
            failed = True
    if failed:
        sys.exit(3)


@probe.command("decode-error")
@click.argument("data")
@click.option("--candidate", "candidates", multiple=True, help="Extra error signature(s) to try")
def decode_error(data: str, candidates: tuple[str, ...]) -> None:
    """Decode revert DATA (0x-prefixed hex)."""
    try:
        decoded = decode_revert(data, candidates)
    except Exception as exc:
        click.secho(f"ERROR: Cannot decode {truncate(data)}: {exc}", fg="red")
        sys.exit(3)

    row("Selector", decoded.selector or "(none)")
    row("Error", decoded.name or "unknown", fg="green" if decoded.name else "yellow")
    row("Decoded", str(decoded))
    if decoded.name is None:
        sys.exit(1)


@probe.command("decode-tx")
@click.argument("tx_hash")
@click.argument("signatures", nargs=-1)
@click.option("--chain", "chain_name", default=None, help="Chain (default: hub chain)")
@click.option("--rpc-url", default=None, help="RPC URL override")
@click.pass_context
def decode_tx(
    ctx: click.Context,
    tx_hash: str,
    signatures: tuple[str, ...],
    chain_name: Optional[str],
    rpc_url: Optional[str],
) -> None:
    """Decode the calldata of TX_HASH against SIGNATUREs (default: known fragments)."""
    chain, rpc = _target(ctx, chain_name, rpc_url)
    try:
        tx = get_transaction(tx_hash, rpc_url=rpc)
    except RpcError as exc:
        click.secho(f"ERROR: {truncate(exc)}", fg="red")
        sys.exit(exc.exit_code)
    if tx is None:
        click.secho(f"ERROR: transaction {tx_hash} not found on {chain}", fg="red")
        sys.exit(1)

    heading(f"Transaction {tx_hash} on {chain}")
    row("From", tx.get("from"))
    row("To", tx.get("to") or "(contract creation)")
    row("Value", f"{hex_quantity(tx.get('value') or '0x0')} wei")

    candidates = list(signatures) or known_functions()
    try:
        decoded = decode_calldata(tx.get("input") or "0x", candidates)
    except (AbiError, ValueError) as exc:
        row("Input", f"(undecodable: {exc})", fg="red")
        sys.exit(3)

    row("Selector", decoded.selector)
    if decoded.signature is None:
        row("Function", "unknown", fg="yellow")
        sys.exit(1)
    row("Function", decoded.signature, fg="green", bold=True)
    for name, value in decoded.args.items():
        row(f"  {name}", _render_arg(value))


def _render_arg(value: object) -> str:
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_render_arg(v) for v in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{k}: {_render_arg(v)}" for k, v in value.items()) + "}"
    return str(value)

"""
LZ - LayerZero v2 messaging diagnostics for the hub and gateways.

- nonces:  verified vs executed inbound messages on the hub
- pending: stored payload hashes that have not been executed
- skip:    clear a blocked nonce on the hub endpoint (owner only)
- config:  message libraries, DVN (ULN) and executor config of an OApp
- tx:      whether a source transaction emitted a PacketSent
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Optional, Union

import click
from eth_abi import decode

from ..book import rpc_url_for
from ..onchain.abi import (
    CONFIG_TYPE_EXECUTOR,
    CONFIG_TYPE_ULN,
    EXECUTOR_CONFIG_TYPE,
    PACKET_SENT_EVENT,
    ULN_CONFIG_TYPE,
    abi_for,
    signature_of,
)
from ..onchain.rpc import get_transaction, get_transaction_receipt, hex_quantity, read_contract
from ..utils import address_to_bytes32, hex_to_bytes, keccak256, same_address
from ._common import (
    get_deployment,
    heading,
    require_signer,
    resolve_chain,
    row,
    section,
    send_admin_tx,
    try_read,
    warn,
)

PACKET_SENT_TOPIC = "0x" + keccak256(signature_of(PACKET_SENT_EVENT).encode()).hex()


@dataclass(frozen=True)
class UlnConfig:
    confirmations: int
    required_dvn_count: int
    optional_dvn_count: int
    optional_dvn_threshold: int
    required_dvns: tuple[str, ...]
    optional_dvns: tuple[str, ...]


def decode_uln_config(data: Union[str, bytes]) -> UlnConfig:
    """Decode the bytes returned by endpoint.getConfig(..., CONFIG_TYPE_ULN)."""
    (values,) = decode([ULN_CONFIG_TYPE], hex_to_bytes(data))
    confirmations, required_count, optional_count, threshold, required, optional = values
    return UlnConfig(
        confirmations=confirmations,
        required_dvn_count=required_count,
        optional_dvn_count=optional_count,
        optional_dvn_threshold=threshold,
        required_dvns=tuple(required),
        optional_dvns=tuple(optional),
    )


def decode_executor_config(data: Union[str, bytes]) -> tuple[int, str]:
    """(max_message_size, executor) from getConfig(..., CONFIG_TYPE_EXECUTOR)."""
    (values,) = decode([EXECUTOR_CONFIG_TYPE], hex_to_bytes(data))
    return values[0], values[1]


def pending_messages(inbound: int, lazy_inbound: int) -> int:
    """Messages verified (lazy nonce) but not yet executed (inbound nonce)."""
    return max(0, lazy_inbound - inbound)


def nonces_to_scan(inbound: int, lazy_inbound: int, extra: int = 5) -> range:
    """
    Nonces whose payload hash may still be stored on the endpoint.

    Everything past the lower of the two nonces, up to `extra` beyond the
    higher one, since a verified message can sit above both.
    """
    return range(min(inbound, lazy_inbound) + 1, max(inbound, lazy_inbound) + extra + 1)


@dataclass(frozen=True)
class InboundPath:
    endpoint: str
    receiver: str
    sender: str
    src_eid: int
    rpc_url: str

    @property
    def args(self) -> list:
        return [self.receiver, self.src_eid, hex_to_bytes(address_to_bytes32(self.sender))]


def _inbound_path(ctx: click.Context, source: str, sender: Optional[str]) -> InboundPath:
    deployment = get_deployment(ctx)
    hub_chain = deployment.hub_chain_info
    remote = resolve_chain(ctx, source)
    if not hub_chain.endpoint:
        click.secho(f"ERROR: no endpoint recorded for {hub_chain.name}", fg="red")
        sys.exit(2)
    try:
        sender = sender or deployment.gateway_for(remote)
    except Exception as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(getattr(exc, "exit_code", 1))
    return InboundPath(
        endpoint=hub_chain.endpoint,
        receiver=deployment.hub,
        sender=sender,
        src_eid=remote.eid,
        rpc_url=rpc_url_for(hub_chain),
    )


def _read_nonces(path: InboundPath) -> tuple[int, int]:
    abi = abi_for("endpoint")
    try:
        inbound = read_contract(
            path.endpoint, "inboundNonce", path.args, abi=abi, rpc_url=path.rpc_url
        )
        lazy = read_contract(
            path.endpoint, "lazyInboundNonce", path.args, abi=abi, rpc_url=path.rpc_url
        )
    except Exception as exc:
        click.secho(f"ERROR: Failed to read nonces: {exc}", fg="red")
        sys.exit(getattr(exc, "exit_code", 1))
    return inbound, lazy


@click.group()
def lz() -> None:
    """LayerZero messaging diagnostics."""


@lz.command()
@click.option("--from", "source", required=True, help="Gateway chain the messages come from")
@click.option("--sender", default=None, help="Sender OApp (default: gateway from the book)")
@click.pass_context
def nonces(ctx: click.Context, source: str, sender: Optional[str]) -> None:
    """Compare inbound and lazy inbound nonces of the hub for a gateway."""
    path = _inbound_path(ctx, source, sender)
    remote = resolve_chain(ctx, source)

    heading(f"Message Nonces {remote.name} -> {get_deployment(ctx).hub_chain}")
    row("Receiver (hub)", path.receiver)
    row("Sender", path.sender)
    row("Source EID", path.src_eid)

    inbound, lazy = _read_nonces(path)
    row("Inbound (executed)", inbound)
    row("Lazy (verified)", lazy)
    stuck = pending_messages(inbound, lazy)
    click.echo()
    if stuck:
        warn(f"{stuck} message(s) verified but not executed")
        sys.exit(1)
    click.secho("  Messages are being executed normally", fg="green")


@lz.command()
@click.option("--from", "source", required=True, help="Gateway chain the messages come from")
@click.option("--sender", default=None, help="Sender OApp (default: gateway from the book)")
@click.option("--extra", default=5, type=int, show_default=True, help="Nonces to scan past the highest")
@click.pass_context
def pending(ctx: click.Context, source: str, sender: Optional[str], extra: int) -> None:
    """List nonces whose payload is stored on the hub endpoint but not executed."""
    path = _inbound_path(ctx, source, sender)
    remote = resolve_chain(ctx, source)

    heading(f"Pending Messages {remote.name} -> {get_deployment(ctx).hub_chain}")
    row("Sender", path.sender)
    inbound, lazy = _read_nonces(path)
    row("Inbound (executed)", inbound)
    row("Lazy (verified)", lazy)

    section("Payload hashes")
    abi = abi_for("endpoint")
    found: list[int] = []
    failures = 0
    for nonce in nonces_to_scan(inbound, lazy, extra):
        payload_hash = try_read(
            f"Nonce {nonce}",
            lambda: read_contract(
                path.endpoint,
                "inboundPayloadHash",
                [*path.args, nonce],
                abi=abi,
                rpc_url=path.rpc_url,
            ),
        )
        if payload_hash is None:
            failures += 1
            continue
        if not any(hex_to_bytes(payload_hash)):
            row(f"Nonce {nonce}", "empty", dim=True)
            continue
        found.append(nonce)
        row(f"Nonce {nonce}", f"PENDING 0x{hex_to_bytes(payload_hash).hex()}", fg="yellow")

    click.echo()
    if found:
        warn(f"{len(found)} message(s) waiting: nonce(s) {', '.join(map(str, found))}")
        click.echo(f"  Next executable nonce is {inbound + 1}; skip it with `lz skip` if it cannot run.")
        sys.exit(1)
    if failures:
        sys.exit(1)
    click.secho("  No stored payloads", fg="green")


@lz.command()
@click.option("--from", "source", required=True, help="Gateway chain the message came from")
@click.option("--nonce", required=True, type=int, help="Nonce to skip (must be the next one)")
@click.option("--sender", default=None, help="Sender OApp (default: gateway from the book)")
@click.option("--dry-run", is_flag=True, help="Simulate only, send nothing")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not prompt before sending")
@click.pass_context
def skip(
    ctx: click.Context,
    source: str,
    nonce: int,
    sender: Optional[str],
    dry_run: bool,
    assume_yes: bool,
) -> None:
    """Skip a blocked inbound message on the hub endpoint (hub owner only)."""
    deployment = get_deployment(ctx)
    path = _inbound_path(ctx, source, sender)
    remote = resolve_chain(ctx, source)
    heading(f"Skip Nonce {nonce} {remote.name} -> {deployment.hub_chain}")

    private_key, address = require_signer()
    row("Signer", address)

    inbound, lazy = _read_nonces(path)
    row("Inbound (executed)", inbound)
    row("Lazy (verified)", lazy)
    if nonce != inbound + 1:
        click.secho(f"ERROR: only the next nonce ({inbound + 1}) can be skipped", fg="red")
        sys.exit(2)

    section("Transaction")
    send_admin_tx(
        chain=deployment.hub_chain_info,
        rpc_url=path.rpc_url,
        contract=path.endpoint,
        function="skip",
        args=[*path.args, nonce],
        abi=abi_for("endpoint"),
        private_key=private_key,
        sender=address,
        dry_run=dry_run,
        assume_yes=assume_yes,
    )


def _describe_uln(label: str, data: bytes, expected_dvn: Optional[str]) -> bool:
    try:
        config = decode_uln_config(data)
    except Exception as exc:
        row(label, f"(undecodable: {exc})", fg="red")
        return False
    row("Confirmations", config.confirmations)
    row("Required DVNs", config.required_dvn_count)
    for dvn in config.required_dvns:
        click.echo(f"      {dvn}")
    row("Optional DVNs", f"{config.optional_dvn_count} (threshold {config.optional_dvn_threshold})")
    for dvn in config.optional_dvns:
        click.echo(f"      {dvn}")
    if expected_dvn is None:
        return True
    ok = any(same_address(dvn, expected_dvn) for dvn in config.required_dvns)
    row(
        "LayerZero Labs DVN",
        "PRESENT" if ok else f"MISSING ({expected_dvn})",
        fg="green" if ok else "red",
    )
    return ok


@lz.command()
@click.option("--chain", "chain_name", required=True, help="Chain whose OApp config to read")
@click.option("--remote", "remote_name", default=None, help="Peer chain (hub chain: required)")
@click.option("--rpc-url", default=None, help="RPC URL override")
@click.pass_context
def config(
    ctx: click.Context,
    chain_name: str,
    remote_name: Optional[str],
    rpc_url: Optional[str],
) -> None:
    """Show send/receive libraries, DVN and executor config."""
    deployment = get_deployment(ctx)
    chain = resolve_chain(ctx, chain_name)
    hub_chain = deployment.hub_chain_info

    if chain.name == hub_chain.name:
        if not remote_name:
            click.secho("ERROR: --remote is required when reading the hub's config", fg="red")
            sys.exit(2)
        remote = resolve_chain(ctx, remote_name)
        oapp = deployment.hub
    else:
        remote = resolve_chain(ctx, remote_name) if remote_name else hub_chain
        try:
            oapp = deployment.gateway_for(chain)
        except Exception as exc:
            click.secho(f"ERROR: {exc}", fg="red")
            sys.exit(getattr(exc, "exit_code", 1))

    if not chain.endpoint:
        click.secho(f"ERROR: no endpoint recorded for {chain.name}", fg="red")
        sys.exit(2)

    rpc = rpc_url or rpc_url_for(chain)
    abi = abi_for("endpoint")
    heading(f"LayerZero Config {chain.name} <-> {remote.name}")
    row("OApp", oapp)
    row("Endpoint", chain.endpoint)
    row("Remote EID", remote.eid)

    healthy = True

    section("Send")
    send_lib = try_read(
        "Send library",
        lambda: read_contract(
            chain.endpoint, "getSendLibrary", [oapp, remote.eid], abi=abi, rpc_url=rpc
        ),
    )
    if send_lib is None:
        healthy = False
    else:
        row("Send library", send_lib)
        if chain.send_lib and not same_address(send_lib, chain.send_lib):
            warn(f"book expects {chain.send_lib}")
        uln = try_read(
            "ULN config",
            lambda: read_contract(
                chain.endpoint,
                "getConfig",
                [oapp, send_lib, remote.eid, CONFIG_TYPE_ULN],
                abi=abi,
                rpc_url=rpc,
            ),
        )
        healthy &= uln is not None and _describe_uln("ULN config", uln, chain.dvn)
        executor = try_read(
            "Executor config",
            lambda: read_contract(
                chain.endpoint,
                "getConfig",
                [oapp, send_lib, remote.eid, CONFIG_TYPE_EXECUTOR],
                abi=abi,
                rpc_url=rpc,
            ),
        )
        if executor is not None:
            try:
                max_size, executor_addr = decode_executor_config(executor)
                row("Max message size", max_size)
                row("Executor", executor_addr)
            except Exception as exc:
                row("Executor config", f"(undecodable: {exc})", fg="red")

    section("Receive")
    received = try_read(
        "Receive library",
        lambda: read_contract(
            chain.endpoint, "getReceiveLibrary", [oapp, remote.eid], abi=abi, rpc_url=rpc
        ),
    )
    if received is None:
        healthy = False
    else:
        receive_lib, is_default = received
        row("Receive library", f"{receive_lib}{' (default)' if is_default else ''}")
        if chain.receive_lib and not same_address(receive_lib, chain.receive_lib):
            warn(f"book expects {chain.receive_lib}")
        uln = try_read(
            "ULN config",
            lambda: read_contract(
                chain.endpoint,
                "getConfig",
                [oapp, receive_lib, remote.eid, CONFIG_TYPE_ULN],
                abi=abi,
                rpc_url=rpc,
            ),
        )
        healthy &= uln is not None and _describe_uln("ULN config", uln, chain.dvn)

    click.echo()
    if not healthy:
        sys.exit(1)


@lz.command("tx")
@click.argument("tx_hash")
@click.option("--chain", "chain_name", required=True, help="Chain the transaction was sent on")
@click.option("--rpc-url", default=None, help="RPC URL override")
@click.pass_context
def tx_status(ctx: click.Context, tx_hash: str, chain_name: str, rpc_url: Optional[str]) -> None:
    """Show a source transaction and whether it emitted PacketSent."""
    chain = resolve_chain(ctx, chain_name)
    rpc = rpc_url or rpc_url_for(chain)

    heading(f"Source TX on {chain.name}")
    row("Hash", tx_hash)

    try:
        tx = get_transaction(tx_hash, rpc_url=rpc)
        receipt = get_transaction_receipt(tx_hash, rpc_url=rpc)
    except Exception as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(getattr(exc, "exit_code", 1))

    if tx is None:
        click.secho("  Transaction not found", fg="red")
        sys.exit(1)

    row("Block", hex_quantity(tx.get("blockNumber")) if tx.get("blockNumber") else "pending")
    row("From", tx.get("from"))
    row("To", tx.get("to"))
    row("Input selector", (tx.get("input") or "0x")[:10])

    if receipt is None:
        warn("no receipt yet")
        sys.exit(1)

    succeeded = hex_quantity(receipt.get("status")) == 1
    row("Status", "SUCCESS" if succeeded else "FAILED", fg="green" if succeeded else "red")
    logs = receipt.get("logs") or []
    row("Logs", len(logs))
    packets = [
        log for log in logs
        if (log.get("topics") or [None])[0] and log["topics"][0].lower() == PACKET_SENT_TOPIC
    ]
    row("PacketSent", "found" if packets else "not found", fg="green" if packets else "yellow")
    for log in packets:
        row("  Emitted by", log.get("address"))

    if not succeeded:
        sys.exit(1)


__all__ = [
    "UlnConfig",
    "decode_executor_config",
    "decode_uln_config",
    "lz",
    "nonces_to_scan",
    "pending_messages",
]

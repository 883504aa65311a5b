"""
Peers - Verify and repair the OApp peer mapping between Hub and Gateways.

Every remote chain needs two entries: hub.peers(gatewayEid) must hold the
gateway address and gateway.peers(hubEid) must hold the hub address, both
left-padded to bytes32. A stale entry after a redeployment is the usual
reason messages sit verified but never execute.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Optional, Union

import click

from ..book import Chain, Deployment, rpc_url_for
from ..onchain.abi import abi_for
from ..onchain.rpc import read_contract
from ..utils import address_to_bytes32, hex_to_bytes, is_zero_address, same_address
from ._common import (
    SENT,
    get_deployment,
    heading,
    require_signer,
    row,
    section,
    send_admin_tx,
    try_read,
    warn,
)

MATCH = "MATCH"
MISMATCH = "MISMATCH"
UNSET = "UNSET"


@dataclass(frozen=True)
class PeerLink:
    """One direction of a hub/gateway pairing."""

    label: str
    chain: Chain
    contract: str
    remote_eid: int
    expected: str
    kind: str


def peer_status(peer: Union[bytes, str, None], expected: str) -> str:
    if peer is None or is_zero_address(peer):
        return UNSET
    return MATCH if same_address(peer, expected) else MISMATCH


def build_links(
    deployment: Deployment,
    chains: Optional[list[str]] = None,
    side: str = "both",
) -> list[PeerLink]:
    """Peer entries to check, hub side first."""
    hub_chain = deployment.hub_chain_info
    remotes = deployment.remote_chains(chains)
    links: list[PeerLink] = []
    if side in ("hub", "both"):
        for remote in remotes:
            links.append(
                PeerLink(
                    label=f"Hub -> {remote.name} (EID {remote.eid})",
                    chain=hub_chain,
                    contract=deployment.hub,
                    remote_eid=remote.eid,
                    expected=deployment.gateway_for(remote),
                    kind="hub",
                )
            )
    if side in ("gateway", "both"):
        for remote in remotes:
            links.append(
                PeerLink(
                    label=f"{remote.name} gateway -> Hub (EID {hub_chain.eid})",
                    chain=remote,
                    contract=deployment.gateway_for(remote),
                    remote_eid=hub_chain.eid,
                    expected=deployment.hub,
                    kind="gateway",
                )
            )
    return links


def read_peer(link: PeerLink) -> bytes:
    return read_contract(
        link.contract,
        "peers",
        [link.remote_eid],
        abi=abi_for(link.kind),
        rpc_url=rpc_url_for(link.chain),
    )


@click.group()
def peers() -> None:
    """Inspect and repair Hub <-> Gateway peer configuration."""


@peers.command("check")
@click.option("--chain", "chains", multiple=True, help="Restrict to gateway chain(s)")
@click.option(
    "--side",
    type=click.Choice(["hub", "gateway", "both"]),
    default="both",
    show_default=True,
    help="Which direction(s) to check",
)
@click.pass_context
def check(ctx: click.Context, chains: tuple[str, ...], side: str) -> None:
    """Compare on-chain peers with the address book."""
    deployment = get_deployment(ctx)
    heading("Peer Check")

    try:
        links = build_links(deployment, list(chains) or None, side)
    except Exception as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(getattr(exc, "exit_code", 1))

    failures = 0
    current_kind = None
    for link in links:
        if link.kind != current_kind:
            current_kind = link.kind
            section("Hub peers" if link.kind == "hub" else "Gateway peers")
        click.echo()
        click.secho(f"  {link.label}", bold=True)
        peer = try_read("On-chain peer", lambda: read_peer(link))
        if peer is None:
            failures += 1
            continue
        row("On-chain peer", "0x" + hex_to_bytes(peer).hex())
        row("Expected", address_to_bytes32(link.expected))
        status = peer_status(peer, link.expected)
        colour = "green" if status == MATCH else "red" if status == MISMATCH else "yellow"
        row("Status", status, fg=colour, bold=True)
        if status != MATCH:
            failures += 1

    click.echo()
    if failures:
        click.secho(f"{failures} peer entr{'y' if failures == 1 else 'ies'} need attention.", fg="red")
        sys.exit(1)
    click.secho("All peers match the address book.", fg="green")


@peers.command("set")
@click.option("--chain", "chains", multiple=True, help="Restrict to gateway chain(s)")
@click.option(
    "--side",
    type=click.Choice(["hub", "gateway"]),
    default="hub",
    show_default=True,
    help="Update the hub's peers or each gateway's hub peer",
)
@click.option("--gas-limit", default=200_000, type=int, show_default=True)
@click.option("--dry-run", is_flag=True, help="Simulate only, send nothing")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not prompt before sending")
@click.pass_context
def set_peers(
    ctx: click.Context,
    chains: tuple[str, ...],
    side: str,
    gas_limit: int,
    dry_run: bool,
    assume_yes: bool,
) -> None:
    """Point stale peer entries at the address-book contracts (owner only)."""
    deployment = get_deployment(ctx)
    heading("Fix Peers")

    private_key, address = require_signer()
    row("Signer", address)

    try:
        links = build_links(deployment, list(chains) or None, side)
    except Exception as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(getattr(exc, "exit_code", 1))

    checked_owners: dict[tuple[str, str], bool] = {}
    pending: list[PeerLink] = []
    for link in links:
        click.echo()
        click.secho(f"  {link.label}", bold=True)

        key = (link.chain.name, link.contract)
        if key not in checked_owners:
            owner = try_read(
                "Owner",
                lambda: read_contract(
                    link.contract, "owner", abi=abi_for(link.kind), rpc_url=rpc_url_for(link.chain)
                ),
            )
            checked_owners[key] = owner is not None and same_address(owner, address)
            if owner is not None:
                row("Owner", owner)
            if owner is not None and not checked_owners[key]:
                warn(f"{address} is not the owner of {link.contract}")
        if not checked_owners[key]:
            click.secho("  Skipping: signer cannot call setPeer here.", fg="red")
            continue

        peer = try_read("Current peer", lambda: read_peer(link))
        if peer is not None and peer_status(peer, link.expected) == MATCH:
            click.secho("  Already correct, skipping.", fg="green")
            continue
        pending.append(link)

    if not pending:
        click.echo()
        blocked = [k for k, ok in checked_owners.items() if not ok]
        if blocked:
            sys.exit(1)
        click.secho("Nothing to update.", fg="green")
        return

    failures = 0
    exit_code = 0
    sent: list[PeerLink] = []
    for link in pending:
        section(f"setPeer on {link.chain.name}")
        outcome = send_admin_tx(
            chain=link.chain,
            rpc_url=rpc_url_for(link.chain),
            contract=link.contract,
            function="setPeer",
            args=[link.remote_eid, hex_to_bytes(address_to_bytes32(link.expected))],
            abi=abi_for(link.kind),
            private_key=private_key,
            sender=address,
            gas_limit=gas_limit,
            dry_run=dry_run,
            assume_yes=assume_yes,
            exit_on_failure=False,
        )
        if outcome.failed:
            failures += 1
            exit_code = exit_code or outcome.exit_code
        elif outcome.status == SENT:
            sent.append(link)

    if sent:
        section("Verification")
    for link in sent:
        peer = try_read(link.label, lambda: read_peer(link))
        status = UNSET if peer is None else peer_status(peer, link.expected)
        if peer is not None:
            row(link.label, status, fg="green" if status == MATCH else "red")
        if status != MATCH:
            failures += 1

    if failures:
        sys.exit(exit_code or 1)

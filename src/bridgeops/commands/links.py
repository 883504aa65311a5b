"""
Links - Verify and repair the hub's remote token -> synthetic token mapping.

A deposit on a gateway only mints on the hub when the hub knows which
synthetic token the gateway's underlying token maps to. The hub getters
contract answers that lookup; manualLinkRemoteToken on the hub writes it.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Optional

import click

from ..book import Chain, Deployment, RemoteToken, rpc_url_for
from ..errors import BookError
from ..onchain.abi import abi_for
from ..onchain.rpc import read_contract
from ..utils import format_units, is_zero_address, parse_units, same_address
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

LINKED = "LINKED"
UNLINKED = "UNLINKED"
MISMATCH = "MISMATCH"


@dataclass(frozen=True)
class TokenLink:
    chain: Chain
    token: RemoteToken
    synthetic: str

    @property
    def label(self) -> str:
        return f"{self.token.symbol} on {self.chain.name} -> {self.token.synthetic_symbol}"


def link_status(actual: Optional[str], expected: str) -> str:
    if actual is None or is_zero_address(actual):
        return UNLINKED
    return LINKED if same_address(actual, expected) else MISMATCH


def build_token_links(
    deployment: Deployment,
    chains: Optional[list[str]] = None,
    symbols: Optional[list[str]] = None,
) -> list[TokenLink]:
    """
    Remote tokens from the book paired with their expected synthetic token.

    Raises:
        BookError: If a chain or synthetic token is not in the book
    """
    wanted = {s.upper() for s in symbols} if symbols else None
    links = []
    for chain in deployment.remote_chains(chains):
        for token in deployment.remote_tokens_for(chain):
            if wanted is not None and token.symbol.upper() not in wanted:
                continue
            links.append(TokenLink(chain, token, deployment.token(token.synthetic_symbol)))
    return links


def read_linked_synthetic(deployment: Deployment, link: TokenLink) -> str:
    return read_contract(
        deployment.contract("hub_getters"),
        "getSyntheticAddressByRemoteAddress",
        [link.chain.eid, link.token.address],
        abi=abi_for("hub_getters"),
        rpc_url=rpc_url_for(deployment.hub_chain_info),
    )


def _select(ctx: click.Context, chains: tuple[str, ...], symbols: tuple[str, ...]) -> list[TokenLink]:
    try:
        links = build_token_links(get_deployment(ctx), list(chains) or None, list(symbols) or None)
    except BookError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(exc.exit_code)
    if not links:
        click.secho("ERROR: no remote tokens in the address book match", fg="red")
        sys.exit(2)
    return links


@click.group()
def links() -> None:
    """Inspect and repair remote token links on the hub."""


@links.command("check")
@click.option("--chain", "chains", multiple=True, help="Restrict to gateway chain(s)")
@click.option("--token", "symbols", multiple=True, help="Restrict to remote token symbol(s)")
@click.pass_context
def check(ctx: click.Context, chains: tuple[str, ...], symbols: tuple[str, ...]) -> None:
    """Compare the hub's token links with the address book."""
    deployment = get_deployment(ctx)
    selected = _select(ctx, chains, symbols)
    getters = abi_for("hub_getters")
    rpc = rpc_url_for(deployment.hub_chain_info)

    heading("Token Link Check")
    failures = 0
    current = None
    for link in selected:
        if link.chain.name != current:
            current = link.chain.name
            section(f"{link.chain.name} (EID {link.chain.eid})")
        click.echo()
        click.secho(f"  {link.label}", bold=True)
        row("Remote token", link.token.address)
        actual = try_read("Linked synthetic", lambda: read_linked_synthetic(deployment, link))
        if actual is None:
            failures += 1
            continue
        status = link_status(actual, link.synthetic)
        row("Linked synthetic", actual)
        row("Expected", link.synthetic)
        colour = "green" if status == LINKED else "red" if status == MISMATCH else "yellow"
        row("Status", status, fg=colour, bold=True)
        if status != LINKED:
            failures += 1
            continue

        info = try_read(
            "Remote info",
            lambda: read_contract(
                deployment.contract("hub_getters"),
                "getRemoteTokenInfo",
                [link.synthetic, link.chain.eid],
                abi=getters,
                rpc_url=rpc,
            ),
        )
        if info is not None:
            remote_address, decimals_delta, min_bridge = info
            if not same_address(remote_address, link.token.address):
                warn(f"reverse lookup returns {remote_address}")
            row("Decimals delta", decimals_delta)
            row("Min bridge", f"{format_units(min_bridge, link.token.decimals)} {link.token.symbol}")

    click.echo()
    if failures:
        click.secho(f"{failures} token link(s) need attention.", fg="red")
        sys.exit(1)
    click.secho("All token links match the address book.", fg="green")


@links.command("set")
@click.option("--chain", "chains", multiple=True, help="Restrict to gateway chain(s)")
@click.option("--token", "symbols", multiple=True, help="Restrict to remote token symbol(s)")
@click.option("--gas-limit", default=500_000, type=int, show_default=True)
@click.option("--dry-run", is_flag=True, help="Simulate only, send nothing")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not prompt before sending")
@click.pass_context
def set_links(
    ctx: click.Context,
    chains: tuple[str, ...],
    symbols: tuple[str, ...],
    gas_limit: int,
    dry_run: bool,
    assume_yes: bool,
) -> None:
    """Link unlinked remote tokens to their synthetic tokens (hub owner only)."""
    deployment = get_deployment(ctx)
    selected = _select(ctx, chains, symbols)
    hub_chain = deployment.hub_chain_info
    rpc = rpc_url_for(hub_chain)
    hub_abi = abi_for("hub")

    heading("Link Remote Tokens")
    private_key, address = require_signer()
    row("Signer", address)
    owner = try_read("Hub owner", lambda: read_contract(deployment.hub, "owner", abi=hub_abi, rpc_url=rpc))
    if owner is None:
        sys.exit(1)
    row("Hub owner", owner)
    if not same_address(owner, address):
        click.secho(f"ERROR: {address} is not the owner of the hub", fg="red")
        sys.exit(1)

    failures = 0
    pending: list[tuple[TokenLink, list]] = []
    for link in selected:
        click.echo()
        click.secho(f"  {link.label}", bold=True)
        actual = try_read("Linked synthetic", lambda: read_linked_synthetic(deployment, link))
        if actual is None:
            failures += 1
            continue
        status = link_status(actual, link.synthetic)
        if status == LINKED:
            click.secho("  Already linked, skipping.", fg="green")
            continue
        if status == MISMATCH:
            warn(f"linked to {actual}; manualLinkRemoteToken will not relink it")
            failures += 1
            continue

        synthetic_decimals = try_read(
            "Synthetic decimals",
            lambda: read_contract(link.synthetic, "decimals", abi=abi_for("erc20"), rpc_url=rpc),
        )
        try:
            gateway = deployment.gateway_for(link.chain)
        except BookError as exc:
            click.secho(f"  ERROR: {exc}", fg="red")
            synthetic_decimals = None
        if synthetic_decimals is None:
            failures += 1
            continue
        args = [
            link.synthetic,
            link.chain.eid,
            link.token.address,
            gateway,
            synthetic_decimals - link.token.decimals,
            parse_units(link.token.min_bridge, link.token.decimals),
        ]
        pending.append((link, args))

    exit_code = 0
    sent: list[TokenLink] = []
    for link, args in pending:
        section(f"manualLinkRemoteToken {link.label}")
        outcome = send_admin_tx(
            chain=hub_chain,
            rpc_url=rpc,
            contract=deployment.hub,
            function="manualLinkRemoteToken",
            args=args,
            abi=hub_abi,
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
        actual = try_read(link.label, lambda: read_linked_synthetic(deployment, link))
        status = UNLINKED if actual is None else link_status(actual, link.synthetic)
        if actual is not None:
            row(link.label, status, fg="green" if status == LINKED else "red")
        if status != LINKED:
            failures += 1

    click.echo()
    if failures:
        sys.exit(exit_code or 1)
    if not pending:
        click.secho("Nothing to link.", fg="green")

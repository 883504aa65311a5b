"""
Hub - Inspect the SyntheticTokenHub on the hub chain.

- status:  owner, endpoint, balancer wiring and deployed code
- minters: whether the hub can mint each synthetic token
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..book import rpc_url_for
from ..onchain.abi import abi_for
from ..onchain.rpc import get_code, read_contract
from ..utils import code_size, format_units, hex_to_bytes, is_zero_address, keccak256, same_address
from ._common import error_row, get_deployment, heading, row, section, try_read, warn

MINTER_ROLE = keccak256(b"MINTER_ROLE")
DEFAULT_ADMIN_ROLE = bytes(32)


@click.group()
def hub() -> None:
    """Inspect the Hub contract."""


@hub.command()
@click.option("--rpc-url", default=None, help="Hub chain RPC URL override")
@click.pass_context
def status(ctx: click.Context, rpc_url: Optional[str]) -> None:
    """Show hub owner, endpoint, balancer and code."""
    deployment = get_deployment(ctx)
    chain = deployment.hub_chain_info
    rpc = rpc_url or rpc_url_for(chain)
    abi = abi_for("hub")

    heading(f"Hub on {chain.name} ({chain.chain_id})")
    row("Hub", deployment.hub)

    problems = 0
    owner = try_read("Owner", lambda: read_contract(deployment.hub, "owner", abi=abi, rpc_url=rpc))
    if owner is not None:
        row("Owner", owner)

    endpoint = try_read(
        "Endpoint", lambda: read_contract(deployment.hub, "endpoint", abi=abi, rpc_url=rpc)
    )
    if endpoint is not None:
        row("Endpoint", endpoint)
        if chain.endpoint and not same_address(endpoint, chain.endpoint):
            warn(f"endpoint differs from the book ({chain.endpoint})")
            problems += 1

    section("Balancer")
    balancer = try_read(
        "Balancer", lambda: read_contract(deployment.hub, "balancer", abi=abi, rpc_url=rpc)
    )
    if balancer is not None:
        row("Balancer", balancer)
        row("Expected", deployment.balancer or "(not in book)")
        if is_zero_address(balancer):
            warn("balancer is not set; token operations will revert")
            if deployment.balancer:
                click.echo(f"  Run: hub.setBalancer({deployment.balancer})")
            problems += 1
        elif deployment.balancer and not same_address(balancer, deployment.balancer):
            warn("balancer address differs from the book")
            problems += 1
        else:
            click.secho("  Balancer is configured correctly", fg="green")

    section("Code")
    targets = [("Hub", deployment.hub)]
    if deployment.balancer:
        targets.append(("Balancer", deployment.balancer))
    for label, address in targets:
        try:
            code = get_code(address, rpc_url=rpc)
        except Exception as exc:
            error_row(f"{label} code", exc)
            problems += 1
            continue
        size = code_size(code)
        if size == 0:
            row(f"{label} code", "NOT DEPLOYED", fg="red", bold=True)
            problems += 1
            continue
        row(f"{label} code", f"{size} bytes")
        row(f"{label} code hash", "0x" + keccak256(hex_to_bytes(code)).hex())

    click.echo()
    if problems:
        sys.exit(1)


@hub.command()
@click.option("--token", "symbols", multiple=True, help="Synthetic token symbol(s) (default: all)")
@click.option("--rpc-url", default=None, help="Hub chain RPC URL override")
@click.pass_context
def minters(ctx: click.Context, symbols: tuple[str, ...], rpc_url: Optional[str]) -> None:
    """Check the hub holds MINTER_ROLE on each synthetic token."""
    deployment = get_deployment(ctx)
    chain = deployment.hub_chain_info
    rpc = rpc_url or rpc_url_for(chain)
    abi = abi_for("synthetic_token")

    heading("Minting Authorization")
    row("Hub", deployment.hub)

    if symbols:
        try:
            tokens = {s: deployment.token(s) for s in symbols}
        except Exception as exc:
            click.secho(f"ERROR: {exc}", fg="red")
            sys.exit(getattr(exc, "exit_code", 1))
    else:
        tokens = dict(deployment.synthetic_tokens)

    missing = []
    for symbol, address in tokens.items():
        section(f"{symbol} ({address})")
        try:
            has_role = read_contract(
                address, "hasRole", [MINTER_ROLE, deployment.hub], abi=abi, rpc_url=rpc
            )
        except Exception as exc:
            error_row("Hub has MINTER_ROLE", exc)
            missing.append(symbol)
            continue
        row("Hub has MINTER_ROLE", "YES" if has_role else "NO", fg="green" if has_role else "red")
        if not has_role:
            missing.append(symbol)

        admin_count = try_read(
            "Admin count",
            lambda: read_contract(
                address, "getRoleMemberCount", [DEFAULT_ADMIN_ROLE], abi=abi, rpc_url=rpc
            ),
        )
        if admin_count is not None:
            row("Admin count", admin_count)
            if admin_count > 0:
                admin = try_read(
                    "Admin",
                    lambda: read_contract(
                        address, "getRoleMember", [DEFAULT_ADMIN_ROLE, 0], abi=abi, rpc_url=rpc
                    ),
                )
                if admin is not None:
                    row("Admin", admin)

        supply = try_read(
            "Total supply", lambda: read_contract(address, "totalSupply", abi=abi, rpc_url=rpc)
        )
        if supply is not None:
            decimals = try_read(
                "Decimals", lambda: read_contract(address, "decimals", abi=abi, rpc_url=rpc)
            )
            row("Total supply", format_units(supply, decimals if decimals is not None else 18))

    click.echo()
    if missing:
        click.secho(f"Hub cannot mint: {', '.join(missing)}", fg="red")
        click.echo("  Fix: syntheticToken.grantRole(MINTER_ROLE, hub) from the token admin.")
        sys.exit(1)
    click.secho("Hub holds MINTER_ROLE on every token checked.", fg="green")

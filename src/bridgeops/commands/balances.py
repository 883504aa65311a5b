"""
Balances - Token accounting across the gateways and arbitrary wallets.

- gateways:  locked collateral per gateway with a rough USD value
- wallet:    native and ERC-20 balances of an address
- allowance: ERC-20 allowance owner -> spender
"""

from __future__ import annotations

import sys
from decimal import Decimal
from typing import Optional

import click

from ..book import Chain, rpc_url_for
from ..errors import BookError
from ..onchain.abi import abi_for, find_function, name_values
from ..onchain.rpc import get_balance, read_contract
from ..utils import format_units
from ._common import error_row, get_deployment, heading, resolve_chain, row, section, try_read

# Rough USD prices for the totals; not an oracle.
PRICES = {
    "WETH": Decimal("3500"),
    "WBTC": Decimal("100000"),
    "USDC": Decimal("1"),
    "USDT": Decimal("1"),
    "DAI": Decimal("1"),
}


def parse_gateway_tokens(raw: list) -> list[dict]:
    """Name the fields of getAllAvailableTokens() tuples."""
    entry = find_function(abi_for("gateway"), "getAllAvailableTokens")
    (tokens,) = name_values(entry["outputs"], [raw]).values()
    return tokens


def usd_value(symbol: str, amount: Decimal) -> Optional[Decimal]:
    price = PRICES.get(symbol.upper())
    return None if price is None else amount * price


def _format_usd(value: Decimal) -> str:
    return f"${value:,.2f}"


@click.group()
def balances() -> None:
    """Token balances held by the bridge and by wallets."""


@balances.command()
@click.option("--chain", "chains", multiple=True, help="Restrict to gateway chain(s)")
@click.pass_context
def gateways(ctx: click.Context, chains: tuple[str, ...]) -> None:
    """Show tokens locked in each gateway."""
    deployment = get_deployment(ctx)
    abi = abi_for("gateway")

    try:
        remotes = deployment.remote_chains(list(chains) or None)
    except Exception as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(getattr(exc, "exit_code", 1))

    heading("Gateway Balances")
    grand_total = Decimal(0)
    failures = 0
    for chain in remotes:
        try:
            gateway = deployment.gateway_for(chain)
        except BookError as exc:
            section(chain.name)
            error_row("Gateway", exc)
            failures += 1
            continue
        section(f"{chain.name} ({gateway})")
        rpc = rpc_url_for(chain)

        owner = try_read("Owner", lambda: read_contract(gateway, "owner", abi=abi, rpc_url=rpc))
        if owner is not None:
            row("Owner", owner)

        try:
            raw = read_contract(gateway, "getAllAvailableTokens", abi=abi, rpc_url=rpc) or []
            tokens = parse_gateway_tokens(raw)
        except Exception as exc:
            error_row("Tokens", exc)
            failures += 1
            continue

        if not tokens:
            click.echo("  (no tokens)")
            continue

        chain_total = Decimal(0)
        for token in tokens:
            symbol = token["tokenSymbol"]
            decimals = token["tokenDecimals"]
            amount = Decimal(format_units(token["tokenBalance"], decimals))
            label = f"{symbol}{' [PAUSED]' if token['onPause'] else ''}"
            value = usd_value(symbol, amount)
            shown = format_units(token["tokenBalance"], decimals)
            if value is not None:
                chain_total += value
                shown += f" (~{_format_usd(value)})"
            if token["onPause"]:
                row(label, shown, fg="yellow")
            else:
                row(label, shown)
            click.secho(f"    {token['tokenAddress']}", dim=True)
        row("Chain total", _format_usd(chain_total), bold=True)
        grand_total += chain_total

    click.echo()
    row("Grand total", _format_usd(grand_total), bold=True)
    if failures:
        sys.exit(1)


def _erc20_line(token: str, holder: str, rpc: str) -> str:
    abi = abi_for("erc20")
    balance = read_contract(token, "balanceOf", [holder], abi=abi, rpc_url=rpc)
    try:
        symbol = read_contract(token, "symbol", abi=abi, rpc_url=rpc) or "???"
    except Exception:
        symbol = "???"
    try:
        decimals = read_contract(token, "decimals", abi=abi, rpc_url=rpc)
    except Exception:
        decimals = None
    if decimals is None:
        decimals = 18
    return f"{format_units(balance or 0, decimals)} {symbol}"


@balances.command()
@click.argument("address")
@click.option("--chain", "chains", multiple=True, help="Chain(s) to query (default: all)")
@click.option("--token", "tokens", multiple=True, help="ERC-20 token address(es)")
@click.pass_context
def wallet(
    ctx: click.Context, address: str, chains: tuple[str, ...], tokens: tuple[str, ...]
) -> None:
    """Show native and ERC-20 balances of ADDRESS."""
    deployment = get_deployment(ctx)
    selected: list[Chain] = (
        [resolve_chain(ctx, name) for name in chains] if chains else list(deployment.chains.values())
    )

    heading(f"Wallet {address}")
    failures = 0
    for chain in selected:
        section(chain.name)
        rpc = rpc_url_for(chain)
        try:
            native = get_balance(address, rpc_url=rpc)
            row("Native", f"{format_units(native, 18)} {chain.native_symbol}")
        except Exception as exc:
            error_row("Native", exc)
            failures += 1
            continue
        for token in tokens:
            try:
                row(token, _erc20_line(token, address, rpc))
            except Exception as exc:
                error_row(token, exc)
                failures += 1

    if failures:
        sys.exit(1)


@balances.command()
@click.option("--token", required=True, help="ERC-20 token address")
@click.option("--owner", required=True, help="Token holder")
@click.option("--spender", required=True, help="Approved spender")
@click.option("--chain", "chain_name", required=True, help="Chain of the token")
@click.pass_context
def allowance(ctx: click.Context, token: str, owner: str, spender: str, chain_name: str) -> None:
    """Show the ERC-20 allowance OWNER has granted SPENDER."""
    chain = resolve_chain(ctx, chain_name)
    rpc = rpc_url_for(chain)
    abi = abi_for("erc20")

    heading(f"Allowance on {chain.name}")
    row("Token", token)
    row("Owner", owner)
    row("Spender", spender)
    try:
        amount = read_contract(token, "allowance", [owner, spender], abi=abi, rpc_url=rpc)
    except Exception as exc:
        error_row("Allowance", exc)
        sys.exit(getattr(exc, "exit_code", 1))

    decimals = try_read("Decimals", lambda: read_contract(token, "decimals", abi=abi, rpc_url=rpc))
    if decimals is None:
        decimals = 18
    amount = amount or 0
    if amount >= 2**255:
        row("Allowance", "unlimited", fg="yellow")
    else:
        row("Allowance", format_units(amount, decimals))

"""Oracle - TWAP oracle and the sWETH/MIM pool it reads."""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..book import rpc_url_for
from ..onchain.abi import abi_for, find_function, name_values
from ..onchain.rpc import read_contract
from ..utils import format_units, same_address, sqrt_price_x96_to_price
from ._common import error_row, get_deployment, heading, row, section, try_read, verdict, warn


@click.group()
def oracle() -> None:
    """TWAP oracle diagnostics."""


@oracle.command()
@click.option("--rpc-url", default=None, help="Hub chain RPC URL override")
@click.pass_context
def price(ctx: click.Context, rpc_url: Optional[str]) -> None:
    """Show oracle prices next to the pool's spot price."""
    deployment = get_deployment(ctx)
    rpc = rpc_url or rpc_url_for(deployment.hub_chain_info)
    try:
        address = deployment.contract("oracle")
    except Exception as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(getattr(exc, "exit_code", 1))
    abi = abi_for("oracle")
    pool_abi = abi_for("pool")
    erc20 = abi_for("erc20")

    heading("TWAP Oracle")
    row("Oracle", address)

    problems = 0
    pool = try_read("Pool", lambda: read_contract(address, "pool", abi=abi, rpc_url=rpc))
    if pool is None:
        problems += 1
    else:
        expected = deployment.contracts.get("sweth_mim_pool")
        if expected:
            ok = same_address(pool, expected)
            verdict("Pool", ok, pool if ok else f"{pool} (book: {expected})")
            problems += 0 if ok else 1
        else:
            row("Pool", pool)

    period = try_read("TWAP period", lambda: read_contract(address, "twapPeriod", abi=abi, rpc_url=rpc))
    if period is not None:
        row("TWAP period", f"{period}s")

    oracle_price = try_read("Price", lambda: read_contract(address, "getPrice", abi=abi, rpc_url=rpc))
    if oracle_price is not None:
        row("Price", format_units(oracle_price))
    else:
        problems += 1
    inverse = try_read(
        "Inverse price", lambda: read_contract(address, "getInversePrice", abi=abi, rpc_url=rpc)
    )
    if inverse is not None:
        row("Inverse price", format_units(inverse))

    if pool is not None:
        section("Pool")
        token0 = try_read("token0", lambda: read_contract(pool, "token0", abi=pool_abi, rpc_url=rpc))
        token1 = try_read("token1", lambda: read_contract(pool, "token1", abi=pool_abi, rpc_url=rpc))
        if token0 is not None:
            row("token0", token0)
        if token1 is not None:
            row("token1", token1)

        try:
            raw = read_contract(pool, "slot0", abi=pool_abi, rpc_url=rpc)
            slot0 = name_values(find_function(pool_abi, "slot0")["outputs"], raw)
        except Exception as exc:
            error_row("slot0", exc)
            slot0 = None
            problems += 1
        if slot0 is not None:
            row("sqrtPriceX96", slot0["sqrtPriceX96"])
            row("Tick", slot0["tick"])
            decimals0 = _decimals(token0, erc20, rpc)
            decimals1 = _decimals(token1, erc20, rpc)
            spot = sqrt_price_x96_to_price(slot0["sqrtPriceX96"], decimals0, decimals1)
            row("Spot price (t1/t0)", f"{spot:.8f}")

        liquidity = try_read(
            "Liquidity", lambda: read_contract(pool, "liquidity", abi=pool_abi, rpc_url=rpc)
        )
        if liquidity is not None:
            row("Liquidity", liquidity)
            if liquidity == 0:
                warn("pool has no in-range liquidity")

    click.echo()
    if problems:
        sys.exit(1)


def _decimals(token: Optional[str], abi: list, rpc: str) -> int:
    if token is None:
        return 18
    try:
        value = read_contract(token, "decimals", abi=abi, rpc_url=rpc)
    except Exception:
        return 18
    return 18 if value is None else value

"""
Vault - MIM staking vault and leverage AMM on the hub chain.

Read commands show how the leverage AMM is wired to the staking vault and
oracle; write commands cover the two owner actions operators need:
authorising a borrower and rescuing tokens stuck in a vault.
"""

from __future__ import annotations

import sys
from decimal import Decimal
from typing import Optional

import click

from ..book import Deployment, rpc_url_for
from ..onchain.abi import abi_for
from ..onchain.rpc import read_contract
from ..utils import format_units, parse_units, same_address, to_checksum_address
from ._common import (
    error_row,
    get_deployment,
    heading,
    require_signer,
    row,
    section,
    SENT,
    send_admin_tx,
    try_read,
    verdict,
    warn,
)

WAD = 10**18


def utilization_percent(rate: int) -> Decimal:
    """utilizationRate() is 1e18-scaled."""
    return Decimal(rate) * 100 / WAD


def _book_address(deployment: Deployment, name: str) -> str:
    try:
        return deployment.contract(name)
    except Exception as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(getattr(exc, "exit_code", 1))


def _require_owner(contract: str, abi: list, rpc: str, signer: str) -> None:
    owner = try_read("Owner", lambda: read_contract(contract, "owner", abi=abi, rpc_url=rpc))
    if owner is None:
        sys.exit(1)
    row("Owner", owner)
    if not same_address(owner, signer):
        click.secho(f"  ERROR: {signer} is not the owner of {contract}", fg="red")
        sys.exit(1)


@click.group()
def vault() -> None:
    """Staking vault and leverage AMM."""


@vault.command()
@click.option("--rpc-url", default=None, help="Hub chain RPC URL override")
@click.pass_context
def staking(ctx: click.Context, rpc_url: Optional[str]) -> None:
    """Show MIM staking vault liquidity and borrower status."""
    deployment = get_deployment(ctx)
    rpc = rpc_url or rpc_url_for(deployment.hub_chain_info)
    address = _book_address(deployment, "staking_vault")
    amm = _book_address(deployment, "leverage_amm")
    abi = abi_for("staking_vault")

    heading("MIM Staking Vault")
    row("Vault", address)

    def read(fn: str, *args):
        return try_read(fn, lambda: read_contract(address, fn, list(args), abi=abi, rpc_url=rpc))

    problems = 0
    mim = read("mim")
    if mim is not None:
        row("MIM", mim)
        if "mim" in deployment.contracts:
            verdict("MIM vs book", same_address(mim, deployment.contracts["mim"]))

    section("Liquidity")
    cash = read("getCash")
    borrows = read("totalBorrows")
    assets = read("totalAssets")
    rate = read("utilizationRate")
    if cash is not None:
        row("Cash (available)", f"{format_units(cash)} MIM")
        if cash == 0:
            warn("no MIM available to borrow")
            problems += 1
    if borrows is not None:
        row("Total borrows", f"{format_units(borrows)} MIM")
    if assets is not None:
        row("Total assets", f"{format_units(assets)} MIM")
    if rate is not None:
        row("Utilization", f"{utilization_percent(rate):.2f}%")

    section("Leverage AMM")
    row("Leverage AMM", amm)
    is_borrower = read("isBorrower", amm)
    if is_borrower is not None:
        row("Authorised borrower", "YES" if is_borrower else "NO", fg="green" if is_borrower else "red")
        if not is_borrower:
            warn("leverage AMM cannot borrow MIM")
            click.echo(f"  Fix: bridgeops vault set-borrower {amm}")
            problems += 1
    debt = read("borrowBalanceOf", amm)
    if debt is not None:
        row("AMM debt", f"{format_units(debt)} MIM")

    click.echo()
    if problems:
        sys.exit(1)


@vault.command()
@click.option("--rpc-url", default=None, help="Hub chain RPC URL override")
@click.pass_context
def leverage(ctx: click.Context, rpc_url: Optional[str]) -> None:
    """Compare the leverage AMM's wiring with the address book."""
    deployment = get_deployment(ctx)
    rpc = rpc_url or rpc_url_for(deployment.hub_chain_info)
    address = _book_address(deployment, "leverage_amm")
    abi = abi_for("leverage_amm")

    heading("Leverage AMM")
    row("AMM", address)

    owner = try_read("Owner", lambda: read_contract(address, "owner", abi=abi, rpc_url=rpc))
    if owner is not None:
        row("Owner", owner)

    section("Wiring")
    mismatches = 0
    wiring = [
        ("mim", "mim"),
        ("stakingVault", "staking_vault"),
        ("oracle", "oracle"),
        ("underlyingAsset", "sweth"),
        ("v3LPVault", "v3_lp_vault"),
    ]
    for fn, book_name in wiring:
        value = try_read(fn, lambda: read_contract(address, fn, abi=abi, rpc_url=rpc))
        if value is None:
            mismatches += 1
            continue
        expected = deployment.contracts.get(book_name)
        if expected is None and book_name == "sweth":
            expected = deployment.synthetic_tokens.get("sWETH")
        if expected is None:
            row(fn, value)
            continue
        ok = same_address(value, expected)
        verdict(fn, ok, value if ok else f"{value} (book: {expected})")
        if not ok:
            mismatches += 1

    debt = try_read("totalDebt", lambda: read_contract(address, "totalDebt", abi=abi, rpc_url=rpc))
    if debt is not None:
        section("Debt")
        row("Total debt", f"{format_units(debt)} MIM")

    click.echo()
    if mismatches:
        sys.exit(1)


@vault.command("set-borrower")
@click.argument("borrower")
@click.option("--revoke", is_flag=True, help="Remove the borrower instead")
@click.option("--rpc-url", default=None, help="Hub chain RPC URL override")
@click.option("--dry-run", is_flag=True, help="Simulate only, send nothing")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not prompt before sending")
@click.pass_context
def set_borrower(
    ctx: click.Context,
    borrower: str,
    revoke: bool,
    rpc_url: Optional[str],
    dry_run: bool,
    assume_yes: bool,
) -> None:
    """Authorise (or revoke) BORROWER on the staking vault (owner only)."""
    deployment = get_deployment(ctx)
    chain = deployment.hub_chain_info
    rpc = rpc_url or rpc_url_for(chain)
    address = _book_address(deployment, "staking_vault")
    abi = abi_for("staking_vault")
    allowed = not revoke

    heading("Set Borrower")
    private_key, signer = require_signer()
    row("Vault", address)
    _require_owner(address, abi, rpc, signer)

    current = try_read(
        "Current", lambda: read_contract(address, "isBorrower", [borrower], abi=abi, rpc_url=rpc)
    )
    if current is not None:
        row("Currently borrower", current)
        if bool(current) == allowed:
            click.secho("  Already in the requested state, nothing to do.", fg="green")
            return

    section("Transaction")
    outcome = send_admin_tx(
        chain=chain,
        rpc_url=rpc,
        contract=address,
        function="setBorrower",
        args=[to_checksum_address(borrower), allowed],
        abi=abi,
        private_key=private_key,
        sender=signer,
        dry_run=dry_run,
        assume_yes=assume_yes,
    )
    if outcome.status != SENT:
        return

    after = try_read(
        "Verified", lambda: read_contract(address, "isBorrower", [borrower], abi=abi, rpc_url=rpc)
    )
    if after is not None:
        row("Verified", after, fg="green" if bool(after) == allowed else "red")
        if bool(after) != allowed:
            sys.exit(1)


@vault.command()
@click.argument("token")
@click.option("--amount", default=None, help="Human-readable amount (default: whole balance)")
@click.option("--from", "source", default=None, help="Contract to rescue from (default: V3 LP vault)")
@click.option("--rpc-url", default=None, help="Hub chain RPC URL override")
@click.option("--dry-run", is_flag=True, help="Simulate only, send nothing")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not prompt before sending")
@click.pass_context
def rescue(
    ctx: click.Context,
    token: str,
    amount: Optional[str],
    source: Optional[str],
    rpc_url: Optional[str],
    dry_run: bool,
    assume_yes: bool,
) -> None:
    """Call rescueTokens(TOKEN, amount) on a vault (owner only)."""
    deployment = get_deployment(ctx)
    chain = deployment.hub_chain_info
    rpc = rpc_url or rpc_url_for(chain)
    contract = source or _book_address(deployment, "v3_lp_vault")
    abi = abi_for("v3_lp_vault")
    erc20 = abi_for("erc20")

    heading("Rescue Tokens")
    private_key, signer = require_signer()
    row("Contract", contract)
    row("Token", token)
    _require_owner(contract, abi, rpc, signer)

    try:
        balance = read_contract(token, "balanceOf", [contract], abi=erc20, rpc_url=rpc) or 0
        decimals = read_contract(token, "decimals", abi=erc20, rpc_url=rpc)
    except Exception as exc:
        error_row("Token balance", exc)
        sys.exit(getattr(exc, "exit_code", 1))
    if decimals is None:
        decimals = 18
    row("Held", format_units(balance, decimals))

    if amount is None:
        raw_amount = balance
    else:
        try:
            raw_amount = parse_units(amount, decimals)
        except ValueError as exc:
            click.secho(f"  ERROR: {exc}", fg="red")
            sys.exit(1)
    if raw_amount == 0:
        click.secho("  Nothing to rescue.", fg="yellow")
        return
    if raw_amount > balance:
        warn(f"amount exceeds the held balance of {format_units(balance, decimals)}")

    section("Transaction")
    send_admin_tx(
        chain=chain,
        rpc_url=rpc,
        contract=contract,
        function="rescueTokens",
        args=[to_checksum_address(token), raw_amount],
        abi=abi,
        private_key=private_key,
        sender=signer,
        dry_run=dry_run,
        assume_yes=assume_yes,
    )

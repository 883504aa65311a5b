"""
bridgeops CLI

Command-line interface for operating the synthetic-token bridge: the Hub
on Sonic and the Gateways on Arbitrum, Ethereum and Base, connected over
LayerZero v2.

Read commands need nothing but RPC access; write commands sign with
PRIVATE_KEY from the environment or ~/.bridgeops/.env and are always
simulated before sending.

Commands:
  peers     - Check / fix Hub <-> Gateway peers
  links     - Check / fix remote token -> synthetic token links
  hub       - Hub owner, endpoint, balancer, minting rights
  lz        - LayerZero nonces, pending payloads, skip, DVN config, source txs
  balances  - Gateway collateral, wallet balances, allowances
  probe     - Selector probing and calldata decoding
  vault     - MIM staking vault and leverage AMM
  oracle    - TWAP oracle and pool price
  invoke    - Execute an arbitrary contract call
  chains    - Show the address book
  whoami    - Show the signer address
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import click

from .book import rpc_url_for
from .identity.eth import BRIDGEOPS_ENV, get_address, load_env, load_private_key


# ============ Constants ============

VERSION = "0.3.0"


# ============ Banner ============


def _print_banner() -> None:
    border = click.style("  ◆ ═══════════════════════════════════════ ◆", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()
    click.echo(
        click.style("        B R I D G E O P S", fg="bright_white", bold=True)
        + click.style(f"      v{VERSION}", dim=True)
    )
    click.secho("        ─── Hub / Gateway operations ───", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="bridgeops")
@click.option(
    "--book",
    "book_path",
    envvar="BRIDGEOPS_BOOK",
    default=None,
    type=click.Path(dir_okay=False),
    help="JSON address book overlaid on the built-in deployment",
)
@click.option("-v", "--verbose", is_flag=True, help="Log RPC traffic to stderr")
@click.pass_context
def cli(ctx: click.Context, book_path: Optional[str], verbose: bool) -> None:
    """bridgeops - inspect and administer the Hub / Gateway bridge."""
    load_env()
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )
    ctx.ensure_object(dict)
    ctx.obj["book_path"] = book_path

    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Command Groups ============

from .commands.balances import balances
from .commands.hub import hub
from .commands.invoke import invoke
from .commands.links import links
from .commands.lz import lz
from .commands.oracle import oracle
from .commands.peers import peers
from .commands.probe import probe
from .commands.vault import vault

cli.add_command(peers)
cli.add_command(links)
cli.add_command(hub)
cli.add_command(lz)
cli.add_command(balances)
cli.add_command(probe)
cli.add_command(vault)
cli.add_command(oracle)
cli.add_command(invoke)


# ============ Identity ============


@cli.command()
def whoami() -> None:
    """Show the signer address."""
    try:
        pk = load_private_key()
        click.echo(f"Address: {get_address(pk)}")
    except ValueError:
        click.echo("No signer key found.")
        click.echo(f"Set PRIVATE_KEY in the environment or in {BRIDGEOPS_ENV}.")
        sys.exit(1)


# ============ Address Book ============


@cli.command()
@click.pass_context
def chains(ctx: click.Context) -> None:
    """Show chains and contracts from the address book."""
    from .commands._common import get_deployment, row, section

    deployment = get_deployment(ctx)
    _print_banner()

    section("Chains")
    for chain in deployment.chains.values():
        marker = " (hub)" if chain.name == deployment.hub_chain else ""
        click.echo()
        click.secho(f"  {chain.name}{marker}", bold=True)
        row("Chain id / EID", f"{chain.chain_id} / {chain.eid}")
        row("RPC", rpc_url_for(chain))
        if chain.endpoint:
            row("Endpoint", chain.endpoint)
        if chain.name in deployment.gateways:
            row("Gateway", deployment.gateways[chain.name])

    section("Hub")
    row("Hub", deployment.hub)
    row("Balancer", deployment.balancer or "(not set)")

    section("Synthetic tokens")
    for symbol, address in deployment.synthetic_tokens.items():
        row(symbol, address)

    section("Contracts")
    for name, address in deployment.contracts.items():
        row(name, address)

    section("Remote tokens")
    for chain_name, tokens in deployment.remote_tokens.items():
        for token in tokens.values():
            row(f"{token.symbol} @ {chain_name}", token.address)
    click.echo()


# ============ Entry Points ============


def main() -> None:
    """bridgeops CLI entry point."""
    # Box-drawing characters in the banner need UTF-8 on Windows consoles
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass
    cli()


if __name__ == "__main__":
    main()

"""Shared console and signer helpers for the command modules."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Callable, Optional

import click

from ..book import Chain, Deployment, load_deployment
from ..errors import BridgeOpsError, RevertError
from ..identity.eth import get_address, load_private_key
from ..utils import truncate

LABEL_WIDTH = 22


def get_deployment(ctx: click.Context) -> Deployment:
    """Deployment stored on the root context, loaded lazily."""
    root = ctx.find_root()
    root.ensure_object(dict)
    if "deployment" not in root.obj:
        try:
            root.obj["deployment"] = load_deployment(root.obj.get("book_path"))
        except BridgeOpsError as exc:
            click.secho(f"ERROR: {exc}", fg="red")
            sys.exit(exc.exit_code)
    return root.obj["deployment"]


def resolve_chain(ctx: click.Context, name: str) -> Chain:
    try:
        return get_deployment(ctx).chain(name)
    except BridgeOpsError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(exc.exit_code)


def heading(text: str) -> None:
    click.echo()
    click.secho(f"=== {text} ===", bold=True)
    click.echo()


def section(text: str) -> None:
    click.echo()
    click.secho(f"  {text} " + "─" * max(0, 40 - len(text)), fg="cyan")


def row(label: str, value: Any, **style: Any) -> None:
    text = str(value)
    click.echo(
        click.style(f"  {label + ':':<{LABEL_WIDTH}}", dim=True)
        + (click.style(text, **style) if style else text)
    )


def error_row(label: str, exc: BaseException) -> None:
    row(label, f"(error: {truncate(exc)})", fg="red")


def verdict(label: str, ok: bool, detail: str = "") -> None:
    mark = click.style("MATCH", fg="green", bold=True) if ok else click.style(
        "MISMATCH", fg="red", bold=True
    )
    suffix = f"  {detail}" if detail else ""
    click.echo(click.style(f"  {label + ':':<{LABEL_WIDTH}}", dim=True) + mark + suffix)


def warn(text: str) -> None:
    click.secho(f"  WARNING: {text}", fg="yellow")


def try_read(label: str, read: Callable[[], Any]) -> Optional[Any]:
    """Run one read, printing a truncated error row instead of raising."""
    try:
        return read()
    except Exception as exc:
        error_row(label, exc)
        return None


def require_signer() -> tuple[str, str]:
    """Load the admin key or exit with a hint."""
    try:
        private_key = load_private_key()
        return private_key, get_address(private_key)
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)


SENT = "sent"
DRY_RUN = "dry-run"
DECLINED = "declined"
FAILED = "failed"


@dataclass(frozen=True)
class TxOutcome:
    """What happened to one admin transaction."""

    status: str
    exit_code: int = 0
    result: Optional[dict] = None

    @property
    def failed(self) -> bool:
        return self.status == FAILED


def send_admin_tx(
    *,
    chain: Chain,
    rpc_url: str,
    contract: str,
    function: str,
    args: list,
    abi: list,
    private_key: str,
    sender: str,
    value: int = 0,
    gas_limit: Optional[int] = None,
    dry_run: bool = False,
    assume_yes: bool = False,
    exit_on_failure: bool = True,
) -> TxOutcome:
    """
    Print a transaction summary, confirm, simulate, send and report.

    A reverted simulation is a failure even under --dry-run. With
    exit_on_failure the process exits with the failure's exit code;
    otherwise the failure is returned as a FAILED outcome.
    """
    from ..onchain.tx import build_contract_tx, sign_and_send, simulate_tx

    row("Chain", f"{chain.name} ({chain.chain_id})")
    row("Sender", sender)
    row("Target", contract)
    row("Function", function)
    row("Args", args)
    if value:
        row("Value", f"{value} wei")

    def _fail(message: str, code: int) -> TxOutcome:
        click.secho(f"  {message}", fg="red")
        if exit_on_failure:
            sys.exit(code)
        return TxOutcome(FAILED, exit_code=code)

    try:
        tx = build_contract_tx(
            contract_address=contract,
            function_name=function,
            args=args,
            abi=abi,
            rpc_url=rpc_url,
            value=value,
            gas_limit=gas_limit,
            private_key=private_key,
            chain_id=chain.chain_id,
        )
        simulate_tx(tx, rpc_url=rpc_url)
    except RevertError as exc:
        return _fail(f"Simulation reverted: {exc.reason}", exc.exit_code)
    except BridgeOpsError as exc:
        return _fail(f"Could not prepare transaction: {truncate(exc)}", exc.exit_code)
    except ValueError as exc:
        return _fail(f"Invalid arguments: {exc}", 1)

    click.secho("  Simulation OK", fg="green")
    if dry_run:
        click.echo("  Dry run: not sending.")
        return TxOutcome(DRY_RUN)
    if not assume_yes and not click.confirm("  Send transaction?", default=False):
        click.echo("  Aborted.")
        return TxOutcome(DECLINED)

    try:
        result = sign_and_send(tx, rpc_url=rpc_url, private_key=private_key)
    except (BridgeOpsError, TimeoutError) as exc:
        return _fail(f"Transaction failed: {truncate(exc)}", getattr(exc, "exit_code", 1))

    if result.get("status") == 1:
        click.secho("  SUCCESS: Transaction confirmed!", fg="green")
        row("TX", result["tx_hash"])
        return TxOutcome(SENT, result=result)

    click.secho("  FAILED: Transaction reverted", fg="red")
    row("TX", result.get("tx_hash", "unknown"))
    return _fail("Receipt status is 0", 1)

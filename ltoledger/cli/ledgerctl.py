#!/usr/bin/env python3
"""
LTO Ledger CLI

Command-line interface for ledger snapshots and balance migration.

Usage:
    ledgerctl inspect <snapshot>
    ledgerctl verify <snapshot>
    ledgerctl migrate <source_snapshot> --config config.toml --output new.json [--no-finalize]
"""

import json
from pathlib import Path
from typing import Optional

import click

from ltoledger import __version__
from ltoledger.addresses import short_address
from ltoledger.config import load_config
from ltoledger.exceptions import LedgerException
from ltoledger.logger import set_log_level
from ltoledger.migrations import BalanceCopier
from ltoledger.tokens import Ledger


def load_snapshot(path: str) -> Ledger:
    """Read a ledger snapshot written by ``Ledger.to_dict``."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{path} is not valid JSON: {e}")
    try:
        return Ledger.from_dict(data)
    except LedgerException as e:
        raise click.ClickException(f"Failed to load {path}: {e}")


def write_snapshot(ledger: Ledger, path: str) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as f:
        json.dump(ledger.to_dict(), f, indent=2)


@click.group()
@click.version_option(version=__version__, prog_name="ledgerctl")
def cli():
    """LTO Ledger Command Line Interface

    Inspect ledger snapshots and migrate balances into a new ledger.
    """
    pass


@cli.command("inspect")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.option("--short", "short", is_flag=True, help="Shorten addresses")
def inspect_cmd(snapshot: str, short: bool):
    """Display a ledger snapshot.

    Examples:

        ledgerctl inspect old_token.json
    """
    ledger = load_snapshot(snapshot)
    fmt = short_address if short else (lambda a: a)

    click.echo(f"{ledger.name} ({ledger.symbol}), {ledger.decimals} decimals")
    click.echo(f"Bridge authority: {fmt(ledger.bridge_authority)}")
    click.echo(f"Total supply:     {ledger.total_supply}")
    click.echo(f"Bridge balance:   {ledger.bridge_balance}")
    click.echo(f"Paused:           {ledger.paused}")
    click.echo(f"Minted:           {ledger.minted}")
    click.echo()

    holders = ledger.holders()
    click.echo(f"Holders ({len(holders)}):")
    for address in holders:
        click.echo(f"  {fmt(address)}  {ledger.balance_of(address)}")

    confirmed = ledger.handshake.confirmed()
    pending = ledger.handshake.pending()
    if confirmed or pending:
        click.echo()
        click.echo("Intermediate addresses:")
        for address in confirmed:
            click.echo(f"  {fmt(address)}  CONFIRMED")
        for address in pending:
            click.echo(f"  {fmt(address)}  PENDING")


@cli.command("verify")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
def verify_cmd(snapshot: str):
    """Check that a snapshot conserves supply.

    Exits non-zero when the snapshot is inconsistent.
    """
    ledger = load_snapshot(snapshot)
    click.echo(click.style(
        f"✓ {ledger.symbol}: supply {ledger.total_supply} matches {len(ledger.holders())} holders",
        fg="green",
    ))


@cli.command("migrate")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="config.toml with [token] and [balance_copy] sections"
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False),
    required=True,
    help="Where to write the new ledger snapshot"
)
@click.option(
    "--no-finalize",
    is_flag=True,
    help="Leave the new ledger paused and unlocked"
)
def migrate_cmd(source: str, config_path: Optional[str], output: str, no_finalize: bool):
    """Copy all balances of a paused ledger into a new ledger.

    Examples:

        ledgerctl migrate old_token.json -c config.toml -o new_token.json
    """
    try:
        config = load_config(config_path)
        config.validate(migration=True)
    except LedgerException as e:
        raise click.ClickException(str(e))
    set_log_level(config.logging.level)

    old_token = load_snapshot(source)
    operator = config.balance_copy.operator

    try:
        new_token = config.token.create_ledger(owner=operator)
        capability = new_token.grant_capability(operator, config.balance_copy.copier_address)
        copier = BalanceCopier(
            old_token,
            capability,
            excluded=config.balance_copy.excluded,
            operator=operator,
        )
        report = copier.copy_all(operator, old_token.holders())
        if not no_finalize:
            copier.finalize(operator)
    except LedgerException as e:
        raise click.ClickException(f"[{e.kind.value}] {e}")

    write_snapshot(new_token, output)

    click.echo(f"Copied {len(report.copied)} balances, total {report.total_copied}")
    for principal, kind in report.skipped.items():
        click.echo(click.style(f"  skipped {principal}: {kind.value}", fg="yellow"))
    click.echo(f"New supply: {new_token.total_supply}, bridge balance: {new_token.bridge_balance}")
    if copier.finalized:
        click.echo(click.style("✓ Migration finalized", fg="green"))
    else:
        click.echo(click.style("Migration left open (--no-finalize)", fg="yellow"))
    click.echo(f"Saved to: {output}")


if __name__ == "__main__":
    cli()

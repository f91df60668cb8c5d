"""
Tessera CLI

Command-line interface for oracle-signed contract calls.

Commands:
  call      - Read contract state (eth_call)
  send      - Sign through the oracle and broadcast a contract write
  block     - Fetch a block every provider agrees on
  address   - Show the oracle-derived sender address
  hashes    - List logged transaction hashes
"""

from __future__ import annotations

import logging

import click

from . import __version__
from .anamnesis.storage import LocalFileHashLog
from .errors import TesseraError
from .sigil.eth import public_key_to_address
from .theurgy.common import build_oracle, config_or_exit, fail, run


# ============ Main CLI Group ============


@click.group()
@click.version_option(version=__version__, prog_name="tessera")
@click.option("--verbose", "-v", is_flag=True, help="Log requests and pipeline steps")
def cli(verbose: bool) -> None:
    """Tessera - Oracle-signed EVM contract calls."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ============ Top-level Commands ============

from .theurgy.call import call
from .theurgy.send import send
from .theurgy.block import block

cli.add_command(call)
cli.add_command(send)
cli.add_command(block)


# ============ Identity ============


@cli.command()
def address() -> None:
    """Show the sender address derived from the oracle's public key."""
    config = config_or_exit()
    oracle = build_oracle(config)
    try:
        record = run(oracle.get_public_key(config.key_id, config.budget))
    except TesseraError as exc:
        fail(exc)
    click.echo(f"Key: {config.key_id.name} ({config.key_id.curve})")
    click.echo(f"Address: {public_key_to_address(record)}")


# ============ Hash Log ============


@cli.command()
def hashes() -> None:
    """List transaction hashes accepted by every provider."""
    config = config_or_exit()
    logged = LocalFileHashLog(config.hash_log_path).list_all()
    if not logged:
        click.echo("No transactions logged.")
        return
    for tx_hash in logged:
        click.echo(tx_hash)


# ============ Entry Points ============


def main() -> None:
    """Tessera CLI entry point."""
    cli()


if __name__ == "__main__":
    main()

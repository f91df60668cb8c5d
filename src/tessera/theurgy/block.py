"""
Theurgy Block - Fetch a block every provider agrees on.
"""

from __future__ import annotations

import click

from ..errors import TesseraError
from ..pneuma.rpc import Err, Inconsistent
from .common import build_gateway, config_or_exit, fail, parse_block_tag, run


@click.command()
@click.option("--tag", "block_tag", default="latest", help="Block tag or number")
def block(block_tag: str) -> None:
    """Fetch a block from every provider and require agreement."""
    config = config_or_exit()
    gateway = build_gateway(config)

    try:
        aggregated = run(
            gateway.get_block_by_number(parse_block_tag(block_tag), config.budget)
        )
    except TesseraError as exc:
        fail(exc)

    if isinstance(aggregated, Inconsistent):
        click.secho("ERROR: Providers returned inconsistent blocks", fg="red")
        for provider, result in aggregated.results:
            click.echo(f"  {provider}: {result}")
        raise SystemExit(5)

    result = aggregated.result
    if isinstance(result, Err):
        click.secho(f"ERROR: {result.error.kind.value}: {result.error.message}", fg="red")
        raise SystemExit(4)
    if result.value is None:
        click.echo("Block not found.")
        return

    found = result.value
    click.echo(f"  Number: {found.number}")
    click.echo(f"  Hash: {found.hash}")
    click.echo(f"  Parent: {found.parent_hash}")
    click.echo(f"  Timestamp: {found.timestamp}")
    click.echo(f"  Gas used: {found.gas_used} / {found.gas_limit}")
    if found.base_fee_per_gas is not None:
        click.echo(f"  Base fee: {found.base_fee_per_gas} wei")
    click.echo(f"  Transactions: {len(found.transactions)}")

"""
Theurgy Send - Execute a contract write.

The transaction is signed by the remote oracle and broadcast to every
configured provider.  The hash is logged only once all providers accept.
"""

from __future__ import annotations

from typing import Optional

import click

from ..errors import InconsistentResultError, TesseraError
from .common import (
    build_dispatcher,
    config_or_exit,
    fail,
    format_value,
    load_contract_abi,
    parse_args_json,
    run,
)


@click.command()
@click.argument("function")
@click.option("--args", "args_json", default="[]", help="Function args as JSON array")
@click.option(
    "--abi",
    "abi_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="ABI JSON or build artifact (default: bundled Counter ABI)",
)
@click.option("--contract", envvar="TESSERA_CONTRACT_ADDRESS", required=True, help="Contract address")
@click.option("--gas", default=500_000, type=int, help="Gas limit")
@click.option("--value", default=0, type=int, help="ETH value in wei")
@click.option("--max-priority-fee", default=3_000_000_000, type=int, help="maxPriorityFeePerGas in wei")
@click.option("--max-fee", default=40_000_000_000, type=int, help="maxFeePerGas in wei")
def send(
    function: str,
    args_json: str,
    abi_path: Optional[str],
    contract: str,
    gas: int,
    value: int,
    max_priority_fee: int,
    max_fee: int,
) -> None:
    """Sign a contract call through the oracle and broadcast it."""
    args = parse_args_json(args_json)
    config = config_or_exit()

    click.echo(f"  Target: {contract}")
    click.echo(f"  Function: {function}")
    click.echo(f"  Args: {format_value(args)}")
    if value > 0:
        click.echo(f"  Value: {value} wei")
    click.echo("")

    try:
        abi = load_contract_abi(abi_path)
        dispatcher = build_dispatcher(config, abi, contract)
        receipt = run(
            dispatcher.write(
                function,
                args,
                gas=gas,
                max_priority_fee_per_gas=max_priority_fee,
                max_fee_per_gas=max_fee,
                value=value,
            )
        )
    except InconsistentResultError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        for provider, result in exc.results:
            click.echo(f"  {provider}: {result}")
        raise SystemExit(exc.exit_code)
    except TesseraError as exc:
        fail(exc)

    click.secho("SUCCESS: Transaction accepted by all providers", fg="green")
    click.echo(f"  Sender: {receipt.sender}")
    click.echo(f"  Nonce: {receipt.nonce}")
    click.echo(f"  TX: {receipt.tx_hash}")

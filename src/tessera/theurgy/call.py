"""
Theurgy Call - Read contract state.

Resolves the function in the ABI, runs eth_call against the configured
read provider and prints the decoded outputs.
"""

from __future__ import annotations

from typing import Optional

import click

from ..errors import TesseraError
from .common import (
    build_dispatcher,
    config_or_exit,
    fail,
    format_value,
    load_contract_abi,
    parse_args_json,
    parse_block_tag,
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
@click.option("--block", "block_tag", default="latest", help="Block tag or number")
def call(
    function: str,
    args_json: str,
    abi_path: Optional[str],
    contract: str,
    block_tag: str,
) -> None:
    """
    Read from a contract (eth_call).

    FUNCTION is a bare name, or a full signature such as
    'balanceOf(address)' when the name is overloaded.
    """
    args = parse_args_json(args_json)
    config = config_or_exit()

    try:
        abi = load_contract_abi(abi_path)
        dispatcher = build_dispatcher(config, abi, contract)
        values = run(dispatcher.read(function, args, parse_block_tag(block_tag)))
    except TesseraError as exc:
        fail(exc)

    if not values:
        click.echo("(no outputs)")
    for value in values:
        click.echo(format_value(value))

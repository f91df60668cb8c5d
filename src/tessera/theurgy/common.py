"""Helpers shared by the CLI commands."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Awaitable, NoReturn, Optional, TypeVar

import click

from ..anamnesis.storage import LocalFileHashLog
from ..config import TesseraConfig, load_config
from ..errors import TesseraError
from ..pneuma.abi import ContractAbi, counter_abi, load_abi
from ..pneuma.dispatch import ContractCallDispatcher
from ..pneuma.rpc import BlockTag, RpcGateway
from ..sigil.oracle import HttpSignatureOracle

T = TypeVar("T")


def fail(exc: TesseraError) -> NoReturn:
    click.secho(f"ERROR: {exc}", fg="red")
    candidates = exc.details.get("candidates")
    if candidates:
        for signature in candidates:
            click.echo(f"  - {signature}")
    sys.exit(exc.exit_code)


def run(coro: Awaitable[T]) -> T:
    return asyncio.run(coro)  # type: ignore[arg-type]


def config_or_exit() -> TesseraConfig:
    try:
        return load_config()
    except TesseraError as exc:
        fail(exc)


def parse_args_json(args_json: str) -> list[Any]:
    try:
        args = json.loads(args_json)
        if not isinstance(args, list):
            raise ValueError("Args must be a JSON array")
    except (json.JSONDecodeError, ValueError) as exc:
        click.secho(f"ERROR: Invalid args: {exc}", fg="red")
        sys.exit(2)
    return args


def parse_block_tag(value: str) -> BlockTag:
    return int(value) if value.isdigit() else value


def load_contract_abi(abi_path: Optional[str]) -> ContractAbi:
    return load_abi(abi_path) if abi_path else counter_abi()


def build_gateway(config: TesseraConfig) -> RpcGateway:
    return RpcGateway(
        config.providers,
        config.read_provider,
        timeout=config.request_timeout,
    )


def build_oracle(config: TesseraConfig) -> HttpSignatureOracle:
    return HttpSignatureOracle(config.oracle_url, timeout=config.request_timeout)


def build_dispatcher(
    config: TesseraConfig,
    abi: ContractAbi,
    contract_address: str,
) -> ContractCallDispatcher:
    return ContractCallDispatcher(
        abi=abi,
        contract_address=contract_address,
        chain_id=config.chain_id,
        gateway=build_gateway(config),
        oracle=build_oracle(config),
        key_id=config.key_id,
        hash_log=LocalFileHashLog(config.hash_log_path),
        budget=config.budget,
    )


def format_value(value: Any) -> str:
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, (tuple, list)):
        return "[" + ", ".join(format_value(v) for v in value) + "]"
    return str(value)

"""Contract call dispatch: ABI resolution plus the read and write pipelines."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

from ..anamnesis.storage import TransactionHashLog
from ..config import ResourceBudget
from ..errors import (
    InconsistentResultError,
    ProviderError,
    ResourceExhaustedError,
    TransactionRejectedError,
)
from ..sigil.eth import EcdsaKeyId, public_key_to_address
from ..sigil.oracle import SignatureOracle
from ..sigil.recovery import resolve_recovery_id
from ..utils import parse_address
from .abi import AbiFunction, ContractAbi
from .rpc import (
    AggregatedResult,
    BlockTag,
    Err,
    Inconsistent,
    RpcErrorKind,
    RpcGateway,
    SendRawTransactionStatus,
    format_block_tag,
)
from .tx import assemble_transaction, build_transaction, require_fee_order, require_quantity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadCall:
    block_tag: BlockTag = "latest"


@dataclass(frozen=True)
class WriteCall:
    gas: int
    max_priority_fee_per_gas: int
    max_fee_per_gas: int
    value: int = 0
    nonce_block_tag: BlockTag = "latest"

    def __post_init__(self) -> None:
        for name in ("gas", "max_priority_fee_per_gas", "max_fee_per_gas", "value"):
            require_quantity(name, getattr(self, name))
        require_fee_order(self.max_priority_fee_per_gas, self.max_fee_per_gas)
        format_block_tag(self.nonce_block_tag)


CallMode = Union[ReadCall, WriteCall]


@dataclass(frozen=True)
class WriteReceipt:
    tx_hash: str
    raw_transaction: str
    sender: str
    nonce: int
    status: SendRawTransactionStatus


class ContractCallDispatcher:
    """
    Dispatch calls against one contract.

    Reads go through ``eth_call`` on a single provider.  Writes run, in order:
    oracle public key -> nonce -> build -> oracle signature -> recovery id ->
    assemble -> broadcast -> hash log.

    Two concurrent writes may observe the same nonce; pass ``single_writer=True``
    to serialise writes issued through this dispatcher.
    """

    def __init__(
        self,
        *,
        abi: ContractAbi,
        contract_address: str,
        chain_id: int,
        gateway: RpcGateway,
        oracle: SignatureOracle,
        key_id: EcdsaKeyId,
        hash_log: TransactionHashLog,
        budget: Optional[ResourceBudget] = None,
        single_writer: bool = False,
    ) -> None:
        self.abi = abi
        self.contract_address = contract_address
        self.chain_id = chain_id
        self._gateway = gateway
        self._oracle = oracle
        self._key_id = key_id
        self._hash_log = hash_log
        self._budget = budget or ResourceBudget()
        self._write_lock: Optional[asyncio.Lock] = asyncio.Lock() if single_writer else None

    async def dispatch(self, function: str, args: Sequence[Any], mode: CallMode) -> Any:
        """
        Resolve ``function``, encode ``args`` and run the pipeline for ``mode``.

        Returns:
            Decoded output tuple for ReadCall, WriteReceipt for WriteCall
        """
        fn = self.abi.resolve(function)
        data = fn.encode_input(list(args))
        parse_address(self.contract_address)
        if isinstance(mode, ReadCall):
            return await self._read(fn, data, mode)
        if isinstance(mode, WriteCall):
            return await self._write(fn, data, mode)
        raise TypeError(f"Unsupported call mode: {mode!r}")

    async def read(
        self, function: str, args: Sequence[Any] = (), block_tag: BlockTag = "latest"
    ) -> tuple[Any, ...]:
        return await self.dispatch(function, args, ReadCall(block_tag=block_tag))

    async def write(
        self,
        function: str,
        args: Sequence[Any] = (),
        *,
        gas: int,
        max_priority_fee_per_gas: int,
        max_fee_per_gas: int,
        value: int = 0,
    ) -> WriteReceipt:
        return await self.dispatch(
            function,
            args,
            WriteCall(
                gas=gas,
                max_priority_fee_per_gas=max_priority_fee_per_gas,
                max_fee_per_gas=max_fee_per_gas,
                value=value,
            ),
        )

    async def sender_address(self) -> str:
        record = await self._oracle.get_public_key(self._key_id, self._budget)
        return public_key_to_address(record)

    async def _read(self, fn: AbiFunction, data: bytes, mode: ReadCall) -> tuple[Any, ...]:
        logger.debug("Reading %s from %s", fn.signature, self.contract_address)
        raw = await self._gateway.call(self.contract_address, data, mode.block_tag, self._budget)
        return fn.decode_output(raw)

    async def _write(self, fn: AbiFunction, data: bytes, mode: WriteCall) -> WriteReceipt:
        lock = self._write_lock if self._write_lock is not None else contextlib.nullcontext()
        async with lock:
            public_key = await self._oracle.get_public_key(self._key_id, self._budget)
            sender = public_key_to_address(public_key)

            nonce = self._unwrap(
                await self._gateway.get_transaction_count(
                    sender, mode.nonce_block_tag, self._budget
                ),
                "eth_getTransactionCount",
            )
            logger.info(
                "Dispatching %s to %s from %s nonce=%d",
                fn.signature,
                self.contract_address,
                sender,
                nonce,
            )

            built = build_transaction(
                to=self.contract_address,
                chain_id=self.chain_id,
                gas=mode.gas,
                value=mode.value,
                nonce=nonce,
                max_priority_fee_per_gas=mode.max_priority_fee_per_gas,
                max_fee_per_gas=mode.max_fee_per_gas,
                data=data,
            )
            raw_signature = await self._oracle.sign_digest(built.digest, self._key_id, self._budget)
            signature = resolve_recovery_id(built.digest, raw_signature, public_key)
            signed = assemble_transaction(built.transaction, signature)

            status = self._unwrap(
                await self._gateway.send_raw_transaction(signed.raw_hex, self._budget),
                "eth_sendRawTransaction",
            )
            if not status.accepted:
                raise TransactionRejectedError(status)

            self._hash_log.append(signed.hash)
            logger.info("Transaction %s accepted by all providers", signed.hash)
            return WriteReceipt(
                tx_hash=signed.hash,
                raw_transaction=signed.raw_hex,
                sender=sender,
                nonce=nonce,
                status=status,
            )

    def _unwrap(self, aggregated: AggregatedResult, method: str) -> Any:
        if isinstance(aggregated, Inconsistent):
            raise InconsistentResultError(method, aggregated.results)
        result = aggregated.result
        if isinstance(result, Err):
            providers = ", ".join(p.name for p in self._gateway.providers)
            if result.error.kind is RpcErrorKind.RESPONSE_TOO_LARGE:
                raise ResourceExhaustedError(
                    f"{method} responses from {providers} exceeded "
                    f"{self._budget.max_response_bytes} bytes",
                    available=self._budget.max_response_bytes,
                )
            raise ProviderError(
                f"{method} failed on {providers}: {result.error.message}",
                provider=providers,
                rpc_error=result.error,
            )
        return result.value

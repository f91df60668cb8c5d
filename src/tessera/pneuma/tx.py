"""
Transaction Builder - Build and assemble EIP-1559 (type 2) transactions.

No key material lives here.  The builder produces the signing digest; the
assembler appends an externally produced (r, s, y-parity) signature.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import rlp
from eth_hash.auto import keccak

from ..errors import EncodingError
from ..sigil.recovery import RecoveredSignature
from ..utils import parse_address, to_hex

TRANSACTION_TYPE = 2
_TYPE_PREFIX = bytes([TRANSACTION_TYPE])


def require_quantity(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(f"{name} must be an integer, got {value!r}", {"field": name})
    if value < 0:
        raise EncodingError(f"{name} must be non-negative, got {value}", {"field": name})
    return value


def require_fee_order(max_priority_fee_per_gas: int, max_fee_per_gas: int) -> None:
    if max_priority_fee_per_gas > max_fee_per_gas:
        raise EncodingError(
            "maxPriorityFeePerGas exceeds maxFeePerGas",
            {
                "max_priority_fee_per_gas": max_priority_fee_per_gas,
                "max_fee_per_gas": max_fee_per_gas,
            },
        )


@dataclass(frozen=True)
class UnsignedTransaction:
    """All fields are required; there are no defaults to fall back on."""

    chain_id: int
    nonce: int
    max_priority_fee_per_gas: int
    max_fee_per_gas: int
    gas: int
    to: bytes
    value: int
    data: bytes

    def __post_init__(self) -> None:
        for name in ("chain_id", "nonce", "max_priority_fee_per_gas", "max_fee_per_gas", "gas", "value"):
            require_quantity(name, getattr(self, name))
        if not isinstance(self.to, bytes) or len(self.to) != 20:
            raise EncodingError("Destination must be 20 bytes", {"field": "to"})
        if not isinstance(self.data, bytes):
            raise EncodingError("Call data must be bytes", {"field": "data"})
        require_fee_order(self.max_priority_fee_per_gas, self.max_fee_per_gas)

    def fields(self) -> list[Any]:
        # Fixed EIP-1559 order; the trailing list is the (empty) access list.
        return [
            self.chain_id,
            self.nonce,
            self.max_priority_fee_per_gas,
            self.max_fee_per_gas,
            self.gas,
            self.to,
            self.value,
            self.data,
            [],
        ]

    def encode(self) -> bytes:
        return rlp.encode(self.fields())

    def signing_payload(self) -> bytes:
        return _TYPE_PREFIX + self.encode()

    @property
    def digest(self) -> bytes:
        return keccak(self.signing_payload())


@dataclass(frozen=True)
class BuiltTransaction:
    transaction: UnsignedTransaction
    encoding: bytes
    digest: bytes


@dataclass(frozen=True)
class SignedTransaction:
    raw: bytes

    @property
    def raw_hex(self) -> str:
        return to_hex(self.raw)

    @property
    def hash(self) -> str:
        """Transaction hash as reported by the network."""
        return to_hex(keccak(self.raw))


def build_transaction(
    *,
    to: str,
    chain_id: int,
    gas: int,
    value: int,
    nonce: int,
    max_priority_fee_per_gas: int,
    max_fee_per_gas: int,
    data: bytes,
) -> BuiltTransaction:
    """
    Build an unsigned type-2 transaction and its signing digest.

    Args:
        to: 0x-prefixed 20-byte destination address
        chain_id: EIP-155 chain id
        gas: Gas limit
        value: Wei transferred
        nonce: Sender nonce
        max_priority_fee_per_gas: Tip cap in wei
        max_fee_per_gas: Fee cap in wei
        data: Call data

    Returns:
        BuiltTransaction with the canonical encoding and
        digest = keccak256(0x02 || rlp(fields))

    Raises:
        EncodingError: Malformed address or field value
    """
    tx = UnsignedTransaction(
        chain_id=chain_id,
        nonce=nonce,
        max_priority_fee_per_gas=max_priority_fee_per_gas,
        max_fee_per_gas=max_fee_per_gas,
        gas=gas,
        to=parse_address(to),
        value=value,
        data=data,
    )
    return BuiltTransaction(transaction=tx, encoding=tx.encode(), digest=tx.digest)


def assemble_transaction(tx: UnsignedTransaction, signature: RecoveredSignature) -> SignedTransaction:
    """Append (y_parity, r, s) to the unsigned fields and prefix the type byte."""
    encoded = rlp.encode(tx.fields() + [signature.y_parity, signature.r, signature.s])
    return SignedTransaction(raw=_TYPE_PREFIX + encoded)

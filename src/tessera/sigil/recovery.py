"""
Recovery-id resolution for oracle signatures.

The oracle returns a bare 64-byte (r, s) pair.  Ethereum needs the y-parity
bit as well, so both candidates are tried against the oracle's declared
public key.  Exactly one must match; anything else means the signature does
not belong to this digest and key.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from eth_keys.datatypes import Signature
from eth_keys.exceptions import BadSignature, ValidationError as KeyValidationError

from ..errors import EncodingError, RecoveryIdError

if TYPE_CHECKING:
    from .eth import PublicKeyRecord

SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_HALF_N = SECP256K1_N // 2


@dataclass(frozen=True)
class RawSignature:
    """Big-endian (r, s) with no recovery information."""

    r: int
    s: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "RawSignature":
        if len(data) != 64:
            raise EncodingError(f"Raw signature must be 64 bytes, got {len(data)}")
        return cls(r=int.from_bytes(data[:32], "big"), s=int.from_bytes(data[32:], "big"))

    def normalized(self) -> "RawSignature":
        """Low-s form; the matching recovery bit flips along with ``s``."""
        if self.s > _HALF_N:
            return RawSignature(r=self.r, s=SECP256K1_N - self.s)
        return self


@dataclass(frozen=True)
class RecoveredSignature:
    r: int
    s: int
    y_parity: int


def _recovers_to(digest: bytes, sig: RawSignature, bit: int, expected: "PublicKeyRecord") -> bool:
    try:
        candidate = Signature(vrs=(bit, sig.r, sig.s)).recover_public_key_from_msg_hash(digest)
    except (BadSignature, KeyValidationError):
        return False
    return expected.matches(candidate)


def resolve_recovery_id(
    digest: bytes,
    signature: Union[RawSignature, bytes],
    public_key: "PublicKeyRecord",
) -> RecoveredSignature:
    """
    Find the y-parity bit under which (digest, r, s) recovers ``public_key``.

    Args:
        digest: 32-byte message hash that was signed
        signature: 64-byte r || s, or a RawSignature
        public_key: Key the oracle declared for the signing key id

    Returns:
        RecoveredSignature in low-s form

    Raises:
        RecoveryIdError: Neither (or both) candidates match
    """
    if len(digest) != 32:
        raise EncodingError(f"Digest must be 32 bytes, got {len(digest)}")
    if isinstance(signature, bytes):
        signature = RawSignature.from_bytes(signature)
    sig = signature.normalized()

    matches = [bit for bit in (0, 1) if _recovers_to(digest, sig, bit, public_key)]
    if len(matches) != 1:
        raise RecoveryIdError(
            "Signature does not recover to the oracle public key",
            {
                "digest": "0x" + digest.hex(),
                "key": public_key.key_id.name,
                "matches": matches,
            },
        )
    return RecoveredSignature(r=sig.r, s=sig.s, y_parity=matches[0])

"""
ECDSA / secp256k1 key material held by the signing oracle.

No private key ever exists locally.  The oracle's public key is an opaque
comparison target; the only thing derived from it here is the sender
address.

Dependencies: eth-keys (SEC1 decoding), eth-utils (EIP-55 checksum).
"""

from __future__ import annotations

from dataclasses import dataclass

from eth_hash.auto import keccak
from eth_keys.datatypes import PublicKey
from eth_keys.exceptions import ValidationError as KeyValidationError
from eth_utils import to_checksum_address

from ..errors import EncodingError

DEFAULT_CURVE = "secp256k1"
DEFAULT_KEY_NAME = "dfx_test_key"


@dataclass(frozen=True)
class EcdsaKeyId:
    """Identifies a key held by the oracle (curve + logical name)."""

    name: str = DEFAULT_KEY_NAME
    curve: str = DEFAULT_CURVE

    def to_dict(self) -> dict[str, str]:
        return {"curve": self.curve, "name": self.name}


@dataclass(frozen=True)
class PublicKeyRecord:
    """
    Public key bytes as declared by the oracle.

    Attributes:
        key_id: Key the bytes belong to
        public_key: 33-byte SEC1 compressed, 65-byte uncompressed (0x04 prefix)
                    or 64-byte raw (x || y) encoding
    """

    key_id: EcdsaKeyId
    public_key: bytes

    def __post_init__(self) -> None:
        size = len(self.public_key)
        if size == 33 and self.public_key[0] in (2, 3):
            return
        if size == 65 and self.public_key[0] == 4:
            return
        if size == 64:
            return
        raise EncodingError(
            f"Unsupported public key encoding ({size} bytes)",
            {"key": self.key_id.name},
        )

    def to_public_key(self) -> PublicKey:
        """Return the key as an eth-keys ``PublicKey`` (decompressing if needed)."""
        try:
            if len(self.public_key) == 33:
                return PublicKey.from_compressed_bytes(self.public_key)
            if len(self.public_key) == 65:
                return PublicKey(self.public_key[1:])
            return PublicKey(self.public_key)
        except KeyValidationError as exc:
            raise EncodingError(f"Invalid public key: {exc}") from exc

    def matches(self, candidate: PublicKey) -> bool:
        """Byte-for-byte comparison in this record's own encoding."""
        if len(self.public_key) == 33:
            return candidate.to_compressed_bytes() == self.public_key
        if len(self.public_key) == 65:
            return b"\x04" + candidate.to_bytes() == self.public_key
        return candidate.to_bytes() == self.public_key


def public_key_to_address(record: PublicKeyRecord) -> str:
    """
    Derive the Ethereum address controlled by an oracle key.

    Returns:
        0x-prefixed EIP-55 checksummed address (last 20 bytes of
        keccak256 over the 64-byte uncompressed point)
    """
    raw = record.to_public_key().to_bytes()
    return to_checksum_address(keccak(raw)[-20:])

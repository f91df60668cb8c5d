from __future__ import annotations

import re

from .errors import EncodingError

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def from_hex(value: str) -> bytes:
    """Decode a ``0x``-prefixed hex string.

    The prefix is mandatory and the payload must have even length.
    """
    if not isinstance(value, str) or not value.startswith("0x"):
        raise EncodingError(f"Hex string must start with 0x: {value!r}")
    payload = value[2:]
    if len(payload) % 2:
        raise EncodingError(f"Hex string has odd length: {value!r}")
    try:
        return bytes.fromhex(payload)
    except ValueError as exc:
        raise EncodingError(f"Invalid hex string: {value!r}") from exc


def hex_to_int(value: str) -> int:
    if not isinstance(value, str) or not value.startswith("0x") or len(value) < 3:
        raise EncodingError(f"Quantity must be 0x-prefixed hex: {value!r}")
    try:
        return int(value, 16)
    except ValueError as exc:
        raise EncodingError(f"Invalid hex quantity: {value!r}") from exc


def parse_address(address: str) -> bytes:
    """Parse a 20-byte hex address into raw bytes.

    Checksum casing is not enforced; any 40-digit hex string is accepted.
    """
    if not isinstance(address, str) or not _ADDRESS_RE.match(address):
        raise EncodingError(f"Malformed address: {address!r}", {"address": address})
    return bytes.fromhex(address[2:])

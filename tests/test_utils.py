"""Unit tests for utils.py functions."""

from __future__ import annotations

import pytest

from tessera.errors import EncodingError
from tessera.utils import from_hex, hex_to_int, parse_address, to_hex


class TestHex:
    def test_round_trip(self) -> None:
        assert from_hex(to_hex(b"\x00\xff")) == b"\x00\xff"

    def test_empty(self) -> None:
        assert to_hex(b"") == "0x"
        assert from_hex("0x") == b""

    @pytest.mark.parametrize("value", ["abcd", "0xabc", "0xzz", "", None])
    def test_invalid(self, value) -> None:
        with pytest.raises(EncodingError):
            from_hex(value)


class TestQuantity:
    def test_parse(self) -> None:
        assert hex_to_int("0x0") == 0
        assert hex_to_int("0x1bc16d674ec80000") == 2 * 10**18

    @pytest.mark.parametrize("value", ["0x", "10", "0xg", 5])
    def test_invalid(self, value) -> None:
        with pytest.raises(EncodingError):
            hex_to_int(value)


class TestParseAddress:
    def test_lowercase(self) -> None:
        assert parse_address("0x" + "ab" * 20) == b"\xab" * 20

    def test_checksum_case_not_enforced(self) -> None:
        assert parse_address("0xAeD50f3b6c1d2E8a9b7c4d5e6f7a8b9c0d1eAAc3") == bytes.fromhex(
            "aed50f3b6c1d2e8a9b7c4d5e6f7a8b9c0d1eaac3"
        )

    @pytest.mark.parametrize(
        "value",
        ["ab" * 20, "0x" + "ab" * 19, "0x" + "ab" * 21, "0x" + "zz" * 20, "", None],
    )
    def test_malformed(self, value) -> None:
        with pytest.raises(EncodingError):
            parse_address(value)

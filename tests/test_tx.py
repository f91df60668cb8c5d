"""Tests for EIP-1559 transaction building and assembly."""

from __future__ import annotations

import pytest
import rlp
from eth_account import Account
from eth_hash.auto import keccak
from eth_keys.datatypes import PrivateKey
from eth_utils import to_checksum_address

from conftest import COUNTER_ADDRESS, TEST_ADDRESS, TEST_PRIVATE_KEY
from tessera.errors import EncodingError
from tessera.pneuma.abi import counter_abi
from tessera.pneuma.tx import (
    UnsignedTransaction,
    assemble_transaction,
    build_transaction,
)
from tessera.sigil.recovery import RecoveredSignature


def _build(**overrides):
    params = dict(
        to=COUNTER_ADDRESS,
        chain_id=11155111,
        gas=500_000,
        value=0,
        nonce=5,
        max_priority_fee_per_gas=3_000_000_000,
        max_fee_per_gas=40_000_000_000,
        data=b"",
    )
    params.update(overrides)
    return build_transaction(**params)


def _eth_account_dict(data: bytes = b"", nonce: int = 5) -> dict:
    return {
        "type": 2,
        "chainId": 11155111,
        "nonce": nonce,
        "maxPriorityFeePerGas": 3_000_000_000,
        "maxFeePerGas": 40_000_000_000,
        "gas": 500_000,
        "to": to_checksum_address(COUNTER_ADDRESS),
        "value": 0,
        "data": "0x" + data.hex(),
        "accessList": [],
    }


def _sign(digest: bytes) -> RecoveredSignature:
    sig = PrivateKey(TEST_PRIVATE_KEY).sign_msg_hash(digest)
    return RecoveredSignature(r=sig.r, s=sig.s, y_parity=sig.v)


class TestBuildTransaction:
    """Unsigned encoding and digest."""

    def test_digest_is_keccak_of_type_prefixed_rlp(self) -> None:
        built = _build()
        expected_fields = [
            11155111,
            5,
            3_000_000_000,
            40_000_000_000,
            500_000,
            bytes.fromhex(COUNTER_ADDRESS[2:]),
            0,
            b"",
            [],
        ]
        assert built.encoding == rlp.encode(expected_fields)
        assert built.digest == keccak(b"\x02" + rlp.encode(expected_fields))

    def test_digest_recomputed_from_fields(self) -> None:
        built = _build()
        assert built.transaction.digest == built.digest
        assert len(built.digest) == 32

    def test_same_fields_same_digest(self) -> None:
        assert _build().digest == _build().digest

    def test_nonce_changes_digest(self) -> None:
        assert _build(nonce=5).digest != _build(nonce=6).digest

    def test_mixed_case_address_accepted(self) -> None:
        lower = _build(to=COUNTER_ADDRESS)
        checksummed = _build(to=to_checksum_address(COUNTER_ADDRESS))
        assert lower.digest == checksummed.digest

    @pytest.mark.parametrize(
        "address",
        [
            "aed50f3b6c1d2e8a9b7c4d5e6f7a8b9c0d1eaac3",
            "0xaed50f3b6c1d2e8a9b7c4d5e6f7a8b9c0d1eaa",
            "0xzzd50f3b6c1d2e8a9b7c4d5e6f7a8b9c0d1eaac3",
            "",
        ],
    )
    def test_malformed_address_rejected(self, address: str) -> None:
        with pytest.raises(EncodingError):
            _build(to=address)

    def test_negative_quantity_rejected(self) -> None:
        with pytest.raises(EncodingError):
            _build(value=-1)

    def test_bool_is_not_a_quantity(self) -> None:
        with pytest.raises(EncodingError):
            _build(nonce=True)

    def test_tip_above_fee_cap_rejected(self) -> None:
        with pytest.raises(EncodingError):
            _build(max_priority_fee_per_gas=50_000_000_000)

    def test_destination_must_be_20_bytes(self) -> None:
        with pytest.raises(EncodingError):
            UnsignedTransaction(
                chain_id=1,
                nonce=0,
                max_priority_fee_per_gas=0,
                max_fee_per_gas=0,
                gas=21_000,
                to=b"\x00" * 19,
                value=0,
                data=b"",
            )


class TestAssembleTransaction:
    """Signed encoding matches the reference eth-account implementation."""

    def test_matches_eth_account_empty_data(self) -> None:
        built = _build()
        signed = assemble_transaction(built.transaction, _sign(built.digest))

        reference = Account.sign_transaction(_eth_account_dict(), TEST_PRIVATE_KEY)
        assert signed.raw == bytes(reference.raw_transaction)
        assert signed.hash == "0x" + bytes(reference.hash).hex()

    def test_matches_eth_account_with_call_data(self) -> None:
        data = counter_abi().resolve("increaseCount").encode_input([])
        built = _build(data=data, nonce=42)
        signed = assemble_transaction(built.transaction, _sign(built.digest))

        reference = Account.sign_transaction(_eth_account_dict(data, nonce=42), TEST_PRIVATE_KEY)
        assert signed.raw == bytes(reference.raw_transaction)

    def test_sender_recovers_from_raw_bytes(self) -> None:
        built = _build()
        signed = assemble_transaction(built.transaction, _sign(built.digest))
        assert Account.recover_transaction(signed.raw_hex) == TEST_ADDRESS

    def test_type_prefix_and_field_order(self) -> None:
        built = _build()
        signature = RecoveredSignature(r=1, s=2, y_parity=1)
        signed = assemble_transaction(built.transaction, signature)

        assert signed.raw[0] == 0x02
        decoded = rlp.decode(signed.raw[1:])
        assert len(decoded) == 12
        assert decoded[9:] == [b"\x01", b"\x01", b"\x02"]

    def test_assembly_is_deterministic(self) -> None:
        built = _build()
        signature = _sign(built.digest)
        first = assemble_transaction(built.transaction, signature)
        second = assemble_transaction(built.transaction, signature)
        assert first.raw == second.raw
        assert first.hash == second.hash

    def test_hash_is_keccak_of_raw(self) -> None:
        built = _build()
        signed = assemble_transaction(built.transaction, _sign(built.digest))
        assert signed.hash == "0x" + keccak(signed.raw).hex()
        assert signed.raw_hex.startswith("0x02")

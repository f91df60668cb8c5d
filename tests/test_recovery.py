"""Tests for recovery-id resolution and public-key handling."""

from __future__ import annotations

import pytest
from eth_hash.auto import keccak
from eth_keys.datatypes import PrivateKey

from conftest import TEST_ADDRESS, TEST_PRIVATE_KEY
from tessera.errors import EncodingError, RecoveryIdError
from tessera.sigil.eth import EcdsaKeyId, PublicKeyRecord, public_key_to_address
from tessera.sigil.recovery import SECP256K1_N, RawSignature, resolve_recovery_id

KEY_ID = EcdsaKeyId()
DIGEST = keccak(b"tessera recovery test")


@pytest.fixture()
def private_key() -> PrivateKey:
    return PrivateKey(TEST_PRIVATE_KEY)


@pytest.fixture()
def record(private_key: PrivateKey) -> PublicKeyRecord:
    return PublicKeyRecord(key_id=KEY_ID, public_key=private_key.public_key.to_compressed_bytes())


class TestResolveRecoveryId:
    """Exactly one parity bit must reproduce the oracle key."""

    def test_finds_matching_bit(self, private_key: PrivateKey, record: PublicKeyRecord) -> None:
        sig = private_key.sign_msg_hash(DIGEST)
        resolved = resolve_recovery_id(DIGEST, sig.to_bytes()[:64], record)
        assert resolved.y_parity == sig.v
        assert (resolved.r, resolved.s) == (sig.r, sig.s)

    def test_accepts_raw_signature(self, private_key: PrivateKey, record: PublicKeyRecord) -> None:
        sig = private_key.sign_msg_hash(DIGEST)
        resolved = resolve_recovery_id(DIGEST, RawSignature(r=sig.r, s=sig.s), record)
        assert resolved.y_parity == sig.v

    def test_both_parities_occur(self, private_key: PrivateKey, record: PublicKeyRecord) -> None:
        seen = set()
        for i in range(16):
            digest = keccak(f"message {i}".encode())
            sig = private_key.sign_msg_hash(digest)
            seen.add(resolve_recovery_id(digest, sig.to_bytes()[:64], record).y_parity)
        assert seen == {0, 1}

    def test_high_s_is_normalized(self, private_key: PrivateKey, record: PublicKeyRecord) -> None:
        sig = private_key.sign_msg_hash(DIGEST)
        high = RawSignature(r=sig.r, s=SECP256K1_N - sig.s)
        resolved = resolve_recovery_id(DIGEST, high, record)
        assert resolved.s == sig.s
        assert resolved.y_parity == sig.v

    def test_corrupted_signature_fails(self, private_key: PrivateKey, record: PublicKeyRecord) -> None:
        raw = bytearray(private_key.sign_msg_hash(DIGEST).to_bytes()[:64])
        raw[40] ^= 0x01
        with pytest.raises(RecoveryIdError) as exc_info:
            resolve_recovery_id(DIGEST, bytes(raw), record)
        assert exc_info.value.details["matches"] == []

    def test_wrong_digest_fails(self, private_key: PrivateKey, record: PublicKeyRecord) -> None:
        raw = private_key.sign_msg_hash(DIGEST).to_bytes()[:64]
        with pytest.raises(RecoveryIdError):
            resolve_recovery_id(keccak(b"something else"), raw, record)

    def test_foreign_key_fails(self, record: PublicKeyRecord) -> None:
        other = PrivateKey(b"\x11" * 32)
        raw = other.sign_msg_hash(DIGEST).to_bytes()[:64]
        with pytest.raises(RecoveryIdError):
            resolve_recovery_id(DIGEST, raw, record)

    def test_digest_must_be_32_bytes(self, private_key: PrivateKey, record: PublicKeyRecord) -> None:
        raw = private_key.sign_msg_hash(DIGEST).to_bytes()[:64]
        with pytest.raises(EncodingError):
            resolve_recovery_id(DIGEST[:31], raw, record)

    def test_signature_must_be_64_bytes(self, record: PublicKeyRecord) -> None:
        with pytest.raises(EncodingError):
            resolve_recovery_id(DIGEST, b"\x01" * 65, record)


class TestPublicKeyRecord:
    """Accepted encodings and address derivation."""

    @pytest.mark.parametrize("encoding", ["compressed", "uncompressed", "raw"])
    def test_encodings_derive_same_address(self, private_key: PrivateKey, encoding: str) -> None:
        public_key = private_key.public_key
        data = {
            "compressed": public_key.to_compressed_bytes(),
            "uncompressed": b"\x04" + public_key.to_bytes(),
            "raw": public_key.to_bytes(),
        }[encoding]
        record = PublicKeyRecord(key_id=KEY_ID, public_key=data)
        assert public_key_to_address(record) == TEST_ADDRESS

    @pytest.mark.parametrize("encoding", ["uncompressed", "raw"])
    def test_resolution_works_for_each_encoding(self, private_key: PrivateKey, encoding: str) -> None:
        public_key = private_key.public_key
        data = b"\x04" + public_key.to_bytes() if encoding == "uncompressed" else public_key.to_bytes()
        record = PublicKeyRecord(key_id=KEY_ID, public_key=data)
        sig = private_key.sign_msg_hash(DIGEST)
        assert resolve_recovery_id(DIGEST, sig.to_bytes()[:64], record).y_parity == sig.v

    @pytest.mark.parametrize("data", [b"", b"\x02" * 32, b"\x05" + b"\x00" * 32, b"\x02" + b"\x00" * 64])
    def test_unsupported_encoding_rejected(self, data: bytes) -> None:
        with pytest.raises(EncodingError):
            PublicKeyRecord(key_id=KEY_ID, public_key=data)

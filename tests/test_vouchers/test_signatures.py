"""
Test suite for the voucher signer and off-chain verification.
Tests: 1) Sign/recover round trip 2) Tamper sensitivity 3) Unavailable key 4) Malformed signatures
"""
import pytest
from eth_account import Account
from eth_account.messages import encode_defunct

from conftest import CLAIMANT, OTHER_KEY, SIGNER_ADDRESS, SIGNER_KEY, TOKEN
from voucher_signer.engine.exceptions import InvalidInputKind, SigningUnavailable
from voucher_signer.schemas.bases import VerificationStatus
from voucher_signer.schemas.vouchers import VoucherSignature
from voucher_signer.vouchers import (
    VoucherSigner,
    build_message_hash,
    recover_voucher_signer,
    verify_voucher,
)

EXPIRE_AT = 1_900_000_000
NOW = 1_800_000_000


def _signed(signer, amount=1_000_000, nonce=1):
    digest = build_message_hash(CLAIMANT, TOKEN, amount, nonce, EXPIRE_AT)
    return digest, signer.sign(digest).to_packed_hex()


def _verify(signature, amount=1_000_000, nonce=1, expected=SIGNER_ADDRESS, **overrides):
    fields = dict(
        claimant=CLAIMANT,
        token=TOKEN,
        amount=amount,
        nonce=nonce,
        expire_at=EXPIRE_AT,
        signature=signature,
        expected_signer=expected,
        current_time=NOW,
    )
    fields.update(overrides)
    return verify_voucher(**fields)


def test_signer_loads_key(signer):
    assert signer.available
    assert signer.address == SIGNER_ADDRESS
    assert SIGNER_KEY[2:] not in repr(signer)


def test_key_without_prefix():
    assert VoucherSigner.load(SIGNER_KEY[2:]).address == SIGNER_ADDRESS


def test_signature_format(signer):
    _, signature = _signed(signer)
    raw = bytes.fromhex(signature[2:])
    assert len(raw) == 65
    assert raw[64] in (27, 28)


def test_signature_is_personal_message(signer):
    """Independent recovery with eth_account confirms the EIP-191 prefix."""
    digest, signature = _signed(signer)
    recovered = Account.recover_message(
        encode_defunct(primitive=digest),
        signature=bytes.fromhex(signature[2:]),
    )
    assert recovered == SIGNER_ADDRESS


def test_round_trip(signer):
    digest, signature = _signed(signer)

    assert recover_voucher_signer(digest, VoucherSignature.from_packed_hex(signature)) == SIGNER_ADDRESS

    result = _verify(signature)
    assert result.is_valid
    assert result.status == VerificationStatus.SUCCESS
    assert result.recovered_signer == SIGNER_ADDRESS
    assert result.message_hash == "0x" + digest.hex()
    assert result.is_expired is False


@pytest.mark.parametrize(
    "tampered",
    [
        {"amount": 1_000_001},
        {"nonce": 2},
        {"expire_at": EXPIRE_AT + 1},
    ],
)
def test_tampered_field_fails(signer, tampered):
    _, signature = _signed(signer, amount=1_000_000, nonce=1)
    result = _verify(signature, **tampered)

    assert not result.is_valid
    assert result.status == VerificationStatus.SIGNER_MISMATCH
    assert result.recovered_signer != SIGNER_ADDRESS
    assert result.get_error_message().startswith("Verification failed")


def test_other_signer_fails():
    other = VoucherSigner.load(OTHER_KEY)
    _, signature = _signed(other)

    result = _verify(signature)
    assert not result.is_valid
    assert result.recovered_signer == other.address


def test_expiry_is_informational(signer):
    _, signature = _signed(signer)
    result = _verify(signature, current_time=EXPIRE_AT)

    assert result.is_valid
    assert result.is_expired is True


def test_recovery_byte_zero_one_is_not_valid_on_chain(signer):
    _, signature = _signed(signer)
    raw = bytearray.fromhex(signature[2:])
    raw[64] -= 27

    result = _verify("0x" + raw.hex())

    assert not result.is_valid
    assert result.status == VerificationStatus.NONCANONICAL_V
    assert result.recovered_signer == SIGNER_ADDRESS


def test_unrecoverable_signature(signer):
    # r = 0 cannot yield a public key.
    signature = "0x" + "00" * 32 + "11" * 32 + "1b"
    result = _verify(signature)

    assert not result.is_valid
    assert result.status == VerificationStatus.UNRECOVERABLE
    assert result.recovered_signer is None


@pytest.mark.parametrize(
    "signature",
    [
        "0x1234",
        "0x" + "ab" * 64,
        "0x" + "zz" * 65,
        "0x" + "ab" * 64 + "05",
        12345,
    ],
)
def test_malformed_signature_raises(signature):
    with pytest.raises(InvalidInputKind) as exc:
        _verify(signature)
    assert exc.value.field == "signature"


def test_unavailable_signer():
    signer = VoucherSigner.load("0xnot-a-key")
    assert not signer.available
    assert signer.unavailable_reason == "signing key failed to load"
    assert "not-a-key" not in repr(signer)

    with pytest.raises(SigningUnavailable):
        signer.address
    with pytest.raises(SigningUnavailable):
        signer.sign(b"\x00" * 32)


def test_missing_key(unavailable_signer):
    assert not unavailable_signer.available
    assert unavailable_signer.unavailable_reason == "signing key is not configured"


def test_sign_rejects_wrong_digest_length(signer):
    with pytest.raises(ValueError):
        signer.sign(b"\x01" * 31)


def test_packed_hex_round_trip(signer):
    _, signature = _signed(signer)
    parsed = VoucherSignature.from_packed_hex(signature)
    assert parsed.to_packed_hex() == signature
    assert parsed.to_bytes() == bytes.fromhex(signature[2:])

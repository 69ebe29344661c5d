"""
Voucher Signature Verification Helpers

Off-chain verification that mirrors the airdrop contract: recompute the
voucher digest from the supplied fields, wrap it as an EIP-191 personal
message, recover the signer from (v, r, s) and compare it to the expected
signer. The functions accept raw fields as keyword arguments so callers can
feed values from an HTTP body, a database row or a ``Voucher`` model.
"""

import time
from typing import Optional

from eth_account import Account
from eth_keys.exceptions import BadSignature, ValidationError

from .hashing import build_message_hash, normalize_address
from .signatures import encode_voucher_message
from ..schemas.bases import VerificationStatus
from ..schemas.vouchers import VoucherSignature, VoucherVerificationResult


def recover_voucher_signer(digest: bytes, signature: VoucherSignature) -> Optional[str]:
    """
    Recover the address that signed ``digest`` as a personal message.

    Returns:
        Checksummed signer address, or ``None`` if no public key can be
        recovered from the signature (for example ``r`` or ``s`` out of range).
    """
    try:
        return Account.recover_message(
            encode_voucher_message(digest),
            vrs=(signature.v, int(signature.r, 16), int(signature.s, 16)),
        )
    except (ValueError, BadSignature, ValidationError):
        return None


def verify_voucher(
    *,
    claimant: str,
    token: str,
    amount: int,
    nonce: int,
    expire_at: int,
    signature: str,
    expected_signer: str,
    current_time: Optional[int] = None,
) -> VoucherVerificationResult:
    """
    Verify a voucher signature against ``expected_signer``.

    Performs the following steps:

    1. **Input format** -- addresses, integers and the 65-byte signature are
       validated; malformed input raises ``InvalidInputKind``.
    2. **Hash** -- the digest is recomputed from the fields; a caller-supplied
       hash is never trusted.
    3. **ECDSA recovery** -- the signer is recovered from the personal-message
       digest and compared (case-insensitively) to ``expected_signer``.

    A well-formed signature that recovers to another address, or to nothing,
    yields ``is_valid=False`` rather than an error. So does a recovery byte of
    0 or 1, which ``ecrecover`` on-chain would reject. Expiry is reported in
    ``is_expired`` but does not affect ``is_valid``.

    Args:
        claimant:        Voucher claimant address.
        token:           Airdropped token address.
        amount:          Amount in the token's smallest unit.
        nonce:           Voucher nonce.
        expire_at:       Voucher expiry (unix seconds).
        signature:       0x-prefixed packed ``r || s || v`` hex signature.
        expected_signer: Address the signature must recover to.
        current_time:    Optional unix timestamp for the expiry flag;
                         defaults to ``int(time.time())``.

    Returns:
        ``VoucherVerificationResult`` with all diagnostic fields populated.

    Raises:
        InvalidInputKind: If any field is malformed.
    """
    digest = build_message_hash(claimant, token, amount, nonce, expire_at)
    parsed = VoucherSignature.from_packed_hex(signature)
    expected = normalize_address(expected_signer, "expectedSigner")
    now = int(time.time()) if current_time is None else current_time
    message_hash = "0x" + digest.hex()

    recovered = recover_voucher_signer(digest, parsed)
    if recovered is None:
        return VoucherVerificationResult(
            status=VerificationStatus.UNRECOVERABLE,
            is_valid=False,
            message="No signer could be recovered from the signature",
            expected_signer=expected,
            message_hash=message_hash,
            is_expired=expire_at <= now,
        )

    if signature[-2:] in ("00", "01"):
        return VoucherVerificationResult(
            status=VerificationStatus.NONCANONICAL_V,
            is_valid=False,
            message="Recovery byte must be 27 or 28 for on-chain use",
            error_details={"v": int(signature[-2:], 16)},
            recovered_signer=recovered,
            expected_signer=expected,
            message_hash=message_hash,
            is_expired=expire_at <= now,
        )

    if recovered.lower() != expected.lower():
        return VoucherVerificationResult(
            status=VerificationStatus.SIGNER_MISMATCH,
            is_valid=False,
            message="Signature was not produced by the service signer",
            error_details={"recovered": recovered, "expected": expected},
            recovered_signer=recovered,
            expected_signer=expected,
            message_hash=message_hash,
            is_expired=expire_at <= now,
        )

    return VoucherVerificationResult(
        status=VerificationStatus.SUCCESS,
        is_valid=True,
        message="Voucher signature is valid",
        recovered_signer=recovered,
        expected_signer=expected,
        message_hash=message_hash,
        is_expired=expire_at <= now,
    )

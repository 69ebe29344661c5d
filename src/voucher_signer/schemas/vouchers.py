"""
Voucher Schema Models

Pydantic models for issued vouchers, their ECDSA signatures and
verification outcomes. All classes inherit from the base schema hierarchy in
``schemas.bases``.

    - VoucherSignature: v/r/s signature with packed ``r || s || v`` encoding.
    - Voucher: An issued, immutable claim voucher.
    - VoucherVerificationResult: Outcome of recomputing and recovering a
      voucher signature.
"""

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field, field_serializer

from .bases import BaseVerificationResult, CanonicalModel, WireModel, utcnow
from ..engine.exceptions import InvalidInputKind

#: Packed signature length: r(32) + s(32) + v(1).
SIGNATURE_LENGTH: int = 65


class VoucherSignature(CanonicalModel):
    """
    EVM ECDSA signature (v, r, s) over a voucher's personal-message digest.

    Attributes:
        v: ECDSA recovery ID (27 or 28).
        r: r component, 0x-prefixed 64-char hex string.
        s: s component, 0x-prefixed 64-char hex string.

    Example::

        sig = VoucherSignature.from_packed_hex(voucher.signature)
        sig.v, sig.r, sig.s
    """

    v: int = Field(..., ge=27, le=28, description="ECDSA recovery ID (27 or 28)")
    r: str = Field(..., description="Signature r component (32 bytes, 0x-prefixed hex)")
    s: str = Field(..., description="Signature s component (32 bytes, 0x-prefixed hex)")

    def validate_format(self) -> bool:
        """
        Validate v/r/s components.

        Returns:
            True when all components pass.

        Raises:
            ValueError: Descriptive message on the first failed check.
        """
        if self.v not in (27, 28):
            raise ValueError(f"Invalid recovery ID: {self.v}. Must be 27 or 28")

        for name, val in [("r", self.r), ("s", self.s)]:
            hex_str = val.replace("0x", "").replace("0X", "")
            if len(hex_str) != 64:
                raise ValueError(f"Invalid {name}: expected 64 hex chars, got {len(hex_str)}")
            try:
                int(hex_str, 16)
            except ValueError:
                raise ValueError(f"Invalid {name}: not valid hexadecimal")

        return True

    def to_bytes(self) -> bytes:
        """Packed 65-byte ``r || s || v`` signature."""
        return bytes.fromhex(self.to_packed_hex()[2:])

    def to_packed_hex(self) -> str:
        """
        Encode v/r/s into a packed 65-byte hex string (``r || s || v``).

        This is the ``bytes signature`` argument ``claimTokens`` expects.

        Returns:
            0x-prefixed 132-character hex string.

        Raises:
            ValueError: If components do not pass ``validate_format()``.
        """
        self.validate_format()
        r = self.r.replace("0x", "").replace("0X", "").zfill(64)
        s = self.s.replace("0x", "").replace("0X", "").zfill(64)
        return "0x" + r + s + format(self.v, "02x")

    @classmethod
    def from_packed_hex(cls, signature: object, field: str = "signature") -> "VoucherSignature":
        """
        Parse a packed ``r || s || v`` hex signature.

        A recovery byte of 0 or 1 is normalized to 27 or 28 so the signer can
        still be recovered; ``verify_voucher`` reports such signatures as
        invalid because the contract only accepts 27 or 28. Any other value is
        rejected outright.

        Raises:
            InvalidInputKind: If the value is not 65 bytes of hex.
        """
        if not isinstance(signature, str):
            raise InvalidInputKind(field, "must be a hex string")
        body = signature[2:] if signature.startswith(("0x", "0X")) else signature
        try:
            raw = bytes.fromhex(body)
        except ValueError:
            raise InvalidInputKind(field, "must be hex encoded")
        if len(raw) != SIGNATURE_LENGTH:
            raise InvalidInputKind(field, f"must be {SIGNATURE_LENGTH} bytes, got {len(raw)}")

        v = raw[64]
        if v in (0, 1):
            v += 27
        if v not in (27, 28):
            raise InvalidInputKind(field, f"invalid recovery byte {raw[64]}")
        return cls(v=v, r="0x" + raw[:32].hex(), s="0x" + raw[32:64].hex())


class Voucher(WireModel):
    """
    Signed, single-use, time-bounded airdrop claim voucher.

    Vouchers are immutable once issued. ``amount`` and ``nonce`` serialize as
    decimal strings since uint256 values exceed JSON number precision.

    Attributes:
        claimant: Only address allowed to redeem the voucher (checksummed).
        token: ERC-20 token being airdropped (checksummed).
        amount: Amount in the token's smallest unit.
        nonce: Per-claimant replay-protection nonce.
        expire_at: Unix timestamp at which the voucher stops being valid.
        message_hash: 0x-prefixed keccak digest of the packed fields.
        signature: 0x-prefixed 65-byte ``r || s || v`` signature.
        signer: Address recoverable from ``signature``.
        created_at: When the voucher was issued.
    """

    model_config = ConfigDict(frozen=True)

    claimant: str
    token: str
    amount: int = Field(..., gt=0)
    nonce: int = Field(..., ge=0)
    expire_at: int = Field(..., ge=0)
    message_hash: str
    signature: str
    signer: str
    created_at: datetime = Field(default_factory=utcnow)

    @field_serializer("amount", "nonce", when_used="json")
    def _serialize_uint(self, value: int) -> str:
        return str(value)

    def to_response(self) -> dict:
        """Body returned by ``POST /signatures/generate``."""
        return self.to_wire()


class VoucherVerificationResult(BaseVerificationResult):
    """
    Result of independently re-verifying a voucher signature.

    ``is_valid`` reflects only the cryptographic check. ``is_expired`` is
    informational: the contract enforces ``block.timestamp < expireAt`` on
    its own, and this service never extends expiry.

    Attributes:
        recovered_signer: Address recovered from the signature, if any.
        expected_signer: The service's signing address.
        message_hash: Digest recomputed from the supplied fields.
        is_expired: Whether ``expire_at <= now`` at verification time.
    """

    recovered_signer: Optional[str] = Field(None, description="Address recovered from the signature")
    expected_signer: str = Field(..., description="Service signer address")
    message_hash: str = Field(..., description="Recomputed voucher digest (0x hex)")
    is_expired: bool = Field(False, description="Informational expiry flag")

    def to_response(self) -> dict:
        """Body returned by ``POST /signatures/verify``."""
        return {
            "isValid": self.is_valid,
            "recoveredSigner": self.recovered_signer,
            "expectedSigner": self.expected_signer,
            "messageHash": self.message_hash,
            "isExpired": self.is_expired,
        }

from .bases import CanonicalModel, WireModel, VerificationStatus, BaseVerificationResult, utcnow
from .vouchers import SIGNATURE_LENGTH, VoucherSignature, Voucher, VoucherVerificationResult
from .https import (
    parse_uint_value,
    GenerateSignatureRequest,
    VerifySignatureRequest,
    SignerInfoResponse,
    StoredVoucherResponse,
    ClaimantVouchersResponse,
    HealthResponse,
)

__all__ = [
    "CanonicalModel",
    "WireModel",
    "VerificationStatus",
    "BaseVerificationResult",
    "utcnow",
    "SIGNATURE_LENGTH",
    "VoucherSignature",
    "Voucher",
    "VoucherVerificationResult",
    "parse_uint_value",
    "GenerateSignatureRequest",
    "VerifySignatureRequest",
    "SignerInfoResponse",
    "StoredVoucherResponse",
    "ClaimantVouchersResponse",
    "HealthResponse",
]

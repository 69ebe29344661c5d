"""
Exception and Error Definitions Module

Defines the custom exception hierarchy for voucher issuance, signing, storage
and on-chain reads. All exceptions inherit from BaseException for unified
exception handling, and every class carries a stable ``kind`` string that the
HTTP layer returns to callers instead of a stack trace.

Exception Hierarchy:
    BaseException (root)
    ├── InvalidInputKind
    ├── SigningUnavailable
    ├── NonceAllocationError
    │   ├── NonceExhausted
    │   └── AllocationRetryExceeded
    ├── StoreError
    │   ├── DuplicateVoucher
    │   └── StoreUnavailable
    ├── IssuanceFailed
    ├── ConfigurationError
    ├── BlockchainInteractionError
    └── VoucherRequestError
"""

from typing import Any, Dict, Optional


class BaseException(Exception):
    """
    Root exception class for all project-specific exceptions.

    All custom exceptions should inherit from this class to enable
    unified exception handling and centralized error processing.

    Attributes:
        kind: Stable, machine-readable error identifier.
        message: Human-readable description, safe to return to callers.
    """

    kind: str = "internal_error"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.__class__.__doc__.strip().splitlines()[0]
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Return the error body sent to HTTP callers."""
        return {"error": self.kind, "message": self.message}


class InvalidInputKind(BaseException):
    """
    Raised when a caller-supplied field is malformed.

    This includes scenarios such as:
    - Address that is not 0x + 40 hex digits, or fails its EIP-55 checksum
    - Integer that is negative or does not fit in 256 bits
    - Zero amount, or an expiry that is not far enough in the future
    - Signature that is not 65 bytes of hex

    Attributes:
        field: Name of the offending field (wire name).
        reason: Why the value was rejected.
    """

    kind = "invalid_input"

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["field"] = self.field
        return body


class SigningUnavailable(BaseException):
    """
    Signing key is not loaded; vouchers cannot be issued.

    Raised by the signer when the private key failed to load at startup.
    The server reports itself unhealthy in this state and refuses issuance
    rather than returning unsigned vouchers.
    """

    kind = "signing_unavailable"


class NonceAllocationError(BaseException):
    """
    Base exception for nonce allocation failures.
    """

    kind = "nonce_allocation_error"


class NonceExhausted(NonceAllocationError):
    """
    Sequential nonce counter for the claimant has reached the uint256 limit.
    """

    kind = "nonce_exhausted"


class AllocationRetryExceeded(NonceAllocationError):
    """
    Could not obtain an unused nonce within the bounded number of attempts.

    Raised by the random allocator after repeated collisions with stored
    vouchers, and by the issuance service when every persistence attempt
    lost a duplicate-nonce race.
    """

    kind = "allocation_retry_exceeded"


class StoreError(BaseException):
    """
    Base exception for voucher store failures.
    """

    kind = "store_error"


class DuplicateVoucher(StoreError):
    """
    A voucher already exists for this claimant and nonce.

    The store never overwrites an existing record; the conditional insert
    fails instead. This is the server-side half of replay protection.

    Attributes:
        claimant: Claimant address of the conflicting record.
        nonce: Nonce of the conflicting record.
    """

    kind = "duplicate_voucher"

    def __init__(self, claimant: str, nonce: int) -> None:
        self.claimant = claimant
        self.nonce = nonce
        super().__init__(f"voucher already issued for {claimant} with nonce {nonce}")


class StoreUnavailable(StoreError):
    """
    Voucher store could not complete the operation.
    """

    kind = "store_unavailable"


class IssuanceFailed(BaseException):
    """
    Voucher issuance failed after signing; no voucher was issued.

    The signature produced for the failed attempt is discarded and never
    returned. Callers retry the whole request, which draws a fresh nonce.

    Attributes:
        cause: Underlying error, if any.
    """

    kind = "issuance_failed"

    def __init__(self, message: str = "", cause: Optional[Exception] = None) -> None:
        self.cause = cause
        super().__init__(message)


class ConfigurationError(BaseException):
    """
    Configuration is missing or invalid.

    This includes scenarios such as:
    - Unknown nonce strategy
    - Nonce width outside 64..256 bits
    - Malformed contract address
    """

    kind = "configuration_error"


class BlockchainInteractionError(BaseException):
    """
    Reading airdrop contract state over RPC failed.

    Only used internally; on-chain reads are informational and their
    failures are reported as unknown values, never as request errors.
    """

    kind = "blockchain_error"


class VoucherRequestError(BaseException):
    """
    The signing service answered a client request with an error.

    Attributes:
        status_code: HTTP status of the response.
        error_kind: ``error`` field of the response body.
        field: Offending field for ``invalid_input`` errors, if reported.
    """

    kind = "request_error"

    def __init__(self, status_code: int, error_kind: str, message: str = "", field: Optional[str] = None) -> None:
        self.status_code = status_code
        self.error_kind = error_kind
        self.field = field
        super().__init__(message or f"request failed with {error_kind} ({status_code})")

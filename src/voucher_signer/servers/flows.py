"""
Built-in event handlers for the voucher signing workflow.

Implements the two request flows: claim request -> issued voucher, and
signature re-check -> verification result. Service errors become
``RequestRejectedEvent`` with the HTTP status they map to.
"""

import logging

from ..engine.events import (
    EventBus,
    Dependencies,
    IssueVoucherEvent,
    VerifyVoucherEvent,
    VoucherIssuedEvent,
    VoucherVerifiedEvent,
    RequestRejectedEvent,
)
from ..engine.exceptions import (
    BaseException as VoucherServiceError,
    InvalidInputKind,
    SigningUnavailable,
    NonceAllocationError,
    IssuanceFailed,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)

# Checked in order; first match wins.
ERROR_STATUS_CODES = (
    (InvalidInputKind, 400),
    (SigningUnavailable, 503),
    (StoreUnavailable, 503),
    (NonceAllocationError, 500),
    (IssuanceFailed, 500),
)


def status_code_for(error: VoucherServiceError) -> int:
    """HTTP status for a service error (500 when unmapped)."""
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_class):
            return status_code
    return 500


def reject(error: VoucherServiceError) -> RequestRejectedEvent:
    """Wrap a service error as a rejection event."""
    return RequestRejectedEvent(error=error, status_code=status_code_for(error))


# ==================== Event Handlers ====================

async def handle_issue_voucher(
    event: IssueVoucherEvent,
    deps: Dependencies
) -> VoucherIssuedEvent | RequestRejectedEvent:
    """Validate, sign and persist a voucher."""
    try:
        voucher = await deps.issuance.issue(
            claimant=event.claimant,
            token=event.token,
            amount=event.amount,
            expire_at=event.expire_at,
        )
    except VoucherServiceError as e:
        logger.warning("Voucher issuance rejected (%s): %s", e.kind, e.message)
        return reject(e)
    return VoucherIssuedEvent(voucher=voucher)


async def handle_verify_voucher(
    event: VerifyVoucherEvent,
    deps: Dependencies
) -> VoucherVerifiedEvent | RequestRejectedEvent:
    """Recompute the digest and recover the signer."""
    try:
        result = deps.verification.verify(
            claimant=event.claimant,
            token=event.token,
            amount=event.amount,
            nonce=event.nonce,
            expire_at=event.expire_at,
            signature=event.signature,
        )
    except VoucherServiceError as e:
        return reject(e)

    if not result.is_success():
        logger.info("Voucher signature rejected: %s", result.get_error_message())
    return VoucherVerifiedEvent(result=result)


# ==================== Event Bus Setup ====================

def setup_event_bus() -> EventBus:
    """Initialize event bus with built-in handlers."""
    event_bus = EventBus()

    event_bus.subscribe(IssueVoucherEvent, handle_issue_voucher)
    event_bus.subscribe(VerifyVoucherEvent, handle_verify_voucher)

    return event_bus

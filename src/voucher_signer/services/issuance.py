"""
Voucher Issuance Service

Orchestrates one voucher issuance:

    validate -> allocate nonce -> build hash -> sign -> persist -> return

Validation happens before any cryptographic work, in a fixed order: amount,
then expiry, then addresses. A signature is only ever returned after the
voucher has been durably recorded; if persistence fails or times out the
signature is dropped and the caller gets ``IssuanceFailed``.

A ``DuplicateVoucher`` on persist means another request won the race for the
same ``(claimant, nonce)``. The attempt is retried with a fresh nonce up to
``max_attempts`` times before ``AllocationRetryExceeded`` is raised.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

from ..engine.exceptions import (
    AllocationRetryExceeded,
    DuplicateVoucher,
    InvalidInputKind,
    IssuanceFailed,
    StoreUnavailable,
)
from ..schemas.vouchers import Voucher
from ..store.repository import CommitGuard, VoucherStore
from ..vouchers.hashing import build_message_hash, ensure_uint256, normalize_address
from ..vouchers.nonces import NonceAllocator, RandomNonceAllocator
from ..vouchers.signatures import VoucherSigner

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IssuanceService:
    """
    Issues signed, persisted vouchers.

    Args:
        signer: Service signer; issuance is refused while it is unavailable.
        store: Voucher ledger.
        allocator: Nonce strategy (default: 64-bit random).
        min_validity_seconds: ``expire_at`` must be greater than
            ``now + min_validity_seconds``.
        max_attempts: Issuance attempts when persistence hits a duplicate nonce.
        store_timeout_seconds: Upper bound on each store wait.
        clock: Returns the current unix time; injectable for tests.
    """

    def __init__(
        self,
        signer: VoucherSigner,
        store: VoucherStore,
        allocator: Optional[NonceAllocator] = None,
        *,
        min_validity_seconds: int = 0,
        max_attempts: int = 3,
        store_timeout_seconds: float = 5.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.signer = signer
        self.store = store
        self.allocator = allocator or RandomNonceAllocator(store, max_attempts=max_attempts)
        self.min_validity_seconds = min_validity_seconds
        self.max_attempts = max_attempts
        self.store_timeout_seconds = store_timeout_seconds
        self.clock = clock

    def validate(self, claimant: object, token: object, amount: object, expire_at: object):
        """
        Validate a claim request.

        Returns:
            ``(claimant, token, amount, expire_at)`` with addresses checksummed.

        Raises:
            InvalidInputKind: On the first failing check.
        """
        if _is_int(amount) and amount <= 0:
            raise InvalidInputKind("amount", "must be greater than zero")
        amount = ensure_uint256(amount, "amount")

        if _is_int(expire_at) and expire_at < 0:
            raise InvalidInputKind("expireAt", "must be in the future")
        expire_at = ensure_uint256(expire_at, "expireAt")
        earliest = int(self.clock()) + self.min_validity_seconds
        if expire_at <= earliest:
            if self.min_validity_seconds:
                reason = f"must be more than {self.min_validity_seconds} seconds in the future"
            else:
                reason = "must be in the future"
            raise InvalidInputKind("expireAt", reason)

        return (
            normalize_address(claimant, "claimant"),
            normalize_address(token, "token"),
            amount,
            expire_at,
        )

    async def _bounded(self, awaitable: Awaitable[T], what: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.store_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error("Voucher store timed out during %s", what)
            raise IssuanceFailed(f"voucher store timed out during {what}")
        except StoreUnavailable as e:
            raise IssuanceFailed(f"voucher store failed during {what}", cause=e) from e

    async def _persist(self, voucher: Voucher) -> None:
        """
        Record ``voucher`` within the store timeout.

        On timeout the pending insert is abandoned so it can never land after
        failure is reported. If its commit had already started, the commit's
        own outcome decides.
        """
        guard = CommitGuard()
        task = asyncio.ensure_future(asyncio.to_thread(self.store.put, voucher, guard))
        task.add_done_callback(_consume_result)
        try:
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=self.store_timeout_seconds)
            except asyncio.TimeoutError:
                if guard.abandon():
                    logger.error("Voucher store timed out during voucher persistence")
                    raise IssuanceFailed("voucher store timed out during voucher persistence")
                logger.warning("Voucher commit outlasted the store timeout; awaiting its outcome")
                await task
        except asyncio.CancelledError:
            guard.abandon()
            raise
        except StoreUnavailable as e:
            raise IssuanceFailed("voucher store failed during voucher persistence", cause=e) from e

    async def issue(self, claimant: str, token: str, amount: int, expire_at: int) -> Voucher:
        """
        Issue one voucher.

        Args:
            claimant:  Address allowed to redeem the voucher.
            token:     ERC-20 token being airdropped.
            amount:    Amount in the token's smallest unit (pre-scaled).
            expire_at: Unix timestamp at which the voucher stops being valid.

        Returns:
            The persisted ``Voucher``.

        Raises:
            InvalidInputKind: Invalid amount, expiry or address.
            SigningUnavailable: The signing key is not loaded.
            NonceExhausted: Sequential counter is at the uint256 limit.
            AllocationRetryExceeded: No unused nonce within the attempt bound.
            IssuanceFailed: The store failed or timed out; nothing was returned.
        """
        claimant, token, amount, expire_at = self.validate(claimant, token, amount, expire_at)
        signer_address = self.signer.address

        for attempt in range(1, self.max_attempts + 1):
            nonce = await self._bounded(self.allocator.allocate(claimant), "nonce allocation")

            digest = build_message_hash(claimant, token, amount, nonce, expire_at)
            signature = self.signer.sign(digest)
            voucher = Voucher(
                claimant=claimant,
                token=token,
                amount=amount,
                nonce=nonce,
                expire_at=expire_at,
                message_hash="0x" + digest.hex(),
                signature=signature.to_packed_hex(),
                signer=signer_address,
            )

            try:
                await self._persist(voucher)
            except DuplicateVoucher:
                logger.warning(
                    "Nonce %d already recorded for %s (attempt %d/%d)",
                    nonce, claimant, attempt, self.max_attempts,
                )
                continue

            logger.info(
                "Issued voucher claimant=%s token=%s amount=%d nonce=%d expireAt=%d hash=%s",
                claimant, token, amount, nonce, expire_at, voucher.message_hash,
            )
            return voucher

        raise AllocationRetryExceeded(
            f"every issuance attempt for {claimant} collided with an existing nonce"
        )


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _consume_result(task: "asyncio.Future") -> None:
    # An abandoned insert finishes after its waiter left; retrieve its error.
    if not task.cancelled():
        task.exception()

"""
Nonce Allocators

Produce a fresh nonce per voucher request so that no two vouchers for the
same claimant share one. Two strategies are available; a deployment picks
one through ``NONCE_STRATEGY`` and never mixes them:

``RandomNonceAllocator`` (default)
    Draws ``bits`` random bits (64 or more) and checks the store before
    accepting the value. Needs no counter state.

``SequentialNonceAllocator``
    Returns ``max(issued nonces for claimant) + 1``, starting at 1. The
    counter is the voucher ledger itself, so it survives restarts and is
    shared by every process on the same database.

Both rely on the store's conditional insert as the final arbiter: a value
that loses a race is rejected at ``put`` time and the issuance service asks
for another.
"""

import asyncio
import logging
import secrets
from abc import ABC, abstractmethod

from .hashing import UINT256_MAX
from ..engine.exceptions import AllocationRetryExceeded, ConfigurationError, NonceExhausted
from ..store.repository import VoucherStore

logger = logging.getLogger(__name__)

MIN_RANDOM_NONCE_BITS = 64
MAX_RANDOM_NONCE_BITS = 256


class NonceAllocator(ABC):
    """Interface shared by the nonce strategies."""

    strategy: str = ""

    def __init__(self, store: VoucherStore) -> None:
        self.store = store

    @abstractmethod
    async def allocate(self, claimant: str) -> int:
        """
        Return a nonce never issued to ``claimant`` before.

        Args:
            claimant: Checksummed claimant address.
        """


class RandomNonceAllocator(NonceAllocator):
    """
    Collision-resistant random nonces, verified against the store.

    Args:
        store: Voucher store used for the collision check.
        bits: Nonce width in bits (64..256).
        max_attempts: Draws before giving up with ``AllocationRetryExceeded``.
    """

    strategy = "random"

    def __init__(self, store: VoucherStore, *, bits: int = 64, max_attempts: int = 3) -> None:
        if not MIN_RANDOM_NONCE_BITS <= bits <= MAX_RANDOM_NONCE_BITS:
            raise ConfigurationError(
                f"nonce width must be between {MIN_RANDOM_NONCE_BITS} and {MAX_RANDOM_NONCE_BITS} bits"
            )
        if max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        super().__init__(store)
        self.bits = bits
        self.max_attempts = max_attempts

    def draw(self) -> int:
        return secrets.randbits(self.bits)

    async def allocate(self, claimant: str) -> int:
        for attempt in range(1, self.max_attempts + 1):
            nonce = self.draw()
            if not await asyncio.to_thread(self.store.exists_nonce, claimant, nonce):
                return nonce
            logger.warning("Nonce collision for %s (attempt %d/%d)", claimant, attempt, self.max_attempts)
        raise AllocationRetryExceeded(
            f"no unused nonce for {claimant} after {self.max_attempts} attempts"
        )


class SequentialNonceAllocator(NonceAllocator):
    """
    Strictly increasing per-claimant nonces derived from the ledger.

    Holds no state of its own. Concurrent requests for one claimant may read
    the same maximum; the store's primary key lets exactly one of them
    persist and the issuance service retries the others with a fresh read.
    """

    strategy = "sequential"

    async def allocate(self, claimant: str) -> int:
        current = await asyncio.to_thread(self.store.max_nonce, claimant) or 0
        if current >= UINT256_MAX:
            raise NonceExhausted(f"nonce counter for {claimant} is exhausted")
        return current + 1


def create_nonce_allocator(
    strategy: str,
    store: VoucherStore,
    *,
    bits: int = 64,
    max_attempts: int = 3,
) -> NonceAllocator:
    """
    Build the allocator named by ``strategy`` (``"random"`` or ``"sequential"``).

    Raises:
        ConfigurationError: If the strategy is unknown.
    """
    normalized = strategy.strip().lower()
    if normalized == RandomNonceAllocator.strategy:
        return RandomNonceAllocator(store, bits=bits, max_attempts=max_attempts)
    if normalized == SequentialNonceAllocator.strategy:
        return SequentialNonceAllocator(store)
    raise ConfigurationError(f"unknown nonce strategy: {strategy!r}")

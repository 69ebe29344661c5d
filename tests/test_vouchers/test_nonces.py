"""
Test suite for the nonce allocators.
"""
import asyncio
from unittest.mock import MagicMock

import pytest
from eth_utils import to_checksum_address

from conftest import CLAIMANT
from voucher_signer.engine.exceptions import AllocationRetryExceeded, ConfigurationError, NonceExhausted
from voucher_signer.vouchers.hashing import UINT256_MAX
from voucher_signer.vouchers.nonces import (
    RandomNonceAllocator,
    SequentialNonceAllocator,
    create_nonce_allocator,
)


@pytest.mark.asyncio
async def test_random_nonce_width():
    store = MagicMock()
    store.exists_nonce.return_value = False
    allocator = RandomNonceAllocator(store, bits=64)

    nonces = {await allocator.allocate(CLAIMANT) for _ in range(50)}

    assert all(0 <= n < 2**64 for n in nonces)
    assert len(nonces) == 50
    assert store.exists_nonce.call_count == 50


@pytest.mark.asyncio
async def test_random_nonce_skips_collision():
    store = MagicMock()
    store.exists_nonce.side_effect = [True, False]
    allocator = RandomNonceAllocator(store, max_attempts=3)

    await allocator.allocate(CLAIMANT)

    assert store.exists_nonce.call_count == 2


@pytest.mark.asyncio
async def test_random_nonce_retry_exceeded():
    store = MagicMock()
    store.exists_nonce.return_value = True
    allocator = RandomNonceAllocator(store, max_attempts=3)

    with pytest.raises(AllocationRetryExceeded):
        await allocator.allocate(CLAIMANT)
    assert store.exists_nonce.call_count == 3


@pytest.mark.parametrize("bits", [32, 63, 257])
def test_random_nonce_width_bounds(bits):
    with pytest.raises(ConfigurationError):
        RandomNonceAllocator(MagicMock(), bits=bits)


@pytest.mark.asyncio
async def test_sequential_starts_at_one(memory_store):
    allocator = SequentialNonceAllocator(memory_store)
    assert await allocator.allocate(CLAIMANT) == 1


@pytest.mark.asyncio
async def test_sequential_follows_store():
    store = MagicMock()
    store.max_nonce.return_value = 41
    allocator = SequentialNonceAllocator(store)

    assert await allocator.allocate(CLAIMANT) == 42
    # Nothing is persisted yet, so the ledger still says 41.
    assert await allocator.allocate(CLAIMANT) == 42

    store.max_nonce.return_value = 42
    assert await allocator.allocate(CLAIMANT) == 43


@pytest.mark.asyncio
async def test_sequential_keeps_no_per_claimant_state():
    store = MagicMock()
    store.max_nonce.return_value = None
    allocator = SequentialNonceAllocator(store)

    claimants = [to_checksum_address(f"0x{i:040x}") for i in range(1, 201)]
    nonces = await asyncio.gather(*(allocator.allocate(c) for c in claimants))

    assert set(nonces) == {1}
    assert vars(allocator) == {"store": store}


@pytest.mark.asyncio
async def test_sequential_exhausted():
    store = MagicMock()
    store.max_nonce.return_value = UINT256_MAX
    allocator = SequentialNonceAllocator(store)

    with pytest.raises(NonceExhausted):
        await allocator.allocate(CLAIMANT)


def test_factory(memory_store):
    assert isinstance(create_nonce_allocator("random", memory_store), RandomNonceAllocator)
    assert isinstance(create_nonce_allocator(" Sequential ", memory_store), SequentialNonceAllocator)
    with pytest.raises(ConfigurationError):
        create_nonce_allocator("counter", memory_store)

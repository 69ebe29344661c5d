"""
Shared fixtures: a fixed signing key, canonical addresses and voucher stores.
"""
import time

import pytest
from eth_utils import to_checksum_address

from voucher_signer.store import VoucherStore, create_store_engine, drop_tables
from voucher_signer.vouchers import VoucherSigner

# Well-known development key (never funded on a real network).
SIGNER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SIGNER_ADDRESS = to_checksum_address("0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266")

OTHER_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"

CLAIMANT = to_checksum_address("0x70997970c51812dc3a010c7d01b50e0d17dc79c8")
TOKEN = to_checksum_address("0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc")


@pytest.fixture
def signer():
    return VoucherSigner.load(SIGNER_KEY)


@pytest.fixture
def unavailable_signer():
    return VoucherSigner.load(None)


@pytest.fixture
def memory_store():
    engine = create_store_engine("sqlite://")
    yield VoucherStore.from_engine(engine)
    drop_tables(engine)
    engine.dispose()


@pytest.fixture
def file_store(tmp_path):
    """File-backed store; safe for truly concurrent writers."""
    engine = create_store_engine(f"sqlite:///{tmp_path / 'vouchers.db'}")
    yield VoucherStore.from_engine(engine)
    engine.dispose()


@pytest.fixture
def future_expiry():
    return int(time.time()) + 300

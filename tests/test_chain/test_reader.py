"""
Test suite for the airdrop contract reader (contract calls mocked).
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import CLAIMANT, SIGNER_ADDRESS, TOKEN
from voucher_signer.chain import AirdropContractReader, get_airdrop_read_abi
from voucher_signer.engine.exceptions import BlockchainInteractionError


@pytest.fixture
def reader():
    w3 = MagicMock()
    reader = AirdropContractReader(w3, TOKEN.lower())
    w3.eth.contract.assert_called_once_with(address=TOKEN, abi=get_airdrop_read_abi())
    return reader


def test_abi_has_views():
    names = {entry["name"] for entry in get_airdrop_read_abi()}
    assert names == {"nonceUsed", "signer"}


@pytest.mark.asyncio
async def test_nonce_used(reader):
    reader.contract.functions.nonceUsed.return_value.call = AsyncMock(return_value=True)

    assert await reader.nonce_used(CLAIMANT.lower(), 42) is True
    reader.contract.functions.nonceUsed.assert_called_once_with(CLAIMANT, 42)


@pytest.mark.asyncio
async def test_contract_signer(reader):
    reader.contract.functions.signer.return_value.call = AsyncMock(return_value=SIGNER_ADDRESS.lower())
    assert await reader.contract_signer() == SIGNER_ADDRESS


@pytest.mark.asyncio
async def test_rpc_failure(reader):
    failing = AsyncMock(side_effect=ConnectionError("node unreachable"))
    reader.contract.functions.nonceUsed.return_value.call = failing
    reader.contract.functions.signer.return_value.call = failing

    with pytest.raises(BlockchainInteractionError):
        await reader.nonce_used(CLAIMANT, 1)

    assert await reader.nonce_used_or_none(CLAIMANT, 1) is None
    assert await reader.contract_signer_or_none() is None

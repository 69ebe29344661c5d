"""
Airdrop Contract Reader

Read-only, informational access to the airdrop contract over JSON-RPC. The
contract is the authoritative replay guard: it marks ``(claimant, nonce)`` as
consumed when a voucher is redeemed. This service never mirrors that state
into its own store; it only reports it when asked.

Failures never propagate to HTTP callers. The ``*_or_none`` helpers log and
return ``None`` (unknown) when the node is unreachable or the call reverts.
"""

import logging
from typing import Any, Optional

from web3 import AsyncWeb3

from .AIRDROP_ABI import get_airdrop_read_abi
from ..engine.exceptions import BlockchainInteractionError

logger = logging.getLogger(__name__)


class AirdropContractReader:
    """
    Thin wrapper over the airdrop contract's view functions.

    Args:
        w3: ``AsyncWeb3`` instance connected to the contract's chain.
        contract_address: Airdrop contract address.

    Example::

        reader = AirdropContractReader.from_rpc_url(rpc_url, airdrop_address)
        used = await reader.nonce_used_or_none(claimant, nonce)
    """

    def __init__(self, w3: AsyncWeb3, contract_address: str) -> None:
        self.w3 = w3
        self.contract_address = AsyncWeb3.to_checksum_address(contract_address)
        self.contract = w3.eth.contract(address=self.contract_address, abi=get_airdrop_read_abi())

    @classmethod
    def from_rpc_url(cls, rpc_url: str, contract_address: str) -> "AirdropContractReader":
        """Connect over HTTP to ``rpc_url``."""
        return cls(AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url)), contract_address)

    async def _call(self, name: str, *args: Any) -> Any:
        try:
            return await getattr(self.contract.functions, name)(*args).call()
        except Exception as e:
            raise BlockchainInteractionError(f"{name} call failed: {type(e).__name__}") from e

    async def nonce_used(self, claimant: str, nonce: int) -> bool:
        """
        Whether the contract has consumed ``nonce`` for ``claimant``.

        Raises:
            BlockchainInteractionError: If the RPC call fails.
        """
        return bool(await self._call("nonceUsed", AsyncWeb3.to_checksum_address(claimant), nonce))

    async def contract_signer(self) -> str:
        """
        Signer address the contract verifies vouchers against.

        Raises:
            BlockchainInteractionError: If the RPC call fails.
        """
        return AsyncWeb3.to_checksum_address(await self._call("signer"))

    async def nonce_used_or_none(self, claimant: str, nonce: int) -> Optional[bool]:
        try:
            return await self.nonce_used(claimant, nonce)
        except BlockchainInteractionError as e:
            logger.warning("On-chain nonce status unavailable: %s", e)
            return None

    async def contract_signer_or_none(self) -> Optional[str]:
        try:
            return await self.contract_signer()
        except BlockchainInteractionError as e:
            logger.warning("On-chain signer unavailable: %s", e)
            return None

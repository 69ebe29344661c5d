"""
Voucher Signing Service HTTP Client

Async client for the signing service, built on httpx. Used by backends that
request vouchers on behalf of users and by operators checking issued ones.
"""

from typing import Any, Dict, Optional, Union

import httpx

from ..engine.exceptions import VoucherRequestError
from ..schemas.https import GenerateSignatureRequest, VerifySignatureRequest
from ..schemas.vouchers import Voucher

IntLike = Union[int, str]


class VoucherClient(httpx.AsyncClient):
    """
    Extended httpx.AsyncClient with typed calls to the signing service.

    Fully compatible with httpx.AsyncClient - supports all methods, properties,
    and can be used as an async context manager. uint256 values are always
    sent as decimal strings so they survive JSON number precision limits.

    Usage:
        ```python
        async with VoucherClient(base_url="http://localhost:8000") as client:
            voucher = await client.generate(claimant, token, 1_000_000, expire_at)
            result = await client.verify_voucher(voucher)
        ```
    """

    def __init__(self, **kwargs):
        """
        Args:
            **kwargs: All standard httpx.AsyncClient arguments (base_url, timeout, transport, etc.)
        """
        super().__init__(**kwargs)

    # =========================================================================
    # Signatures
    # =========================================================================

    async def generate(
        self,
        claimant: str,
        token: str,
        amount: IntLike,
        expire_at: IntLike,
    ) -> Voucher:
        """
        Request a signed voucher.

        Returns:
            The issued ``Voucher``.

        Raises:
            VoucherRequestError: If the service rejects the request.
        """
        body = GenerateSignatureRequest(
            claimant=claimant, token=token, amount=amount, expire_at=expire_at
        )
        response = await self.post("/signatures/generate", json=self._uint_body(body.to_wire()))
        return Voucher.model_validate(self._json_or_raise(response))

    async def verify(
        self,
        claimant: str,
        token: str,
        amount: IntLike,
        nonce: IntLike,
        expire_at: IntLike,
        signature: str,
    ) -> Dict[str, Any]:
        """
        Re-check a voucher signature.

        Returns:
            Response body: ``isValid``, ``recoveredSigner``, ``expectedSigner``,
            ``messageHash``, ``isExpired``.
        """
        body = VerifySignatureRequest(
            claimant=claimant,
            token=token,
            amount=amount,
            nonce=nonce,
            expire_at=expire_at,
            signature=signature,
        )
        response = await self.post("/signatures/verify", json=self._uint_body(body.to_wire()))
        return self._json_or_raise(response)

    async def verify_voucher(self, voucher: Voucher) -> Dict[str, Any]:
        """Re-check a voucher previously returned by :meth:`generate`."""
        return await self.verify(
            voucher.claimant,
            voucher.token,
            voucher.amount,
            voucher.nonce,
            voucher.expire_at,
            voucher.signature,
        )

    async def signer_info(self) -> Dict[str, Any]:
        return self._json_or_raise(await self.get("/signatures/signer"))

    # =========================================================================
    # Lookups
    # =========================================================================

    async def claimant_vouchers(self, claimant: str, limit: int = 100) -> Dict[str, Any]:
        response = await self.get(f"/signatures/claimants/{claimant}", params={"limit": limit})
        return self._json_or_raise(response)

    async def stored_voucher(self, claimant: str, nonce: IntLike) -> Optional[Dict[str, Any]]:
        """
        Fetch one stored voucher.

        Returns:
            Voucher body with ``nonceUsedOnChain``, or ``None`` if not issued.
        """
        response = await self.get(f"/signatures/claimants/{claimant}/{nonce}")
        if response.status_code == 404:
            return None
        return self._json_or_raise(response)

    async def is_healthy(self) -> bool:
        response = await self.get("/health")
        return response.status_code == 200

    # =========================================================================
    # Utility Methods
    # =========================================================================

    @staticmethod
    def _uint_body(body: Dict[str, Any]) -> Dict[str, Any]:
        for key in ("amount", "nonce", "expireAt"):
            if key in body:
                body[key] = str(body[key])
        return body

    @staticmethod
    def _json_or_raise(response: httpx.Response) -> Dict[str, Any]:
        """
        Return the JSON body of a successful response.

        Raises:
            VoucherRequestError: For any non-2xx response.
        """
        if response.is_success:
            return response.json()

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        raise VoucherRequestError(
            status_code=response.status_code,
            error_kind=payload.get("error", "unknown"),
            message=payload.get("message", ""),
            field=payload.get("field"),
        )

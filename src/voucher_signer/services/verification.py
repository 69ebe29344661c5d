"""
Voucher Verification Service

Checks a voucher signature against the service's own signer address, the
same address the airdrop contract is configured with.
"""

import time
from typing import Callable

from ..schemas.vouchers import VoucherVerificationResult
from ..vouchers.signatures import VoucherSigner
from ..vouchers.verifies import verify_voucher


class VerificationService:
    """
    Off-chain voucher verification bound to the service signer.

    Args:
        signer: Service signer; its address is the expected signer.
        clock: Returns the current unix time, used for ``is_expired``.
    """

    def __init__(self, signer: VoucherSigner, clock: Callable[[], float] = time.time) -> None:
        self.signer = signer
        self.clock = clock

    def verify(
        self,
        claimant: str,
        token: str,
        amount: int,
        nonce: int,
        expire_at: int,
        signature: str,
    ) -> VoucherVerificationResult:
        """
        Verify ``signature`` over the given voucher fields.

        Raises:
            SigningUnavailable: If the service signer is not loaded.
            InvalidInputKind: If any field is malformed.
        """
        return verify_voucher(
            claimant=claimant,
            token=token,
            amount=amount,
            nonce=nonce,
            expire_at=expire_at,
            signature=signature,
            expected_signer=self.signer.address,
            current_time=int(self.clock()),
        )

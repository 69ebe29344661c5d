"""
HTTP Request/Response Schema Models for the Voucher Signing Service

This module defines the Pydantic models used for HTTP communication between
the dApp frontend and the signing service. Field names are camelCase on the
wire and snake_case in Python.

The main flow consists of:
1. Frontend submits a claim request (POST /signatures/generate)
2. Service returns the signed voucher
3. Frontend calls ``claimTokens`` on the airdrop contract with those fields
4. Optionally, anyone re-checks a voucher (POST /signatures/verify)

uint256 fields (``amount``, ``nonce``, ``expireAt``) accept either JSON
integers or decimal strings, since values above 2**53 do not survive a
JavaScript number. Responses always return them as decimal strings.
"""

import re
from typing import Annotated, Any, List, Optional

from pydantic import BeforeValidator, Field

from .bases import WireModel
from .vouchers import Voucher

_DECIMAL = re.compile(r"^-?[0-9]+$")


def parse_uint_value(value: Any) -> int:
    """
    Accept an int or a decimal string and return an int.

    Range checks (non-negative, 256-bit) are left to the services so that the
    caller gets the field-specific reason.

    Raises:
        ValueError: For floats, booleans, hex or non-numeric strings.
    """
    if isinstance(value, bool):
        raise ValueError("must be an integer or decimal string")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _DECIMAL.match(value.strip()):
        return int(value.strip())
    raise ValueError("must be an integer or decimal string")


UintValue = Annotated[int, BeforeValidator(parse_uint_value)]


# ============================================================================
# Requests
# ============================================================================

class GenerateSignatureRequest(WireModel):
    """Claim request submitted by the dApp.

    Attributes:
        claimant: Address that will redeem the voucher.
        token: ERC-20 token being airdropped.
        amount: Amount in the token's smallest unit.
        expire_at: Unix timestamp at which the voucher stops being valid.
    """
    claimant: str = Field(..., description="Claimant address")
    token: str = Field(..., description="Airdropped token address")
    amount: UintValue = Field(..., description="Amount in the token's smallest unit")
    expire_at: UintValue = Field(..., description="Voucher expiry (unix seconds)")


class VerifySignatureRequest(WireModel):
    """Voucher fields plus the signature to re-check."""
    claimant: str
    token: str
    amount: UintValue
    nonce: UintValue
    expire_at: UintValue
    signature: str


# ============================================================================
# Responses
# ============================================================================

class SignerInfoResponse(WireModel):
    """Service signer and, when configured, the contract's signer.

    Attributes:
        signer_address: Address derived from the service key.
        contract_address: Airdrop contract, if configured.
        contract_signer: ``signer()`` read from the contract, or None if unknown.
        signer_matches_contract: Comparison of the two, or None if unknown.
    """
    signer_address: str
    contract_address: Optional[str] = None
    contract_signer: Optional[str] = None
    signer_matches_contract: Optional[bool] = None


class StoredVoucherResponse(WireModel):
    """A stored voucher with its on-chain redemption status."""
    voucher: Voucher
    nonce_used_on_chain: Optional[bool] = Field(
        None, description="True/False when the contract was reachable, None otherwise"
    )

    def to_response(self) -> dict:
        body = self.voucher.to_wire()
        body["nonceUsedOnChain"] = self.nonce_used_on_chain
        return body


class ClaimantVouchersResponse(WireModel):
    """Vouchers issued to one claimant, newest first."""
    claimant: str
    count: int
    vouchers: List[Voucher]


class HealthResponse(WireModel):
    status: str
    reason: Optional[str] = None

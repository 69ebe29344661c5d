"""
Base Schema Models for the Voucher Signing Service

This module defines the fundamental base classes that the other schema
models inherit from. It provides the foundation for type safety, validation
and consistent serialization across the service.

Core Classes:
    - CanonicalModel: Pydantic base model with deterministic JSON serialization
    - WireModel: CanonicalModel that speaks camelCase on the wire
    - VerificationStatus: Outcome codes for voucher verification
    - BaseVerificationResult: Abstract verification result model

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from abc import ABC
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware current time, used for record timestamps."""
    return datetime.now(timezone.utc)


class CanonicalModel(BaseModel):
    """
    Pydantic base model with canonical JSON serialization.

    Ensures a deterministic JSON representation (sorted keys, no extra
    whitespace) suitable for hashing, logging and audit comparison.

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        MyModel(name="test", value=123).to_canonical_json()
        # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        """
        Convert model to a canonical JSON string.

        ``model_dump(mode="json")`` converts datetimes and enums to plain
        types; ``json.dumps`` with sorted keys and compact separators makes
        the output stable.

        Returns:
            str: JSON string with sorted keys and no extra whitespace.
        """
        data = self.model_dump(mode="json", by_alias=True)
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )


class WireModel(CanonicalModel):
    """
    Canonical model whose JSON field names are camelCase.

    Accepts both ``expireAt`` and ``expire_at`` on input and serializes with
    camelCase aliases, matching what the dApp sends and expects.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with camelCase keys and JSON-compatible values."""
        return self.model_dump(mode="json", by_alias=True)


class VerificationStatus(str, Enum):
    """
    Enumeration of possible verification result statuses.

    Attributes:
        SUCCESS: Signature recovers to the service signer
        SIGNER_MISMATCH: Signature recovers to a different address
        UNRECOVERABLE: Signature is well-formed but no signer can be recovered
        NONCANONICAL_V: Recovery byte is 0 or 1; the contract requires 27 or 28
    """
    SUCCESS = "success"
    SIGNER_MISMATCH = "signer_mismatch"
    UNRECOVERABLE = "unrecoverable"
    NONCANONICAL_V = "noncanonical_v"


class BaseVerificationResult(CanonicalModel, ABC):
    """
    Abstract base class for signature verification results.

    Attributes:
        status: Verification result status (VerificationStatus enum)
        is_valid: Boolean indicating if verification was successful
        message: Human-readable status message
        error_details: Detailed error information if verification failed
        verified_at: Timestamp when verification was performed
    """

    status: VerificationStatus = Field(..., description="Verification result status")
    is_valid: bool = Field(..., description="Whether the signature is valid")
    message: str = Field(..., description="Human-readable status message")
    error_details: Optional[Dict[str, Any]] = Field(None, description="Detailed error information")
    verified_at: datetime = Field(default_factory=utcnow, description="Verification timestamp")

    def is_success(self) -> bool:
        """
        Check if verification was successful.

        Returns:
            bool: True if verification was successful, False otherwise.
        """
        return self.is_valid and self.status == VerificationStatus.SUCCESS

    def get_error_message(self) -> Optional[str]:
        """
        Get formatted error message from verification result.

        Returns:
            Optional[str]: Error message if verification failed, None if successful.
        """
        if self.is_success():
            return None

        error_msg = f"Verification failed: {self.message}"
        if self.error_details:
            details_str = json.dumps(self.error_details, indent=2)
            error_msg += f"\nDetails: {details_str}"
        return error_msg

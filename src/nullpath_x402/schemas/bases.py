"""
Shared pydantic bases for payment value objects.

Every requirements, payload and receipt model derives from ``CanonicalModel``;
verification outcomes are reported as a ``VerificationResult``.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CanonicalModel(BaseModel):
    """
    Frozen base model for data parsed from, or sent over, the wire.

    Instances live for a single 402 exchange and are never mutated. Fields can
    be populated by attribute name or by their wire alias. Token amounts are
    plain ``int`` so values beyond 2**53 stay exact.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class VerificationStatus(str, Enum):
    """Why an ``X-PAYMENT`` payload was accepted or refused."""
    SUCCESS = "success"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"
    NOT_YET_VALID = "not_yet_valid"
    TERMS_MISMATCH = "terms_mismatch"


class VerificationResult(CanonicalModel):
    status: VerificationStatus
    is_valid: bool
    message: str = Field(..., description="Short reason suitable for a 402 body")
    authorizer: Optional[str] = Field(None, description="Signer recovered from the signature")

    def is_success(self) -> bool:
        return self.is_valid and self.status == VerificationStatus.SUCCESS

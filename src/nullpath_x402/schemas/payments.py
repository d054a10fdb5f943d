"""
x402 Payment Schema Models

Pydantic models for the two headers exchanged in the x402 flow:

1. Server -> client, on 402: ``X-PAYMENT-REQUIRED`` carries base64 JSON that
   parses into ``PaymentRequirements``.
2. Client -> server, on retry: ``X-PAYMENT`` carries base64 JSON of
   ``PaymentPayload``; every numeric field is a decimal string.
"""

from typing import Literal, Optional

from pydantic import Field

from .bases import CanonicalModel

ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"
DECIMAL_PATTERN = r"^[0-9]+$"


class PaymentRequirements(CanonicalModel):
    """
    Validated payment requirements from one 402 response.

    Attributes:
        recipient: Address to pay.
        amount: Amount in atomic units (arbitrary precision).
        asset: Stablecoin contract address.
        network: Numeric chain id.
        valid_after: Unix timestamp the authorization becomes valid.
        valid_before: Unix timestamp the authorization expires (exclusive).
    """

    recipient: str = Field(..., pattern=ADDRESS_PATTERN, description="Recipient wallet address")
    amount: int = Field(..., ge=0, description="Amount in atomic USDC units")
    asset: str = Field(..., pattern=ADDRESS_PATTERN, description="USDC contract address")
    network: int = Field(..., ge=1, description="Chain id (8453 for Base)")
    valid_after: int = Field(..., alias="validAfter", ge=0)
    valid_before: int = Field(..., alias="validBefore", ge=0)


class PaymentPayload(CanonicalModel):
    """
    Wire form of a signed authorization, sent in the ``X-PAYMENT`` header.

    Field order is the serialization order.
    """

    signature: str
    sender: str = Field(..., alias="from")
    recipient: str = Field(..., alias="to")
    value: str = Field(..., pattern=DECIMAL_PATTERN)
    valid_after: str = Field(..., alias="validAfter", pattern=DECIMAL_PATTERN)
    valid_before: str = Field(..., alias="validBefore", pattern=DECIMAL_PATTERN)
    nonce: str


class PaymentReceipt(CanonicalModel):
    """
    Record of a completed payment, attached to the final response as
    ``response.extensions["x402_payment"]``.

    Attributes:
        method: Backend that paid (``local`` or ``delegate``)
        sender: Paying address, when known
        transaction_hash: Settlement reference reported by the delegate
    """

    method: Literal["local", "delegate"]
    sender: Optional[str] = Field(None, alias="from")
    transaction_hash: Optional[str] = Field(None, alias="transactionHash")

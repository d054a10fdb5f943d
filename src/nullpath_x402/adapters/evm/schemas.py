"""
EVM Adapter Schema Models

Pydantic value objects for EIP-3009 ``transferWithAuthorization`` signing.

Classes:
    - TransferAuthorizationParams: Unsigned authorization fields
      (from, to, value, validity window, nonce).
    - SignedTransferAuthorization: The params plus the 65-byte signature and
      its decomposed (v, r, s) components.

All amounts and timestamps are Python ``int`` so values above 2**53 survive
unchanged; they only become decimal strings on the wire.
"""

from pydantic import Field

from ...schemas.bases import CanonicalModel


ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"
BYTES32_PATTERN = r"^0x[0-9a-fA-F]{64}$"

SIGNATURE_BYTES = 65
SIGNATURE_HEX_LENGTH = 2 + SIGNATURE_BYTES * 2


class TransferAuthorizationParams(CanonicalModel):
    """
    Unsigned EIP-3009 authorization.

    Attributes:
        sender: Address authorizing the transfer (``from``); must be the signer's address.
        recipient: Address receiving the tokens (``to``).
        value: Amount in atomic units (6 decimals for USDC).
        valid_after: Unix timestamp after which the authorization is valid.
        valid_before: Unix timestamp before which the authorization must be used.
        nonce: Random bytes32 hex string, unique per authorization.
    """

    sender: str = Field(..., alias="from", pattern=ADDRESS_PATTERN)
    recipient: str = Field(..., alias="to", pattern=ADDRESS_PATTERN)
    value: int = Field(..., ge=0)
    valid_after: int = Field(..., alias="validAfter", ge=0)
    valid_before: int = Field(..., alias="validBefore", ge=0)
    nonce: str = Field(..., pattern=BYTES32_PATTERN)


class SignedTransferAuthorization(TransferAuthorizationParams):
    """
    Signed EIP-3009 authorization ready to hand to a settling server.

    Attributes:
        signature: 0x-prefixed 65-byte signature (``r || s || v``).
        v: Recovery id (27 or 28).
        r: r component, 0x-prefixed 32 bytes.
        s: s component, 0x-prefixed 32 bytes.
    """

    signature: str = Field(..., pattern=r"^0x[0-9a-fA-F]{130}$")
    v: int = Field(..., ge=0, le=255)
    r: str = Field(..., pattern=BYTES32_PATTERN)
    s: str = Field(..., pattern=BYTES32_PATTERN)

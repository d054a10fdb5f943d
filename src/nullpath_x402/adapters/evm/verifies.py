"""
EVM Signature Verification Helpers

Off-chain check of an ``X-PAYMENT`` payload against the requirements it was
built for. Reconstructs the EIP-712 struct for the USDC deployment of the
requirement's network, recovers the signer from the 65-byte signature and
confirms it equals the payload's ``from`` address.

This is what a settling server does before submitting
``transferWithAuthorization``; the client uses it in its own test paywall.
No RPC calls are made.
"""

import time
from typing import Optional

from eth_account import Account
from eth_account.messages import encode_typed_data

from ...schemas.bases import VerificationResult, VerificationStatus
from ...schemas.payments import PaymentPayload, PaymentRequirements
from .constants import get_chain_config
from .schemas import SIGNATURE_HEX_LENGTH
from .standards import EIP712Domain, ERC3009TypedData, TransferWithAuthorizationMessage


def _result(status: VerificationStatus, message: str, authorizer: Optional[str] = None) -> VerificationResult:
    return VerificationResult(
        status=status,
        is_valid=status == VerificationStatus.SUCCESS,
        message=message,
        authorizer=authorizer,
    )


def recover_authorizer(payload: PaymentPayload, chain_id: int) -> str:
    """
    Recover the address that signed ``payload`` for USDC on ``chain_id``.

    Raises:
        KeyError: Unsupported chain
        ValueError: Malformed signature
    """
    if len(payload.signature) != SIGNATURE_HEX_LENGTH:
        raise ValueError(f"Signature must be {SIGNATURE_HEX_LENGTH} characters")

    typed_data = ERC3009TypedData(
        domain=EIP712Domain.for_usdc(get_chain_config(chain_id)),
        message=TransferWithAuthorizationMessage(
            sender=payload.sender,
            recipient=payload.recipient,
            value=int(payload.value),
            validAfter=int(payload.valid_after),
            validBefore=int(payload.valid_before),
            nonce=payload.nonce,
        ),
    )
    signable = encode_typed_data(full_message=typed_data.to_dict())
    return Account.recover_message(signable, signature=bytes.fromhex(payload.signature[2:]))


def verify_payment_payload(
    payload: PaymentPayload,
    requirements: PaymentRequirements,
    now: Optional[int] = None,
) -> VerificationResult:
    """
    Verify a decoded ``X-PAYMENT`` payload against the requirements.

    Checks, in order: recipient and amount match, the validity window
    contains ``now``, and the signature recovers to ``payload.sender``.

    Args:
        payload: Decoded payment header
        requirements: Requirements that were advertised in the 402
        now: Current unix time (defaults to the system clock)

    Returns:
        VerificationResult; never raises for bad input
    """
    current = int(time.time()) if now is None else now

    if payload.recipient.lower() != requirements.recipient.lower():
        return _result(VerificationStatus.TERMS_MISMATCH, "Recipient does not match requirements")
    if int(payload.value) != requirements.amount:
        return _result(VerificationStatus.TERMS_MISMATCH, "Amount does not match requirements")
    if int(payload.valid_before) <= current:
        return _result(VerificationStatus.EXPIRED, "Authorization expired")
    if int(payload.valid_after) > current:
        return _result(VerificationStatus.NOT_YET_VALID, "Authorization not yet valid")

    try:
        recovered = recover_authorizer(payload, requirements.network)
    except Exception as exc:
        return _result(VerificationStatus.INVALID_SIGNATURE, f"Cannot recover signer: {exc}")

    if recovered.lower() != payload.sender.lower():
        return _result(VerificationStatus.INVALID_SIGNATURE, "Signer does not match from address", recovered)
    return _result(VerificationStatus.SUCCESS, "Payment authorization verified", recovered)

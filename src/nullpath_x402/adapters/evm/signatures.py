"""
EVM Off-Chain Signing Utilities

Local EIP-712 signing of EIP-3009 ``transferWithAuthorization`` for x402
payments, and the ``X-PAYMENT`` header codec. All cryptographic operations
run in-process through ``eth_account``; no RPC calls are made.

Exported helpers
----------------
generate_nonce
    Fresh random bytes32 nonce (never sequential, never reused).

sign_transfer_authorization
    Sign prepared params with a ``WalletIdentity`` and decompose the
    signature into (v, r, s).

sign_payment
    Check requirements against the identity, build params with a fresh nonce
    and sign. Any signing failure surfaces as ``PaymentSigningError``.

encode_payment_header / decode_payment_header
    Base64 JSON codec for the ``X-PAYMENT`` header.
"""

import base64
import binascii
import json
import logging
import os
import time
from typing import Optional

from pydantic import ValidationError

from ...engine.exceptions import PaymentSigningError, RequirementsMismatchError
from ...schemas.payments import PaymentPayload, PaymentRequirements
from .constants import DEFAULT_VALIDITY_SECONDS, EvmChainConfig, usd_to_atomic_usdc
from .schemas import SIGNATURE_HEX_LENGTH, SignedTransferAuthorization, TransferAuthorizationParams
from .standards import EIP712Domain, ERC3009TypedData, TransferWithAuthorizationMessage
from .wallet import WalletIdentity

logger = logging.getLogger(__name__)


def generate_nonce() -> str:
    """Return a cryptographically random 32-byte nonce as 0x-prefixed hex."""
    return "0x" + os.urandom(32).hex()


# ---------------------------------------------------------------------------
# Typed-data builder
# ---------------------------------------------------------------------------

def build_transfer_typed_data(
    params: TransferAuthorizationParams,
    chain: EvmChainConfig,
) -> ERC3009TypedData:
    """
    Wrap authorization params in the EIP-712 envelope for ``chain``'s USDC.

    The domain is ``{name, version, chainId, verifyingContract=asset}`` as
    registered in the token contract.
    """
    message = TransferWithAuthorizationMessage(
        sender=params.sender,
        recipient=params.recipient,
        value=params.value,
        validAfter=params.valid_after,
        validBefore=params.valid_before,
        nonce=params.nonce,
    )
    return ERC3009TypedData(domain=EIP712Domain.for_usdc(chain), message=message)


def create_transfer_authorization_params(
    sender: str,
    recipient: str,
    amount_usd,
    validity_seconds: int = DEFAULT_VALIDITY_SECONDS,
) -> TransferAuthorizationParams:
    """
    Build params valid from now for ``validity_seconds`` with a fresh nonce.

    Args:
        sender: Sender address
        recipient: Recipient address
        amount_usd: Amount in USD (converted to atomic units without floats)
        validity_seconds: Lifetime of the authorization (default 5 minutes)
    """
    return TransferAuthorizationParams(
        sender=sender,
        recipient=recipient,
        value=usd_to_atomic_usdc(amount_usd),
        valid_after=0,
        valid_before=int(time.time()) + validity_seconds,
        nonce=generate_nonce(),
    )


# ---------------------------------------------------------------------------
# ERC-3009 signer
# ---------------------------------------------------------------------------

def sign_transfer_authorization(
    identity: WalletIdentity,
    params: TransferAuthorizationParams,
) -> SignedTransferAuthorization:
    """
    Sign a ``TransferWithAuthorization`` message with ``identity``.

    The signature must be exactly 65 bytes; it is split as
    ``r = [0:32]``, ``s = [32:64]``, ``v = [64]``.

    Raises:
        ValueError: If ``params.sender`` is not the identity's address.
        PaymentSigningError: If the signature has an unexpected length.
    """
    if params.sender.lower() != identity.address.lower():
        raise ValueError(
            f"From address {params.sender} does not match wallet address {identity.address}"
        )

    typed_data = build_transfer_typed_data(params, identity.chain)
    signed = identity.sign_typed_data(typed_data.to_dict())

    signature = "0x" + bytes(signed.signature).hex()
    if len(signature) != SIGNATURE_HEX_LENGTH:
        raise PaymentSigningError(
            f"Unexpected signature length: {len(signature)}, expected {SIGNATURE_HEX_LENGTH}"
        )

    return SignedTransferAuthorization(
        **params.model_dump(),
        signature=signature,
        r="0x" + signature[2:66],
        s="0x" + signature[66:130],
        v=int(signature[130:132], 16),
    )


def sign_payment(
    identity: WalletIdentity,
    requirements: PaymentRequirements,
    nonce: Optional[str] = None,
) -> SignedTransferAuthorization:
    """
    Sign an EIP-3009 authorization satisfying ``requirements``.

    The requirements' network and asset must equal the identity's pair
    (addresses compared case-insensitively); otherwise nothing is signed.

    Args:
        identity: Wallet identity for this attempt
        requirements: Parsed requirements from the 402 response
        nonce: Override for tests; a fresh random nonce is used when omitted

    Returns:
        SignedTransferAuthorization

    Raises:
        RequirementsMismatchError: Network or asset mismatch
        PaymentSigningError: Any failure while signing, original cause attached
    """
    if requirements.network != identity.chain_id:
        raise RequirementsMismatchError(
            f"Payment requested on chain {requirements.network}, "
            f"but the wallet is configured for chain {identity.chain_id}"
        )
    if requirements.asset.lower() != identity.asset.lower():
        raise RequirementsMismatchError(
            f"Payment requested in asset {requirements.asset}, "
            f"but the wallet signs for {identity.asset} on chain {identity.chain_id}"
        )

    try:
        params = TransferAuthorizationParams(
            sender=identity.address,
            recipient=requirements.recipient,
            value=requirements.amount,
            valid_after=requirements.valid_after,
            valid_before=requirements.valid_before,
            nonce=nonce or generate_nonce(),
        )
        signed = sign_transfer_authorization(identity, params)
    except PaymentSigningError:
        raise
    except Exception as exc:
        raise PaymentSigningError(f"Failed to sign payment: {exc}", cause=exc) from exc

    logger.debug("Signed transfer authorization from %s on chain %s", identity.address, identity.chain_id)
    return signed


# ---------------------------------------------------------------------------
# X-PAYMENT header codec
# ---------------------------------------------------------------------------

def to_payment_payload(signed: SignedTransferAuthorization) -> PaymentPayload:
    """Flatten a signed authorization to its wire form (integers as decimal strings)."""
    return PaymentPayload(
        signature=signed.signature,
        sender=signed.sender,
        recipient=signed.recipient,
        value=str(signed.value),
        valid_after=str(signed.valid_after),
        valid_before=str(signed.valid_before),
        nonce=signed.nonce,
    )


def encode_payment_payload(payload: PaymentPayload) -> str:
    """Base64 of the compact JSON form of ``payload``."""
    data = payload.model_dump(by_alias=True)
    text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def encode_payment_header(signed: SignedTransferAuthorization) -> str:
    """
    Encode a signed authorization as the ``X-PAYMENT`` header value.

    Returns:
        Base64-encoded JSON ``{signature, from, to, value, validAfter, validBefore, nonce}``
    """
    return encode_payment_payload(to_payment_payload(signed))


def decode_payment_header(header: str) -> PaymentPayload:
    """
    Decode an ``X-PAYMENT`` header value.

    Raises:
        ValueError: If the value is not base64 JSON of a payment payload.
    """
    try:
        data = json.loads(base64.b64decode(header, validate=True).decode("utf-8"))
        return PaymentPayload.model_validate(data)
    except (binascii.Error, UnicodeDecodeError, ValidationError, ValueError) as exc:
        raise ValueError(f"Invalid X-PAYMENT header: {exc}") from exc

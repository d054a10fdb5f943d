from .constants import (
    EVM_CHAINS,
    EvmChainConfig,
    get_chain_config,
    resolve_chain_id,
    usd_to_atomic_usdc,
    atomic_usdc_to_usd,
    format_usdc_amount,
)
from .schemas import TransferAuthorizationParams, SignedTransferAuthorization
from .wallet import (
    WalletIdentity,
    create_wallet,
    is_wallet_configured,
    get_wallet_address,
)
from .signatures import (
    generate_nonce,
    create_transfer_authorization_params,
    sign_transfer_authorization,
    sign_payment,
    encode_payment_header,
    decode_payment_header,
)
from .verifies import verify_payment_payload

__all__ = [
    "EVM_CHAINS",
    "EvmChainConfig",
    "get_chain_config",
    "resolve_chain_id",
    "usd_to_atomic_usdc",
    "atomic_usdc_to_usd",
    "format_usdc_amount",
    "TransferAuthorizationParams",
    "SignedTransferAuthorization",
    "WalletIdentity",
    "create_wallet",
    "is_wallet_configured",
    "get_wallet_address",
    "generate_nonce",
    "create_transfer_authorization_params",
    "sign_transfer_authorization",
    "sign_payment",
    "encode_payment_header",
    "decode_payment_header",
    "verify_payment_payload",
]

"""
nullpath x402 client

Payment-aware HTTP client for x402 (HTTP 402 Payment Required) resources,
paying with USDC through EIP-3009 ``transferWithAuthorization`` on Base.
"""

from .config import PaymentSettings
from .engine.exceptions import PaymentError, PaymentErrorKind
from .adapters.backends import select_payment_backend
from .adapters.delegate.awal import clear_delegate_cache
from .adapters.evm.constants import format_usdc_amount
from .adapters.evm.wallet import create_wallet, get_wallet_address
from .adapters.evm.signatures import sign_payment
from .clients import (
    Http402Client,
    NullpathClient,
    fetch_with_payment,
    parse_payment_required,
)

__version__ = "0.1.0"

__all__ = [
    "PaymentSettings",
    "PaymentError",
    "PaymentErrorKind",
    "select_payment_backend",
    "clear_delegate_cache",
    "format_usdc_amount",
    "create_wallet",
    "get_wallet_address",
    "sign_payment",
    "Http402Client",
    "NullpathClient",
    "fetch_with_payment",
    "parse_payment_required",
]

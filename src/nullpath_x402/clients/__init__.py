"""
Client module for x402 payments.

Provides an httpx client that pays for 402 responses transparently, a
one-shot ``fetch_with_payment`` helper, and structured result helpers.
"""

from .http_client import Http402Client, fetch_with_payment
from .requirements import parse_payment_required
from .results import NullpathClient, paid_result, error_result

__all__ = [
    "Http402Client",
    "fetch_with_payment",
    "parse_payment_required",
    "NullpathClient",
    "paid_result",
    "error_result",
]

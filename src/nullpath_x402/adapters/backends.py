"""
Payment Backend Selection

Decides, per payment attempt, which signer handles a 402:

1. Delegate forced (``NULLPATH_USE_AWAL``): the delegate if it is ready,
   otherwise ``none``. A configured local key is deliberately ignored.
2. Delegate probe reports an authenticated CLI: ``delegate``.
3. ``NULLPATH_WALLET_KEY`` is set: ``local``.
4. Otherwise ``none``.
"""

import logging
from typing import Literal, Optional

from pydantic import BaseModel

from ..config import PaymentSettings
from .delegate.awal import DelegateStatus, DelegateStatusCache, check_delegate_status
from .evm.wallet import address_for_key

logger = logging.getLogger(__name__)

PaymentMethod = Literal["delegate", "local", "none"]


class PaymentBackendConfig(BaseModel):
    """
    Resolved signing backend for one payment attempt.

    Attributes:
        method: ``delegate``, ``local`` or ``none``
        address: Paying address, when known
        delegate_status: Probe snapshot, when a probe was made
    """
    method: PaymentMethod
    address: Optional[str] = None
    delegate_status: Optional[DelegateStatus] = None


async def select_payment_backend(
    settings: Optional[PaymentSettings] = None,
    cache: Optional[DelegateStatusCache] = None,
) -> PaymentBackendConfig:
    """
    Choose the payment backend.

    Args:
        settings: Resolved settings (loaded from the environment when omitted)
        cache: Delegate status cache (process-wide default when omitted)

    Returns:
        PaymentBackendConfig
    """
    settings = settings or PaymentSettings.load()
    status = await check_delegate_status(cache)

    if settings.force_delegate:
        if status.ready:
            config = PaymentBackendConfig(method="delegate", address=status.address, delegate_status=status)
        else:
            config = PaymentBackendConfig(method="none", delegate_status=status)
    elif status.ready:
        config = PaymentBackendConfig(method="delegate", address=status.address, delegate_status=status)
    elif settings.wallet_configured:
        address = address_for_key(settings.wallet_key.get_secret_value())
        config = PaymentBackendConfig(method="local", address=address, delegate_status=status)
    else:
        config = PaymentBackendConfig(method="none", delegate_status=status)

    logger.info("Selected payment backend: %s", config.method)
    return config

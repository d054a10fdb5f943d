"""
HTTP 402 Payment Flow Middleware

Provides a transparent middleware layer for httpx that automatically pays
for 402 Payment Required responses, either by signing an EIP-3009
authorization locally or by handing the whole request to the awal delegate.

Per request the flow is strictly sequential and makes at most one extra
round trip:

    request -> (not 402) -> returned unchanged
            -> (402) -> select backend -> pay -> one retry -> classify
"""

import json
import logging
from typing import Any, Optional

import httpx

from ..adapters.backends import PaymentBackendConfig, select_payment_backend
from ..adapters.delegate.awal import DelegateStatusCache, delegate_pay
from ..adapters.evm.signatures import encode_payment_header, sign_payment
from ..adapters.evm.wallet import create_wallet
from ..config import USE_AWAL_ENV, PaymentSettings
from ..engine.exceptions import (
    DelegatePaymentError,
    PaymentError,
    PaymentRejectedError,
    UpstreamRequestError,
    WalletNotConfiguredError,
)
from ..schemas.payments import PaymentReceipt, PaymentRequirements
from .requirements import parse_payment_required

logger = logging.getLogger(__name__)

PAYMENT_HEADER = "X-PAYMENT"
PAYMENT_METHOD_HEADER = "X-Payment-Method"
PAYMENT_RECEIPT_EXTENSION = "x402_payment"

DEFAULT_HEADERS = {"Content-Type": "application/json"}


class Http402Client(httpx.AsyncClient):
    """
    Extended httpx.AsyncClient with automatic 402 payment handling.

    On a 402 the client:
    1. Selects a payment backend (delegate, local or none)
    2. Delegate: lets awal perform the paid request and wraps its result
    3. Local: parses requirements, signs an authorization, retries once
       with the ``X-PAYMENT`` header
    4. Classifies the outcome (success, rejected, upstream failure)

    Fully compatible with httpx.AsyncClient - supports all methods, properties,
    and can be used as an async context manager.

    Usage:
        ```python
        async with Http402Client() as client:
            response = await client.post("https://nullpath.com/api/v1/execute", json={...})
            receipt = response.extensions.get("x402_payment")
        ```
    """

    def __init__(
        self,
        settings: Optional[PaymentSettings] = None,
        status_cache: Optional[DelegateStatusCache] = None,
        **kwargs
    ):
        """
        Initialize client.

        Args:
            settings: Fixed settings; re-read from the environment per payment when omitted
            status_cache: Delegate status cache (process-wide default when omitted)
            **kwargs: All standard httpx.AsyncClient arguments (timeout, headers, transport, etc.)
        """
        super().__init__(**kwargs)
        self._settings = settings
        self._status_cache = status_cache

    # =========================================================================
    # Override httpx.AsyncClient.request to add 402 handling
    # =========================================================================

    async def request(
        self,
        method: str,
        url: httpx._types.URLTypes,
        **kwargs
    ) -> httpx.Response:
        """
        Execute HTTP request with automatic 402 handling.

        All other httpx methods (get, post, etc.) go through this.
        """
        return await self._execute_with_402_handling(method, url, **kwargs)

    # =========================================================================
    # Core 402 Handling Logic
    # =========================================================================

    async def _execute_with_402_handling(
        self,
        method: str,
        url: httpx._types.URLTypes,
        **kwargs
    ) -> httpx.Response:
        """
        Send the request and pay for it if the server answers 402.

        Raises:
            WalletNotConfiguredError: 402 and no usable backend
            PaymentRejectedError: Server answered 402 again after payment
            UpstreamRequestError: Any other failure status after payment
        """
        kwargs["headers"] = self._merge_headers(kwargs.get("headers"))
        response = await super().request(method, url, **kwargs)

        if response.status_code != 402:
            return response

        logger.info("402 Payment Required: %s %s", method, url)
        settings = self._settings or PaymentSettings.load()
        backend = await select_payment_backend(settings, self._status_cache)

        if backend.method == "none":
            raise WalletNotConfiguredError(hint=self._not_configured_hint(settings, backend))

        if backend.method == "delegate":
            return await self._pay_with_delegate(method, url, response, settings, backend, **kwargs)
        return await self._pay_locally(method, url, response, settings, **kwargs)

    async def _pay_locally(
        self,
        method: str,
        url: httpx._types.URLTypes,
        response: httpx.Response,
        settings: PaymentSettings,
        **kwargs
    ) -> httpx.Response:
        """
        Sign an authorization for the 402's requirements and retry once.
        """
        requirements = parse_payment_required(response, default_chain_id=settings.chain_id)
        identity = create_wallet(settings.wallet_key.get_secret_value(), settings.chain_id)
        signed = sign_payment(identity, requirements)

        headers = httpx.Headers(kwargs["headers"])
        headers[PAYMENT_HEADER] = encode_payment_header(signed)
        kwargs["headers"] = headers

        retry = await super().request(method, url, **kwargs)
        logger.info("Paid retry returned %s", retry.status_code)

        if retry.status_code == 402:
            body = retry.text
            raise PaymentRejectedError(
                f"Payment was rejected by the server: {body or 'no details'}",
                requirements=requirements,
                body=body,
            )
        if not retry.is_success:
            body = retry.text
            raise UpstreamRequestError(
                f"Payment submitted but request failed ({retry.status_code}): {body}",
                status_code=retry.status_code,
                body=body,
            )

        retry.extensions[PAYMENT_RECEIPT_EXTENSION] = PaymentReceipt(method="local", sender=identity.address)
        return retry

    async def _pay_with_delegate(
        self,
        method: str,
        url: httpx._types.URLTypes,
        response: httpx.Response,
        settings: PaymentSettings,
        backend: PaymentBackendConfig,
        **kwargs
    ) -> httpx.Response:
        """
        Hand the whole request to the delegate and wrap its result in a Response.
        """
        request_kwargs = {key: value for key, value in kwargs.items() if key not in ("auth", "follow_redirects")}
        request = self.build_request(method, url, **request_kwargs)
        body = request.content.decode("utf-8") if request.content else None
        headers = {key: value for key, value in kwargs["headers"].items()}

        result = await delegate_pay(str(request.url), method=method, body=body, headers=headers)
        status_code = result.status_code
        logger.info("Delegate payment returned %s", status_code)

        if not result.success or (status_code is not None and not 200 <= status_code < 300):
            error = result.error or self._body_text(result.body) or "unknown error"
            if status_code == 402:
                raise PaymentRejectedError(
                    f"Payment was rejected by the server: {error}",
                    requirements=self._requirements_for_diagnostics(response, settings),
                    body=error,
                )
            if status_code is not None:
                raise UpstreamRequestError(
                    f"Payment submitted but request failed ({status_code}): {error}",
                    status_code=status_code,
                    body=error,
                )
            raise DelegatePaymentError(f"awal payment failed: {error}")

        paid = httpx.Response(
            status_code=result.status_code or 200,
            content=json.dumps(result.body).encode("utf-8"),
            headers={"Content-Type": "application/json", PAYMENT_METHOD_HEADER: "awal"},
            request=request,
        )
        paid.extensions[PAYMENT_RECEIPT_EXTENSION] = PaymentReceipt(
            method="delegate",
            sender=backend.address,
            transaction_hash=result.payment.transaction_hash if result.payment else None,
        )
        return paid

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def _merge_headers(self, headers: Any = None) -> httpx.Headers:
        """Default ``Content-Type`` plus caller headers; the caller wins on conflict."""
        merged = httpx.Headers(DEFAULT_HEADERS)
        merged.update(httpx.Headers(headers or {}))
        return merged

    def _requirements_for_diagnostics(
        self, response: httpx.Response, settings: PaymentSettings
    ) -> Optional[PaymentRequirements]:
        """Requirements of the original 402, or None when its header is absent or unusable."""
        try:
            return parse_payment_required(response, default_chain_id=settings.chain_id)
        except PaymentError:
            return None

    @staticmethod
    def _body_text(body: Any) -> str:
        if body is None:
            return ""
        return body if isinstance(body, str) else json.dumps(body)

    def _not_configured_hint(self, settings: PaymentSettings, backend: PaymentBackendConfig) -> Optional[str]:
        if not settings.force_delegate:
            return None
        reason = backend.delegate_status.error if backend.delegate_status else None
        return (
            f"{USE_AWAL_ENV} is set but the awal CLI is not ready"
            f"{': ' + reason if reason else ' (not authenticated)'}. "
            "Run `npx awal@latest` to sign in, or unset the variable to use NULLPATH_WALLET_KEY."
        )


async def fetch_with_payment(
    url: str,
    method: str = "GET",
    settings: Optional[PaymentSettings] = None,
    status_cache: Optional[DelegateStatusCache] = None,
    **kwargs
) -> httpx.Response:
    """
    One-shot paid request.

    ``kwargs`` are httpx request arguments (``headers``, ``json``, ``content``...);
    ``transport`` and ``timeout`` configure the underlying client.
    """
    client_kwargs = {key: kwargs.pop(key) for key in ("transport", "timeout") if key in kwargs}
    async with Http402Client(settings=settings, status_cache=status_cache, **client_kwargs) as client:
        return await client.request(method, url, **kwargs)

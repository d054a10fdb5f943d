"""
Caller-Facing Results

Flattens the outcome of a paid request into plain dictionaries:

    success: upstream body + ``_payment: {status: "paid", from: <address>}``
    failure: ``{error: <kind>, message: <text>, hint?: <advice>}``

``error_result`` is the single place where payment exceptions become data.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..adapters.delegate.awal import DelegateStatusCache
from ..config import PaymentSettings
from ..engine.exceptions import PaymentError, UpstreamRequestError
from .http_client import PAYMENT_RECEIPT_EXTENSION, Http402Client

logger = logging.getLogger(__name__)


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def paid_result(response: httpx.Response) -> Dict[str, Any]:
    """
    Body of a successful response, annotated with ``_payment`` when a payment was made.

    Non-object bodies are wrapped as ``{"data": body}``.
    """
    body = _response_body(response)
    result = dict(body) if isinstance(body, dict) else {"data": body}

    receipt = response.extensions.get(PAYMENT_RECEIPT_EXTENSION)
    if receipt is not None:
        result["_payment"] = {"status": "paid", "from": receipt.sender}
    return result


def error_result(exc: PaymentError) -> Dict[str, Any]:
    """``{error, message, hint?}`` for a payment error; never contains key material."""
    result: Dict[str, Any] = {"error": exc.kind.value, "message": exc.message}
    if exc.hint:
        result["hint"] = exc.hint
    return result


class NullpathClient:
    """
    Paid calls against the marketplace API under ``NULLPATH_API_URL``.

    Usage:
        ```python
        client = NullpathClient()
        result = await client.execute("/execute", {"agentId": "...", "input": {...}})
        ```
    """

    def __init__(
        self,
        settings: Optional[PaymentSettings] = None,
        status_cache: Optional[DelegateStatusCache] = None,
        **client_kwargs
    ):
        self._settings = settings
        self._status_cache = status_cache
        self._client_kwargs = client_kwargs

    def url_for(self, path: str) -> str:
        settings = self._settings or PaymentSettings.load()
        return f"{settings.api_url}/{path.lstrip('/')}"

    async def execute(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST ``payload`` to ``path``, paying if required.

        Returns:
            ``paid_result`` on success, ``error_result`` on any payment error
            or failure status
        """
        try:
            url = self.url_for(path)
            async with Http402Client(
                settings=self._settings,
                status_cache=self._status_cache,
                **self._client_kwargs
            ) as client:
                response = await client.post(url, json=payload)

            if not response.is_success:
                raise UpstreamRequestError(
                    f"Request failed ({response.status_code}): {response.text}",
                    status_code=response.status_code,
                    body=response.text,
                )
        except PaymentError as exc:
            logger.warning("Paid request to %s failed: %s", path, exc.kind.value)
            return error_result(exc)

        return paid_result(response)

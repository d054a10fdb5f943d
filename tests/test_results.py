"""
Structured results for callers and the NullpathClient paid-endpoint wrapper.
"""

import json

import httpx
import pytest

from nullpath_x402.clients.results import NullpathClient, error_result, paid_result
from nullpath_x402.config import API_URL_ENV
from nullpath_x402.engine.exceptions import (
    DelegatePaymentError,
    InvalidPrivateKeyError,
    PaymentErrorKind,
    WalletNotConfiguredError,
)
from nullpath_x402.schemas.payments import PaymentReceipt

from test_mocks import (
    TEST_ADDRESS,
    TEST_PRIVATE_KEY,
    make_402_response,
    make_settings,
    requirements_payload,
    unavailable_delegate_cache,
)


class TestPaidResult:

    def test_annotates_payment(self):
        response = httpx.Response(200, json={"output": "done"})
        response.extensions["x402_payment"] = PaymentReceipt(method="local", sender=TEST_ADDRESS)

        assert paid_result(response) == {
            "output": "done",
            "_payment": {"status": "paid", "from": TEST_ADDRESS},
        }

    def test_free_response_has_no_annotation(self):
        assert paid_result(httpx.Response(200, json={"a": 1})) == {"a": 1}

    def test_non_object_body(self):
        assert paid_result(httpx.Response(200, json=[1, 2])) == {"data": [1, 2]}
        assert paid_result(httpx.Response(200, text="plain")) == {"data": "plain"}


class TestErrorResult:

    def test_includes_hint(self):
        result = error_result(WalletNotConfiguredError())
        assert result["error"] == "not_configured"
        assert "NULLPATH_WALLET_KEY" in result["message"]
        assert "hint" in result

    def test_without_hint(self):
        error = DelegatePaymentError("awal payment failed: boom")
        error.hint = None
        assert error_result(error) == {"error": "delegate_failed", "message": "awal payment failed: boom"}

    def test_every_kind_is_serializable(self):
        assert {kind.value for kind in PaymentErrorKind} == {
            "not_configured",
            "invalid_secret",
            "malformed_requirements",
            "expired_requirements",
            "mismatch",
            "signing_failed",
            "delegate_failed",
            "rejected",
            "upstream_failed",
        }

    def test_never_leaks_key(self):
        result = error_result(InvalidPrivateKeyError("Expected 64 hex characters, got 3"))
        assert TEST_PRIVATE_KEY[2:] not in json.dumps(result)
        assert result["error"] == "invalid_secret"


class TestNullpathClient:

    def test_url_for(self, monkeypatch):
        monkeypatch.setenv(API_URL_ENV, "http://localhost:8787/api/v1/")
        assert NullpathClient().url_for("/execute") == "http://localhost:8787/api/v1/execute"
        assert NullpathClient().url_for("agents/x") == "http://localhost:8787/api/v1/agents/x"

    @pytest.mark.asyncio
    async def test_execute_pays(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if "X-PAYMENT" not in request.headers:
                return make_402_response()
            return httpx.Response(200, json={"output": "ran"})

        client = NullpathClient(
            settings=make_settings(),
            status_cache=unavailable_delegate_cache(),
            transport=httpx.MockTransport(handler),
        )
        result = await client.execute("/execute", {"agentId": "a1"})

        assert result == {"output": "ran", "_payment": {"status": "paid", "from": TEST_ADDRESS}}
        assert str(seen[0].url) == "https://nullpath.com/api/v1/execute"
        assert json.loads(seen[0].content) == {"agentId": "a1"}

    @pytest.mark.asyncio
    async def test_execute_not_configured(self):
        client = NullpathClient(
            settings=make_settings(wallet_key=None),
            status_cache=unavailable_delegate_cache(),
            transport=httpx.MockTransport(lambda request: make_402_response()),
        )
        result = await client.execute("/execute", {})

        assert result["error"] == "not_configured"
        assert result["hint"]

    @pytest.mark.asyncio
    async def test_execute_malformed_requirements(self):
        unreadable = make_402_response(requirements_payload(amount="²"))
        client = NullpathClient(
            settings=make_settings(),
            status_cache=unavailable_delegate_cache(),
            transport=httpx.MockTransport(lambda request: unreadable),
        )
        result = await client.execute("/execute", {})

        assert result["error"] == "malformed_requirements"

    @pytest.mark.asyncio
    async def test_execute_free_failure(self):
        client = NullpathClient(
            settings=make_settings(),
            status_cache=unavailable_delegate_cache(),
            transport=httpx.MockTransport(lambda request: httpx.Response(404, text="unknown agent")),
        )
        result = await client.execute("/execute", {})

        assert result["error"] == "upstream_failed"
        assert result["message"] == "Request failed (404): unknown agent"

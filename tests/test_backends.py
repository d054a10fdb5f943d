"""
Payment backend selection policy.
"""

import pytest

from nullpath_x402.adapters.backends import select_payment_backend
from nullpath_x402.adapters.delegate.awal import DelegateStatusCache
from nullpath_x402.config import USE_AWAL_ENV, WALLET_KEY_ENV

from test_mocks import (
    DELEGATE_ADDRESS,
    TEST_ADDRESS,
    TEST_PRIVATE_KEY,
    make_settings,
    ready_delegate_cache,
    status_cache,
    unavailable_delegate_cache,
)


class TestSelectPaymentBackend:

    @pytest.mark.asyncio
    async def test_delegate_preferred_when_ready(self):
        config = await select_payment_backend(make_settings(), ready_delegate_cache())
        assert config.method == "delegate"
        assert config.address == DELEGATE_ADDRESS
        assert config.delegate_status.ready

    @pytest.mark.asyncio
    async def test_local_when_delegate_unavailable(self):
        config = await select_payment_backend(make_settings(), unavailable_delegate_cache())
        assert config.method == "local"
        assert config.address == TEST_ADDRESS

    @pytest.mark.asyncio
    async def test_local_when_delegate_unauthenticated(self):
        cache = status_cache(available=True, authenticated=False)
        config = await select_payment_backend(make_settings(), cache)
        assert config.method == "local"

    @pytest.mark.asyncio
    async def test_none_without_any_backend(self):
        config = await select_payment_backend(make_settings(wallet_key=None), unavailable_delegate_cache())
        assert config.method == "none"
        assert config.address is None

    @pytest.mark.asyncio
    async def test_forced_and_ready(self):
        settings = make_settings(force_delegate=True)
        config = await select_payment_backend(settings, ready_delegate_cache())
        assert config.method == "delegate"

    @pytest.mark.asyncio
    async def test_forced_unauthenticated_never_falls_back_to_local(self):
        """A configured key is ignored when the delegate is forced but not signed in."""
        settings = make_settings(force_delegate=True)
        cache = status_cache(available=True, authenticated=False)

        config = await select_payment_backend(settings, cache)
        assert config.method == "none"
        assert config.delegate_status.authenticated is False

    @pytest.mark.asyncio
    async def test_forced_unavailable(self):
        settings = make_settings(force_delegate=True)
        config = await select_payment_backend(settings, unavailable_delegate_cache())
        assert config.method == "none"
        assert config.delegate_status.error == "awal CLI not found"

    @pytest.mark.asyncio
    async def test_reads_environment_when_no_settings(self, monkeypatch):
        monkeypatch.setenv(WALLET_KEY_ENV, TEST_PRIVATE_KEY)
        config = await select_payment_backend(cache=unavailable_delegate_cache())
        assert config.method == "local"

        monkeypatch.setenv(USE_AWAL_ENV, "true")
        config = await select_payment_backend(cache=unavailable_delegate_cache())
        assert config.method == "none"

    @pytest.mark.asyncio
    async def test_probe_result_is_cached(self, process_runner):
        cache = DelegateStatusCache()
        await select_payment_backend(make_settings(), cache)
        await select_payment_backend(make_settings(), cache)
        assert process_runner.call_count == 1

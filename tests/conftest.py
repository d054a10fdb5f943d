import pytest
from unittest.mock import AsyncMock

from nullpath_x402.adapters.delegate import awal
from nullpath_x402.config import API_URL_ENV, CHAIN_ID_ENV, USE_AWAL_ENV, WALLET_KEY_ENV


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Every test starts with no payment configuration and an empty status cache."""
    for name in (WALLET_KEY_ENV, API_URL_ENV, USE_AWAL_ENV, CHAIN_ID_ENV):
        monkeypatch.delenv(name, raising=False)
    awal.clear_delegate_cache()
    yield
    awal.clear_delegate_cache()


@pytest.fixture(autouse=True)
def process_runner(monkeypatch):
    """
    Replace the process runner so no test ever spawns ``npx``.

    Defaults to "command not found"; tests set ``return_value`` or
    ``side_effect`` as needed and inspect ``call_args`` for the argv.
    """
    runner = AsyncMock(side_effect=awal.ProcessRunError("npx: command not found", not_found=True))
    monkeypatch.setattr(awal, "run_process", runner)
    return runner

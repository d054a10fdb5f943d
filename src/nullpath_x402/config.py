"""
Payment Settings

Resolves the environment-driven configuration used by every payment attempt:
the local wallet key, the marketplace base URL, the force-delegate flag and
the network the local identity signs for.

Environment Variables:
    - NULLPATH_WALLET_KEY: Hex private key (with or without 0x prefix)
    - NULLPATH_API_URL: Base URL override for paid endpoints
    - NULLPATH_USE_AWAL: "true" or "1" forces the delegate (awal) backend
    - NULLPATH_CHAIN_ID: Chain id, CAIP-2 id or network name (default: 8453)

Settings are re-read on every call to ``PaymentSettings.load()``; nothing is
cached at process level.
"""

import os
from typing import Optional

import dotenv
from pydantic import BaseModel, Field, SecretStr, field_validator

from .engine.exceptions import ConfigurationError

dotenv.load_dotenv()


WALLET_KEY_ENV = "NULLPATH_WALLET_KEY"
API_URL_ENV = "NULLPATH_API_URL"
USE_AWAL_ENV = "NULLPATH_USE_AWAL"
CHAIN_ID_ENV = "NULLPATH_CHAIN_ID"

DEFAULT_API_URL = "https://nullpath.com/api/v1"
DEFAULT_CHAIN_ID = 8453


def parse_flag(value: Optional[str]) -> bool:
    """Only the literal strings ``"true"`` and ``"1"`` enable a flag."""
    return value in ("true", "1")


class PaymentSettings(BaseModel):
    """Resolved configuration view for one payment attempt."""

    wallet_key: Optional[SecretStr] = Field(default=None, description="Local signing key")
    api_url: str = Field(default=DEFAULT_API_URL, description="Base URL for paid endpoints")
    force_delegate: bool = Field(default=False, description="Force the delegate backend")
    chain_id: int = Field(default=DEFAULT_CHAIN_ID, ge=1, description="Network of the local identity")

    @field_validator("api_url")
    @classmethod
    def _ensure_http_scheme(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ConfigurationError(f"{API_URL_ENV} must start with http:// or https://")
        return value.rstrip("/")

    @property
    def wallet_configured(self) -> bool:
        return self.wallet_key is not None and bool(self.wallet_key.get_secret_value())

    @classmethod
    def load(cls) -> "PaymentSettings":
        """Load settings from the process environment (``.env`` already applied)."""
        from .adapters.evm.constants import resolve_chain_id

        raw_key = os.getenv(WALLET_KEY_ENV)
        raw_chain = os.getenv(CHAIN_ID_ENV)
        chain_id = DEFAULT_CHAIN_ID
        if raw_chain:
            try:
                chain_id = resolve_chain_id(raw_chain)
            except ValueError as exc:
                raise ConfigurationError(f"Invalid {CHAIN_ID_ENV}: {exc}") from exc

        return cls(
            wallet_key=SecretStr(raw_key) if raw_key else None,
            api_url=os.getenv(API_URL_ENV) or DEFAULT_API_URL,
            force_delegate=parse_flag(os.getenv(USE_AWAL_ENV)),
            chain_id=chain_id,
        )

"""
Local Wallet Identity

Derives the signing identity from ``NULLPATH_WALLET_KEY`` for in-process
EIP-3009 signing. An identity lives for one payment attempt; the key is held
only inside the ``eth_account`` account object and is never logged, cached
or included in error messages.
"""

import os
import re
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.datastructures import SignedMessage
from eth_account.signers.local import LocalAccount

from ...config import DEFAULT_CHAIN_ID, WALLET_KEY_ENV
from ...engine.exceptions import (
    ConfigurationError,
    InvalidPrivateKeyError,
    WalletNotConfiguredError,
)
from .constants import EvmChainConfig, get_chain_config

_HEX_KEY = re.compile(r"^0x[0-9a-fA-F]{64}$")


def normalize_private_key(key: str) -> str:
    """
    Normalize a private key to 0x-prefixed form.

    Accepts keys with or without the 0x prefix.

    Raises:
        InvalidPrivateKeyError: If the key is not exactly 32 bytes of hex.
    """
    trimmed = key.strip()
    prefixed = trimmed if trimmed.startswith("0x") else f"0x{trimmed}"

    if len(prefixed) != 66:
        raise InvalidPrivateKeyError(f"Expected 64 hex characters, got {len(prefixed) - 2}")

    if not _HEX_KEY.match(prefixed):
        raise InvalidPrivateKeyError("Must contain only hexadecimal characters")

    return prefixed


class WalletIdentity:
    """
    Signing identity bound to one network/asset pair.

    Attributes:
        address: Checksummed address derived from the key
        chain: Chain configuration the identity signs for (USDC deployment included)
    """

    def __init__(self, account: LocalAccount, chain: EvmChainConfig) -> None:
        self._account = account
        self.chain = chain

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def chain_id(self) -> int:
        return self.chain.chain_id

    @property
    def asset(self) -> str:
        return self.chain.usdc.address

    def sign_typed_data(self, full_message: Dict[str, Any]) -> SignedMessage:
        """Sign a complete EIP-712 ``{types, primaryType, domain, message}`` payload."""
        return self._account.sign_typed_data(full_message=full_message)

    def __repr__(self) -> str:
        return f"WalletIdentity(address={self.address}, chain_id={self.chain_id})"


def create_wallet(private_key: Optional[str] = None, chain_id: Optional[int] = None) -> WalletIdentity:
    """
    Create a wallet identity from an explicit key or the environment.

    Args:
        private_key: Hex private key. Read from ``NULLPATH_WALLET_KEY`` when omitted.
        chain_id: Network the identity signs for (default: Base mainnet).

    Returns:
        WalletIdentity for one payment attempt

    Raises:
        WalletNotConfiguredError: If no key is available
        InvalidPrivateKeyError: If the key is malformed
    """
    raw_key = private_key if private_key is not None else os.getenv(WALLET_KEY_ENV)
    if not raw_key:
        raise WalletNotConfiguredError()

    normalized = normalize_private_key(raw_key)
    try:
        account = Account.from_key(normalized)
    except ValueError:
        # the underlying message is not propagated
        raise InvalidPrivateKeyError("Not a valid secp256k1 private key") from None

    try:
        chain = get_chain_config(chain_id or DEFAULT_CHAIN_ID)
    except KeyError as exc:
        raise ConfigurationError(str(exc.args[0])) from exc
    return WalletIdentity(account, chain)


def is_wallet_configured() -> bool:
    """True if ``NULLPATH_WALLET_KEY`` is set (the key is not validated)."""
    return bool(os.getenv(WALLET_KEY_ENV))


def address_for_key(raw_key: Optional[str]) -> Optional[str]:
    """Address derived from ``raw_key``, or None if it is empty or invalid."""
    if not raw_key:
        return None

    try:
        return Account.from_key(normalize_private_key(raw_key)).address
    except (InvalidPrivateKeyError, ValueError):
        return None


def get_wallet_address() -> Optional[str]:
    """
    Address of the configured key without building an identity.

    Returns:
        Checksummed address, or None if the key is unset or invalid
    """
    return address_for_key(os.getenv(WALLET_KEY_ENV))

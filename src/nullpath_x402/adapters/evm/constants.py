"""
EVM Chain and Asset Constants

Static USDC deployments the client can sign for, network-name resolution for
requirement payloads, and exact integer conversion / formatting of USDC
amounts.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Union

from pydantic import BaseModel, Field


class EvmAssetConfig(BaseModel):
    """Token asset configuration."""
    symbol: str
    address: str = Field(..., description="Token contract address")
    name: str = Field(..., description="EIP-712 domain name")
    decimals: int = Field(..., description="Token decimals")
    version: str = Field(..., description="EIP-712 domain version")


class EvmChainConfig(BaseModel):
    """EVM blockchain network configuration."""
    caip2: str
    chain_id: int
    network: str = Field(..., description="x402 network name")
    name: str = Field(..., description="Human-readable network name")
    usdc: EvmAssetConfig


USDC_ADDRESS_BASE = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
USDC_ADDRESS_BASE_SEPOLIA = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"

USDC_DECIMALS = 6

# window applied when a 402 omits validBefore
DEFAULT_VALIDITY_SECONDS = 300

BASE_MAINNET_CHAIN_ID = 8453
BASE_SEPOLIA_CHAIN_ID = 84532

_EVM_CHAINS_DATA: Dict[int, Dict] = {
    BASE_MAINNET_CHAIN_ID: {
        "caip2": "eip155:8453",
        "network": "base",
        "name": "Base Mainnet",
        "usdc": {
            "symbol": "USDC",
            "address": USDC_ADDRESS_BASE,
            "name": "USD Coin",
            "decimals": USDC_DECIMALS,
            "version": "2",
        },
    },
    BASE_SEPOLIA_CHAIN_ID: {
        "caip2": "eip155:84532",
        "network": "base-sepolia",
        "name": "Base Sepolia",
        "usdc": {
            "symbol": "USDC",
            "address": USDC_ADDRESS_BASE_SEPOLIA,
            "name": "USDC",
            "decimals": USDC_DECIMALS,
            "version": "2",
        },
    },
}

EVM_CHAINS: Dict[int, EvmChainConfig] = {
    chain_id: EvmChainConfig(chain_id=chain_id, **data)
    for chain_id, data in _EVM_CHAINS_DATA.items()
}

_NETWORK_NAMES: Dict[str, int] = {config.network: chain_id for chain_id, config in EVM_CHAINS.items()}


def get_chain_config(chain_id: int) -> EvmChainConfig:
    """
    Look up the USDC deployment for a chain.

    Raises:
        KeyError: If the chain is not supported.
    """
    try:
        return EVM_CHAINS[chain_id]
    except KeyError:
        raise KeyError(f"Unsupported chain id: {chain_id}") from None


def default_usdc_address(chain_id: int) -> str:
    """Canonical USDC contract for ``chain_id``, falling back to Base mainnet."""
    config = EVM_CHAINS.get(chain_id) or EVM_CHAINS[BASE_MAINNET_CHAIN_ID]
    return config.usdc.address


def resolve_chain_id(value: Union[int, str]) -> int:
    """
    Resolve a network identifier to a numeric chain id.

    Accepts a chain id (``8453`` or ``"8453"``), a CAIP-2 identifier
    (``"eip155:8453"``) or an x402 network name (``"base"``,
    ``"base-sepolia"``).

    Raises:
        ValueError: If the value cannot be resolved.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid network: {value!r}")
    if isinstance(value, int):
        chain_id = value
    elif isinstance(value, str):
        text = value.strip().lower()
        if text in _NETWORK_NAMES:
            return _NETWORK_NAMES[text]
        if text.startswith("eip155:"):
            text = text[len("eip155:"):]
        if not text.isdigit():
            raise ValueError(f"Unsupported network: {value}")
        chain_id = int(text)
    else:
        raise ValueError(f"Invalid network: {value!r}")

    if chain_id < 1:
        raise ValueError(f"Invalid chain id: {chain_id}")
    return chain_id


def usd_to_atomic_usdc(usd: Union[int, str, Decimal, float]) -> int:
    """Convert a USD amount to USDC atomic units, rounding half up."""
    try:
        # str() first so 0.1 stays 0.1 rather than its binary expansion
        dec_amount = usd if isinstance(usd, Decimal) else Decimal(str(usd))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid amount: {usd!r}") from e

    if dec_amount < 0:
        raise ValueError("amount must be non-negative")

    scaled = dec_amount * (Decimal(10) ** USDC_DECIMALS)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def atomic_usdc_to_usd(atomic: int) -> Decimal:
    """Convert USDC atomic units to an exact USD ``Decimal``."""
    return Decimal(atomic).scaleb(-USDC_DECIMALS)


def format_usdc_amount(atomic: int, with_symbol: bool = False) -> str:
    """
    Format atomic USDC units as a dollar string with six decimals.

    Uses integer arithmetic only, so amounts above 2**53 keep every digit.

    Example:
        format_usdc_amount(1000)                    # "$0.001000"
        format_usdc_amount(1000, with_symbol=True)  # "$0.001000 USDC"
    """
    if atomic < 0:
        raise ValueError("amount must be non-negative")
    whole, fraction = divmod(atomic, 10 ** USDC_DECIMALS)
    text = f"${whole}.{fraction:0{USDC_DECIMALS}d}"
    return f"{text} USDC" if with_symbol else text

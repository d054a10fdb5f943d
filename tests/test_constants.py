"""
Chain constants and USDC amount helpers.
"""

from decimal import Decimal

import pytest

from nullpath_x402.adapters.evm.constants import (
    BASE_MAINNET_CHAIN_ID,
    BASE_SEPOLIA_CHAIN_ID,
    USDC_ADDRESS_BASE,
    USDC_ADDRESS_BASE_SEPOLIA,
    atomic_usdc_to_usd,
    default_usdc_address,
    format_usdc_amount,
    get_chain_config,
    resolve_chain_id,
    usd_to_atomic_usdc,
)

from test_mocks import LARGE_AMOUNT


class TestFormatUsdcAmount:

    def test_small_amount(self):
        assert format_usdc_amount(1000) == "$0.001000"

    def test_zero(self):
        assert format_usdc_amount(0) == "$0.000000"

    def test_whole_dollars(self):
        assert format_usdc_amount(25_000_000) == "$25.000000"

    def test_with_symbol(self):
        assert format_usdc_amount(1000, with_symbol=True) == "$0.001000 USDC"

    def test_large_amount_keeps_every_digit(self):
        """2**53 + 1 atomic units must not be rounded through a float."""
        assert format_usdc_amount(LARGE_AMOUNT) == "$9007199254.740993"

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            format_usdc_amount(-1)


class TestAmountConversion:

    def test_usd_to_atomic(self):
        assert usd_to_atomic_usdc("0.001") == 1000
        assert usd_to_atomic_usdc(Decimal("1.5")) == 1_500_000
        assert usd_to_atomic_usdc(0.1) == 100_000

    def test_rounds_half_up(self):
        assert usd_to_atomic_usdc("0.0000005") == 1

    def test_invalid_amount(self):
        with pytest.raises(ValueError):
            usd_to_atomic_usdc("abc")
        with pytest.raises(ValueError):
            usd_to_atomic_usdc("-1")

    def test_atomic_to_usd_is_exact(self):
        assert atomic_usdc_to_usd(LARGE_AMOUNT) == Decimal("9007199254.740993")


class TestChains:

    def test_resolve_numeric(self):
        assert resolve_chain_id(8453) == BASE_MAINNET_CHAIN_ID
        assert resolve_chain_id("84532") == BASE_SEPOLIA_CHAIN_ID

    def test_resolve_caip2_and_names(self):
        assert resolve_chain_id("eip155:8453") == BASE_MAINNET_CHAIN_ID
        assert resolve_chain_id("base") == BASE_MAINNET_CHAIN_ID
        assert resolve_chain_id("Base-Sepolia") == BASE_SEPOLIA_CHAIN_ID

    @pytest.mark.parametrize("value", ["solana", "eip155:", 0, -1, True, 1.5])
    def test_resolve_rejects(self, value):
        with pytest.raises(ValueError):
            resolve_chain_id(value)

    def test_default_usdc_address(self):
        assert default_usdc_address(BASE_MAINNET_CHAIN_ID) == USDC_ADDRESS_BASE
        assert default_usdc_address(BASE_SEPOLIA_CHAIN_ID) == USDC_ADDRESS_BASE_SEPOLIA
        assert default_usdc_address(1) == USDC_ADDRESS_BASE

    def test_unsupported_chain(self):
        with pytest.raises(KeyError):
            get_chain_config(1)

    def test_mainnet_domain(self):
        usdc = get_chain_config(BASE_MAINNET_CHAIN_ID).usdc
        assert (usdc.name, usdc.version, usdc.decimals) == ("USD Coin", "2", 6)

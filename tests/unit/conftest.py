"""Shared fixtures for unit tests."""

from typing import Optional

import pytest

from dex_arbitrage.interfaces import DeterministicRandomProvider, DeterministicTimeProvider
from dex_arbitrage.types import PriceQuote, SourceConfig, TokenDescriptor

WETH_ADDRESS = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC_ADDRESS = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
SOL_MINT = "So11111111111111111111111111111111111111112"
SOLANA_USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


class StaticSource:
    """PriceSource returning a preset quote, counting calls."""

    def __init__(
        self,
        name: str,
        quote: Optional[PriceQuote] = None,
        chains=frozenset({1}),
        enabled: bool = True,
        delay: float = 0.0,
    ):
        self._config = SourceConfig(name, name.lower(), frozenset(chains), 0.3, enabled)
        self.name = name
        self.slug = name.lower()
        self.quote = quote
        self.delay = delay
        self.calls = 0

    @property
    def config(self) -> SourceConfig:
        return self._config

    async def fetch_quote(self, base, quote, amount=1.0):
        import asyncio

        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.quote

    def supported_chains(self):
        return self._config.supported_chain_ids

    def is_enabled(self):
        return self._config.enabled

    def set_enabled(self, enabled):
        self._config.enabled = enabled


def make_quote(
    source_name: str,
    price: float,
    liquidity: Optional[float] = 1_000_000.0,
    fee_rate: float = 0.003,
    gas: float = 0.5,
    timestamp: float = 1640995200.0,
    is_fallback: bool = False,
) -> PriceQuote:
    return PriceQuote(
        source_name=source_name,
        price=price,
        fee_rate=fee_rate,
        liquidity_usd=liquidity,
        gas_estimate_usd=gas,
        timestamp=timestamp,
        is_fallback=is_fallback,
    )


@pytest.fixture
def time_provider():
    return DeterministicTimeProvider(start_time=1640995200.0)


@pytest.fixture
def random_provider():
    return DeterministicRandomProvider(seed=42)


@pytest.fixture
def weth():
    return TokenDescriptor(chain_id=1, address=WETH_ADDRESS, symbol="WETH", decimals=18)


@pytest.fixture
def usdc():
    return TokenDescriptor(chain_id=1, address=USDC_ADDRESS, symbol="USDC", decimals=6)


@pytest.fixture
def sol():
    return TokenDescriptor(chain_id=101, address=SOL_MINT, symbol="SOL", decimals=9)


@pytest.fixture
def sol_usdc():
    return TokenDescriptor(chain_id=101, address=SOLANA_USDC_MINT, symbol="USDC", decimals=6)

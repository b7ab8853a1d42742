"""
Fallback quotes for sources whose live call failed.

Priority:
1. Most recent quote for (source, pair, chain), from the adapter's own
   memory or the durable store, scaled by a small random jitter
2. Static estimate from approximate USD prices of well-known tokens

Every quote produced here is flagged ``is_fallback=True``.
"""

from typing import Dict, Optional

from ..gas import estimate_gas_usd
from ..interfaces import QuoteStore, RandomProvider, TimeProvider
from ..types import PriceQuote, TokenDescriptor, pair_key
from ..utils import get_logger

logger = get_logger(__name__)

JITTER_LOW = 0.995
JITTER_HIGH = 1.005

# Approximate USD prices, only good enough to keep a price point alive
KNOWN_TOKEN_USD_PRICES: Dict[str, float] = {
    "ETH": 3500.0,
    "WETH": 3500.0,
    "BTC": 65000.0,
    "WBTC": 65000.0,
    "BNB": 550.0,
    "WBNB": 550.0,
    "SOL": 150.0,
    "WSOL": 150.0,
    "USDC": 1.0,
    "USDT": 1.0,
    "DAI": 1.0,
    "BUSD": 1.0,
    "MATIC": 1.2,
    "AVAX": 35.0,
    "LINK": 15.0,
    "UNI": 10.0,
    "AAVE": 95.0,
}

# Rough pool depth per token when the venue does not report liquidity
BASE_LIQUIDITY_ESTIMATES_USD: Dict[str, float] = {
    "ETH": 10_000_000.0,
    "WETH": 10_000_000.0,
    "BTC": 15_000_000.0,
    "WBTC": 15_000_000.0,
    "SOL": 5_000_000.0,
    "WSOL": 5_000_000.0,
    "BNB": 3_000_000.0,
    "WBNB": 3_000_000.0,
    "USDC": 20_000_000.0,
    "USDT": 20_000_000.0,
    "DAI": 8_000_000.0,
}

VENUE_LIQUIDITY_MODIFIERS: Dict[str, float] = {
    "uniswap": 1.0,
    "sushiswap": 0.7,
    "pancakeswap": 0.9,
    "curve": 1.2,
    "balancer": 0.8,
    "jupiter": 1.0,
    "orca": 0.8,
    "raydium": 0.75,
}

DEFAULT_VENUE_LIQUIDITY_MODIFIER = 0.5
UNKNOWN_TOKEN_LIQUIDITY_USD = 500_000.0


def known_usd_price(symbol: str) -> Optional[float]:
    return KNOWN_TOKEN_USD_PRICES.get((symbol or "").upper())


def estimate_liquidity(symbol: str, slug: str, strict: bool = False) -> Optional[float]:
    """
    Estimate venue liquidity in USD for pools of ``symbol``.

    With ``strict`` an unknown token yields None instead of the generic
    estimate.
    """
    base = BASE_LIQUIDITY_ESTIMATES_USD.get((symbol or "").upper())
    if base is None:
        if strict:
            return None
        base = UNKNOWN_TOKEN_LIQUIDITY_USD
    modifier = VENUE_LIQUIDITY_MODIFIERS.get(
        slug.lower(), DEFAULT_VENUE_LIQUIDITY_MODIFIER
    )
    return base * modifier


def estimate_static_price(
    base: TokenDescriptor, quote: TokenDescriptor
) -> Optional[float]:
    """Price of base in quote units from the known-token table, if both are known."""
    base_usd = known_usd_price(base.symbol)
    quote_usd = known_usd_price(quote.symbol)
    if not base_usd or not quote_usd:
        return None
    return base_usd / quote_usd


class FallbackQuoter:
    """
    Builds fallback quotes for one source.

    Holds the source's last good live quote per (pair, chain) and consults
    the durable store when memory has nothing.
    """

    def __init__(
        self,
        source_name: str,
        slug: str,
        fee_rate: float,
        random_provider: RandomProvider,
        time_provider: TimeProvider,
        store: Optional[QuoteStore] = None,
    ):
        self.source_name = source_name
        self.slug = slug
        self.fee_rate = fee_rate
        self._random = random_provider
        self._time = time_provider
        self._store = store
        self._last_good: Dict[tuple, PriceQuote] = {}

    def remember(
        self, base: TokenDescriptor, quote: TokenDescriptor, price_quote: PriceQuote
    ) -> None:
        self._last_good[(base.key, quote.key)] = price_quote

    async def _cached_quote(
        self, base: TokenDescriptor, quote: TokenDescriptor
    ) -> Optional[PriceQuote]:
        cached = self._last_good.get((base.key, quote.key))
        if cached is not None:
            return cached
        if self._store is None:
            return None
        try:
            return await self._store.latest_quote(
                self.source_name, pair_key(base, quote), base.chain_id
            )
        except Exception as e:
            logger.error(f"[{self.source_name}] Failed to read cached quote: {e}")
            return None

    def _jitter(self) -> float:
        return self._random.uniform(JITTER_LOW, JITTER_HIGH)

    async def quote(
        self,
        base: TokenDescriptor,
        quote: TokenDescriptor,
        error: Optional[str] = None,
    ) -> Optional[PriceQuote]:
        """Return a fallback quote, or None when no price can be estimated."""
        now = self._time.current_timestamp()
        cached = await self._cached_quote(base, quote)
        if cached is not None and cached.price > 0:
            logger.warning(
                f"[{self.source_name}] Using cached fallback for "
                f"{pair_key(base, quote)} (age: {cached.age(now):.0f}s)"
            )
            return PriceQuote(
                source_name=self.source_name,
                price=cached.price * self._jitter(),
                fee_rate=cached.fee_rate,
                liquidity_usd=cached.liquidity_usd,
                gas_estimate_usd=cached.gas_estimate_usd,
                timestamp=now,
                is_fallback=True,
                error=error,
            )

        static_price = estimate_static_price(base, quote)
        if static_price is None:
            logger.warning(
                f"[{self.source_name}] No fallback price for {pair_key(base, quote)}"
            )
            return None

        logger.warning(
            f"[{self.source_name}] Using static fallback estimate for "
            f"{pair_key(base, quote)}"
        )
        return PriceQuote(
            source_name=self.source_name,
            price=static_price * self._jitter(),
            fee_rate=self.fee_rate,
            liquidity_usd=estimate_liquidity(base.symbol, self.slug),
            gas_estimate_usd=estimate_gas_usd(base.chain_id, self.slug),
            timestamp=now,
            is_fallback=True,
            error=error,
        )

"""
Arbitrage opportunity detection over one aggregated quote map.

Pure and synchronous: every unordered pair of sources is evaluated
independently and only pairs clearing all liquidity and profit checks are
emitted.
"""

from itertools import combinations
from typing import List, Mapping, Optional

from .exceptions import ValidationError
from .interfaces import SystemTimeProvider, TimeProvider
from .liquidity import LiquidityModel
from .opportunity_math import (
    DEFAULT_PLATFORM_FEE_RATE,
    compute_profit_breakdown,
    price_difference_percent,
)
from .types import (
    QUOTE_FRESHNESS_SECONDS,
    ArbitrageOpportunity,
    PriceQuote,
    TokenDescriptor,
    network_name,
    pair_key,
)
from .utils import get_logger

logger = get_logger(__name__)

DEFAULT_MIN_PROFIT_PERCENT = 0.5
DEFAULT_MAX_PRICE_IMPACT_PERCENT = 5.0
DEFAULT_LIQUIDITY_COVERAGE_MULTIPLIER = 3.0


class ArbitrageDetector:
    """
    Finds profitable buy-low/sell-high venue pairs.

    Args:
        liquidity_model: Price-impact model applied to both legs
        max_price_impact_percent: Impact ceiling per leg
        liquidity_coverage_multiplier: Required liquidity as a multiple of
            the investment on the shallower leg
        platform_fee_rate: Flat platform fee as a fraction of the investment
        max_quote_age: Quotes older than this many seconds are skipped
        include_fallback: Whether fallback quotes take part by default
        time_provider: Clock for staleness checks and opportunity timestamps
    """

    def __init__(
        self,
        liquidity_model: Optional[LiquidityModel] = None,
        max_price_impact_percent: float = DEFAULT_MAX_PRICE_IMPACT_PERCENT,
        liquidity_coverage_multiplier: float = DEFAULT_LIQUIDITY_COVERAGE_MULTIPLIER,
        platform_fee_rate: float = DEFAULT_PLATFORM_FEE_RATE,
        max_quote_age: float = QUOTE_FRESHNESS_SECONDS,
        include_fallback: bool = True,
        time_provider: Optional[TimeProvider] = None,
    ):
        self.liquidity_model = liquidity_model or LiquidityModel()
        self.max_price_impact_percent = max_price_impact_percent
        self.liquidity_coverage_multiplier = liquidity_coverage_multiplier
        self.platform_fee_rate = platform_fee_rate
        self.max_quote_age = max_quote_age
        self.include_fallback = include_fallback
        self._time = time_provider or SystemTimeProvider()

    def usable_quotes(
        self, quotes: Mapping[str, PriceQuote], include_fallback: Optional[bool] = None
    ) -> List[PriceQuote]:
        """Quotes eligible for comparison, ordered by source name."""
        if include_fallback is None:
            include_fallback = self.include_fallback
        now = self._time.current_timestamp()
        usable = []
        for name in sorted(quotes):
            q = quotes[name]
            if q is None or q.price <= 0:
                continue
            if q.is_stale(now, self.max_quote_age):
                logger.debug(f"Skipping stale quote from {name} ({q.age(now):.0f}s old)")
                continue
            if q.is_fallback and not include_fallback:
                continue
            usable.append(q)
        return usable

    def detect(
        self,
        quotes: Mapping[str, PriceQuote],
        base: TokenDescriptor,
        quote: TokenDescriptor,
        investment_amount: float,
        min_profit_percent: float = DEFAULT_MIN_PROFIT_PERCENT,
        include_fallback: Optional[bool] = None,
    ) -> List[ArbitrageOpportunity]:
        """
        Evaluate every unordered pair of quotes.

        Returns:
            Opportunities with positive net profit, in no particular order

        Raises:
            ValidationError: If investment_amount is not positive
        """
        if investment_amount is None or investment_amount <= 0:
            raise ValidationError(
                f"Investment amount must be positive: {investment_amount}",
                details={"investment_amount": investment_amount},
            )

        candidates = self.usable_quotes(quotes, include_fallback)
        opportunities = []
        for a, b in combinations(candidates, 2):
            opportunity = self._evaluate_pair(
                a, b, base, quote, investment_amount, min_profit_percent
            )
            if opportunity is not None:
                opportunities.append(opportunity)
        return opportunities

    def _evaluate_pair(
        self,
        a: PriceQuote,
        b: PriceQuote,
        base: TokenDescriptor,
        quote: TokenDescriptor,
        investment_amount: float,
        min_profit_percent: float,
    ) -> Optional[ArbitrageOpportunity]:
        if a.price == b.price:
            return None
        buy, sell = (a, b) if a.price < b.price else (b, a)

        diff_percent = price_difference_percent(buy.price, sell.price)
        if diff_percent < min_profit_percent:
            return None

        buy_liq = self.liquidity_model.assess(buy.liquidity_usd, investment_amount)
        sell_liq = self.liquidity_model.assess(sell.liquidity_usd, investment_amount)
        if not (buy_liq.is_valid and sell_liq.is_valid):
            return None
        if (
            buy_liq.price_impact_percent > self.max_price_impact_percent
            or sell_liq.price_impact_percent > self.max_price_impact_percent
        ):
            return None
        min_liquidity = min(
            buy_liq.available_liquidity_usd, sell_liq.available_liquidity_usd
        )
        if min_liquidity < self.liquidity_coverage_multiplier * investment_amount:
            return None

        breakdown = compute_profit_breakdown(
            investment_amount=investment_amount,
            buy_price=buy.price,
            sell_price=sell.price,
            buy_impact_percent=buy_liq.price_impact_percent,
            sell_impact_percent=sell_liq.price_impact_percent,
            buy_fee_rate=buy.fee_rate,
            sell_fee_rate=sell.fee_rate,
            buy_gas_fee=buy.gas_estimate_usd,
            sell_gas_fee=sell.gas_estimate_usd,
            platform_fee_rate=self.platform_fee_rate,
        )
        if breakdown.net_profit <= 0:
            return None

        pair = pair_key(base, quote)
        now = self._time.current_timestamp()
        logger.debug(f"{pair} {buy.source_name} -> {sell.source_name}: {breakdown.format_log()}")
        return ArbitrageOpportunity(
            id=f"{pair}:{buy.source_name}->{sell.source_name}:{int(now * 1000)}",
            token_pair=pair,
            network=network_name(base.chain_id),
            buy_source=buy.source_name,
            sell_source=sell.source_name,
            buy_price=buy.price,
            sell_price=sell.price,
            price_difference_percent=diff_percent,
            liquidity_usd=min_liquidity,
            gross_profit=breakdown.gross_profit,
            gross_profit_percent=breakdown.gross_profit_percent,
            trading_fees=breakdown.trading_fees,
            gas_fee=breakdown.gas_fee,
            platform_fee=breakdown.platform_fee,
            net_profit=breakdown.net_profit,
            net_profit_percent=breakdown.net_profit_percent,
            investment_amount=investment_amount,
            timestamp=now,
            buy_gas_fee=breakdown.buy_gas_fee,
            sell_gas_fee=breakdown.sell_gas_fee,
            buy_price_impact_percent=buy_liq.price_impact_percent,
            sell_price_impact_percent=sell_liq.price_impact_percent,
            uses_fallback_quote=buy.is_fallback or sell.is_fallback,
        )

"""
Liquidity and price-impact model.

Impact follows a power curve of trade size relative to pool liquidity,
square root by default:

    impact% = min((trade / liquidity) ** exponent * 100, max_impact)

All constants are constructor parameters; they are heuristics, not
properties of any particular AMM.
"""

import math
from typing import Optional

from .exceptions import ValidationError
from .types import LiquidityAssessment

DEFAULT_IMPACT_EXPONENT = 0.5
DEFAULT_MAX_IMPACT_PERCENT = 10.0
DEFAULT_VALID_IMPACT_PERCENT = 3.0
DEFAULT_SAFE_TRADE_FRACTION = 0.03
DEFAULT_MISSING_LIQUIDITY_IMPACT_PERCENT = 5.0


class LiquidityModel:
    """
    Estimates price impact and safe trade size for one venue leg.

    Args:
        exponent: Curve exponent; 0.5 is the square-root model, 1.0 linear
        max_impact_percent: Ceiling applied to every impact estimate
        valid_impact_percent: Largest impact a leg may have to be valid
        safe_trade_fraction: Share of liquidity a single trade may take
        missing_liquidity_impact_percent: Impact assumed when liquidity is unknown
    """

    def __init__(
        self,
        exponent: float = DEFAULT_IMPACT_EXPONENT,
        max_impact_percent: float = DEFAULT_MAX_IMPACT_PERCENT,
        valid_impact_percent: float = DEFAULT_VALID_IMPACT_PERCENT,
        safe_trade_fraction: float = DEFAULT_SAFE_TRADE_FRACTION,
        missing_liquidity_impact_percent: float = DEFAULT_MISSING_LIQUIDITY_IMPACT_PERCENT,
    ):
        if exponent <= 0:
            raise ValueError(f"exponent must be positive: {exponent}")
        self.exponent = exponent
        self.max_impact_percent = max_impact_percent
        self.valid_impact_percent = valid_impact_percent
        self.safe_trade_fraction = safe_trade_fraction
        self.missing_liquidity_impact_percent = missing_liquidity_impact_percent

    def price_impact_percent(
        self, liquidity_usd: Optional[float], trade_amount_usd: float
    ) -> float:
        if liquidity_usd is None or liquidity_usd <= 0:
            return self.missing_liquidity_impact_percent
        ratio = trade_amount_usd / liquidity_usd
        return min(math.pow(ratio, self.exponent) * 100.0, self.max_impact_percent)

    def assess(
        self, liquidity_usd: Optional[float], trade_amount_usd: float
    ) -> LiquidityAssessment:
        """
        Assess a trade of ``trade_amount_usd`` against ``liquidity_usd``.

        Unknown or non-positive liquidity assumes the missing-liquidity
        impact and reports zero available liquidity.

        Raises:
            ValidationError: If the trade amount is negative
        """
        if trade_amount_usd < 0:
            raise ValidationError(
                f"Trade amount must not be negative: {trade_amount_usd}",
                details={"trade_amount_usd": trade_amount_usd},
            )

        impact = self.price_impact_percent(liquidity_usd, trade_amount_usd)
        if liquidity_usd is None or liquidity_usd <= 0:
            available = 0.0
        else:
            available = float(liquidity_usd)

        return LiquidityAssessment(
            available_liquidity_usd=available,
            price_impact_percent=impact,
            max_safe_trade_size_usd=available * self.safe_trade_fraction,
            is_valid=impact <= self.valid_impact_percent,
        )

    @staticmethod
    def effective_buy_price(price: float, impact_percent: float) -> float:
        """Buying pushes the price up."""
        return price * (1 + impact_percent / 100.0)

    @staticmethod
    def effective_sell_price(price: float, impact_percent: float) -> float:
        """Selling pushes the price down."""
        return price * (1 - impact_percent / 100.0)

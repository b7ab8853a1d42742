"""
Single source of truth for two-leg arbitrage profit calculations.

The detector and every consumer that re-derives a figure (logs, CLI
output, tests) go through ``compute_profit_breakdown``.

Cost model:
- Trading fees compound: the sell fee applies to what is left after the
  buy fee
- Gross profit uses slippage-adjusted effective prices
- Platform fee is a flat share of the investment
- Gas is the sum of both legs
"""

from dataclasses import dataclass

from .liquidity import LiquidityModel

DEFAULT_PLATFORM_FEE_RATE = 0.005


# ============================================================================
# Breakdown dataclass
# ============================================================================


@dataclass(frozen=True)
class ProfitBreakdown:
    """
    Complete cost breakdown of one buy/sell leg pair.

    Money amounts are in quote-token units of the investment; percentages
    are percent values (1.5 for 1.5%).
    """

    investment_amount: float
    effective_buy_price: float
    effective_sell_price: float
    tokens_acquired: float
    proceeds: float
    gross_profit: float
    gross_profit_percent: float
    trading_fees: float
    buy_gas_fee: float
    sell_gas_fee: float
    platform_fee: float
    net_profit: float
    net_profit_percent: float

    @property
    def gas_fee(self) -> float:
        return self.buy_gas_fee + self.sell_gas_fee

    @property
    def total_costs(self) -> float:
        return self.trading_fees + self.gas_fee + self.platform_fee

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "investment_amount": self.investment_amount,
            "effective_buy_price": self.effective_buy_price,
            "effective_sell_price": self.effective_sell_price,
            "gross_profit": self.gross_profit,
            "gross_profit_percent": self.gross_profit_percent,
            "trading_fees": self.trading_fees,
            "gas_fee": self.gas_fee,
            "platform_fee": self.platform_fee,
            "net_profit": self.net_profit,
            "net_profit_percent": self.net_profit_percent,
        }

    def format_log(self) -> str:
        """Format for consistent logging."""
        return (
            f"Net {self.net_profit:.2f} ({self.net_profit_percent:.3f}%) = "
            f"Gross {self.gross_profit:.2f} - "
            f"Fees {self.trading_fees:.2f} - "
            f"Gas {self.gas_fee:.2f} - "
            f"Platform {self.platform_fee:.2f} "
            f"@ {self.investment_amount:.0f}"
        )


# ============================================================================
# Core computation
# ============================================================================


def compute_trading_fees(
    investment_amount: float, buy_fee_rate: float, sell_fee_rate: float
) -> float:
    """Fees of both legs; the sell fee applies to the post-buy-fee amount."""
    buy_fee = investment_amount * buy_fee_rate
    return buy_fee + (investment_amount - buy_fee) * sell_fee_rate


def compute_profit_breakdown(
    investment_amount: float,
    buy_price: float,
    sell_price: float,
    buy_impact_percent: float,
    sell_impact_percent: float,
    buy_fee_rate: float,
    sell_fee_rate: float,
    buy_gas_fee: float,
    sell_gas_fee: float,
    platform_fee_rate: float = DEFAULT_PLATFORM_FEE_RATE,
) -> ProfitBreakdown:
    """
    Compute the profit breakdown of buying on one venue and selling on another.

    Args:
        investment_amount: Amount invested in quote-token units
        buy_price: Quoted price on the buy venue
        sell_price: Quoted price on the sell venue
        buy_impact_percent: Price impact of the buy leg in percent
        sell_impact_percent: Price impact of the sell leg in percent
        buy_fee_rate: Buy venue fee as a fraction
        sell_fee_rate: Sell venue fee as a fraction
        buy_gas_fee: Gas cost of the buy leg
        sell_gas_fee: Gas cost of the sell leg
        platform_fee_rate: Flat platform fee as a fraction of the investment

    Returns:
        ProfitBreakdown with all fields computed

    Example:
        >>> bd = compute_profit_breakdown(1000, 100, 102, 0, 0, 0, 0, 0, 0, 0)
        >>> round(bd.net_profit, 2)
        20.0
    """
    effective_buy = LiquidityModel.effective_buy_price(buy_price, buy_impact_percent)
    effective_sell = LiquidityModel.effective_sell_price(
        sell_price, sell_impact_percent
    )

    tokens_acquired = investment_amount / effective_buy
    proceeds = tokens_acquired * effective_sell
    gross_profit = proceeds - investment_amount

    trading_fees = compute_trading_fees(investment_amount, buy_fee_rate, sell_fee_rate)
    platform_fee = investment_amount * platform_fee_rate
    net_profit = gross_profit - trading_fees - (buy_gas_fee + sell_gas_fee) - platform_fee

    return ProfitBreakdown(
        investment_amount=investment_amount,
        effective_buy_price=effective_buy,
        effective_sell_price=effective_sell,
        tokens_acquired=tokens_acquired,
        proceeds=proceeds,
        gross_profit=gross_profit,
        gross_profit_percent=gross_profit / investment_amount * 100.0,
        trading_fees=trading_fees,
        buy_gas_fee=buy_gas_fee,
        sell_gas_fee=sell_gas_fee,
        platform_fee=platform_fee,
        net_profit=net_profit,
        net_profit_percent=net_profit / investment_amount * 100.0,
    )


def price_difference_percent(price_a: float, price_b: float) -> float:
    """Absolute price gap relative to the average of both prices."""
    avg = (price_a + price_b) / 2.0
    if avg <= 0:
        return 0.0
    return abs(price_a - price_b) / avg * 100.0

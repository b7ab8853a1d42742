"""
Unit tests for dex_arbitrage/opportunity_math.py

Verifies the profit breakdown that the detector, CLI output and logs
all rely on.
"""

import unittest

from dex_arbitrage.opportunity_math import (
    DEFAULT_PLATFORM_FEE_RATE,
    compute_profit_breakdown,
    compute_trading_fees,
    price_difference_percent,
)


class TestTradingFees(unittest.TestCase):
    """Fees compound across the two legs."""

    def test_compounding(self):
        fees = compute_trading_fees(1000, 0.003, 0.003)
        # 3.00 on the buy leg, 0.3% of the remaining 997 on the sell leg
        self.assertAlmostEqual(fees, 3.0 + 2.991, places=9)

    def test_zero_fees(self):
        self.assertEqual(compute_trading_fees(1000, 0, 0), 0)

    def test_asymmetric_fees(self):
        fees = compute_trading_fees(1000, 0.0004, 0.0025)
        self.assertAlmostEqual(fees, 0.4 + 999.6 * 0.0025, places=9)


class TestProfitBreakdown(unittest.TestCase):
    """Test compute_profit_breakdown."""

    def test_frictionless_case(self):
        bd = compute_profit_breakdown(1000, 100, 102, 0, 0, 0, 0, 0, 0, 0)
        self.assertAlmostEqual(bd.gross_profit, 20.0, places=9)
        self.assertAlmostEqual(bd.net_profit, 20.0, places=9)
        self.assertAlmostEqual(bd.net_profit_percent, 2.0, places=9)
        self.assertAlmostEqual(bd.tokens_acquired, 10.0, places=9)

    def test_all_costs_applied(self):
        bd = compute_profit_breakdown(
            investment_amount=1000,
            buy_price=100,
            sell_price=102,
            buy_impact_percent=0.1,
            sell_impact_percent=0.1,
            buy_fee_rate=0.003,
            sell_fee_rate=0.003,
            buy_gas_fee=0.5,
            sell_gas_fee=0.7,
        )
        self.assertAlmostEqual(bd.effective_buy_price, 100.1, places=9)
        self.assertAlmostEqual(bd.effective_sell_price, 101.898, places=9)
        self.assertAlmostEqual(bd.platform_fee, 1000 * DEFAULT_PLATFORM_FEE_RATE)
        self.assertAlmostEqual(bd.gas_fee, 1.2)
        self.assertAlmostEqual(
            bd.net_profit, bd.gross_profit - bd.total_costs, places=9
        )
        self.assertGreater(bd.net_profit, 0)

    def test_costs_can_erase_spread(self):
        bd = compute_profit_breakdown(1000, 100, 100.5, 0, 0, 0.003, 0.003, 1, 1)
        self.assertLess(bd.net_profit, 0)

    def test_to_dict_matches_fields(self):
        bd = compute_profit_breakdown(1000, 100, 102, 0.1, 0.1, 0.003, 0.003, 0.5, 0.5)
        data = bd.to_dict()
        self.assertEqual(data["net_profit"], bd.net_profit)
        self.assertEqual(data["gas_fee"], bd.gas_fee)
        self.assertEqual(data["trading_fees"], bd.trading_fees)

    def test_format_log(self):
        bd = compute_profit_breakdown(1000, 100, 102, 0, 0, 0, 0, 0, 0, 0)
        line = bd.format_log()
        self.assertIn("Net 20.00", line)
        self.assertIn("@ 1000", line)


class TestPriceDifference(unittest.TestCase):
    def test_relative_to_average(self):
        self.assertAlmostEqual(price_difference_percent(100, 102), 2 / 101 * 100)

    def test_symmetric(self):
        self.assertEqual(
            price_difference_percent(100, 102), price_difference_percent(102, 100)
        )

    def test_zero_prices(self):
        self.assertEqual(price_difference_percent(0, 0), 0.0)


if __name__ == "__main__":
    unittest.main()

"""
Unit tests for dex_arbitrage.liquidity
"""

import math

import pytest

from dex_arbitrage.exceptions import ValidationError
from dex_arbitrage.liquidity import LiquidityModel


@pytest.fixture
def model():
    return LiquidityModel()


class TestPriceImpact:
    """Impact curve behaviour."""

    def test_square_root_default(self, model):
        # 1% of the pool -> sqrt(0.01) * 100 = 10%, capped at 10
        assert model.price_impact_percent(1_000_000, 10_000) == pytest.approx(10.0)
        assert model.price_impact_percent(1_000_000, 100) == pytest.approx(1.0)

    def test_linear_exponent(self):
        model = LiquidityModel(exponent=1.0)
        assert model.price_impact_percent(1_000_000, 1_000) == pytest.approx(0.1)

    def test_impact_is_capped(self, model):
        assert model.price_impact_percent(1_000, 1_000_000) == 10.0

    @pytest.mark.parametrize("trade", [0, 1, 10, 100, 1_000, 10_000, 100_000, 1e9])
    def test_impact_within_range(self, model, trade):
        impact = model.price_impact_percent(500_000, trade)
        assert 0 <= impact <= 10

    def test_impact_monotonic_in_trade_size(self, model):
        impacts = [model.price_impact_percent(1_000_000, t) for t in (10, 100, 1_000, 5_000)]
        assert impacts == sorted(impacts)

    def test_zero_trade_has_no_impact(self, model):
        assert model.price_impact_percent(1_000_000, 0) == 0.0

    def test_rejects_non_positive_exponent(self):
        with pytest.raises(ValueError):
            LiquidityModel(exponent=0)


class TestAssess:
    """LiquidityAssessment construction."""

    def test_deep_pool_is_valid(self, model):
        assessment = model.assess(10_000_000, 1_000)
        assert assessment.is_valid
        assert assessment.available_liquidity_usd == 10_000_000
        assert assessment.max_safe_trade_size_usd == pytest.approx(300_000)
        assert assessment.price_impact_percent == pytest.approx(math.sqrt(0.0001) * 100)

    def test_shallow_pool_is_invalid(self, model):
        assessment = model.assess(100_000, 1_000)
        assert not assessment.is_valid
        assert assessment.price_impact_percent == pytest.approx(10.0)

    @pytest.mark.parametrize("liquidity", [None, 0, -5])
    def test_missing_liquidity(self, model, liquidity):
        assessment = model.assess(liquidity, 1_000)
        assert assessment.price_impact_percent == 5.0
        assert assessment.available_liquidity_usd == 0.0
        assert assessment.max_safe_trade_size_usd == 0.0
        assert not assessment.is_valid

    def test_negative_trade_raises(self, model):
        with pytest.raises(ValidationError):
            model.assess(1_000_000, -1)


class TestEffectivePrices:
    def test_buy_price_moves_up(self):
        assert LiquidityModel.effective_buy_price(100.0, 1.0) == pytest.approx(101.0)

    def test_sell_price_moves_down(self):
        assert LiquidityModel.effective_sell_price(100.0, 1.0) == pytest.approx(99.0)

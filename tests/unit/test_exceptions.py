"""
Unit tests for the exception hierarchy
"""

import pytest

from dex_arbitrage.exceptions import (
    ChainUnsupportedError,
    ConfigurationError,
    DexArbitrageError,
    ExecutionError,
    QuoteFetchError,
    StoreError,
    ValidationError,
)


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        "exc_class",
        [
            ConfigurationError,
            ValidationError,
            ChainUnsupportedError,
            QuoteFetchError,
            StoreError,
            ExecutionError,
        ],
    )
    def test_inherits_from_base(self, exc_class):
        assert issubclass(exc_class, DexArbitrageError)
        assert issubclass(exc_class, Exception)

    def test_details_default_to_empty(self):
        error = DexArbitrageError("boom")
        assert str(error) == "boom"
        assert error.details == {}

    def test_details_kept(self):
        error = ValidationError("bad amount", details={"investment_amount": -1})
        assert error.details["investment_amount"] == -1


class TestSpecificErrors:
    def test_quote_fetch_error(self):
        error = QuoteFetchError("1inch API error: 429", source="1inch", status_code=429)
        assert error.source == "1inch"
        assert error.status_code == 429

    def test_chain_unsupported(self):
        error = ChainUnsupportedError("no", source="orca", chain_id=1)
        assert error.source == "orca"
        assert error.chain_id == 1

    def test_store_error(self):
        error = StoreError("locked", operation="append_quote")
        assert error.operation == "append_quote"

    def test_execution_error(self):
        error = ExecutionError("reverted", opportunity_id="WETH/USDC:X->Y:1")
        assert error.opportunity_id == "WETH/USDC:X->Y:1"

    def test_catch_as_base(self):
        with pytest.raises(DexArbitrageError):
            raise QuoteFetchError("down")

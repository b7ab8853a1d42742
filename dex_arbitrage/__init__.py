"""
DEX Price Aggregation and Arbitrage Detection.

Queries multiple DEX price sources concurrently, reconciles their answers
under partial failure and runs a profitability model covering trading fees,
gas, price impact and a platform fee.
"""

from dex_arbitrage.version import __version__

PROJECT_NAME = "dex-arbitrage"
VERSION = __version__

from dex_arbitrage.aggregator import PriceAggregationService
from dex_arbitrage.cache import QuoteCache
from dex_arbitrage.config import ScannerConfig, load_config
from dex_arbitrage.detector import ArbitrageDetector
from dex_arbitrage.exceptions import (
    ChainUnsupportedError,
    ConfigurationError,
    DexArbitrageError,
    ExecutionError,
    QuoteFetchError,
    StoreError,
    ValidationError,
)
from dex_arbitrage.liquidity import LiquidityModel
from dex_arbitrage.rate_limiter import RateLimit, RateLimiter
from dex_arbitrage.registry import AdapterRegistry, build_default_registry
from dex_arbitrage.scanner import ArbitrageScanner
from dex_arbitrage.types import (
    ArbitrageOpportunity,
    ExecutionResult,
    LiquidityAssessment,
    PriceQuote,
    ScanResult,
    SourceConfig,
    TokenDescriptor,
    TransactionStatus,
)

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "PriceAggregationService",
    "QuoteCache",
    "ScannerConfig",
    "load_config",
    "ArbitrageDetector",
    "ChainUnsupportedError",
    "ConfigurationError",
    "DexArbitrageError",
    "ExecutionError",
    "QuoteFetchError",
    "StoreError",
    "ValidationError",
    "LiquidityModel",
    "RateLimit",
    "RateLimiter",
    "AdapterRegistry",
    "build_default_registry",
    "ArbitrageScanner",
    "ArbitrageOpportunity",
    "ExecutionResult",
    "LiquidityAssessment",
    "PriceQuote",
    "ScanResult",
    "SourceConfig",
    "TokenDescriptor",
    "TransactionStatus",
]

"""Price source adapters and venue clients."""

from .base import (
    DexSourceAdapter,
    PriceSource,
    QuoteClient,
    RawQuote,
    normalize_price,
    request_json,
    to_raw_amount,
)
from .fallback import FallbackQuoter, estimate_liquidity, estimate_static_price
from .jupiter import JupiterQuoteClient
from .oneinch import OneInchQuoteClient
from .subgraph import (
    PANCAKESWAP_SUBGRAPH_URLS,
    UNISWAP_SUBGRAPH_URLS,
    UniswapSubgraphClient,
)

__all__ = [
    "DexSourceAdapter",
    "PriceSource",
    "QuoteClient",
    "RawQuote",
    "normalize_price",
    "request_json",
    "to_raw_amount",
    "FallbackQuoter",
    "estimate_liquidity",
    "estimate_static_price",
    "JupiterQuoteClient",
    "OneInchQuoteClient",
    "UniswapSubgraphClient",
    "UNISWAP_SUBGRAPH_URLS",
    "PANCAKESWAP_SUBGRAPH_URLS",
]

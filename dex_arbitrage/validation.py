"""
Sanity checks applied to quotes before they enter a scan.
"""

import math
from typing import Iterable, List, Optional

from .types import QUOTE_FRESHNESS_SECONDS, PriceQuote
from .utils import get_logger

logger = get_logger(__name__)

MIN_REASONABLE_PRICE = 1e-10
MAX_REASONABLE_PRICE = 1e10
MAX_CONSISTENCY_DEVIATION = 0.10


def validate_quote(
    quote: PriceQuote,
    now: float,
    max_age: float = QUOTE_FRESHNESS_SECONDS,
) -> Optional[str]:
    """
    Check one quote for reasonableness.

    Unknown liquidity (None) passes; the liquidity model treats it as
    missing.

    Returns:
        None when the quote is acceptable, otherwise the rejection reason
    """
    price = quote.price
    if price is None or not math.isfinite(price) or price <= 0:
        return f"non-positive price {price}"
    if price < MIN_REASONABLE_PRICE or price > MAX_REASONABLE_PRICE:
        return f"price {price} outside reasonable range"
    if quote.liquidity_usd is not None and quote.liquidity_usd <= 0:
        return f"non-positive liquidity {quote.liquidity_usd}"
    if quote.is_stale(now, max_age):
        return f"stale quote ({quote.age(now):.0f}s old)"
    return None


def inconsistent_sources(
    quotes: Iterable[PriceQuote], max_deviation: float = MAX_CONSISTENCY_DEVIATION
) -> List[str]:
    """Names of sources whose price deviates from the mean by more than ``max_deviation``."""
    quotes = list(quotes)
    if len(quotes) < 2:
        return []
    avg = sum(q.price for q in quotes) / len(quotes)
    if avg <= 0:
        return []
    return [q.source_name for q in quotes if abs(q.price - avg) / avg > max_deviation]


def check_price_consistency(
    quotes: Iterable[PriceQuote],
    pair: str = "",
    max_deviation: float = MAX_CONSISTENCY_DEVIATION,
) -> bool:
    """Log a warning when sources disagree; return True when they agree."""
    outliers = inconsistent_sources(quotes, max_deviation)
    if outliers:
        logger.warning(
            f"Price inconsistency for {pair}: {', '.join(outliers)} deviate more "
            f"than {max_deviation * 100:.0f}% from the mean"
        )
        return False
    return True

"""
Short-lived cache of aggregated quote maps.

Entries are immutable and replaced as a whole, so a reader either sees the
previous map or the new one, never a partial update.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from .interfaces import SystemTimeProvider, TimeProvider
from .types import PriceQuote, TokenDescriptor

DEFAULT_CACHE_TTL_SECONDS = 30.0

CacheKey = Tuple[tuple, tuple, int]


@dataclass(frozen=True)
class CacheEntry:
    quotes: Mapping[str, PriceQuote]
    stored_at: float


def cache_key(base: TokenDescriptor, quote: TokenDescriptor) -> CacheKey:
    return (base.key, quote.key, base.chain_id)


class QuoteCache:
    """TTL cache keyed by (base, quote, chain)."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        time_provider: Optional[TimeProvider] = None,
    ):
        self.ttl_seconds = ttl_seconds
        self._time = time_provider or SystemTimeProvider()
        self._entries: Dict[CacheKey, CacheEntry] = {}

    def get(
        self, base: TokenDescriptor, quote: TokenDescriptor
    ) -> Optional[Dict[str, PriceQuote]]:
        """Fresh quote map for the pair, or None."""
        entry = self._entries.get(cache_key(base, quote))
        if entry is None:
            return None
        if self._time.current_timestamp() - entry.stored_at >= self.ttl_seconds:
            return None
        return dict(entry.quotes)

    def put(
        self,
        base: TokenDescriptor,
        quote: TokenDescriptor,
        quotes: Mapping[str, PriceQuote],
    ) -> None:
        # Last writer wins
        self._entries[cache_key(base, quote)] = CacheEntry(
            quotes=MappingProxyType(dict(quotes)),
            stored_at=self._time.current_timestamp(),
        )

    def invalidate(
        self,
        base: Optional[TokenDescriptor] = None,
        quote: Optional[TokenDescriptor] = None,
    ) -> None:
        if base is None or quote is None:
            self._entries = {}
        else:
            self._entries.pop(cache_key(base, quote), None)

    def __len__(self) -> int:
        return len(self._entries)

"""
Price aggregation: concurrent fan-out over every adapter serving a chain.

Partial failure is the normal case. Each fetch is bounded by its own
timeout, and an optional overall timeout cancels stragglers while keeping
the quotes that already arrived.
"""

import asyncio
from typing import Dict, List, Optional

from .cache import QuoteCache
from .interfaces import QuoteStore, SystemTimeProvider, TimeProvider
from .registry import AdapterRegistry
from .types import PriceQuote, TokenDescriptor, pair_key
from .utils import get_logger
from .validation import check_price_consistency, validate_quote

logger = get_logger(__name__)

DEFAULT_FETCH_TIMEOUT_SECONDS = 10.0


class PriceAggregationService:
    """
    Collects one quote per enabled source for a token pair.

    Args:
        registry: Source registry
        cache: Quote map cache, a fresh 30s cache when omitted
        store: Durable store receiving every live quote
        time_provider: Clock used for validation
        fetch_timeout: Last-resort upper bound per source. Adapters built
            with the same budget fall back before reaching it
        scan_timeout: Optional upper bound for the whole fan-out
        metrics: Optional metrics recorder
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        cache: Optional[QuoteCache] = None,
        store: Optional[QuoteStore] = None,
        time_provider: Optional[TimeProvider] = None,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        scan_timeout: Optional[float] = None,
        metrics=None,
    ):
        self.registry = registry
        self._time = time_provider or SystemTimeProvider()
        self.cache = cache or QuoteCache(time_provider=self._time)
        self._store = store
        self.fetch_timeout = fetch_timeout
        self.scan_timeout = scan_timeout
        self._metrics = metrics

    async def _fetch_one(
        self, adapter, base: TokenDescriptor, quote: TokenDescriptor, amount: float
    ) -> Optional[PriceQuote]:
        try:
            return await asyncio.wait_for(
                adapter.fetch_quote(base, quote, amount), timeout=self.fetch_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"{adapter.name} did not answer within {self.fetch_timeout}s, "
                f"dropping it from this scan"
            )
        except Exception as e:
            logger.error(f"{adapter.name} raised unexpectedly: {e}", exc_info=True)
        if self._metrics is not None:
            self._metrics.record_quote(adapter.name, "unavailable")
        return None

    async def _gather(
        self, adapters: List, base: TokenDescriptor, quote: TokenDescriptor, amount: float
    ) -> List[Optional[PriceQuote]]:
        tasks = [
            asyncio.ensure_future(self._fetch_one(adapter, base, quote, amount))
            for adapter in adapters
        ]
        if self.scan_timeout is None:
            return list(await asyncio.gather(*tasks))

        done, pending = await asyncio.wait(tasks, timeout=self.scan_timeout)
        if pending:
            logger.warning(
                f"Scan timeout of {self.scan_timeout}s reached, cancelling "
                f"{len(pending)} pending fetch(es)"
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        return [task.result() for task in tasks if task in done]

    async def aggregate(
        self,
        base: TokenDescriptor,
        quote: TokenDescriptor,
        force_refresh: bool = False,
        amount: float = 1.0,
    ) -> Dict[str, PriceQuote]:
        """
        Quotes keyed by source name for ``base``/``quote``.

        Returns the cached map when one is fresh and ``force_refresh`` is
        False. Sources that opted out, timed out or failed validation are
        absent from the map.
        """
        pair = pair_key(base, quote)
        if not force_refresh:
            cached = self.cache.get(base, quote)
            if cached is not None:
                logger.debug(f"Cache hit for {pair} on chain {base.chain_id}")
                return cached

        adapters = self.registry.adapters_for_chain(base.chain_id)
        if not adapters:
            logger.info(f"No enabled price sources for chain {base.chain_id}")
            return {}

        results = await self._gather(adapters, base, quote, amount)

        now = self._time.current_timestamp()
        quotes: Dict[str, PriceQuote] = {}
        for result in results:
            if result is None:
                continue
            reason = validate_quote(result, now)
            if reason is not None:
                logger.warning(f"Discarding {result.source_name} quote for {pair}: {reason}")
                if self._metrics is not None:
                    self._metrics.record_quote(result.source_name, "invalid")
                continue
            quotes[result.source_name] = result

        check_price_consistency(quotes.values(), pair)
        await self._persist(pair, base.chain_id, quotes)

        # Empty maps are not cached so a recovering source is retried at once
        if quotes:
            self.cache.put(base, quote, quotes)
        logger.debug(f"Aggregated {len(quotes)}/{len(adapters)} quotes for {pair}")
        return quotes

    async def _persist(
        self, pair: str, chain_id: int, quotes: Dict[str, PriceQuote]
    ) -> None:
        if self._store is None:
            return
        for price_quote in quotes.values():
            if price_quote.is_fallback:
                continue
            try:
                await self._store.append_quote(pair, chain_id, price_quote)
            except Exception as e:
                logger.error(
                    f"Failed to store {price_quote.source_name} quote for {pair}: {e}"
                )

    async def price_history(
        self,
        base: TokenDescriptor,
        quote: TokenDescriptor,
        source_name: Optional[str] = None,
        limit: int = 100,
    ) -> List[PriceQuote]:
        """Stored live quotes for the pair, newest first."""
        if self._store is None:
            return []
        return await self._store.quote_history(
            pair_key(base, quote), base.chain_id, source_name, limit
        )

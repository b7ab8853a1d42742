"""
Adapter registry: which price sources exist and which serve a chain.

The registry owns the enable flags of its adapters. ``set_enabled`` is the
only mutation entry point; scans read a consistent list via
``adapters_for_chain``.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

import aiohttp

from .adapters import (
    PANCAKESWAP_SUBGRAPH_URLS,
    UNISWAP_SUBGRAPH_URLS,
    DexSourceAdapter,
    JupiterQuoteClient,
    OneInchQuoteClient,
    PriceSource,
    UniswapSubgraphClient,
)
from .adapters.base import DEFAULT_FETCH_BUDGET_SECONDS, DEFAULT_REQUEST_TIMEOUT_SECONDS
from .adapters.jupiter import DEFAULT_JUPITER_URL
from .adapters.oneinch import DEFAULT_ONEINCH_URL
from .exceptions import ConfigurationError
from .interfaces import QuoteStore, RandomProvider, TimeProvider
from .rate_limiter import RateLimiter
from .types import SourceConfig, is_solana_chain
from .utils import get_logger

logger = get_logger(__name__)

EVM_FAMILY = "evm"
SOLANA_FAMILY = "solana"

DEFAULT_SOURCE_CONFIGS: List[SourceConfig] = [
    SourceConfig("Uniswap", "uniswap", frozenset({1, 42161, 10, 8453}), 0.3),
    SourceConfig("SushiSwap", "sushiswap", frozenset({1, 137, 42161, 8453}), 0.3),
    SourceConfig("PancakeSwap", "pancakeswap", frozenset({56}), 0.25),
    SourceConfig("Balancer", "balancer", frozenset({1, 137, 42161, 10}), 0.2),
    SourceConfig("Curve", "curve", frozenset({1, 137, 42161, 10}), 0.04),
    SourceConfig("Jupiter", "jupiter", frozenset({101}), 0.2),
    SourceConfig("Orca", "orca", frozenset({101}), 0.25),
    SourceConfig("Raydium", "raydium", frozenset({101}), 0.25),
]

# 1inch protocol filter per aggregator-backed venue
ONEINCH_PROTOCOLS: Dict[str, str] = {
    "sushiswap": "SUSHI",
    "balancer": "BALANCER",
    "curve": "CURVE",
}

# Jupiter route label per Solana venue; None routes across every AMM
JUPITER_ROUTE_LABELS: Dict[str, Optional[str]] = {
    "jupiter": None,
    "orca": "Orca",
    "raydium": "Raydium",
}


def venue_family(source: PriceSource) -> str:
    chains = source.supported_chains()
    if chains and all(is_solana_chain(c) for c in chains):
        return SOLANA_FAMILY
    return EVM_FAMILY


def chain_family(chain_id: int) -> str:
    return SOLANA_FAMILY if is_solana_chain(chain_id) else EVM_FAMILY


class AdapterRegistry:
    """Holds every known price source keyed by slug."""

    def __init__(self, adapters: Iterable[PriceSource] = ()):
        self._adapters: Dict[str, PriceSource] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: PriceSource) -> None:
        if adapter.slug in self._adapters:
            raise ConfigurationError(f"Duplicate price source slug: {adapter.slug}")
        self._adapters[adapter.slug] = adapter

    def slugs(self) -> List[str]:
        return list(self._adapters)

    def get(self, slug: str) -> PriceSource:
        try:
            return self._adapters[slug]
        except KeyError:
            raise ConfigurationError(
                f"Unknown price source: {slug}",
                details={"known_sources": self.slugs()},
            ) from None

    def adapters_for_chain(self, chain_id: int) -> List[PriceSource]:
        """Enabled adapters that serve ``chain_id``, never crossing venue families."""
        family = chain_family(chain_id)
        return [
            adapter
            for adapter in self._adapters.values()
            if adapter.is_enabled()
            and chain_id in adapter.supported_chains()
            and venue_family(adapter) == family
        ]

    def set_enabled(self, slug: str, enabled: bool) -> None:
        adapter = self.get(slug)
        adapter.set_enabled(enabled)
        logger.info(f"Price source {slug} {'enabled' if enabled else 'disabled'}")

    def apply_flags(self, flags: Mapping[str, bool]) -> None:
        """Restore persisted enable flags; unknown slugs are ignored."""
        for slug, enabled in flags.items():
            if slug in self._adapters:
                self._adapters[slug].set_enabled(bool(enabled))
            else:
                logger.warning(f"Ignoring flag for unknown price source: {slug}")

    def enabled_flags(self) -> Dict[str, bool]:
        return {slug: a.is_enabled() for slug, a in self._adapters.items()}

    def all_configs(self) -> List[SourceConfig]:
        """Snapshot of every source configuration."""
        return [adapter.config.snapshot() for adapter in self._adapters.values()]

    def __len__(self) -> int:
        return len(self._adapters)

    def __contains__(self, slug: str) -> bool:
        return slug in self._adapters


@dataclass
class Endpoints:
    """Upstream API locations used by the default venues."""

    oneinch_url: str = DEFAULT_ONEINCH_URL
    oneinch_api_key: Optional[str] = None
    jupiter_url: str = DEFAULT_JUPITER_URL
    uniswap_subgraphs: Dict[int, str] = field(
        default_factory=lambda: dict(UNISWAP_SUBGRAPH_URLS)
    )
    pancakeswap_subgraphs: Dict[int, str] = field(
        default_factory=lambda: dict(PANCAKESWAP_SUBGRAPH_URLS)
    )


def build_client(slug: str, session: aiohttp.ClientSession, endpoints: Endpoints):
    """Venue client for one of the default venues."""
    if slug == "uniswap":
        return UniswapSubgraphClient(session, endpoints.uniswap_subgraphs, label="uniswap")
    if slug == "pancakeswap":
        return UniswapSubgraphClient(
            session, endpoints.pancakeswap_subgraphs, label="pancakeswap"
        )
    if slug in ONEINCH_PROTOCOLS:
        return OneInchQuoteClient(
            session,
            protocols=ONEINCH_PROTOCOLS[slug],
            base_url=endpoints.oneinch_url,
            api_key=endpoints.oneinch_api_key,
        )
    if slug in JUPITER_ROUTE_LABELS:
        return JupiterQuoteClient(
            session, route_label=JUPITER_ROUTE_LABELS[slug], url=endpoints.jupiter_url
        )
    raise ConfigurationError(f"No venue client for price source: {slug}")


def build_default_registry(
    session: aiohttp.ClientSession,
    rate_limiter: RateLimiter,
    endpoints: Optional[Endpoints] = None,
    enabled: Optional[Mapping[str, bool]] = None,
    time_provider: Optional[TimeProvider] = None,
    random_provider: Optional[RandomProvider] = None,
    store: Optional[QuoteStore] = None,
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    metrics=None,
    fetch_budget: float = DEFAULT_FETCH_BUDGET_SECONDS,
) -> AdapterRegistry:
    """
    Create a registry with the eight default venues.

    Args:
        session: Shared aiohttp session for every venue client
        rate_limiter: Limiter shared by all adapters, keyed by slug
        endpoints: Upstream API locations
        enabled: Initial enable flags per slug
        time_provider: Clock for quotes and fallbacks
        random_provider: Jitter source for fallbacks
        store: Durable store consulted by fallbacks
        request_timeout: Per-request timeout in seconds
        metrics: Optional metrics recorder
        fetch_budget: Seconds one fetch may spend on rate-limit waits,
            the request and the fallback together

    Returns:
        AdapterRegistry
    """
    endpoints = endpoints or Endpoints()
    enabled = enabled or {}
    registry = AdapterRegistry()
    for default in DEFAULT_SOURCE_CONFIGS:
        config = default.snapshot()
        if default.slug in enabled:
            config.enabled = bool(enabled[default.slug])
        registry.register(
            DexSourceAdapter(
                config=config,
                client=build_client(config.slug, session, endpoints),
                rate_limiter=rate_limiter,
                time_provider=time_provider,
                random_provider=random_provider,
                store=store,
                request_timeout=request_timeout,
                metrics=metrics,
                fetch_budget=fetch_budget,
            )
        )
    unknown = set(enabled) - set(registry.slugs())
    if unknown:
        raise ConfigurationError(
            f"Unknown price sources in configuration: {sorted(unknown)}"
        )
    return registry

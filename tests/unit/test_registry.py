"""
Unit tests for the adapter registry and default venue wiring
"""

import aiohttp
import pytest

from conftest import StaticSource
from dex_arbitrage.adapters import JupiterQuoteClient, OneInchQuoteClient, UniswapSubgraphClient
from dex_arbitrage.exceptions import ConfigurationError
from dex_arbitrage.rate_limiter import RateLimiter
from dex_arbitrage.registry import (
    DEFAULT_SOURCE_CONFIGS,
    AdapterRegistry,
    Endpoints,
    build_client,
    build_default_registry,
)


@pytest.fixture
def registry():
    return AdapterRegistry(
        [
            StaticSource("Alpha", chains={1, 137}),
            StaticSource("Beta", chains={1}),
            StaticSource("Sol", chains={101}),
        ]
    )


class TestAdapterRegistry:
    def test_register_and_get(self, registry):
        assert len(registry) == 3
        assert "alpha" in registry
        assert registry.get("beta").name == "Beta"
        assert registry.slugs() == ["alpha", "beta", "sol"]

    def test_duplicate_slug(self, registry):
        with pytest.raises(ConfigurationError):
            registry.register(StaticSource("Alpha"))

    def test_unknown_slug(self, registry):
        with pytest.raises(ConfigurationError) as exc_info:
            registry.get("missing")
        assert "alpha" in exc_info.value.details["known_sources"]

    def test_adapters_for_chain(self, registry):
        assert [a.slug for a in registry.adapters_for_chain(1)] == ["alpha", "beta"]
        assert [a.slug for a in registry.adapters_for_chain(137)] == ["alpha"]
        assert [a.slug for a in registry.adapters_for_chain(101)] == ["sol"]
        assert registry.adapters_for_chain(56) == []

    def test_disabled_adapters_skipped(self, registry):
        registry.set_enabled("beta", False)
        assert [a.slug for a in registry.adapters_for_chain(1)] == ["alpha"]
        assert registry.enabled_flags() == {"alpha": True, "beta": False, "sol": True}

    def test_set_enabled_unknown(self, registry):
        with pytest.raises(ConfigurationError):
            registry.set_enabled("missing", True)

    def test_apply_flags_ignores_unknown(self, registry):
        registry.apply_flags({"alpha": False, "missing": False})
        assert not registry.get("alpha").is_enabled()

    def test_all_configs_are_snapshots(self, registry):
        configs = registry.all_configs()
        configs[0].enabled = False
        assert registry.get("alpha").is_enabled()


class TestDefaultRegistry:
    @pytest.mark.asyncio
    async def test_eight_default_venues(self, time_provider):
        async with aiohttp.ClientSession() as session:
            registry = build_default_registry(
                session, RateLimiter(time_provider=time_provider), time_provider=time_provider
            )
        assert registry.slugs() == [c.slug for c in DEFAULT_SOURCE_CONFIGS]
        assert {a.slug for a in registry.adapters_for_chain(1)} == {
            "uniswap", "sushiswap", "balancer", "curve",
        }
        assert [a.slug for a in registry.adapters_for_chain(56)] == ["pancakeswap"]
        assert {a.slug for a in registry.adapters_for_chain(101)} == {
            "jupiter", "orca", "raydium",
        }
        assert isinstance(registry.get("balancer").client, OneInchQuoteClient)
        assert registry.get("balancer").client.protocols == "BALANCER"

    @pytest.mark.asyncio
    async def test_initial_flags(self):
        async with aiohttp.ClientSession() as session:
            registry = build_default_registry(session, RateLimiter(), enabled={"curve": False})
        assert not registry.get("curve").is_enabled()
        # Defaults stay untouched for the next registry
        assert all(c.enabled for c in DEFAULT_SOURCE_CONFIGS)

    @pytest.mark.asyncio
    async def test_unknown_flag_rejected(self):
        async with aiohttp.ClientSession() as session:
            with pytest.raises(ConfigurationError):
                build_default_registry(session, RateLimiter(), enabled={"kraken": True})

    @pytest.mark.asyncio
    async def test_venue_clients(self):
        endpoints = Endpoints(oneinch_api_key="secret")
        async with aiohttp.ClientSession() as session:
            assert isinstance(build_client("uniswap", session, endpoints), UniswapSubgraphClient)
            assert isinstance(build_client("pancakeswap", session, endpoints), UniswapSubgraphClient)
            curve = build_client("curve", session, endpoints)
            orca = build_client("orca", session, endpoints)
            jupiter = build_client("jupiter", session, endpoints)
            with pytest.raises(ConfigurationError):
                build_client("kraken", session, endpoints)

        assert isinstance(curve, OneInchQuoteClient)
        assert curve.protocols == "CURVE"
        assert isinstance(orca, JupiterQuoteClient)
        assert orca.route_label == "Orca"
        assert jupiter.route_label is None

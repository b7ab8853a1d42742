"""
Unit tests for Prometheus metrics
"""

import aiohttp.test_utils
import pytest
from prometheus_client import CollectorRegistry, generate_latest

from dex_arbitrage.metrics import ScannerMetrics


@pytest.fixture
def test_registry():
    """Create a test-specific registry"""
    return CollectorRegistry()


@pytest.fixture
def metrics(test_registry):
    """Create ScannerMetrics instance with test registry"""
    return ScannerMetrics(test_registry)


class TestScannerMetrics:
    """Test ScannerMetrics functionality"""

    def test_initialization(self, metrics):
        assert metrics.registry is not None
        assert hasattr(metrics, "quotes_total")
        assert hasattr(metrics, "scan_duration_seconds")

    def test_quote_metrics(self, metrics, test_registry):
        metrics.record_quote("Uniswap", "live", latency=0.12)
        metrics.record_quote("Uniswap", "fallback")
        metrics.record_quote("Curve", "unavailable")

        assert (
            test_registry.get_sample_value(
                "dex_arbitrage_quotes_total", {"source": "Uniswap", "outcome": "live"}
            )
            == 1
        )
        assert (
            test_registry.get_sample_value(
                "dex_arbitrage_quote_latency_seconds_count", {"source": "Uniswap"}
            )
            == 1
        )
        assert (
            test_registry.get_sample_value(
                "dex_arbitrage_quotes_total", {"source": "Curve", "outcome": "unavailable"}
            )
            == 1
        )

    def test_scan_metrics(self, metrics, test_registry):
        metrics.record_scan("ethereum", opportunities=3, duration=0.4)
        metrics.record_scan("ethereum", opportunities=0, duration=0.2)

        assert test_registry.get_sample_value(
            "dex_arbitrage_scans_total", {"chain": "ethereum"}
        ) == 2
        assert test_registry.get_sample_value(
            "dex_arbitrage_opportunities_total", {"chain": "ethereum"}
        ) == 3
        assert test_registry.get_sample_value("dex_arbitrage_scan_duration_seconds_count") == 2

    def test_source_enabled_gauge(self, metrics, test_registry):
        metrics.set_source_enabled("Curve", True)
        metrics.set_source_enabled("Curve", False)
        assert test_registry.get_sample_value(
            "dex_arbitrage_source_enabled", {"source": "Curve"}
        ) == 0

    def test_metrics_summary(self, metrics):
        metrics.record_quote("Uniswap", "live", 0.2)
        metrics.record_quote("Curve", "live")
        metrics.record_quote("Curve", "fallback")
        metrics.record_scan("ethereum", 2, 0.5)
        metrics.record_scan("solana", 0, 0.3)

        summary = metrics.get_metrics_summary()

        assert summary["quotes_by_outcome"] == {"live": 2, "fallback": 1}
        assert summary["scans"] == 2
        assert summary["opportunities"] == 2
        assert "timestamp" in summary

    def test_empty_summary(self, metrics):
        summary = metrics.get_metrics_summary()
        assert summary["quotes_by_outcome"] == {}
        assert summary["scans"] == 0

    def test_registries_are_isolated(self):
        first = ScannerMetrics(CollectorRegistry())
        second = ScannerMetrics(CollectorRegistry())
        first.record_quote("Orca", "live")
        output = generate_latest(second.registry).decode("utf-8")
        assert 'source="Orca"' not in output


class TestMetricsServer:
    """HTTP exposure of metrics and health"""

    @pytest.mark.asyncio
    async def test_metrics_endpoint(self, metrics):
        metrics.record_quote("Uniswap", "live")
        client = aiohttp.test_utils.TestClient(aiohttp.test_utils.TestServer(metrics.build_app()))
        await client.start_server()
        try:
            resp = await client.get("/metrics")
            assert resp.status == 200
            body = await resp.text()
            assert "dex_arbitrage_quotes_total" in body
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_health_endpoint(self, metrics):
        metrics._health_provider = lambda: [{"slug": "uniswap", "status": "online"}]
        client = aiohttp.test_utils.TestClient(aiohttp.test_utils.TestServer(metrics.build_app()))
        await client.start_server()
        try:
            resp = await client.get("/health")
            assert resp.status == 200
            data = await resp.json()
        finally:
            await client.close()

        assert data["status"] == "healthy"
        assert data["service"] == "dex_arbitrage_metrics"
        assert data["sources"][0]["slug"] == "uniswap"
        assert data["metrics"]["scans"] == 0

    @pytest.mark.asyncio
    async def test_start_and_stop(self, metrics):
        port = aiohttp.test_utils.unused_port()
        assert await metrics.start_server(port=port, host="127.0.0.1")
        await metrics.stop_server()
        assert metrics._runner is None

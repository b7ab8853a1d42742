"""
Prometheus Metrics for the DEX arbitrage scanner

Exposes quote, scan and opportunity metrics for monitoring and alerting.
"""

import json
import threading
import time
from typing import Any, Dict, Optional

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from .utils import get_logger

logger = get_logger(__name__)


class ScannerMetrics:
    """
    Scanner metrics collection and exposure

    Provides Prometheus-compatible metrics for:
    - Quote outcomes and latency per source
    - Scan counts and duration
    - Detected opportunities
    - Source enable state
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize metrics with custom registry or default"""
        self.registry = registry or REGISTRY
        self._initialize_metrics()

        # Server components
        self._app = None
        self._runner = None
        self._site = None
        self._health_provider = None

        # Thread-safe access
        self._lock = threading.RLock()

    def _initialize_metrics(self):
        """Initialize all Prometheus metrics"""

        # === QUOTE METRICS ===
        self.quotes_total = Counter(
            "dex_arbitrage_quotes_total",
            "Quotes produced per source by outcome (live, fallback, unavailable, invalid)",
            ["source", "outcome"],
            registry=self.registry,
        )

        self.quote_latency_seconds = Histogram(
            "dex_arbitrage_quote_latency_seconds",
            "Latency of successful live quote requests",
            ["source"],
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
            registry=self.registry,
        )

        # === SCAN METRICS ===
        self.scans_total = Counter(
            "dex_arbitrage_scans_total",
            "Total number of completed scans",
            ["chain"],
            registry=self.registry,
        )

        self.opportunities_total = Counter(
            "dex_arbitrage_opportunities_total",
            "Total number of opportunities emitted",
            ["chain"],
            registry=self.registry,
        )

        self.scan_duration_seconds = Histogram(
            "dex_arbitrage_scan_duration_seconds",
            "Duration of complete scans",
            buckets=[0.1, 0.5, 1, 2, 5, 10, 30],
            registry=self.registry,
        )

        # === SOURCE METRICS ===
        self.source_enabled = Gauge(
            "dex_arbitrage_source_enabled",
            "Whether a price source is enabled (1) or disabled (0)",
            ["source"],
            registry=self.registry,
        )

    # === RECORDING METHODS ===

    def record_quote(self, source: str, outcome: str, latency: Optional[float] = None):
        """Record the outcome of one quote request"""
        with self._lock:
            self.quotes_total.labels(source=source, outcome=outcome).inc()
            if latency is not None:
                self.quote_latency_seconds.labels(source=source).observe(latency)

    def record_scan(self, chain: str, opportunities: int, duration: float):
        """Record a completed scan"""
        with self._lock:
            self.scans_total.labels(chain=chain).inc()
            if opportunities:
                self.opportunities_total.labels(chain=chain).inc(opportunities)
            self.scan_duration_seconds.observe(duration)

    def set_source_enabled(self, source: str, enabled: bool):
        """Update the enable gauge of one source"""
        with self._lock:
            self.source_enabled.labels(source=source).set(1 if enabled else 0)

    # === SERVER MANAGEMENT ===

    async def start_server(
        self,
        port: int = 8000,
        host: str = "0.0.0.0",
        path: str = "/metrics",
        health_provider=None,
    ):
        """
        Start Prometheus metrics HTTP server

        ``health_provider`` is an optional zero-argument callable returning a
        JSON-serializable health report for ``/health``.
        """
        self._health_provider = health_provider
        try:
            self._app = self.build_app(path)
            self._runner = web.AppRunner(self._app)
            await self._runner.setup()

            self._site = web.TCPSite(self._runner, host, port)
            await self._site.start()

            logger.info(f"Prometheus metrics server started on http://{host}:{port}{path}")
            return True

        except OSError as e:
            logger.error(f"Failed to start metrics server: {e}")
            return False

    def build_app(self, path: str = "/metrics") -> web.Application:
        app = web.Application()
        app.router.add_get(path, self._metrics_handler)
        app.router.add_get("/health", self._health_handler)
        return app

    async def stop_server(self):
        """Stop the metrics server"""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._site = None
        self._runner = None
        logger.info("Metrics server stopped")

    async def _metrics_handler(self, request):
        """Handle metrics endpoint requests"""
        metrics_output = generate_latest(self.registry)
        # Strip charset from content type to avoid conflicts with aiohttp
        content_type = CONTENT_TYPE_LATEST.split(";")[0]
        return web.Response(text=metrics_output.decode("utf-8"), content_type=content_type)

    async def _health_handler(self, request):
        """Handle health check endpoint"""
        body: Dict[str, Any] = {"status": "healthy", "service": "dex_arbitrage_metrics"}
        body["metrics"] = self.get_metrics_summary()
        if self._health_provider is not None:
            body["sources"] = self._health_provider()
        return web.Response(text=json.dumps(body), content_type="application/json")

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get current metrics summary: quote outcomes, scans and opportunities"""
        quotes_by_outcome: Dict[str, float] = {}
        for family in self.quotes_total.collect():
            for sample in family.samples:
                if sample.name.endswith("_total"):
                    outcome = sample.labels["outcome"]
                    previous = quotes_by_outcome.get(outcome, 0)
                    quotes_by_outcome[outcome] = previous + sample.value

        return {
            "quotes_by_outcome": quotes_by_outcome,
            "scans": self._counter_total(self.scans_total),
            "opportunities": self._counter_total(self.opportunities_total),
            "timestamp": time.time(),
        }

    @staticmethod
    def _counter_total(counter: Counter) -> float:
        return sum(
            sample.value
            for family in counter.collect()
            for sample in family.samples
            if sample.name.endswith("_total")
        )

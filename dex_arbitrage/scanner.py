"""
Composition root of the scanner.

``ArbitrageScanner`` wires registry, aggregation and detection together and
exposes the operations callers use: ``scan``, ``set_source_enabled``,
``execute`` and ``check_health``.
"""

import time
from typing import List, Optional

import aiohttp

from .aggregator import PriceAggregationService
from .cache import QuoteCache
from .config import ScannerConfig
from .detector import DEFAULT_MIN_PROFIT_PERCENT, ArbitrageDetector
from .exceptions import ValidationError
from .health import SourceHealth, SourceHealthChecker
from .interfaces import (
    ExecutionGateway,
    QuoteStore,
    RandomProvider,
    SystemTimeProvider,
    TimeProvider,
)
from .liquidity import LiquidityModel
from .rate_limiter import RateLimiter
from .registry import AdapterRegistry, build_default_registry
from .store import InMemoryQuoteStore, SqliteQuoteStore
from .types import (
    ArbitrageOpportunity,
    ExecutionResult,
    ScanResult,
    TokenDescriptor,
    TransactionStatus,
    network_name,
    pair_key,
)
from .utils import format_duration, get_logger

logger = get_logger(__name__)

DEFAULT_INVESTMENT_AMOUNT = 1000.0
MIN_QUOTES_FOR_DETECTION = 2


def create_store(config: ScannerConfig) -> QuoteStore:
    if config.store.backend == "sqlite":
        return SqliteQuoteStore(config.store.path)
    return InMemoryQuoteStore()


class ArbitrageScanner:
    """
    Scans a token pair across every enabled source of its chain.

    Args:
        registry: Source registry
        aggregator: Price aggregation service over the same registry
        detector: Opportunity detector
        rate_limiter: Limiter shared with the adapters, read for health
        store: Durable store for enable flags
        gateway: Execution layer for ``execute``
        metrics: Optional ScannerMetrics
        investment_amount: Default investment when ``scan`` gets none
        min_profit_percent: Default pre-filter threshold
        time_provider: Clock for scan timestamps
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        aggregator: PriceAggregationService,
        detector: ArbitrageDetector,
        rate_limiter: Optional[RateLimiter] = None,
        store: Optional[QuoteStore] = None,
        gateway: Optional[ExecutionGateway] = None,
        metrics=None,
        investment_amount: float = DEFAULT_INVESTMENT_AMOUNT,
        min_profit_percent: float = DEFAULT_MIN_PROFIT_PERCENT,
        time_provider: Optional[TimeProvider] = None,
    ):
        self.registry = registry
        self.aggregator = aggregator
        self.detector = detector
        self.rate_limiter = rate_limiter or RateLimiter()
        self.store = store
        self.gateway = gateway
        self.metrics = metrics
        self.investment_amount = investment_amount
        self.min_profit_percent = min_profit_percent
        self._time = time_provider or SystemTimeProvider()
        self.health_checker = SourceHealthChecker(registry, self.rate_limiter)
        self._publish_source_flags()

    @classmethod
    def from_config(
        cls,
        config: ScannerConfig,
        session: aiohttp.ClientSession,
        store: Optional[QuoteStore] = None,
        gateway: Optional[ExecutionGateway] = None,
        metrics=None,
        time_provider: Optional[TimeProvider] = None,
        random_provider: Optional[RandomProvider] = None,
    ) -> "ArbitrageScanner":
        """Build a scanner with the default venues from a loaded configuration."""
        time_provider = time_provider or SystemTimeProvider()
        store = store if store is not None else create_store(config)
        rate_limiter = RateLimiter(config.rate_limits, time_provider=time_provider)
        registry = build_default_registry(
            session,
            rate_limiter,
            endpoints=config.endpoints,
            enabled=config.source_flags,
            time_provider=time_provider,
            random_provider=random_provider,
            store=store,
            request_timeout=config.aggregation.request_timeout_seconds,
            metrics=metrics,
            fetch_budget=config.aggregation.fetch_timeout_seconds,
        )
        aggregator = PriceAggregationService(
            registry,
            cache=QuoteCache(config.aggregation.cache_ttl_seconds, time_provider),
            store=store,
            time_provider=time_provider,
            fetch_timeout=config.aggregation.fetch_timeout_seconds,
            scan_timeout=config.aggregation.scan_timeout_seconds,
            metrics=metrics,
        )
        detector = ArbitrageDetector(
            liquidity_model=LiquidityModel(exponent=config.scan.impact_exponent),
            max_price_impact_percent=config.scan.max_price_impact_percent,
            liquidity_coverage_multiplier=config.scan.liquidity_coverage_multiplier,
            platform_fee_rate=config.scan.platform_fee_rate,
            include_fallback=config.scan.include_fallback_quotes,
            time_provider=time_provider,
        )
        return cls(
            registry,
            aggregator,
            detector,
            rate_limiter=rate_limiter,
            store=store,
            gateway=gateway,
            metrics=metrics,
            investment_amount=config.scan.investment_amount,
            min_profit_percent=config.scan.min_profit_percent,
            time_provider=time_provider,
        )

    def _publish_source_flags(self) -> None:
        if self.metrics is None:
            return
        for config in self.registry.all_configs():
            self.metrics.set_source_enabled(config.name, config.enabled)

    async def scan(
        self,
        base: TokenDescriptor,
        quote: TokenDescriptor,
        investment_amount: Optional[float] = None,
        min_profit_percent: Optional[float] = None,
        force_refresh: bool = False,
    ) -> ScanResult:
        """
        Run one scan cycle for ``base``/``quote``.

        Source failures never propagate; they show up as missing quotes and
        an explanatory ``message`` on the result.

        Raises:
            ValidationError: On a non-positive investment or tokens on
                different chains
        """
        if investment_amount is None:
            investment_amount = self.investment_amount
        if min_profit_percent is None:
            min_profit_percent = self.min_profit_percent
        if investment_amount is None or investment_amount <= 0:
            raise ValidationError(
                f"Investment amount must be positive: {investment_amount}",
                details={"investment_amount": investment_amount},
            )
        if base.chain_id != quote.chain_id:
            raise ValidationError(
                f"Tokens must share a chain: {base.chain_id} vs {quote.chain_id}"
            )

        started_at = self._time.current_timestamp()
        clock = time.perf_counter()
        pair = pair_key(base, quote)
        network = network_name(base.chain_id)

        quotes = await self.aggregator.aggregate(base, quote, force_refresh=force_refresh)

        message = None
        usable = self.detector.usable_quotes(quotes)
        if not quotes:
            opportunities = []
            message = f"No price sources returned quotes for {pair} on {network}"
        elif len(usable) < MIN_QUOTES_FOR_DETECTION:
            opportunities = []
            message = (
                f"Insufficient price data for {pair} on {network}: "
                f"{len(usable)} usable quote(s) from {len(quotes)} source(s), "
                f"at least {MIN_QUOTES_FOR_DETECTION} are required"
            )
        else:
            opportunities = self.detector.detect(
                quotes, base, quote, investment_amount, min_profit_percent
            )
            if not opportunities:
                message = f"No profitable opportunities for {pair} on {network}"

        duration = time.perf_counter() - clock
        if self.metrics is not None:
            self.metrics.record_scan(network, len(opportunities), duration)
        logger.info(
            f"Scan {pair} on {network}: {len(quotes)} quote(s), "
            f"{len(opportunities)} opportunit{'y' if len(opportunities) == 1 else 'ies'} "
            f"in {format_duration(duration)}"
        )
        return ScanResult(
            opportunities=opportunities,
            quotes=quotes,
            chain_id=base.chain_id,
            message=message,
            started_at=started_at,
            duration_seconds=duration,
        )

    async def set_source_enabled(self, slug: str, enabled: bool) -> None:
        """
        Enable or disable a source and persist the flags.

        Raises:
            ConfigurationError: If the slug is unknown
        """
        self.registry.set_enabled(slug, enabled)
        self.aggregator.cache.invalidate()
        if self.metrics is not None:
            self.metrics.set_source_enabled(self.registry.get(slug).name, enabled)
        if self.store is None:
            return
        try:
            await self.store.save_source_flags(self.registry.enabled_flags())
        except Exception as e:
            logger.error(f"Failed to persist source flags: {e}")

    async def restore_source_flags(self) -> None:
        """Apply enable flags persisted by an earlier process."""
        if self.store is None:
            return
        try:
            flags = await self.store.load_source_flags()
        except Exception as e:
            logger.error(f"Failed to load source flags: {e}")
            return
        self.registry.apply_flags(flags)
        self._publish_source_flags()

    async def execute(
        self, opportunity: ArbitrageOpportunity, funding_address: str
    ) -> ExecutionResult:
        """Hand an opportunity to the execution layer; failures become error results."""
        if self.gateway is None:
            return ExecutionResult(
                status=TransactionStatus.ERROR, error="No execution gateway configured"
            )
        try:
            return await self.gateway.execute(opportunity, funding_address)
        except Exception as e:
            logger.error(f"Execution of {opportunity.id} failed: {e}")
            return ExecutionResult(status=TransactionStatus.ERROR, error=str(e))

    def check_health(self, chain_id: Optional[int] = None) -> List[SourceHealth]:
        return self.health_checker.check(chain_id)

    async def close(self) -> None:
        close = getattr(self.store, "close", None)
        if close is not None:
            await close()

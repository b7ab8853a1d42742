"""
Price source capability interface and the shared adapter implementation.

A price source is any object satisfying ``PriceSource``. The concrete
``DexSourceAdapter`` composes a venue client (``QuoteClient``) that knows
one upstream API, and wraps it with chain checks, rate limiting, price
normalization, gas estimation and the fallback chain.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, FrozenSet, Optional, Protocol, runtime_checkable

import aiohttp

from ..exceptions import ChainUnsupportedError, DexArbitrageError, QuoteFetchError
from ..gas import estimate_gas_usd
from ..interfaces import (
    QuoteStore,
    RandomProvider,
    SystemRandomProvider,
    SystemTimeProvider,
    TimeProvider,
)
from ..rate_limiter import RateLimiter
from ..types import PriceQuote, SourceConfig, TokenDescriptor, pair_key
from ..utils import get_logger
from .fallback import FallbackQuoter, estimate_liquidity

logger = get_logger(__name__)

DEFAULT_REQUEST_TIMEOUT_SECONDS = 5.0
DEFAULT_FETCH_BUDGET_SECONDS = 10.0
# Part of the fetch budget kept free for the fallback lookup
FALLBACK_RESERVE_SECONDS = 0.5


@dataclass(frozen=True)
class RawQuote:
    """
    Venue answer before normalization.

    A client reports either raw integer amounts (``input_amount`` /
    ``output_amount`` in smallest token units) or an already normalized
    ``price``.

    Attributes:
        input_amount: Base-token amount sent, smallest units
        output_amount: Quote-token amount received, smallest units
        price: Quote-token units per base-token unit
        liquidity_usd: Pool liquidity reported by the venue
        fee_rate: Pool fee as a fraction, when the venue reports one
        gas_units: Gas units reported by the venue
    """

    input_amount: Optional[int] = None
    output_amount: Optional[int] = None
    price: Optional[float] = None
    liquidity_usd: Optional[float] = None
    fee_rate: Optional[float] = None
    gas_units: Optional[int] = None


@runtime_checkable
class QuoteClient(Protocol):
    """One upstream quoting API."""

    async def fetch(
        self, base: TokenDescriptor, quote: TokenDescriptor, amount_raw: int
    ) -> RawQuote:
        """Fetch a quote; raise QuoteFetchError on non-2xx or malformed payloads."""
        ...


@runtime_checkable
class PriceSource(Protocol):
    """Capability interface every price source satisfies."""

    name: str
    slug: str

    @property
    def config(self) -> SourceConfig:
        ...

    async def fetch_quote(
        self, base: TokenDescriptor, quote: TokenDescriptor, amount: float = 1.0
    ) -> Optional[PriceQuote]:
        ...

    def supported_chains(self) -> FrozenSet[int]:
        ...

    def is_enabled(self) -> bool:
        ...

    def set_enabled(self, enabled: bool) -> None:
        ...


async def request_json(
    session: aiohttp.ClientSession, source: str, method: str, url: str, **kwargs
) -> Any:
    """
    Perform an HTTP request and decode its JSON body.

    Raises:
        QuoteFetchError: On a non-2xx status or an undecodable body
    """
    async with session.request(method, url, **kwargs) as resp:
        if resp.status < 200 or resp.status >= 300:
            body = await resp.text()
            raise QuoteFetchError(
                f"{source} API error: {resp.status}",
                source=source,
                status_code=resp.status,
                details={"body": body[:200]},
            )
        try:
            return await resp.json(content_type=None)
        except ValueError as e:
            raise QuoteFetchError(
                f"{source} returned malformed JSON: {e}",
                source=source,
                status_code=resp.status,
            ) from e


def to_raw_amount(amount: float, decimals: int) -> int:
    """Convert a human amount into smallest token units."""
    return int(amount * (10**decimals))


def normalize_price(
    raw: RawQuote, base: TokenDescriptor, quote: TokenDescriptor, source: str
) -> float:
    """
    Price of one base token in quote tokens.

    Raises:
        QuoteFetchError: When the raw quote carries no usable price
    """
    if raw.price is not None:
        price = float(raw.price)
    elif raw.input_amount and raw.output_amount is not None:
        out_amount = raw.output_amount / (10**quote.decimals)
        in_amount = raw.input_amount / (10**base.decimals)
        price = out_amount / in_amount
    else:
        raise QuoteFetchError(f"{source} returned no price data", source=source)

    if price <= 0:
        raise QuoteFetchError(
            f"{source} returned non-positive price: {price}", source=source
        )
    return price


class DexSourceAdapter:
    """
    Price source backed by a venue client.

    ``fetch_quote`` never raises: chain mismatches yield None, and every
    live-call failure (HTTP errors, malformed payloads, timeouts) is reported
    to the rate limiter and answered from the fallback chain.

    Rate-limit waits and the request together stay inside ``fetch_budget``
    minus a reserve for the fallback lookup. When backoff or the request
    window would need longer, the live call is skipped for this fetch and
    the fallback answers without counting another failure.
    """

    def __init__(
        self,
        config: SourceConfig,
        client: QuoteClient,
        rate_limiter: RateLimiter,
        time_provider: Optional[TimeProvider] = None,
        random_provider: Optional[RandomProvider] = None,
        store: Optional[QuoteStore] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        metrics=None,
        fetch_budget: float = DEFAULT_FETCH_BUDGET_SECONDS,
    ):
        self._config = config
        self._client = client
        self._limiter = rate_limiter
        self._time = time_provider or SystemTimeProvider()
        self._request_timeout = request_timeout
        self._live_budget = max(0.0, fetch_budget - FALLBACK_RESERVE_SECONDS)
        self._metrics = metrics
        self._fallback = FallbackQuoter(
            source_name=config.name,
            slug=config.slug,
            fee_rate=config.fee_rate,
            random_provider=random_provider or SystemRandomProvider(),
            time_provider=self._time,
            store=store,
        )

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def slug(self) -> str:
        return self._config.slug

    @property
    def config(self) -> SourceConfig:
        return self._config

    @property
    def client(self) -> QuoteClient:
        return self._client

    def supported_chains(self) -> FrozenSet[int]:
        return self._config.supported_chain_ids

    def is_enabled(self) -> bool:
        return self._config.enabled

    def set_enabled(self, enabled: bool) -> None:
        self._config.enabled = bool(enabled)

    def _require_supported(self, base: TokenDescriptor, quote: TokenDescriptor):
        if base.chain_id != quote.chain_id:
            raise ChainUnsupportedError(
                f"{self.name}: tokens are on different chains "
                f"({base.chain_id} vs {quote.chain_id})",
                source=self.slug,
                chain_id=base.chain_id,
            )
        if base.chain_id not in self._config.supported_chain_ids:
            raise ChainUnsupportedError(
                f"{self.name} does not support chain {base.chain_id}",
                source=self.slug,
                chain_id=base.chain_id,
            )

    def _build_quote(
        self, raw: RawQuote, base: TokenDescriptor, quote: TokenDescriptor
    ) -> PriceQuote:
        price = normalize_price(raw, base, quote, self.name)
        liquidity = raw.liquidity_usd
        if liquidity is None or liquidity <= 0:
            liquidity = estimate_liquidity(base.symbol, self.slug, strict=True)
        fee_rate = raw.fee_rate if raw.fee_rate is not None else self._config.fee_rate
        return PriceQuote(
            source_name=self.name,
            price=price,
            fee_rate=fee_rate,
            liquidity_usd=liquidity,
            gas_estimate_usd=estimate_gas_usd(base.chain_id, self.slug, raw.gas_units),
            timestamp=self._time.current_timestamp(),
        )

    def _record(self, outcome: str, latency: Optional[float] = None) -> None:
        if self._metrics is not None:
            self._metrics.record_quote(self.name, outcome, latency)

    async def fetch_quote(
        self, base: TokenDescriptor, quote: TokenDescriptor, amount: float = 1.0
    ) -> Optional[PriceQuote]:
        """
        Fetch a quote for ``amount`` base tokens.

        Returns:
            A live quote, a fallback quote flagged ``is_fallback``, or None
            when the chain is unsupported or no price can be estimated
        """
        try:
            self._require_supported(base, quote)
        except ChainUnsupportedError as e:
            logger.debug(str(e))
            return None

        admitted_by = time.perf_counter()
        max_wait = max(0.0, self._live_budget - self._request_timeout)
        if not await self._limiter.acquire(self.slug, max_wait=max_wait):
            error = f"{self.name} is backing off, live request skipped"
            return await self._fall_back(base, quote, error, failed=False)

        started = time.perf_counter()
        remaining = self._live_budget - (started - admitted_by)
        timeout = max(0.0, min(self._request_timeout, remaining))
        try:
            raw = await asyncio.wait_for(
                self._client.fetch(base, quote, to_raw_amount(amount, base.decimals)),
                timeout=timeout,
            )
            result = self._build_quote(raw, base, quote)
        except asyncio.TimeoutError:
            error = f"{self.name} request timed out after {timeout:.2f}s"
            return await self._fall_back(base, quote, error)
        except (DexArbitrageError, aiohttp.ClientError) as e:
            return await self._fall_back(base, quote, str(e))
        except (KeyError, TypeError, ValueError, ZeroDivisionError) as e:
            error = f"{self.name} returned malformed payload: {e!r}"
            return await self._fall_back(base, quote, error)

        self._limiter.record_success(self.slug)
        self._fallback.remember(base, quote, result)
        self._record("live", time.perf_counter() - started)
        logger.debug(
            f"[{self.name}] {pair_key(base, quote)} = {result.price:.8g} "
            f"(liquidity: {result.liquidity_usd})"
        )
        return result

    async def _fall_back(
        self,
        base: TokenDescriptor,
        quote: TokenDescriptor,
        error: str,
        failed: bool = True,
    ) -> Optional[PriceQuote]:
        if failed:
            self._limiter.record_failure(self.slug)
            logger.warning(f"[{self.name}] Live quote failed: {error}")
        else:
            logger.info(f"[{self.name}] {error}")
        result = await self._fallback.quote(base, quote, error=error)
        self._record("fallback" if result is not None else "unavailable")
        return result

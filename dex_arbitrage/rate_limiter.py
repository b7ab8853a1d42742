"""
Per-source admission control with exponential backoff.

Every price source gets an independent sliding-window limiter
(``max_requests`` per rolling ``window_seconds``) plus a consecutive-error
counter. While a source has recent failures, ``acquire`` waits an extra
``min(2**errors * 100ms, 30s)`` before handing out the slot. The counter
resets after 60 seconds without a new failure or on the next success.
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Mapping, Optional

from .interfaces import SystemTimeProvider, TimeProvider
from .utils import get_logger

logger = get_logger(__name__)

BACKOFF_BASE_SECONDS = 0.1
BACKOFF_MAX_SECONDS = 30.0
ERROR_RESET_SECONDS = 60.0


@dataclass(frozen=True)
class RateLimit:
    """Provider quota: max_requests permits per rolling window."""

    max_requests: int
    window_seconds: float = 60.0

    def __post_init__(self):
        if self.max_requests <= 0:
            raise ValueError(f"max_requests must be positive: {self.max_requests}")
        if self.window_seconds <= 0:
            raise ValueError(
                f"window_seconds must be positive: {self.window_seconds}"
            )


# Aggregator-backed sources share tighter public quotas than subgraphs
DEFAULT_RATE_LIMIT = RateLimit(max_requests=30, window_seconds=60.0)

DEFAULT_RATE_LIMITS: Dict[str, RateLimit] = {
    "uniswap": RateLimit(100, 60.0),
    "pancakeswap": RateLimit(60, 60.0),
    "sushiswap": RateLimit(30, 60.0),
    "balancer": RateLimit(30, 60.0),
    "curve": RateLimit(30, 60.0),
    "jupiter": RateLimit(30, 60.0),
    "orca": RateLimit(30, 60.0),
    "raydium": RateLimit(30, 60.0),
}


@dataclass
class _SourceState:
    limit: RateLimit
    calls: Deque[float] = field(default_factory=deque)
    consecutive_errors: int = 0
    last_failure_at: Optional[float] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


@dataclass(frozen=True)
class LimiterSnapshot:
    """Read-only view of one source's limiter state."""

    source: str
    max_requests: int
    window_seconds: float
    requests_in_window: int
    consecutive_errors: int
    backoff_seconds: float


def backoff_delay_for(errors: int) -> float:
    """Extra delay in seconds imposed after ``errors`` consecutive failures."""
    if errors <= 0:
        return 0.0
    return min((2**errors) * BACKOFF_BASE_SECONDS, BACKOFF_MAX_SECONDS)


class RateLimiter:
    """
    Rate limiter and backoff controller keyed by source name.

    Callers must ``await acquire(source)`` before every request and report
    the outcome with ``record_success`` / ``record_failure``.
    """

    def __init__(
        self,
        limits: Optional[Mapping[str, RateLimit]] = None,
        default_limit: RateLimit = DEFAULT_RATE_LIMIT,
        time_provider: Optional[TimeProvider] = None,
    ):
        self._limits: Dict[str, RateLimit] = dict(DEFAULT_RATE_LIMITS)
        if limits:
            self._limits.update(limits)
        self._default_limit = default_limit
        self._time = time_provider or SystemTimeProvider()
        self._states: Dict[str, _SourceState] = {}

    def _state(self, source: str) -> _SourceState:
        state = self._states.get(source)
        if state is None:
            state = _SourceState(limit=self._limits.get(source, self._default_limit))
            self._states[source] = state
        return state

    def limit_for(self, source: str) -> RateLimit:
        return self._state(source).limit

    def _expire_errors(self, state: _SourceState, now: float) -> None:
        if (
            state.consecutive_errors
            and state.last_failure_at is not None
            and now - state.last_failure_at >= ERROR_RESET_SECONDS
        ):
            state.consecutive_errors = 0
            state.last_failure_at = None

    def backoff_delay(self, source: str) -> float:
        """Current extra delay for ``source`` in seconds."""
        state = self._state(source)
        self._expire_errors(state, self._time.current_timestamp())
        return backoff_delay_for(state.consecutive_errors)

    async def acquire(self, source: str, max_wait: Optional[float] = None) -> bool:
        """
        Block until ``source`` may issue one more request.

        With ``max_wait`` set, gives up without sleeping or taking a slot
        as soon as the required backoff and window waits would exceed it.

        Returns:
            True when a slot was taken, False when ``max_wait`` refused it
        """
        state = self._state(source)
        waited = 0.0
        # One waiter at a time per source keeps slots FIFO
        async with state.lock:
            delay = self.backoff_delay(source)
            if max_wait is not None and delay > max_wait:
                logger.debug(
                    f"{source}: backoff of {delay:.2f}s exceeds the {max_wait:.2f}s budget"
                )
                return False
            if delay > 0:
                logger.debug(
                    f"{source}: backing off {delay:.2f}s after "
                    f"{state.consecutive_errors} consecutive errors"
                )
                await self._time.sleep(delay)
                waited += delay

            window = state.limit.window_seconds
            while True:
                now = self._time.current_timestamp()
                while state.calls and now - state.calls[0] >= window:
                    state.calls.popleft()
                if len(state.calls) < state.limit.max_requests:
                    state.calls.append(now)
                    return True
                wait = state.calls[0] + window - now
                if max_wait is not None and waited + wait > max_wait:
                    logger.debug(
                        f"{source}: rate limit wait of {wait:.2f}s exceeds the "
                        f"remaining budget"
                    )
                    return False
                logger.debug(f"{source}: rate limit reached, waiting {wait:.2f}s")
                await self._time.sleep(wait)
                waited += wait

    def record_success(self, source: str) -> None:
        state = self._state(source)
        state.consecutive_errors = 0
        state.last_failure_at = None

    def record_failure(self, source: str) -> None:
        state = self._state(source)
        now = self._time.current_timestamp()
        self._expire_errors(state, now)
        state.consecutive_errors += 1
        state.last_failure_at = now
        logger.warning(
            f"Request to {source} failed. Backing off for "
            f"{backoff_delay_for(state.consecutive_errors):.2f}s. "
            f"Consecutive failures: {state.consecutive_errors}"
        )

    def consecutive_errors(self, source: str) -> int:
        state = self._state(source)
        self._expire_errors(state, self._time.current_timestamp())
        return state.consecutive_errors

    def snapshot(self) -> Dict[str, LimiterSnapshot]:
        """Per-source limiter state for health display."""
        now = self._time.current_timestamp()
        result = {}
        for source, state in self._states.items():
            self._expire_errors(state, now)
            in_window = sum(
                1 for t in state.calls if now - t < state.limit.window_seconds
            )
            result[source] = LimiterSnapshot(
                source=source,
                max_requests=state.limit.max_requests,
                window_seconds=state.limit.window_seconds,
                requests_in_window=in_window,
                consecutive_errors=state.consecutive_errors,
                backoff_seconds=backoff_delay_for(state.consecutive_errors),
            )
        return result

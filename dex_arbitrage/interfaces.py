"""
Dependency injection interfaces for improved testability and modularity.

Provides lightweight protocols for time, random number generation and the
external collaborators the engine talks to (durable store, execution
layer). Production and deterministic implementations of the time and random
providers live here as well.
"""

import asyncio
import random
import time
from typing import Dict, List, Optional, Protocol, runtime_checkable

from .types import ArbitrageOpportunity, ExecutionResult, PriceQuote


@runtime_checkable
class TimeProvider(Protocol):
    """Protocol for time-related operations."""

    def current_timestamp(self) -> float:
        """Get current Unix timestamp."""
        ...

    async def sleep(self, duration: float) -> None:
        """Suspend the calling task for duration seconds."""
        ...


@runtime_checkable
class RandomProvider(Protocol):
    """Protocol for random number generation."""

    def uniform(self, a: float, b: float) -> float:
        """Generate random float between a and b."""
        ...


class SystemTimeProvider:
    """Production time provider using system time."""

    def current_timestamp(self) -> float:
        return time.time()

    async def sleep(self, duration: float) -> None:
        await asyncio.sleep(duration)


class SystemRandomProvider:
    """Production random provider using system random."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def uniform(self, a: float, b: float) -> float:
        return self._rng.uniform(a, b)


class DeterministicTimeProvider:
    """Deterministic time provider for testing."""

    def __init__(self, start_time: float = 1640995200.0):  # 2022-01-01
        self._current_time = start_time
        self.sleeps: List[float] = []

    def current_timestamp(self) -> float:
        return self._current_time

    async def sleep(self, duration: float) -> None:
        """Advance time by duration instead of actually sleeping."""
        self.sleeps.append(duration)
        self._current_time += max(0.0, duration)
        # Still yield so other tasks get scheduled
        await asyncio.sleep(0)

    def advance_time(self, seconds: float) -> None:
        self._current_time += seconds

    def set_time(self, timestamp: float) -> None:
        self._current_time = timestamp


class DeterministicRandomProvider:
    """Deterministic random provider for testing."""

    def __init__(self, seed: int = 42):
        self._rng = random.Random(seed)

    def uniform(self, a: float, b: float) -> float:
        return self._rng.uniform(a, b)


@runtime_checkable
class QuoteStore(Protocol):
    """
    Durable key-value store for quote history and source enable flags.

    Keys are (source name, pair key, chain id). Table layout is up to the
    implementation.
    """

    async def latest_quote(
        self, source_name: str, token_pair: str, chain_id: int
    ) -> Optional[PriceQuote]:
        ...

    async def append_quote(
        self, token_pair: str, chain_id: int, quote: PriceQuote
    ) -> None:
        ...

    async def quote_history(
        self,
        token_pair: str,
        chain_id: int,
        source_name: Optional[str] = None,
        limit: int = 100,
    ) -> List[PriceQuote]:
        ...

    async def load_source_flags(self) -> Dict[str, bool]:
        ...

    async def save_source_flags(self, flags: Dict[str, bool]) -> None:
        ...


@runtime_checkable
class ExecutionGateway(Protocol):
    """Executes the two legs of an opportunity from a funding address."""

    async def execute(
        self, opportunity: ArbitrageOpportunity, funding_address: str
    ) -> ExecutionResult:
        ...

"""
Unit tests for dependency injection interfaces
"""

import pytest

from dex_arbitrage.interfaces import (
    DeterministicRandomProvider,
    DeterministicTimeProvider,
    QuoteStore,
    RandomProvider,
    SystemRandomProvider,
    SystemTimeProvider,
    TimeProvider,
)
from dex_arbitrage.store import InMemoryQuoteStore, SqliteQuoteStore


class TestTimeProviders:
    def test_protocol_conformance(self):
        assert isinstance(SystemTimeProvider(), TimeProvider)
        assert isinstance(DeterministicTimeProvider(), TimeProvider)

    def test_deterministic_clock(self):
        clock = DeterministicTimeProvider(start_time=100.0)
        assert clock.current_timestamp() == 100.0
        clock.advance_time(5)
        assert clock.current_timestamp() == 105.0
        clock.set_time(1.0)
        assert clock.current_timestamp() == 1.0

    @pytest.mark.asyncio
    async def test_deterministic_sleep_advances_clock(self):
        clock = DeterministicTimeProvider(start_time=0.0)
        await clock.sleep(2.5)
        await clock.sleep(-1)
        assert clock.current_timestamp() == 2.5
        assert clock.sleeps == [2.5, -1]

    @pytest.mark.asyncio
    async def test_system_sleep(self):
        clock = SystemTimeProvider()
        before = clock.current_timestamp()
        await clock.sleep(0)
        assert clock.current_timestamp() >= before


class TestRandomProviders:
    def test_protocol_conformance(self):
        assert isinstance(SystemRandomProvider(), RandomProvider)
        assert isinstance(DeterministicRandomProvider(), RandomProvider)

    def test_seeded_sequences_repeat(self):
        a = DeterministicRandomProvider(seed=7)
        b = DeterministicRandomProvider(seed=7)
        assert [a.uniform(0.995, 1.005) for _ in range(5)] == [
            b.uniform(0.995, 1.005) for _ in range(5)
        ]

    def test_uniform_bounds(self):
        rng = SystemRandomProvider(seed=1)
        for _ in range(100):
            assert 0.995 <= rng.uniform(0.995, 1.005) <= 1.005


class TestStoreProtocol:
    def test_implementations_conform(self, tmp_path):
        assert isinstance(InMemoryQuoteStore(), QuoteStore)
        assert isinstance(SqliteQuoteStore(str(tmp_path / "q.db")), QuoteStore)

"""
Durable quote store implementations.

``InMemoryQuoteStore`` keeps everything in process memory and suits tests
and one-shot CLI runs. ``SqliteQuoteStore`` persists quote history and
source enable flags with aiosqlite.
"""

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Tuple

import aiosqlite

from .exceptions import StoreError
from .types import PriceQuote
from .utils import get_logger

logger = get_logger(__name__)


class InMemoryQuoteStore:
    """QuoteStore kept in process memory."""

    def __init__(self, max_history: int = 1000):
        self.max_history = max_history
        self._history: Dict[Tuple[str, int], List[PriceQuote]] = defaultdict(list)
        self._flags: Dict[str, bool] = {}

    async def latest_quote(
        self, source_name: str, token_pair: str, chain_id: int
    ) -> Optional[PriceQuote]:
        for quote in reversed(self._history.get((token_pair, chain_id), [])):
            if quote.source_name == source_name:
                return quote
        return None

    async def append_quote(
        self, token_pair: str, chain_id: int, quote: PriceQuote
    ) -> None:
        rows = self._history[(token_pair, chain_id)]
        rows.append(quote)
        if len(rows) > self.max_history:
            del rows[: len(rows) - self.max_history]

    async def quote_history(
        self,
        token_pair: str,
        chain_id: int,
        source_name: Optional[str] = None,
        limit: int = 100,
    ) -> List[PriceQuote]:
        rows = [
            q
            for q in reversed(self._history.get((token_pair, chain_id), []))
            if source_name is None or q.source_name == source_name
        ]
        return rows[:limit]

    async def load_source_flags(self) -> Dict[str, bool]:
        return dict(self._flags)

    async def save_source_flags(self, flags: Dict[str, bool]) -> None:
        self._flags = dict(flags)

    async def close(self) -> None:
        pass


class SqliteQuoteStore:
    """
    QuoteStore backed by a SQLite database.

    The connection is opened lazily on first use; call ``close`` when done.
    """

    def __init__(self, db_path: str = "dex_arbitrage.db"):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Open the connection and create the schema."""
        if self._conn is not None:
            return
        async with self._lock:
            if self._conn is not None:
                return
            conn = None
            try:
                conn = await aiosqlite.connect(self.db_path)
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.execute("PRAGMA synchronous=NORMAL")
                await self._init_schema(conn)
            except aiosqlite.Error as e:
                if conn is not None:
                    await conn.close()
                raise StoreError(
                    f"Failed to open quote store {self.db_path}: {e}",
                    operation="initialize",
                ) from e
            self._conn = conn
            logger.info(f"Quote store initialized at {self.db_path}")

    async def _init_schema(self, conn: aiosqlite.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS price_quotes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source_name TEXT NOT NULL,
                token_pair TEXT NOT NULL,
                chain_id INTEGER NOT NULL,
                price REAL NOT NULL,
                fee_rate REAL NOT NULL,
                liquidity_usd REAL,
                gas_estimate_usd REAL NOT NULL,
                timestamp REAL NOT NULL,
                is_fallback INTEGER NOT NULL DEFAULT 0
            )
            """
        )
        await conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_quotes_lookup
            ON price_quotes(token_pair, chain_id, source_name, timestamp)
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS source_flags (
                slug TEXT PRIMARY KEY,
                enabled INTEGER NOT NULL
            )
            """
        )
        await conn.commit()

    @asynccontextmanager
    async def _connection(self, operation: str):
        await self.initialize()
        try:
            yield self._conn
        except aiosqlite.Error as e:
            raise StoreError(
                f"Quote store {operation} failed: {e}", operation=operation
            ) from e

    @staticmethod
    def _row_to_quote(row) -> PriceQuote:
        return PriceQuote(
            source_name=row[0],
            price=row[1],
            fee_rate=row[2],
            liquidity_usd=row[3],
            gas_estimate_usd=row[4],
            timestamp=row[5],
            is_fallback=bool(row[6]),
        )

    async def latest_quote(
        self, source_name: str, token_pair: str, chain_id: int
    ) -> Optional[PriceQuote]:
        async with self._connection("latest_quote") as conn:
            async with conn.execute(
                """
                SELECT source_name, price, fee_rate, liquidity_usd,
                       gas_estimate_usd, timestamp, is_fallback
                FROM price_quotes
                WHERE source_name = ? AND token_pair = ? AND chain_id = ?
                ORDER BY timestamp DESC, id DESC
                LIMIT 1
                """,
                (source_name, token_pair, chain_id),
            ) as cursor:
                row = await cursor.fetchone()
        return self._row_to_quote(row) if row else None

    async def append_quote(
        self, token_pair: str, chain_id: int, quote: PriceQuote
    ) -> None:
        async with self._connection("append_quote") as conn:
            await conn.execute(
                """
                INSERT INTO price_quotes (
                    source_name, token_pair, chain_id, price, fee_rate,
                    liquidity_usd, gas_estimate_usd, timestamp, is_fallback
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    quote.source_name,
                    token_pair,
                    chain_id,
                    quote.price,
                    quote.fee_rate,
                    quote.liquidity_usd,
                    quote.gas_estimate_usd,
                    quote.timestamp,
                    int(quote.is_fallback),
                ),
            )
            await conn.commit()

    async def quote_history(
        self,
        token_pair: str,
        chain_id: int,
        source_name: Optional[str] = None,
        limit: int = 100,
    ) -> List[PriceQuote]:
        query = """
            SELECT source_name, price, fee_rate, liquidity_usd,
                   gas_estimate_usd, timestamp, is_fallback
            FROM price_quotes
            WHERE token_pair = ? AND chain_id = ?
        """
        params: list = [token_pair, chain_id]
        if source_name is not None:
            query += " AND source_name = ?"
            params.append(source_name)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ?"
        params.append(limit)

        async with self._connection("quote_history") as conn:
            async with conn.execute(query, params) as cursor:
                rows = await cursor.fetchall()
        return [self._row_to_quote(row) for row in rows]

    async def load_source_flags(self) -> Dict[str, bool]:
        async with self._connection("load_source_flags") as conn:
            async with conn.execute("SELECT slug, enabled FROM source_flags") as cursor:
                rows = await cursor.fetchall()
        return {slug: bool(enabled) for slug, enabled in rows}

    async def save_source_flags(self, flags: Dict[str, bool]) -> None:
        async with self._connection("save_source_flags") as conn:
            await conn.executemany(
                """
                INSERT INTO source_flags (slug, enabled) VALUES (?, ?)
                ON CONFLICT(slug) DO UPDATE SET enabled = excluded.enabled
                """,
                [(slug, int(enabled)) for slug, enabled in flags.items()],
            )
            await conn.commit()

    async def close(self) -> None:
        async with self._lock:
            if self._conn is not None:
                await self._conn.close()
                self._conn = None

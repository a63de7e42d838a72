"""
BALLOTSEAL — Async Connection Pool.

Bounded pool of aiosqlite connections to the relational store. Constructed
once by the engine, shared by every repository, closed at shutdown.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import aiosqlite

from ballotseal.schema import ALL_SCHEMA, SCHEMA_VERSION

logger = logging.getLogger("ballotseal.pool")


class BallotConnectionPool:
    """
    At most ``max_connections`` connections, reused through an idle queue.

    Every connection runs in WAL mode with foreign keys on and a busy
    timeout, so ``BEGIN IMMEDIATE`` waits for the write lock instead of
    failing at once.
    """

    def __init__(self, db_path: str, max_connections: int = 5, busy_timeout_ms: int = 5000):
        self.db_path = str(db_path)
        self.max_connections = max_connections
        self.busy_timeout_ms = busy_timeout_ms

        self._idle: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue()
        self._slots = asyncio.Semaphore(max_connections)
        self._initialized = False

    async def initialize(self) -> None:
        """Open one connection up front so a bad path fails at startup."""
        if self._initialized:
            return
        logger.info("Opening ballot store at %s (max %d connections)", self.db_path, self.max_connections)
        await self._idle.put(await self._connect())
        self._initialized = True

    async def init_schema(self) -> None:
        """Create all tables if missing and record the schema version."""
        async with self.acquire() as conn:
            for stmt in ALL_SCHEMA:
                await conn.executescript(stmt)
            await conn.execute(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            await conn.commit()
        logger.info("Schema %s ready at %s", SCHEMA_VERSION, self.db_path)

    async def _connect(self) -> aiosqlite.Connection:
        try:
            conn = await aiosqlite.connect(self.db_path)
        except (sqlite3.Error, OSError) as e:
            logger.critical("Failed to open ballot store: %s", e)
            raise

        await conn.execute("PRAGMA journal_mode=WAL;")
        await conn.execute("PRAGMA synchronous=NORMAL;")
        await conn.execute("PRAGMA foreign_keys=ON;")
        await conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)};")
        await conn.commit()
        return conn

    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        """Borrow a connection; it is discarded instead of reused if the block raises."""
        if not self._initialized:
            await self.initialize()

        async with self._slots:
            conn: Optional[aiosqlite.Connection] = None
            try:
                try:
                    conn = self._idle.get_nowait()
                except asyncio.QueueEmpty:
                    conn = await self._connect()

                if not await self._is_healthy(conn):
                    logger.warning("Store connection unhealthy, reopening")
                    await self._discard(conn)
                    conn = await self._connect()

                yield conn
            except BaseException:
                if conn is not None:
                    await self._discard(conn)
                    conn = None
                raise
            finally:
                if conn is not None:
                    await self._idle.put(conn)

    @staticmethod
    async def _is_healthy(conn: aiosqlite.Connection) -> bool:
        try:
            async with conn.execute("SELECT 1") as cursor:
                await cursor.fetchone()
            return True
        except (sqlite3.Error, ValueError):
            return False

    @staticmethod
    async def _discard(conn: aiosqlite.Connection) -> None:
        try:
            await conn.close()
        except (sqlite3.Error, ValueError) as e:
            logger.warning("Error closing store connection: %s", e)

    async def close(self) -> None:
        """Close every idle connection."""
        logger.info("Closing ballot store pool")
        while not self._idle.empty():
            await self._discard(self._idle.get_nowait())
        self._initialized = False

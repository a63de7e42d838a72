"""
BALLOTSEAL — Ballot Store.

Append-only collection of anonymous ballots. Reads come back sorted by raw
ballot tag, never by insertion time, so every tree built over an election is
reproducible regardless of how concurrent writes interleaved.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

import aiosqlite

from ballotseal.canonical import is_canonical_hex
from ballotseal.connection_pool import BallotConnectionPool
from ballotseal.exceptions import DuplicateTagError, InvalidInputError
from ballotseal.result import Err, Ok, Result

logger = logging.getLogger("ballotseal.ballots")


@dataclass(frozen=True)
class BallotRecord:
    election_id: str
    candidate_id: str
    ballot_tag: str
    created_at: str


class BallotStore:
    """Ballot persistence and the canonical ordered read."""

    def __init__(self, pool: BallotConnectionPool):
        self._pool = pool

    async def append(
        self,
        conn: aiosqlite.Connection,
        election_id: str,
        candidate_id: str,
        ballot_tag: str,
    ) -> Result[BallotRecord]:
        """Insert one ballot on ``conn``, inside the caller's transaction.

        The caller commits or rolls back; this method never does either.
        """
        if not election_id or not candidate_id:
            return Err(InvalidInputError("election_id and candidate_id are required"))
        if not is_canonical_hex(ballot_tag):
            return Err(InvalidInputError("ballot_tag must be canonical lowercase hex"))

        created_at = datetime.now(timezone.utc).isoformat()
        try:
            await conn.execute(
                "INSERT INTO ballots (election_id, candidate_id, ballot_tag, created_at) "
                "VALUES (?, ?, ?, ?)",
                (election_id, str(candidate_id), ballot_tag, created_at),
            )
        except sqlite3.IntegrityError:
            logger.error(
                "Ballot tag collision in election %s: %s...", election_id, ballot_tag[:12]
            )
            return Err(DuplicateTagError(f"Ballot tag already recorded for {election_id}"))

        return Ok(BallotRecord(election_id, str(candidate_id), ballot_tag, created_at))

    async def list_ordered(
        self, election_id: str, conn: Optional[aiosqlite.Connection] = None
    ) -> List[BallotRecord]:
        """All ballots of an election, ascending by ballot tag."""
        if conn is not None:
            return await self._fetch_ordered(conn, election_id)
        async with self._pool.acquire() as pooled:
            return await self._fetch_ordered(pooled, election_id)

    @staticmethod
    async def _fetch_ordered(
        conn: aiosqlite.Connection, election_id: str
    ) -> List[BallotRecord]:
        async with conn.execute(
            "SELECT election_id, candidate_id, ballot_tag, created_at FROM ballots "
            "WHERE election_id = ?",
            (election_id,),
        ) as cursor:
            rows = await cursor.fetchall()

        records = [BallotRecord(*row) for row in rows]
        # Sorted in Python: SQLite collation is not part of the contract
        records.sort(key=lambda r: r.ballot_tag)
        return records

    async def count(self, election_id: str) -> int:
        async with self._pool.acquire() as conn:
            async with conn.execute(
                "SELECT COUNT(*) FROM ballots WHERE election_id = ?", (election_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return row[0] if row else 0

"""
BALLOTSEAL — Election Closer.

Freezes an election: builds the Merkle tree over its canonically ordered
ballots, hashes the tally, anchors both on the ledger and only then
persists them. Runs at most once successfully per election.
"""

from __future__ import annotations

import logging
import sqlite3
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List

import aiosqlite

from ballotseal.ballot_store import BallotRecord, BallotStore
from ballotseal.canonical import canonical_json, sha256_hex
from ballotseal.connection_pool import BallotConnectionPool
from ballotseal.exceptions import AlreadyClosedError, DatabaseTransactionError, NotFoundError
from ballotseal.ledger.base import LedgerClient
from ballotseal.merkle import build
from ballotseal.result import Err, Ok, Result

logger = logging.getLogger("ballotseal.closer")


@dataclass(frozen=True)
class ClosureReceipt:
    election_id: str
    merkle_root: str
    results_digest: str
    ballot_count: int
    tally: List[dict[str, Any]] = field(default_factory=list)


def compute_tally(ballots: Iterable[BallotRecord]) -> List[dict[str, Any]]:
    """Votes per candidate as ``[{"candidate_id", "votes"}]`` sorted by candidate id."""
    counts = Counter(b.candidate_id for b in ballots)
    return [
        {"candidate_id": candidate_id, "votes": counts[candidate_id]}
        for candidate_id in sorted(counts)
    ]


def compute_results_digest(tally: List[dict[str, Any]]) -> str:
    return sha256_hex(canonical_json(tally))


class ElectionCloser:
    def __init__(self, pool: BallotConnectionPool, ledger: LedgerClient, ballots: BallotStore):
        self._pool = pool
        self._ledger = ledger
        self._ballots = ballots

    async def close(self, election_id: str) -> Result[ClosureReceipt]:
        """Close ``election_id``.

        ``BEGIN IMMEDIATE`` serializes concurrent closers: the loser waits for
        the write lock, then reads ``is_active = 0`` and gets AlreadyClosedError.
        If the local commit fails after the anchor, a retry resubmits the same
        root and digest, which the ledger accepts as already recorded.
        """
        async with self._pool.acquire() as conn:
            try:
                await conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                logger.error("Could not open close transaction: %s", e)
                return Err(DatabaseTransactionError("Store busy, retry the close"))

            try:
                result = await self._close_in_transaction(conn, election_id)
                if result.is_ok:
                    await conn.commit()
            except sqlite3.Error as e:
                await conn.rollback()
                logger.error("Close of %s failed: %s", election_id, e)
                return Err(DatabaseTransactionError("Election could not be closed"))

            if not result.is_ok:
                await conn.rollback()
                return result

        receipt = result.value
        logger.info(
            "Closed election %s: %d ballots, root %s...",
            election_id, receipt.ballot_count, receipt.merkle_root[:16],
        )
        return result

    async def _close_in_transaction(
        self, conn: aiosqlite.Connection, election_id: str
    ) -> Result[ClosureReceipt]:
        async with conn.execute(
            "SELECT is_active FROM elections WHERE id = ?", (election_id,)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return Err(NotFoundError(f"Election {election_id} not found"))
        if not row[0]:
            return Err(AlreadyClosedError(f"Election {election_id} is already closed"))

        ballots = await self._ballots.list_ordered(election_id, conn=conn)
        tree = build(b.ballot_tag for b in ballots)
        root = tree.root_hex

        tally = compute_tally(ballots)
        results_digest = compute_results_digest(tally)

        anchored = await self._ledger.submit_closure(election_id, root, results_digest)
        if not anchored.is_ok:
            return anchored

        await conn.execute(
            "UPDATE elections SET is_active = 0, merkle_root = ?, results_digest = ?, closed_at = ? "
            "WHERE id = ? AND is_active = 1",
            (root, results_digest, datetime.now(timezone.utc).isoformat(), election_id),
        )
        return Ok(ClosureReceipt(
            election_id=election_id,
            merkle_root=root,
            results_digest=results_digest,
            ballot_count=len(ballots),
            tally=tally,
        ))

"""
BALLOTSEAL — Local Hash-Chained Ledger.

A self-contained stand-in for the external ledger: every anchor is appended
to ``ledger_entries`` in its own SQLite database and sealed into a SHA-256
hash chain. Used for development, single-node deployments and tests.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import aiosqlite

from ballotseal.canonical import canonical_json
from ballotseal.exceptions import LedgerError
from ballotseal.ledger.base import LedgerClient
from ballotseal.result import Err, Ok, Result

logger = logging.getLogger("ballotseal.ledger.local")

CREATE_LEDGER_ENTRIES = """
CREATE TABLE IF NOT EXISTS ledger_entries (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    kind        TEXT NOT NULL,
    election_id TEXT NOT NULL,
    payload     TEXT NOT NULL,
    prev_hash   TEXT NOT NULL,
    hash        TEXT NOT NULL,
    timestamp   TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_ledger_election ON ledger_entries(election_id, kind);
"""

KIND_COMMITMENT = "vote_commitment"
KIND_CLOSURE = "closure"


class SQLiteLedger(LedgerClient):
    """
    Append-only ledger sealed by hash chaining.

    Each entry hashes ``prev_hash \\x00 kind \\x00 election_id \\x00 payload \\x00 ts``
    so any edit to a past entry breaks every later link.
    """

    GENESIS_HASH = "0" * 64

    def __init__(self, db_path: str):
        self.db_path = str(db_path)
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    @staticmethod
    def _compute_hash(prev_hash: str, kind: str, election_id: str, payload: str, ts: str) -> str:
        h_input = f"{prev_hash}\x00{kind}\x00{election_id}\x00{payload}\x00{ts}"
        return hashlib.sha256(h_input.encode("utf-8")).hexdigest()

    async def _get_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(self.db_path)
            await self._conn.execute("PRAGMA journal_mode=WAL;")
            await self._conn.executescript(CREATE_LEDGER_ENTRIES)
            await self._conn.commit()
        return self._conn

    async def _append(self, kind: str, election_id: str, detail: dict[str, Any]) -> str:
        payload = canonical_json(detail)
        ts = datetime.now(timezone.utc).isoformat()
        conn = await self._get_conn()

        await conn.execute("BEGIN IMMEDIATE")
        try:
            if kind == KIND_CLOSURE:
                async with conn.execute(
                    "SELECT payload, hash FROM ledger_entries WHERE election_id = ? AND kind = ?",
                    (election_id, KIND_CLOSURE),
                ) as cursor:
                    existing = await cursor.fetchone()
                if existing is not None:
                    if existing[0] != payload:
                        raise LedgerError(
                            f"Election {election_id} already closed on ledger with a different root"
                        )
                    # Same closure again: a retry after a failed local commit
                    await conn.rollback()
                    logger.info("Closure for %s already anchored, accepting retry", election_id)
                    return existing[1]

            async with conn.execute(
                "SELECT hash FROM ledger_entries ORDER BY id DESC LIMIT 1"
            ) as cursor:
                row = await cursor.fetchone()
            prev_hash = row[0] if row else self.GENESIS_HASH

            entry_hash = self._compute_hash(prev_hash, kind, election_id, payload, ts)
            await conn.execute(
                "INSERT INTO ledger_entries (kind, election_id, payload, prev_hash, hash, timestamp) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (kind, election_id, payload, prev_hash, entry_hash, ts),
            )
            await conn.commit()
        except BaseException:
            await conn.rollback()
            raise

        logger.info("Ledger entry sealed: %s | %s | %s...", kind, election_id, entry_hash[:8])
        return entry_hash

    async def _submit(self, kind: str, election_id: str, detail: dict[str, Any]) -> Result[None]:
        async with self._lock:
            try:
                await self._append(kind, election_id, detail)
            except LedgerError as e:
                logger.warning("Ledger rejected %s: %s", kind, e)
                return Err(e)
            except (sqlite3.Error, OSError) as e:
                logger.error("Ledger write failed for %s: %s", kind, e)
                return Err(LedgerError(f"Ledger write failed: {e}"))
        return Ok(None)

    async def submit_vote_commitment(
        self, election_id: str, voter_tag: str, ballot_tag: str
    ) -> Result[None]:
        return await self._submit(
            KIND_COMMITMENT, election_id, {"voter_tag": voter_tag, "ballot_tag": ballot_tag}
        )

    async def submit_closure(
        self, election_id: str, root: str, results_digest: str
    ) -> Result[None]:
        return await self._submit(
            KIND_CLOSURE, election_id, {"root": root, "results_digest": results_digest}
        )

    async def query_committed_root(self, election_id: str) -> Optional[str]:
        try:
            async with self._lock:
                conn = await self._get_conn()
                async with conn.execute(
                    "SELECT payload FROM ledger_entries WHERE election_id = ? AND kind = ? "
                    "ORDER BY id DESC LIMIT 1",
                    (election_id, KIND_CLOSURE),
                ) as cursor:
                    row = await cursor.fetchone()
        except (sqlite3.Error, OSError) as e:
            raise LedgerError(f"Ledger read failed: {e}") from e

        if not row:
            return None
        return json.loads(row[0]).get("root")

    async def verify_chain_integrity(self) -> dict[str, Any]:
        """Audit the whole hash chain."""
        violations = []
        async with self._lock:
            conn = await self._get_conn()
            async with conn.execute(
                "SELECT id, kind, election_id, payload, prev_hash, hash, timestamp "
                "FROM ledger_entries ORDER BY id ASC"
            ) as cursor:
                rows = await cursor.fetchall()

        expected_prev = self.GENESIS_HASH
        for entry_id, kind, election_id, payload, p_hash, c_hash, ts in rows:
            if p_hash != expected_prev:
                violations.append({
                    "entry_id": entry_id,
                    "type": "CHAIN_BREAK",
                    "expected_prev": expected_prev,
                    "actual_prev": p_hash,
                })

            actual_hash = self._compute_hash(p_hash, kind, election_id, payload, ts)
            if actual_hash != c_hash:
                violations.append({
                    "entry_id": entry_id,
                    "type": "DATA_TAMPERING",
                    "expected_hash": c_hash,
                    "actual_hash": actual_hash,
                })

            expected_prev = c_hash

        return {
            "valid": len(violations) == 0,
            "violations": violations,
            "entries_checked": len(rows),
        }

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

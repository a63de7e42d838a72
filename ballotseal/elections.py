"""
BALLOTSEAL — Elections Repository.

Creation, lookup and per-candidate results for elections. The commitment
core only reads candidates and the time window from here, and writes the
closure fields through ``ElectionCloser``.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

import aiosqlite

from ballotseal.canonical import canonical_json, sha256_hex
from ballotseal.connection_pool import BallotConnectionPool
from ballotseal.exceptions import DatabaseTransactionError, InvalidInputError

logger = logging.getLogger("ballotseal.elections")

MAX_TITLE_LENGTH = 255

ELECTION_COLUMNS = (
    "id, title, description, start_date, end_date, is_active, definition_hash, "
    "merkle_root, results_digest, created_by, created_at, closed_at"
)


@dataclass(frozen=True)
class NewCandidate:
    name: str
    description: str
    candidate_id: Optional[str] = None


@dataclass(frozen=True)
class Candidate:
    candidate_id: str
    name: str
    description: str


@dataclass
class Election:
    id: str
    title: str
    description: str
    start_date: str
    end_date: str
    is_active: bool
    definition_hash: str
    merkle_root: Optional[str] = None
    results_digest: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    closed_at: Optional[str] = None
    candidates: List[Candidate] = field(default_factory=list)

    def candidate_ids(self) -> set[str]:
        return {c.candidate_id for c in self.candidates}

    def is_open_at(self, moment: datetime) -> bool:
        """True if the election is active and ``moment`` is inside its window."""
        return (
            self.is_active
            and parse_timestamp(self.start_date) <= moment <= parse_timestamp(self.end_date)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "is_active": self.is_active,
            "definition_hash": self.definition_hash,
            "merkle_root": self.merkle_root,
            "results_digest": self.results_digest,
            "created_at": self.created_at,
            "closed_at": self.closed_at,
            "candidates": [
                {"id": c.candidate_id, "name": c.name, "description": c.description}
                for c in self.candidates
            ],
        }


@dataclass(frozen=True)
class CandidateResult:
    candidate_id: str
    name: str
    description: str
    votes: int


def parse_timestamp(value: str) -> datetime:
    """Parse ISO 8601; naive values are taken as UTC.

    Raises:
        InvalidInputError: If ``value`` is not a valid timestamp.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError("Date must be a non-empty ISO 8601 string")
    text = value.strip()
    # fromisoformat only accepts a trailing "Z" from 3.11 on
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError as e:
        raise InvalidInputError(f"Invalid date: {value!r}") from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _validate_candidates(candidates: Sequence[NewCandidate]) -> List[Candidate]:
    if not candidates:
        raise InvalidInputError("An election needs at least one candidate")

    resolved = []
    for position, entry in enumerate(candidates, start=1):
        if not entry.name or not entry.name.strip() or not entry.description or not entry.description.strip():
            raise InvalidInputError("Every candidate needs a name and a description")
        candidate_id = str(entry.candidate_id).strip() if entry.candidate_id else str(position)
        resolved.append(Candidate(candidate_id, entry.name.strip(), entry.description.strip()))

    ids = [c.candidate_id for c in resolved]
    if len(set(ids)) != len(ids):
        raise InvalidInputError("Candidate ids must be unique within an election")
    return resolved


def _row_to_election(row: Sequence[Any]) -> Election:
    return Election(
        id=row[0],
        title=row[1],
        description=row[2],
        start_date=row[3],
        end_date=row[4],
        is_active=bool(row[5]),
        definition_hash=row[6],
        merkle_root=row[7],
        results_digest=row[8],
        created_by=row[9],
        created_at=row[10],
        closed_at=row[11],
    )


class ElectionRepository:
    """Election records over the shared connection pool."""

    def __init__(self, pool: BallotConnectionPool):
        self._pool = pool

    async def create(
        self,
        title: str,
        description: str,
        start_date: str,
        end_date: str,
        candidates: Sequence[NewCandidate],
        created_by: Optional[str] = None,
    ) -> Election:
        """Validate and insert a new election with its candidates.

        Raises:
            InvalidInputError: On any validation failure.
            DatabaseTransactionError: If the insert fails and was rolled back.
        """
        if not title or not title.strip() or len(title) > MAX_TITLE_LENGTH:
            raise InvalidInputError(f"Title must be 1-{MAX_TITLE_LENGTH} characters")
        if not description or not description.strip():
            raise InvalidInputError("Description must not be empty")
        start = parse_timestamp(start_date)
        end = parse_timestamp(end_date)
        if start >= end:
            raise InvalidInputError("start_date must be before end_date")
        resolved = _validate_candidates(candidates)

        election_id = f"ELEC-{uuid.uuid4()}"
        definition = {
            "title": title,
            "description": description,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "candidates": [
                {"id": c.candidate_id, "name": c.name, "description": c.description}
                for c in resolved
            ],
        }
        definition_hash = sha256_hex(canonical_json(definition))
        created_at = datetime.now(timezone.utc).isoformat()

        async with self._pool.acquire() as conn:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                await conn.execute(
                    "INSERT INTO elections (id, title, description, start_date, end_date, "
                    "is_active, definition_hash, created_by, created_at) "
                    "VALUES (?, ?, ?, ?, ?, 1, ?, ?, ?)",
                    (
                        election_id, title, description, start.isoformat(), end.isoformat(),
                        definition_hash, created_by, created_at,
                    ),
                )
                await conn.executemany(
                    "INSERT INTO candidates (election_id, candidate_id, name, description, position) "
                    "VALUES (?, ?, ?, ?, ?)",
                    [
                        (election_id, c.candidate_id, c.name, c.description, i)
                        for i, c in enumerate(resolved)
                    ],
                )
                await conn.commit()
            except sqlite3.Error as e:
                await conn.rollback()
                logger.error("Failed to create election: %s", e)
                raise DatabaseTransactionError("Could not create election") from e

        logger.info("Created election %s (%d candidates)", election_id, len(resolved))
        return Election(
            id=election_id,
            title=title,
            description=description,
            start_date=start.isoformat(),
            end_date=end.isoformat(),
            is_active=True,
            definition_hash=definition_hash,
            created_by=created_by,
            created_at=created_at,
            candidates=resolved,
        )

    async def get(
        self, election_id: str, conn: Optional[aiosqlite.Connection] = None
    ) -> Optional[Election]:
        if conn is not None:
            return await self._fetch(conn, election_id)
        async with self._pool.acquire() as pooled:
            return await self._fetch(pooled, election_id)

    @staticmethod
    async def _fetch(conn: aiosqlite.Connection, election_id: str) -> Optional[Election]:
        async with conn.execute(
            f"SELECT {ELECTION_COLUMNS} FROM elections WHERE id = ?", (election_id,)
        ) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None

        election = _row_to_election(row)
        async with conn.execute(
            "SELECT candidate_id, name, description FROM candidates "
            "WHERE election_id = ? ORDER BY position",
            (election_id,),
        ) as cursor:
            election.candidates = [Candidate(*r) for r in await cursor.fetchall()]
        return election

    async def list(self, active: Optional[bool] = None) -> List[Election]:
        """All elections, newest first, optionally filtered by state."""
        query = f"SELECT {ELECTION_COLUMNS} FROM elections"
        params: list[Any] = []
        if active is not None:
            query += " WHERE is_active = ?"
            params.append(1 if active else 0)
        query += " ORDER BY created_at DESC"

        async with self._pool.acquire() as conn:
            async with conn.execute(query, params) as cursor:
                rows = await cursor.fetchall()
            elections = []
            for row in rows:
                election = _row_to_election(row)
                async with conn.execute(
                    "SELECT candidate_id, name, description FROM candidates "
                    "WHERE election_id = ? ORDER BY position",
                    (election.id,),
                ) as cursor:
                    election.candidates = [Candidate(*r) for r in await cursor.fetchall()]
                elections.append(election)
        return elections

    async def results(self, election_id: str) -> List[CandidateResult]:
        """Vote count per candidate, zero-vote candidates included."""
        async with self._pool.acquire() as conn:
            async with conn.execute(
                """
                SELECT c.candidate_id, c.name, c.description, COUNT(b.ballot_tag) AS votes
                FROM candidates c
                LEFT JOIN ballots b
                    ON b.election_id = c.election_id AND b.candidate_id = c.candidate_id
                WHERE c.election_id = ?
                GROUP BY c.candidate_id, c.name, c.description
                ORDER BY votes DESC, c.position ASC
                """,
                (election_id,),
            ) as cursor:
                rows = await cursor.fetchall()
        return [CandidateResult(*row) for row in rows]

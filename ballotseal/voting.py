"""
BALLOTSEAL — Vote Casting.

One vote is one all-or-nothing unit: participation record, anonymous ballot
and ledger anchor either all land or none do. The UNIQUE constraint on
``(election_id, user_id)`` is what stops a second concurrent vote.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import aiosqlite

from ballotseal.ballot_store import BallotStore
from ballotseal.commitment import commit_vote
from ballotseal.connection_pool import BallotConnectionPool
from ballotseal.elections import ElectionRepository
from ballotseal.exceptions import (
    BallotSealError,
    DatabaseTransactionError,
    DuplicateVoteError,
    ElectionNotActiveError,
    InvalidInputError,
    NotFoundError,
)
from ballotseal.ledger.base import LedgerClient
from ballotseal.result import Err, Ok, Result

logger = logging.getLogger("ballotseal.votes")


@dataclass(frozen=True)
class VoteReceipt:
    """What the voter keeps. Carries no user id and no voter tag."""

    election_id: str
    ballot_tag: str
    nonce: str
    cast_at: str


@dataclass(frozen=True)
class CanVote:
    can_vote: bool
    has_voted: bool
    reason: str


class VoteService:
    """Casts votes against the relational store and the ledger."""

    def __init__(
        self,
        pool: BallotConnectionPool,
        ledger: LedgerClient,
        ballots: BallotStore,
        elections: ElectionRepository,
        secret_salt: str,
    ):
        self._pool = pool
        self._ledger = ledger
        self._ballots = ballots
        self._elections = elections
        self._secret_salt = secret_salt

    async def cast(
        self,
        user_id: str,
        election_id: str,
        candidate_id: str,
        now: Optional[datetime] = None,
    ) -> Result[VoteReceipt]:
        """Cast one vote for ``user_id``.

        Errors: InvalidInputError, NotFoundError, ElectionNotActiveError,
        DuplicateVoteError, DuplicateTagError, LedgerError,
        DatabaseTransactionError.
        """
        for name, value in (("user_id", user_id), ("election_id", election_id),
                            ("candidate_id", candidate_id)):
            if value is None or not str(value).strip():
                return Err(InvalidInputError(f"Missing required field: {name}"))
        moment = now or datetime.now(timezone.utc)
        candidate_id = str(candidate_id)

        async with self._pool.acquire() as conn:
            try:
                await conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                logger.error("Could not open vote transaction: %s", e)
                return Err(DatabaseTransactionError("Store busy, retry the vote"))

            anchored = False
            try:
                result = await self._cast_in_transaction(
                    conn, user_id, election_id, candidate_id, moment
                )
                if result.is_ok:
                    anchored = True
                    await conn.commit()
            except sqlite3.Error as e:
                await conn.rollback()
                if anchored:
                    logger.error(
                        "Vote commit failed in %s after ledger anchor; ledger holds an "
                        "orphan commitment: %s", election_id, e,
                    )
                else:
                    logger.error("Vote transaction failed in %s: %s", election_id, e)
                return Err(DatabaseTransactionError("Vote could not be recorded"))

            if not result.is_ok:
                await conn.rollback()
                return result

        logger.info("Vote recorded in %s: ballot %s...", election_id, result.value.ballot_tag[:12])
        return result

    async def _cast_in_transaction(
        self,
        conn: aiosqlite.Connection,
        user_id: str,
        election_id: str,
        candidate_id: str,
        moment: datetime,
    ) -> Result[VoteReceipt]:
        election = await self._elections.get(election_id, conn=conn)
        if election is None:
            return Err(NotFoundError(f"Election {election_id} not found"))
        if not election.is_open_at(moment):
            return Err(ElectionNotActiveError(f"Election {election_id} is not open for voting"))
        if candidate_id not in election.candidate_ids():
            return Err(InvalidInputError(f"Unknown candidate {candidate_id} for {election_id}"))

        try:
            commitment = commit_vote(user_id, election_id, candidate_id, self._secret_salt)
        except BallotSealError as e:
            return Err(e)

        try:
            await conn.execute(
                "INSERT INTO voter_participation (election_id, user_id, voter_tag) VALUES (?, ?, ?)",
                (election_id, user_id, commitment.voter_tag),
            )
        except sqlite3.IntegrityError:
            logger.info("Rejected second vote in %s", election_id)
            return Err(DuplicateVoteError(f"Already voted in {election_id}"))

        appended = await self._ballots.append(conn, election_id, candidate_id, commitment.ballot_tag)
        if not appended.is_ok:
            return appended

        # Anchor last, so a ledger failure rolls everything back
        anchored = await self._ledger.submit_vote_commitment(
            election_id, commitment.voter_tag, commitment.ballot_tag
        )
        if not anchored.is_ok:
            return anchored

        return Ok(VoteReceipt(
            election_id=election_id,
            ballot_tag=commitment.ballot_tag,
            nonce=commitment.nonce,
            cast_at=appended.value.created_at,
        ))

    async def has_voted(self, user_id: str, election_id: str) -> bool:
        async with self._pool.acquire() as conn:
            async with conn.execute(
                "SELECT 1 FROM voter_participation WHERE election_id = ? AND user_id = ?",
                (election_id, user_id),
            ) as cursor:
                return await cursor.fetchone() is not None

    async def can_vote(
        self, user_id: str, election_id: str, now: Optional[datetime] = None
    ) -> Result[CanVote]:
        election = await self._elections.get(election_id)
        if election is None:
            return Err(NotFoundError(f"Election {election_id} not found"))

        voted = await self.has_voted(user_id, election_id)
        if voted:
            return Ok(CanVote(False, True, "Already voted"))
        if not election.is_open_at(now or datetime.now(timezone.utc)):
            return Ok(CanVote(False, False, "Election not active"))
        return Ok(CanVote(True, False, "Can vote"))

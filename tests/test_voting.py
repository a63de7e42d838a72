"""Tests for vote casting: window, duplicates, concurrency, ledger rollback."""

import asyncio
import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from ballotseal.engine import BallotSealEngine
from ballotseal.exceptions import (
    DatabaseTransactionError,
    DuplicateVoteError,
    ElectionNotActiveError,
    InvalidInputError,
    LedgerError,
    NotFoundError,
)

from conftest import BOARD_CANDIDATES, break_store_commits


class TestCast:
    async def test_receipt(self, engine, election):
        receipt = (await engine.votes.cast("user-1", election.id, "1")).unwrap()
        assert receipt.election_id == election.id
        assert len(receipt.ballot_tag) == 64
        assert len(receipt.nonce) == 32
        assert not hasattr(receipt, "voter_tag")
        assert "user-1" not in repr(receipt)

    async def test_ballot_and_participation_persisted(self, engine, election):
        receipt = (await engine.votes.cast("user-1", election.id, "2")).unwrap()
        ballots = await engine.ballots.list_ordered(election.id)
        assert [(b.ballot_tag, b.candidate_id) for b in ballots] == [(receipt.ballot_tag, "2")]
        assert await engine.votes.has_voted("user-1", election.id)
        assert engine.ledger.vote_calls == 1

    async def test_ballot_row_has_no_voter_link(self, engine, election):
        (await engine.votes.cast("user-1", election.id, "1")).unwrap()
        async with engine.pool.acquire() as conn:
            async with conn.execute("PRAGMA table_info(ballots)") as cursor:
                columns = {row[1] for row in await cursor.fetchall()}
        assert "user_id" not in columns
        assert "voter_tag" not in columns

    async def test_storage_order_does_not_pair_voters_with_ballots(self, engine, election):
        for user, candidate in [("dave", "2"), ("alice", "1"), ("carol", "3"), ("bob", "2")]:
            (await engine.votes.cast(user, election.id, candidate)).unwrap()

        async with engine.pool.acquire() as conn:
            for table in ("voter_participation", "ballots"):
                with pytest.raises(sqlite3.OperationalError):
                    await conn.execute(f"SELECT rowid FROM {table}")
            async with conn.execute("PRAGMA table_info(voter_participation)") as cursor:
                columns = {row[1] for row in await cursor.fetchall()}
            async with conn.execute(
                "SELECT user_id FROM voter_participation WHERE election_id = ?", (election.id,)
            ) as cursor:
                users = [row[0] for row in await cursor.fetchall()]

        assert columns == {"election_id", "user_id", "voter_tag"}
        # Rows come back in key order, not in the order the votes were cast
        assert users == ["alice", "bob", "carol", "dave"]

    async def test_duplicate_vote(self, engine, election):
        (await engine.votes.cast("user-1", election.id, "1")).unwrap()
        second = await engine.votes.cast("user-1", election.id, "2")
        assert isinstance(second.error, DuplicateVoteError)
        assert await engine.ballots.count(election.id) == 1

    async def test_unknown_candidate(self, engine, election):
        result = await engine.votes.cast("user-1", election.id, "99")
        assert isinstance(result.error, InvalidInputError)
        assert not await engine.votes.has_voted("user-1", election.id)

    async def test_unknown_election(self, engine):
        result = await engine.votes.cast("user-1", "ELEC-missing", "1")
        assert isinstance(result.error, NotFoundError)

    @pytest.mark.parametrize("field", ["user_id", "election_id", "candidate_id"])
    async def test_missing_fields(self, engine, election, field):
        args = {"user_id": "user-1", "election_id": election.id, "candidate_id": "1"}
        args[field] = ""
        result = await engine.votes.cast(**args)
        assert isinstance(result.error, InvalidInputError)


class TestWindow:
    async def test_before_start(self, engine, election):
        early = datetime.now(timezone.utc) - timedelta(days=1)
        result = await engine.votes.cast("user-1", election.id, "1", now=early)
        assert isinstance(result.error, ElectionNotActiveError)

    async def test_after_end(self, engine, election):
        late = datetime.now(timezone.utc) + timedelta(days=1)
        result = await engine.votes.cast("user-1", election.id, "1", now=late)
        assert isinstance(result.error, ElectionNotActiveError)

    async def test_closed_election(self, engine, election):
        (await engine.closer.close(election.id)).unwrap()
        result = await engine.votes.cast("user-1", election.id, "1")
        assert isinstance(result.error, ElectionNotActiveError)


class TestCanVote:
    async def test_states(self, engine, election):
        status = (await engine.votes.can_vote("user-1", election.id)).unwrap()
        assert status.can_vote and not status.has_voted

        (await engine.votes.cast("user-1", election.id, "1")).unwrap()
        status = (await engine.votes.can_vote("user-1", election.id)).unwrap()
        assert not status.can_vote and status.has_voted

    async def test_outside_window(self, engine, election):
        late = datetime.now(timezone.utc) + timedelta(days=2)
        status = (await engine.votes.can_vote("user-2", election.id, now=late)).unwrap()
        assert not status.can_vote and not status.has_voted

    async def test_unknown_election(self, engine):
        assert isinstance((await engine.votes.can_vote("u", "ELEC-x")).error, NotFoundError)


class TestConcurrency:
    async def test_concurrent_double_vote(self, engine, election):
        """Two simultaneous casts by one user: exactly one succeeds."""
        results = await asyncio.gather(
            engine.votes.cast("user-1", election.id, "1"),
            engine.votes.cast("user-1", election.id, "2"),
        )
        ok = [r for r in results if r.is_ok]
        failed = [r for r in results if not r.is_ok]
        assert len(ok) == 1
        assert len(failed) == 1
        assert isinstance(failed[0].error, DuplicateVoteError)
        assert await engine.ballots.count(election.id) == 1

    async def test_concurrent_distinct_voters(self, engine, election):
        results = await asyncio.gather(
            *(engine.votes.cast(f"user-{i}", election.id, str(i % 3 + 1)) for i in range(8))
        )
        assert all(r.is_ok for r in results)
        assert await engine.ballots.count(election.id) == 8


class TestLedgerFailure:
    async def test_rollback_on_ledger_error(self, engine, election):
        engine.ledger.fail_votes = True
        result = await engine.votes.cast("user-1", election.id, "1")
        assert isinstance(result.error, LedgerError)
        assert result.error.retryable
        assert await engine.ballots.count(election.id) == 0
        assert not await engine.votes.has_voted("user-1", election.id)

        engine.ledger.fail_votes = False
        assert (await engine.votes.cast("user-1", election.id, "1")).is_ok

    async def test_commit_failure_is_err(self, engine, election, monkeypatch):
        restore = break_store_commits(engine, monkeypatch)
        result = await engine.votes.cast("user-1", election.id, "1")
        restore()

        assert isinstance(result.error, DatabaseTransactionError)
        assert result.error.retryable
        assert await engine.ballots.count(election.id) == 0
        assert not await engine.votes.has_voted("user-1", election.id)
        assert (await engine.votes.cast("user-1", election.id, "1")).is_ok


async def test_salt_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("BALLOTSEAL_SECRET_SALT", "env-salt")
    engine = BallotSealEngine(db_path=tmp_path / "env.db")
    await engine.init_db()
    try:
        start = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        end = (datetime.now(timezone.utc) + timedelta(hours=1)).isoformat()
        e = await engine.elections.create("T", "D", start, end, BOARD_CANDIDATES)
        assert (await engine.votes.cast("user-1", e.id, "3")).is_ok
    finally:
        await engine.close()


async def test_missing_salt(tmp_path):
    engine = BallotSealEngine(db_path=tmp_path / "nosalt.db")
    try:
        with pytest.raises(InvalidInputError):
            engine.votes
    finally:
        await engine.close()

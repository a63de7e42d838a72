import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest

from ballotseal import config
from ballotseal.elections import NewCandidate
from ballotseal.engine import BallotSealEngine
from ballotseal.exceptions import LedgerError
from ballotseal.ledger import LedgerClient, SQLiteLedger
from ballotseal.result import Err

TEST_SALT = "test-salt-3f9a1c"


class FlakyLedger(LedgerClient):
    """Local ledger whose anchor calls can be switched to fail."""

    def __init__(self, inner: SQLiteLedger):
        self.inner = inner
        self.fail_votes = False
        self.fail_closures = False
        self.vote_calls = 0
        self.closure_calls = 0

    async def submit_vote_commitment(self, election_id, voter_tag, ballot_tag):
        self.vote_calls += 1
        if self.fail_votes:
            return Err(LedgerError("ledger unavailable"))
        return await self.inner.submit_vote_commitment(election_id, voter_tag, ballot_tag)

    async def submit_closure(self, election_id, root, results_digest):
        self.closure_calls += 1
        if self.fail_closures:
            return Err(LedgerError("ledger unavailable"))
        return await self.inner.submit_closure(election_id, root, results_digest)

    async def query_committed_root(self, election_id):
        return await self.inner.query_committed_root(election_id)

    async def close(self):
        await self.inner.close()


class CommitFailsConnection:
    """Store connection whose commit fails like a full disk."""

    def __init__(self, conn):
        self._conn = conn

    def __getattr__(self, name):
        return getattr(self._conn, name)

    async def commit(self):
        raise sqlite3.OperationalError("disk I/O error")


def break_store_commits(engine, monkeypatch):
    """Make every ballot store commit fail. Returns a callable that restores them."""
    real_acquire = engine.pool.acquire

    @asynccontextmanager
    async def acquire():
        async with real_acquire() as conn:
            yield CommitFailsConnection(conn)

    monkeypatch.setattr(engine.pool, "acquire", acquire)
    return lambda: monkeypatch.setattr(engine.pool, "acquire", real_acquire)


def open_window(hours: int = 1) -> tuple[str, str]:
    now = datetime.now(timezone.utc)
    return (now - timedelta(hours=hours)).isoformat(), (now + timedelta(hours=hours)).isoformat()


BOARD_CANDIDATES = [
    NewCandidate("Alice", "Incumbent"),
    NewCandidate("Bob", "Challenger"),
    NewCandidate("Carol", "Independent"),
]


@pytest.fixture(autouse=True)
def reset_ballotseal_config(monkeypatch, tmp_path):
    """Point every setting at the test's tmp dir and re-read config."""
    monkeypatch.setenv("BALLOTSEAL_DB", str(tmp_path / "ballotseal.db"))
    monkeypatch.setenv("BALLOTSEAL_LEDGER_DB", str(tmp_path / "ledger.db"))
    monkeypatch.delenv("BALLOTSEAL_LEDGER_URL", raising=False)
    monkeypatch.delenv("BALLOTSEAL_SECRET_SALT", raising=False)
    monkeypatch.delenv("BALLOTSEAL_SECRET_SALT_FILE", raising=False)
    config.reload()

    yield

    monkeypatch.undo()
    config.reload()


@pytest.fixture
async def engine(tmp_path):
    """Initialized engine over tmp databases with a switchable ledger."""
    ledger = FlakyLedger(SQLiteLedger(str(tmp_path / "ledger.db")))
    eng = BallotSealEngine(db_path=tmp_path / "test.db", ledger=ledger, secret_salt=TEST_SALT)
    await eng.init_db()
    yield eng
    await eng.close()


@pytest.fixture
async def election(engine):
    """An open election with candidates "1", "2" and "3"."""
    start, end = open_window()
    return await engine.elections.create(
        "Board election", "Annual board election", start, end, BOARD_CANDIDATES
    )

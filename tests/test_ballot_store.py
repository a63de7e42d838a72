"""Tests for BallotStore append and canonical ordering."""

import random

from ballotseal.commitment import commit_vote
from ballotseal.exceptions import DuplicateTagError, InvalidInputError


async def _append(engine, election_id, candidate_id, tag):
    async with engine.pool.acquire() as conn:
        result = await engine.ballots.append(conn, election_id, candidate_id, tag)
        if result.is_ok:
            await conn.commit()
        else:
            await conn.rollback()
        return result


class TestAppend:
    async def test_append_and_count(self, engine, election):
        tag = commit_vote("u1", election.id, "1", "salt").ballot_tag
        result = await _append(engine, election.id, "1", tag)
        assert result.is_ok
        assert result.value.ballot_tag == tag
        assert await engine.ballots.count(election.id) == 1

    async def test_duplicate_tag(self, engine, election):
        tag = commit_vote("u1", election.id, "1", "salt").ballot_tag
        assert (await _append(engine, election.id, "1", tag)).is_ok
        second = await _append(engine, election.id, "2", tag)
        assert not second.is_ok
        assert isinstance(second.error, DuplicateTagError)
        assert await engine.ballots.count(election.id) == 1

    async def test_rejects_bad_tag(self, engine, election):
        result = await _append(engine, election.id, "1", "NOT-HEX")
        assert isinstance(result.error, InvalidInputError)

    async def test_append_does_not_commit(self, engine, election):
        tag = commit_vote("u1", election.id, "1", "salt").ballot_tag
        async with engine.pool.acquire() as conn:
            await conn.execute("BEGIN IMMEDIATE")
            assert (await engine.ballots.append(conn, election.id, "1", tag)).is_ok
            await conn.rollback()
        assert await engine.ballots.count(election.id) == 0


class TestOrdering:
    async def test_list_ordered_by_tag(self, engine, election):
        tags = [commit_vote(f"u{i}", election.id, "1", "salt").ballot_tag for i in range(10)]
        random.Random(7).shuffle(tags)
        for tag in tags:
            assert (await _append(engine, election.id, "1", tag)).is_ok

        listed = [b.ballot_tag for b in await engine.ballots.list_ordered(election.id)]
        assert listed == sorted(tags)

    async def test_scoped_per_election(self, engine, election):
        assert await engine.ballots.list_ordered("ELEC-other") == []

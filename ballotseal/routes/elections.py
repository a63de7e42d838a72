"""
BALLOTSEAL — Elections Router.
Election creation, lookup, closure and results.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ballotseal.api_deps import get_engine, get_user_id
from ballotseal.elections import NewCandidate, Election
from ballotseal.engine import BallotSealEngine
from ballotseal.exceptions import NotFoundError
from ballotseal.models import (
    CandidateOut,
    CandidateResultOut,
    ClosureResponse,
    CreateElectionRequest,
    ElectionResponse,
    ResultsResponse,
    TallyEntry,
)

logger = logging.getLogger("ballotseal.api.elections")
router = APIRouter(prefix="/v1/elections", tags=["elections"])


def _to_response(election: Election) -> ElectionResponse:
    return ElectionResponse(
        id=election.id,
        title=election.title,
        description=election.description,
        start_date=election.start_date,
        end_date=election.end_date,
        is_active=election.is_active,
        definition_hash=election.definition_hash,
        merkle_root=election.merkle_root,
        results_digest=election.results_digest,
        created_at=election.created_at,
        closed_at=election.closed_at,
        candidates=[
            CandidateOut(id=c.candidate_id, name=c.name, description=c.description)
            for c in election.candidates
        ],
    )


@router.post("", response_model=ElectionResponse, status_code=201)
async def create_election(
    req: CreateElectionRequest,
    user_id: str = Depends(get_user_id),
    engine: BallotSealEngine = Depends(get_engine),
) -> ElectionResponse:
    """Create an election (admin role is enforced upstream)."""
    election = await engine.elections.create(
        title=req.title,
        description=req.description,
        start_date=req.start_date,
        end_date=req.end_date,
        candidates=[NewCandidate(c.name, c.description, c.id) for c in req.candidates],
        created_by=user_id,
    )
    return _to_response(election)


@router.get("", response_model=List[ElectionResponse])
async def list_elections(
    active: Optional[bool] = Query(None, description="Filter by open/closed state"),
    engine: BallotSealEngine = Depends(get_engine),
) -> List[ElectionResponse]:
    return [_to_response(e) for e in await engine.elections.list(active=active)]


@router.get("/{election_id}", response_model=ElectionResponse)
async def get_election(
    election_id: str,
    engine: BallotSealEngine = Depends(get_engine),
) -> ElectionResponse:
    election = await engine.elections.get(election_id)
    if election is None:
        raise NotFoundError(f"Election {election_id} not found")
    return _to_response(election)


@router.post("/{election_id}/close", response_model=ClosureResponse)
async def close_election(
    election_id: str,
    user_id: str = Depends(get_user_id),
    engine: BallotSealEngine = Depends(get_engine),
) -> ClosureResponse:
    """Freeze ballots, anchor root and results digest, mark closed."""
    receipt = (await engine.closer.close(election_id)).unwrap()
    return ClosureResponse(
        election_id=receipt.election_id,
        merkle_root=receipt.merkle_root,
        results_digest=receipt.results_digest,
        ballot_count=receipt.ballot_count,
        tally=[TallyEntry(**t) for t in receipt.tally],
    )


@router.get("/{election_id}/results", response_model=ResultsResponse)
async def get_results(
    election_id: str,
    engine: BallotSealEngine = Depends(get_engine),
) -> ResultsResponse:
    election = await engine.elections.get(election_id)
    if election is None:
        raise NotFoundError(f"Election {election_id} not found")
    results = await engine.elections.results(election_id)
    return ResultsResponse(
        election_id=election_id,
        is_active=election.is_active,
        merkle_root=election.merkle_root,
        results_digest=election.results_digest,
        results=[
            CandidateResultOut(
                candidate_id=r.candidate_id, name=r.name, description=r.description, votes=r.votes
            )
            for r in results
        ],
    )

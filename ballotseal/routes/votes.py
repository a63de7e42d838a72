"""
BALLOTSEAL — Votes Router.
Eligibility check and vote casting.
"""

import logging

from fastapi import APIRouter, Depends

from ballotseal.api_deps import get_engine, get_user_id
from ballotseal.engine import BallotSealEngine
from ballotseal.models import CanVoteResponse, VoteReceiptResponse, VoteRequest

logger = logging.getLogger("ballotseal.api.votes")
router = APIRouter(prefix="/v1/elections", tags=["votes"])


@router.get("/{election_id}/can-vote", response_model=CanVoteResponse)
async def can_vote(
    election_id: str,
    user_id: str = Depends(get_user_id),
    engine: BallotSealEngine = Depends(get_engine),
) -> CanVoteResponse:
    status = (await engine.votes.can_vote(user_id, election_id)).unwrap()
    return CanVoteResponse(can_vote=status.can_vote, has_voted=status.has_voted, message=status.reason)


@router.post("/{election_id}/vote", response_model=VoteReceiptResponse, status_code=201)
async def cast_vote(
    election_id: str,
    req: VoteRequest,
    user_id: str = Depends(get_user_id),
    engine: BallotSealEngine = Depends(get_engine),
) -> VoteReceiptResponse:
    """Cast a vote. The receipt is the voter's only link to their ballot."""
    receipt = (await engine.votes.cast(user_id, election_id, req.candidate_id)).unwrap()
    return VoteReceiptResponse(
        election_id=receipt.election_id,
        ballot_tag=receipt.ballot_tag,
        nonce=receipt.nonce,
        cast_at=receipt.cast_at,
    )

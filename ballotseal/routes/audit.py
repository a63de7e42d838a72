"""
BALLOTSEAL — Audit Router.
Inclusion proofs, offline-style verification and election audits.
"""

import logging

from fastapi import APIRouter, Depends

from ballotseal.api_deps import get_engine
from ballotseal.engine import BallotSealEngine
from ballotseal.models import (
    AuditReportResponse,
    InclusionProofModel,
    ProofResponse,
    VerifyRequest,
    VerifyResponse,
)
from ballotseal.proofs import verify

logger = logging.getLogger("ballotseal.api.audit")
router = APIRouter(tags=["audit"])


@router.get("/v1/elections/{election_id}/ballots/{ballot_tag}/proof", response_model=ProofResponse)
async def get_ballot_proof(
    election_id: str,
    ballot_tag: str,
    engine: BallotSealEngine = Depends(get_engine),
) -> ProofResponse:
    """Root plus sibling path for one ballot; the requester verifies it."""
    payload = (await engine.audit.ballot_proof(election_id, ballot_tag)).unwrap()
    return ProofResponse(
        election_id=payload["election_id"],
        merkle_root=payload["merkle_root"],
        proof=InclusionProofModel(**payload["proof"]),
    )


@router.post("/v1/proofs/verify", response_model=VerifyResponse)
async def verify_proof(req: VerifyRequest) -> VerifyResponse:
    """Stateless verification; malformed input yields ``valid: false``."""
    return VerifyResponse(valid=verify(req.ballot_tag, req.proof, req.merkle_root))


@router.get("/v1/elections/{election_id}/audit", response_model=AuditReportResponse)
async def audit_election(
    election_id: str,
    engine: BallotSealEngine = Depends(get_engine),
) -> AuditReportResponse:
    """Recompute root and results digest; cross-check the ledger."""
    report = (await engine.audit.audit_election(election_id)).unwrap()
    if not report["valid"]:
        logger.error("Audit violations for %s: %s", election_id, report["violations"])
    return AuditReportResponse(**report)

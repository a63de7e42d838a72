"""
BALLOTSEAL — API Models.
Centralized Pydantic models for request/response validation.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class CandidateIn(BaseModel):
    name: str = Field(..., max_length=200)
    description: str = Field(..., max_length=2000)
    id: str | None = Field(None, max_length=64, description="Optional candidate id")


class CreateElectionRequest(BaseModel):
    title: str = Field(..., max_length=255)
    description: str = Field(..., max_length=5000)
    start_date: str = Field(..., description="ISO 8601")
    end_date: str = Field(..., description="ISO 8601")
    candidates: list[CandidateIn] = Field(..., min_length=1)

    @field_validator("title", "description")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Must not be empty or whitespace only")
        return v


class CandidateOut(BaseModel):
    id: str
    name: str
    description: str


class ElectionResponse(BaseModel):
    id: str
    title: str
    description: str
    start_date: str
    end_date: str
    is_active: bool
    definition_hash: str
    merkle_root: str | None = None
    results_digest: str | None = None
    created_at: str | None = None
    closed_at: str | None = None
    candidates: list[CandidateOut]


class VoteRequest(BaseModel):
    candidate_id: str = Field(..., min_length=1, max_length=64)


class VoteReceiptResponse(BaseModel):
    election_id: str
    ballot_tag: str
    nonce: str
    cast_at: str
    message: str = "Vote recorded"


class CanVoteResponse(BaseModel):
    can_vote: bool
    has_voted: bool
    message: str


class TallyEntry(BaseModel):
    candidate_id: str
    votes: int


class ClosureResponse(BaseModel):
    election_id: str
    merkle_root: str
    results_digest: str
    ballot_count: int
    tally: list[TallyEntry]


class CandidateResultOut(BaseModel):
    candidate_id: str
    name: str
    description: str
    votes: int


class ResultsResponse(BaseModel):
    election_id: str
    is_active: bool
    merkle_root: str | None = None
    results_digest: str | None = None
    results: list[CandidateResultOut]


class ProofStepModel(BaseModel):
    sibling: str
    side: str


class InclusionProofModel(BaseModel):
    ballot_tag: str
    leaf_index: int
    steps: list[ProofStepModel]


class ProofResponse(BaseModel):
    election_id: str
    merkle_root: str | None
    proof: InclusionProofModel


class VerifyRequest(BaseModel):
    ballot_tag: str = Field(..., max_length=256)
    merkle_root: str = Field(..., max_length=256)
    proof: Any = Field(..., description="Proof object or list of steps; validated on verify")


class VerifyResponse(BaseModel):
    valid: bool


class AuditReportResponse(BaseModel):
    election_id: str
    valid: bool
    violations: list[dict[str, Any]]
    ballots_checked: int
    merkle_root: str | None = None
    ledger_root: str | None = None

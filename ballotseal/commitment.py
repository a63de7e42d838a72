"""
BALLOTSEAL — Vote Commitments.

Derives the two tags produced for every cast vote:

* the voter tag, deterministic per (user, election), which backs the
  one-vote-per-election constraint without entering the ballot table;
* the ballot tag, salted with a fresh nonce, which is the only public trace
  of the ballot and carries no link back to the voter.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Optional

from ballotseal.canonical import canonical_json, sha256_hex
from ballotseal.exceptions import InvalidInputError

NONCE_BYTES = 16


@dataclass(frozen=True)
class VoteCommitment:
    voter_tag: str
    ballot_tag: str
    nonce: str


def generate_nonce() -> str:
    """Fresh 128-bit nonce, hex encoded."""
    return secrets.token_hex(NONCE_BYTES)


def _require(**fields: object) -> None:
    for name, value in fields.items():
        if value is None or not str(value).strip():
            raise InvalidInputError(f"Missing required field: {name}")


def derive_voter_tag(user_id: str, election_id: str, secret_salt: str) -> str:
    _require(user_id=user_id, election_id=election_id, secret_salt=secret_salt)
    return sha256_hex(f"{user_id}-{election_id}-{secret_salt}")


def derive_ballot_tag(election_id: str, candidate_id: str, nonce: str) -> str:
    _require(election_id=election_id, candidate_id=candidate_id, nonce=nonce)
    payload = {
        "candidate_id": str(candidate_id),
        "election_id": str(election_id),
        "nonce": nonce,
    }
    return sha256_hex(canonical_json(payload))


def commit_vote(
    user_id: str,
    election_id: str,
    candidate_id: str,
    secret_salt: str,
    nonce: Optional[str] = None,
) -> VoteCommitment:
    """Build the voter and ballot tags for one vote.

    Pure function of its inputs; persisting the result atomically is the
    caller's job. The nonce is returned so it can be handed to the voter with
    the receipt, it is never stored.

    Raises:
        InvalidInputError: If any field is empty.
    """
    _require(
        user_id=user_id,
        election_id=election_id,
        candidate_id=candidate_id,
        secret_salt=secret_salt,
    )
    if nonce is None:
        nonce = generate_nonce()
    return VoteCommitment(
        voter_tag=derive_voter_tag(user_id, election_id, secret_salt),
        ballot_tag=derive_ballot_tag(election_id, candidate_id, nonce),
        nonce=nonce,
    )

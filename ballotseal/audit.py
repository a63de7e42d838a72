"""
BALLOTSEAL — Audit Service.

Serves inclusion proofs for closed elections and re-derives every committed
value (root, results digest) from the stored ballots, cross-checking them
against the election record and the ledger.
"""

from __future__ import annotations

import logging
from typing import Any

from ballotseal.ballot_store import BallotStore
from ballotseal.closer import compute_results_digest, compute_tally
from ballotseal.elections import ElectionRepository
from ballotseal.exceptions import (
    ElectionNotActiveError,
    IntegrityViolationError,
    LedgerError,
    NotFoundError,
)
from ballotseal.ledger.base import LedgerClient
from ballotseal.merkle import build
from ballotseal.proofs import prove
from ballotseal.result import Err, Ok, Result

logger = logging.getLogger("ballotseal.audit")


class AuditService:
    def __init__(
        self,
        ledger: LedgerClient,
        ballots: BallotStore,
        elections: ElectionRepository,
    ):
        self._ledger = ledger
        self._ballots = ballots
        self._elections = elections

    async def ballot_proof(self, election_id: str, ballot_tag: str) -> Result[dict[str, Any]]:
        """Return ``{"election_id", "merkle_root", "proof"}`` for one ballot.

        Refuses with IntegrityViolationError when the stored ballots no longer
        rebuild the committed root, since no proof could verify against it.
        """
        election = await self._elections.get(election_id)
        if election is None:
            return Err(NotFoundError(f"Election {election_id} not found"))
        if election.is_active:
            return Err(ElectionNotActiveError(f"Election {election_id} is still open"))

        ballots = await self._ballots.list_ordered(election_id)
        tree = build(b.ballot_tag for b in ballots)
        if tree.root_hex != election.merkle_root:
            logger.error(
                "Root mismatch for %s: stored %s, rebuilt %s",
                election_id, election.merkle_root, tree.root_hex,
            )
            return Err(IntegrityViolationError(
                f"Ballots of {election_id} no longer match its committed root; run an audit"
            ))

        proved = prove(tree, ballot_tag)
        if not proved.is_ok:
            return proved

        return Ok({
            "election_id": election_id,
            "merkle_root": election.merkle_root,
            "proof": proved.value.to_dict(),
        })

    async def audit_election(self, election_id: str) -> Result[dict[str, Any]]:
        """Recompute root and results digest and compare with every copy."""
        election = await self._elections.get(election_id)
        if election is None:
            return Err(NotFoundError(f"Election {election_id} not found"))
        if election.is_active:
            return Err(ElectionNotActiveError(f"Election {election_id} is still open"))

        ballots = await self._ballots.list_ordered(election_id)
        root = build(b.ballot_tag for b in ballots).root_hex
        digest = compute_results_digest(compute_tally(ballots))

        violations = []
        if root != election.merkle_root:
            violations.append({"type": "merkle_mismatch", "expected": election.merkle_root, "actual": root})
        if digest != election.results_digest:
            violations.append({"type": "results_mismatch", "expected": election.results_digest, "actual": digest})

        try:
            ledger_root = await self._ledger.query_committed_root(election_id)
        except LedgerError as e:
            logger.warning("Ledger cross-check unavailable for %s: %s", election_id, e)
            return Err(e)

        if ledger_root is None:
            violations.append({"type": "ledger_missing", "expected": election.merkle_root, "actual": None})
        elif ledger_root != election.merkle_root:
            violations.append({"type": "ledger_mismatch", "expected": ledger_root, "actual": election.merkle_root})

        if violations:
            logger.error("Audit of %s failed: %d violations", election_id, len(violations))

        return Ok({
            "election_id": election_id,
            "valid": not violations,
            "violations": violations,
            "ballots_checked": len(ballots),
            "merkle_root": election.merkle_root,
            "ledger_root": ledger_root,
        })

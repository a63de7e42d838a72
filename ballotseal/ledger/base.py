"""
BALLOTSEAL — Ledger contract.

The narrow call surface the commitment core needs from the external
distributed ledger. Submits return ``Result`` so a failed anchor always
reaches the caller as a value it must handle.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ballotseal.result import Result


class LedgerClient(ABC):
    """Anchor vote commitments and election closures on an external ledger."""

    @abstractmethod
    async def submit_vote_commitment(
        self, election_id: str, voter_tag: str, ballot_tag: str
    ) -> Result[None]:
        """Record that a vote with ``ballot_tag`` was cast."""

    @abstractmethod
    async def submit_closure(
        self, election_id: str, root: str, results_digest: str
    ) -> Result[None]:
        """Record the Merkle root and results digest of a closed election.

        Resubmitting the identical ``(root, results_digest)`` must succeed
        without a second entry; a different pair for the same election is
        an ``Err(LedgerError)``.
        """

    @abstractmethod
    async def query_committed_root(self, election_id: str) -> Optional[str]:
        """Root anchored for ``election_id``, or None if not closed on the ledger.

        Raises:
            LedgerError: If the ledger cannot be reached.
        """

    async def close(self) -> None:
        """Release transport resources."""

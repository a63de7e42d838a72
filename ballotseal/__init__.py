"""
BALLOTSEAL — Anonymous ballot commitments with Merkle inclusion proofs.

Unlinkable voter and ballot tags, deterministic Merkle roots over closed
elections, ledger-anchored results and per-ballot proofs of inclusion.
"""

__version__ = "1.0.0"

from ballotseal.engine import BallotSealEngine

__all__ = ["BallotSealEngine", "__version__"]

"""
BALLOTSEAL — Merkle Tree.

Binary Merkle tree over canonically ordered ballot tags.

Construction rules (builder and verifier must agree byte for byte):
    1. Leaves are ``leaf_hash(tag)`` in the order given by the caller.
    2. Adjacent nodes are paired left to right with ``node_hash``.
    3. An unpaired last node is carried up unchanged, never duplicated.
    4. No tags: root is ``EMPTY_ROOT``. One tag: root is its leaf hash.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from ballotseal.canonical import EMPTY_ROOT, leaf_hash, node_hash


class MerkleTree:
    """
    Immutable Merkle tree snapshot.

    ``levels[0]`` holds the leaves and ``levels[-1]`` the single root node.
    """

    def __init__(self, ballot_tags: Iterable[str]):
        self.tags: List[str] = list(ballot_tags)
        self.levels: List[List[bytes]] = self._build_levels(
            [leaf_hash(t) for t in self.tags]
        )
        self._index = {tag: i for i, tag in enumerate(self.tags)}

    @staticmethod
    def _build_levels(leaves: List[bytes]) -> List[List[bytes]]:
        if not leaves:
            return []

        levels = [leaves]
        current_level = leaves

        while len(current_level) > 1:
            next_level = []
            for i in range(0, len(current_level) - 1, 2):
                next_level.append(node_hash(current_level[i], current_level[i + 1]))
            if len(current_level) % 2 == 1:
                # Odd node: carry up
                next_level.append(current_level[-1])
            levels.append(next_level)
            current_level = next_level

        return levels

    @property
    def root(self) -> bytes:
        """Root digest (``EMPTY_ROOT`` for an empty tree)."""
        return self.levels[-1][0] if self.levels else EMPTY_ROOT

    @property
    def root_hex(self) -> str:
        return self.root.hex()

    @property
    def depth(self) -> int:
        """Number of hashing levels above the leaves."""
        return max(0, len(self.levels) - 1)

    def leaf_index(self, ballot_tag: str) -> Optional[int]:
        """Position of a tag among the leaves, or None."""
        return self._index.get(ballot_tag)

    def __len__(self) -> int:
        return len(self.tags)

    def __repr__(self) -> str:
        return f"MerkleTree(leaves={len(self.tags)}, root={self.root_hex[:16]}...)"


def build(ballot_tags: Iterable[str]) -> MerkleTree:
    """Build a tree from already-ordered ballot tags."""
    return MerkleTree(ballot_tags)


def compute_merkle_root(ballot_tags: Iterable[str]) -> str:
    """Hex root of the tree over ``ballot_tags``."""
    return build(ballot_tags).root_hex

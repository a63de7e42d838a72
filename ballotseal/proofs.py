"""
BALLOTSEAL — Inclusion Proofs.

Sibling-path proofs that one ballot tag is a leaf of a committed root.
``verify`` runs on untrusted input from the audit surface and fails closed:
anything it cannot decode is a negative result, never an exception.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Union

from ballotseal.canonical import digest_from_hex, is_canonical_hex, leaf_hash, node_hash
from ballotseal.exceptions import MalformedProofError, NotFoundError
from ballotseal.merkle import MerkleTree
from ballotseal.result import Err, Ok, Result

logger = logging.getLogger("ballotseal.proofs")

LEFT = "left"
RIGHT = "right"
SIDES = (LEFT, RIGHT)


@dataclass(frozen=True)
class ProofStep:
    """One level of the path: the sibling digest and which side it sits on."""

    sibling: str
    side: str

    def to_dict(self) -> dict[str, str]:
        return {"sibling": self.sibling, "side": self.side}


@dataclass(frozen=True)
class InclusionProof:
    ballot_tag: str
    leaf_index: int
    steps: List[ProofStep] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ballot_tag": self.ballot_tag,
            "leaf_index": self.leaf_index,
            "steps": [s.to_dict() for s in self.steps],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "InclusionProof":
        """Parse the ``to_dict`` shape.

        Raises:
            MalformedProofError: If the structure or any field is wrong.
        """
        if not isinstance(data, dict):
            raise MalformedProofError("Proof must be an object")
        tag = data.get("ballot_tag", "")
        index = data.get("leaf_index", 0)
        if not isinstance(tag, str):
            raise MalformedProofError("ballot_tag must be a string")
        if not isinstance(index, int) or isinstance(index, bool) or index < 0:
            raise MalformedProofError("leaf_index must be a non-negative integer")
        return cls(ballot_tag=tag, leaf_index=index, steps=_parse_steps(data.get("steps")))


def _parse_steps(raw: Any) -> List[ProofStep]:
    if not isinstance(raw, (list, tuple)):
        raise MalformedProofError("Proof steps must be a list")

    steps = []
    for item in raw:
        if isinstance(item, ProofStep):
            sibling, side = item.sibling, item.side
        elif isinstance(item, dict):
            sibling, side = item.get("sibling"), item.get("side")
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            sibling, side = item
        else:
            raise MalformedProofError(f"Unrecognised proof step: {item!r:.80}")

        if side not in SIDES:
            raise MalformedProofError(f"Proof step side must be 'left' or 'right', got {side!r:.20}")
        digest_from_hex(sibling)
        steps.append(ProofStep(sibling=sibling, side=side))
    return steps


ProofInput = Union[InclusionProof, dict, Sequence[Any]]


def prove(tree: MerkleTree, target_tag: str) -> Result[InclusionProof]:
    """Build the sibling path for ``target_tag``.

    Walks from the leaf to the root recording, per level, the sibling digest
    and its side. A node carried up without a partner adds no step.
    """
    index = tree.leaf_index(target_tag)
    if index is None:
        return Err(NotFoundError(f"Ballot tag not in tree: {target_tag[:16]}..."))

    steps = []
    current_index = index

    for level in tree.levels[:-1]:
        sibling_index = current_index ^ 1
        if sibling_index < len(level):
            side = RIGHT if current_index % 2 == 0 else LEFT
            steps.append(ProofStep(sibling=level[sibling_index].hex(), side=side))
        current_index //= 2

    return Ok(InclusionProof(ballot_tag=target_tag, leaf_index=index, steps=steps))


def _coerce_root(expected_root: Union[bytes, str]) -> bytes:
    if isinstance(expected_root, bytes):
        if len(expected_root) != 32:
            raise MalformedProofError("Root must be a 32-byte digest")
        return expected_root
    return digest_from_hex(expected_root)


def _coerce_steps(proof: ProofInput) -> List[ProofStep]:
    if isinstance(proof, InclusionProof):
        return _parse_steps(proof.steps)
    if isinstance(proof, dict):
        return InclusionProof.from_dict(proof).steps
    return _parse_steps(proof)


def verify_strict(
    target_tag: str, proof: ProofInput, expected_root: Union[bytes, str]
) -> bool:
    """Like ``verify`` but raises on malformed input.

    Raises:
        MalformedProofError: If the tag, any step or the root cannot be decoded.
    """
    if not is_canonical_hex(target_tag):
        raise MalformedProofError("Ballot tag is not canonical hex")
    root = _coerce_root(expected_root)

    current = leaf_hash(target_tag)
    for step in _coerce_steps(proof):
        sibling = digest_from_hex(step.sibling)
        if step.side == LEFT:
            current = node_hash(sibling, current)
        else:
            current = node_hash(current, sibling)
    return current == root


def verify(target_tag: str, proof: ProofInput, expected_root: Union[bytes, str]) -> bool:
    """Recompute the root from ``target_tag`` and ``proof``; True on a match.

    Malformed proofs, tags or roots return False.
    """
    try:
        return verify_strict(target_tag, proof, expected_root)
    except MalformedProofError as e:
        logger.debug("Rejected malformed proof: %s", e)
        return False
    except (TypeError, ValueError, AttributeError) as e:
        logger.debug("Rejected unparseable proof: %s", e)
        return False

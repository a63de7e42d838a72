"""BALLOTSEAL — Canonical Hash Construction.

Deterministic JSON serialization and the two hash primitives every
commitment, tree and proof is built from.

Hash Scheme:
    leaf:  H(bytes.fromhex(ballot_tag))
    node:  H(left || right)     raw 32-byte digests, left operand first
    empty: H(b"")
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any

from ballotseal.exceptions import InvalidInputError, MalformedProofError

DIGEST_SIZE = 32

_HEX_RE = re.compile(r"^(?:[0-9a-f]{2})+$")

# ─── Canonical JSON ───────────────────────────────────────────────


def canonical_json(obj: Any) -> str:
    """Deterministic JSON: sorted keys, no whitespace, ASCII-safe.

    Guarantees identical output for semantically identical input
    regardless of Python dict insertion order.
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"),
        ensure_ascii=True, default=str,
    )


def sha256_hex(text: str) -> str:
    """SHA-256 hex digest of UTF-8 text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


# ─── Digests ─────────────────────────────────────────────────────

EMPTY_ROOT: bytes = hashlib.sha256(b"").digest()


def is_canonical_hex(value: Any) -> bool:
    """True for non-empty, even-length, lowercase hex strings."""
    return isinstance(value, str) and bool(_HEX_RE.match(value))


def digest_from_hex(value: Any) -> bytes:
    """Decode a hex digest, insisting on exactly ``DIGEST_SIZE`` bytes.

    Raises:
        MalformedProofError: On non-string input, bad hex or wrong length.
    """
    if not is_canonical_hex(value):
        raise MalformedProofError("Digest is not canonical lowercase hex")
    raw = bytes.fromhex(value)
    if len(raw) != DIGEST_SIZE:
        raise MalformedProofError(
            f"Digest has {len(raw)} bytes, expected {DIGEST_SIZE}"
        )
    return raw


# ─── Tree Hashes ─────────────────────────────────────────────────


def leaf_hash(ballot_tag: str) -> bytes:
    """Hash a ballot tag into a Merkle leaf.

    The tag is hex-decoded first so the leaf commits to the tag bytes,
    not to one particular spelling of them.

    Raises:
        InvalidInputError: If the tag is not canonical lowercase hex.
    """
    if not is_canonical_hex(ballot_tag):
        raise InvalidInputError(f"Ballot tag is not canonical hex: {ballot_tag!r:.80}")
    return hashlib.sha256(bytes.fromhex(ballot_tag)).digest()


def node_hash(left: bytes, right: bytes) -> bytes:
    """Hash two child digests together, left operand first."""
    if len(left) != DIGEST_SIZE or len(right) != DIGEST_SIZE:
        raise MalformedProofError("Node operands must be 32-byte digests")
    return hashlib.sha256(left + right).digest()

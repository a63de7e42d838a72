"""Tests for the canonical JSON and hash primitives."""

import hashlib

import pytest

from ballotseal.canonical import (
    EMPTY_ROOT,
    canonical_json,
    digest_from_hex,
    is_canonical_hex,
    leaf_hash,
    node_hash,
    sha256_hex,
)
from ballotseal.exceptions import InvalidInputError, MalformedProofError


# ─── Canonical JSON ──────────────────────────────────────────────


class TestCanonicalJson:
    def test_sorted_keys(self):
        """Different insertion orders → same output."""
        a = canonical_json({"nonce": "n", "election_id": "e", "candidate_id": "c"})
        b = canonical_json({"candidate_id": "c", "election_id": "e", "nonce": "n"})
        assert a == b
        assert a == '{"candidate_id":"c","election_id":"e","nonce":"n"}'

    def test_no_whitespace(self):
        result = canonical_json([{"candidate_id": "1", "votes": 2}])
        assert " " not in result
        assert "\n" not in result

    def test_ascii_safe(self):
        assert canonical_json({"name": "Muñoz"}) == '{"name":"Mu\\u00f1oz"}'

    def test_sha256_hex(self):
        assert sha256_hex("abc") == hashlib.sha256(b"abc").hexdigest()


# ─── Leaf / Node ─────────────────────────────────────────────────


class TestLeafHash:
    def test_hashes_decoded_tag_bytes(self):
        tag = "a1b2c3"
        assert leaf_hash(tag) == hashlib.sha256(bytes.fromhex(tag)).digest()

    def test_full_size_tag(self):
        tag = sha256_hex("ballot")
        assert len(leaf_hash(tag)) == 32

    @pytest.mark.parametrize("bad", ["", "abc", "A1B2", "zz", "a1 b2", None, 42])
    def test_rejects_non_canonical_hex(self, bad):
        with pytest.raises(InvalidInputError):
            leaf_hash(bad)


class TestNodeHash:
    def test_concatenates_raw_digests(self):
        left, right = leaf_hash("a1"), leaf_hash("b2")
        assert node_hash(left, right) == hashlib.sha256(left + right).digest()

    def test_order_sensitive(self):
        left, right = leaf_hash("a1"), leaf_hash("b2")
        assert node_hash(left, right) != node_hash(right, left)

    def test_rejects_short_operand(self):
        with pytest.raises(MalformedProofError):
            node_hash(b"\x00" * 31, leaf_hash("a1"))


class TestDigests:
    def test_empty_root(self):
        assert EMPTY_ROOT == hashlib.sha256(b"").digest()
        assert EMPTY_ROOT.hex() == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

    def test_digest_roundtrip(self):
        digest = leaf_hash("c3")
        assert digest_from_hex(digest.hex()) == digest

    @pytest.mark.parametrize("bad", ["ab" * 31, "ab" * 33, "AB" * 32, "g" * 64, 123])
    def test_digest_rejects_malformed(self, bad):
        with pytest.raises(MalformedProofError):
            digest_from_hex(bad)

    def test_is_canonical_hex(self):
        assert is_canonical_hex("00ff")
        assert not is_canonical_hex("00FF")
        assert not is_canonical_hex("0")
        assert not is_canonical_hex(b"00")

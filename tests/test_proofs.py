"""Tests for inclusion proofs: soundness, tamper detection, malformed input."""

import pytest

from ballotseal.canonical import EMPTY_ROOT, leaf_hash, node_hash
from ballotseal.commitment import commit_vote
from ballotseal.exceptions import MalformedProofError, NotFoundError
from ballotseal.merkle import build
from ballotseal.proofs import (
    LEFT,
    RIGHT,
    InclusionProof,
    ProofStep,
    prove,
    verify,
    verify_strict,
)


def _tags(n):
    return sorted(commit_vote(f"u{i}", "ELEC-P", str(i % 3), "salt").ballot_tag for i in range(n))


def _flip_hex_char(value: str, pos: int) -> str:
    c = value[pos]
    replacement = "0" if c != "0" else "1"
    return value[:pos] + replacement + value[pos + 1:]


# ─── Soundness ───────────────────────────────────────────────────


class TestSoundness:
    @pytest.mark.parametrize("n", range(1, 10))
    def test_every_leaf_verifies(self, n):
        tags = _tags(n)
        tree = build(tags)
        for tag in tags:
            proof = prove(tree, tag).unwrap()
            assert verify(tag, proof, tree.root)
            assert verify(tag, proof.to_dict(), tree.root_hex)

    def test_single_leaf_has_empty_path(self):
        tree = build(["a1"])
        proof = prove(tree, "a1").unwrap()
        assert proof.steps == []
        assert verify("a1", proof, tree.root)

    def test_carried_node_adds_no_step(self):
        tree = build(["a1", "b2", "c3"])
        proof = prove(tree, "c3").unwrap()
        assert proof.steps == [ProofStep(node_hash(leaf_hash("a1"), leaf_hash("b2")).hex(), LEFT)]

    def test_sides(self):
        tree = build(["a1", "b2"])
        assert prove(tree, "a1").unwrap().steps[0].side == RIGHT
        assert prove(tree, "b2").unwrap().steps[0].side == LEFT

    def test_unknown_tag(self):
        result = prove(build(["a1", "b2"]), "ff")
        assert not result.is_ok
        assert isinstance(result.error, NotFoundError)

    def test_empty_tree_has_no_proofs(self):
        tree = build([])
        assert tree.root == EMPTY_ROOT
        assert not prove(tree, "a1").is_ok

    def test_accepts_tuple_steps(self):
        tags = _tags(4)
        tree = build(tags)
        steps = [(s.sibling, s.side) for s in prove(tree, tags[1]).unwrap().steps]
        assert verify(tags[1], steps, tree.root_hex)


# ─── Tampering ───────────────────────────────────────────────────


class TestTamperDetection:
    @pytest.fixture
    def setup(self):
        tags = _tags(6)
        tree = build(tags)
        target = tags[3]
        return tree, target, prove(tree, target).unwrap()

    def test_flipped_tag_char(self, setup):
        tree, target, proof = setup
        for pos in (0, 17, len(target) - 1):
            assert not verify(_flip_hex_char(target, pos), proof, tree.root)

    def test_flipped_sibling_char(self, setup):
        tree, target, proof = setup
        for i, step in enumerate(proof.steps):
            steps = list(proof.steps)
            steps[i] = ProofStep(_flip_hex_char(step.sibling, 5), step.side)
            assert not verify(target, steps, tree.root)

    def test_swapped_side(self, setup):
        tree, target, proof = setup
        steps = list(proof.steps)
        first = steps[0]
        steps[0] = ProofStep(first.sibling, LEFT if first.side == RIGHT else RIGHT)
        assert not verify(target, steps, tree.root)

    def test_flipped_root_bit(self, setup):
        tree, target, proof = setup
        root = bytearray(tree.root)
        root[0] ^= 0x01
        assert not verify(target, proof, bytes(root))

    def test_dropped_step(self, setup):
        tree, target, proof = setup
        assert not verify(target, proof.steps[:-1], tree.root)

    def test_uppercase_tag(self, setup):
        tree, target, proof = setup
        assert not verify(target.upper(), proof, tree.root)


# ─── Malformed input ─────────────────────────────────────────────


class TestMalformed:
    @pytest.mark.parametrize(
        "proof",
        [
            None,
            "not a proof",
            42,
            [{"sibling": "zz", "side": "left"}],
            [{"sibling": "ab" * 31, "side": "left"}],
            [{"sibling": "ab" * 32, "side": "up"}],
            [("ab" * 32,)],
            {"ballot_tag": "a1", "leaf_index": -1, "steps": []},
            {"ballot_tag": "a1", "leaf_index": 0, "steps": "nope"},
        ],
    )
    def test_verify_returns_false(self, proof):
        assert verify("a1", proof, leaf_hash("a1")) is False

    @pytest.mark.parametrize("root", ["", "xyz", "ab" * 16, b"\x00" * 31, None])
    def test_bad_root(self, root):
        assert verify("a1", [], root) is False

    def test_bad_tag(self):
        assert verify("not-hex", [], leaf_hash("a1")) is False

    def test_strict_raises(self):
        with pytest.raises(MalformedProofError):
            verify_strict("a1", [{"sibling": "zz", "side": "left"}], leaf_hash("a1"))

    def test_strict_bool_on_well_formed(self):
        assert verify_strict("a1", [], leaf_hash("a1")) is True
        assert verify_strict("a1", [], leaf_hash("b2")) is False


class TestSerialization:
    def test_dict_shape(self):
        tags = _tags(3)
        proof = prove(build(tags), tags[0]).unwrap()
        data = proof.to_dict()
        assert set(data) == {"ballot_tag", "leaf_index", "steps"}
        assert all(set(s) == {"sibling", "side"} for s in data["steps"])
        assert InclusionProof.from_dict(data) == proof

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(MalformedProofError):
            InclusionProof.from_dict(["a1"])

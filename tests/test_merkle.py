"""Tests for Merkle tree construction."""

import hashlib
import random

from ballotseal.canonical import EMPTY_ROOT, leaf_hash, node_hash
from ballotseal.commitment import commit_vote
from ballotseal.merkle import MerkleTree, build, compute_merkle_root


def _tags(n):
    return sorted(commit_vote(f"user-{i}", "ELEC-1", "1", "salt").ballot_tag for i in range(n))


class TestEdgeCases:
    def test_empty_tree(self):
        tree = build([])
        assert tree.root == EMPTY_ROOT
        assert tree.levels == []
        assert tree.depth == 0
        assert len(tree) == 0

    def test_empty_root_is_hash_of_empty_string(self):
        assert compute_merkle_root([]) == hashlib.sha256(b"").hexdigest()

    def test_single_leaf(self):
        tree = build(["a1"])
        assert tree.root == leaf_hash("a1")
        assert tree.depth == 0


class TestConstruction:
    def test_two_leaves(self):
        tree = build(["a1", "b2"])
        assert tree.root == node_hash(leaf_hash("a1"), leaf_hash("b2"))

    def test_odd_node_is_carried_up(self):
        """Three leaves: root = H(H(L0||L1) || L2), no duplication."""
        l0, l1, l2 = leaf_hash("a1"), leaf_hash("b2"), leaf_hash("c3")
        tree = build(["a1", "b2", "c3"])
        assert tree.root == node_hash(node_hash(l0, l1), l2)
        assert tree.root != node_hash(node_hash(l0, l1), node_hash(l2, l2))
        assert tree.levels[1][1] == l2

    def test_five_leaves(self):
        tags = ["01", "02", "03", "04", "05"]
        l = [leaf_hash(t) for t in tags]
        n01, n23 = node_hash(l[0], l[1]), node_hash(l[2], l[3])
        expected = node_hash(node_hash(n01, n23), l[4])
        assert build(tags).root == expected
        assert build(tags).depth == 3

    def test_level_sizes(self):
        tree = build(_tags(7))
        assert [len(level) for level in tree.levels] == [7, 4, 2, 1]

    def test_leaf_index(self):
        tags = _tags(4)
        tree = MerkleTree(tags)
        assert tree.leaf_index(tags[2]) == 2
        assert tree.leaf_index("ff" * 32) is None


class TestDeterminism:
    def test_same_input_same_root(self):
        tags = _tags(9)
        assert build(tags).root == build(list(tags)).root

    def test_input_order_matters(self):
        tags = _tags(4)
        assert build(tags).root != build(list(reversed(tags))).root

    def test_sorted_shuffles_agree(self):
        """Any insertion order gives the same root once sorted."""
        tags = _tags(12)
        roots = set()
        for seed in range(5):
            shuffled = list(tags)
            random.Random(seed).shuffle(shuffled)
            roots.add(compute_merkle_root(sorted(shuffled)))
        assert len(roots) == 1

    def test_repr(self):
        assert "leaves=3" in repr(build(["a1", "b2", "c3"]))

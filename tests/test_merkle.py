import random

import pytest

from fieldmerkle_api.errors import CapacityError, FieldElementError, IndexOutOfBounds
from fieldmerkle_api.field import BN256
from fieldmerkle_api.indices import indices, log2_pow2, next_pow2
from fieldmerkle_api.merkle import MerkleTree, verify_inclusion, zero_hashes


def _leaves(n):
    return [1000 + 17 * i for i in range(n)]


def test_concrete_four_leaf_scenario(additive):
    tree = MerkleTree.from_leaves([123, 0, 0, 0], additive)
    assert tree.height == 2
    tree.update(1, 123)
    assert tree.level(1) == [246, 0]
    assert tree.root == 246

    proof = tree.prove(1)
    assert list(proof.siblings) == [123, 0]
    assert verify_inclusion(proof, tree.root, tree.height, additive)

    forged = proof.model_copy(update={"siblings": (124, 0)})
    assert not verify_inclusion(forged, tree.root, tree.height, additive)


def test_capacity_law(additive):
    for k in range(1, 18):
        tree = MerkleTree.from_leaves(_leaves(k), additive)
        assert tree.leafs == next_pow2(k)
        assert tree.height == log2_pow2(tree.leafs)
        assert len(tree.data) == 2 * tree.leafs - 1
        # padding is the hasher's zero
        assert tree.leaves[k:] == [0] * (tree.leafs - k)


def test_builder_does_not_alias_input(additive):
    leaves = [1, 2, 3, 4]
    tree = MerkleTree.from_leaves(leaves, additive)
    leaves[0] = 99
    assert tree.leaves[0] == 1


def test_empty_leaf_list_rejected(additive):
    with pytest.raises(CapacityError):
        MerkleTree.from_leaves([], additive)
    with pytest.raises(ValueError):
        MerkleTree.from_leaves([], additive)


def test_with_levels_matches_builder_over_zeros(poseidon):
    empty = MerkleTree.with_levels(3, poseidon)
    built = MerkleTree.from_leaves([0] * 8, poseidon)
    assert empty.leafs == 8
    assert empty.height == 3
    assert empty.data == built.data
    assert empty.root == zero_hashes(poseidon, 3)[-1]


def test_with_levels_zero_is_single_leaf(additive):
    tree = MerkleTree.with_levels(0, additive)
    assert tree.leafs == 1
    assert tree.data == [0]
    with pytest.raises(CapacityError):
        MerkleTree.with_levels(-1, additive)


def test_single_leaf_tree_is_its_own_root(poseidon):
    tree = MerkleTree.from_leaves([5], poseidon)
    assert tree.height == 0
    assert tree.root == 5
    proof = tree.prove(0)
    assert proof.siblings == ()
    assert tree.verify(proof)
    tree.update(0, 7)
    assert tree.root == 7


def test_round_trip_after_updates(poseidon):
    tree = MerkleTree.from_leaves(_leaves(5), poseidon)
    rng = random.Random(1234)
    for _ in range(6):
        tree.update(rng.randrange(tree.leafs), rng.randrange(BN256.modulus))
    for i in range(tree.leafs):
        proof = tree.prove(i)
        assert verify_inclusion(proof, tree.root, tree.height, poseidon)


def test_update_touches_only_the_root_path(poseidon):
    tree = MerkleTree.from_leaves(_leaves(8), poseidon)
    before = list(tree.data)
    tree.update(5, 424242)
    _, parents = indices(5, tree.height)
    changed = {i for i, (a, b) in enumerate(zip(before, tree.data)) if a != b}
    assert changed == {5, *parents}


def test_update_matches_full_rebuild(poseidon):
    leaves = _leaves(8)
    tree = MerkleTree.from_leaves(leaves, poseidon)
    tree.update(2, 77)
    tree.update(7, 88)
    leaves[2], leaves[7] = 77, 88
    assert tree.data == MerkleTree.from_leaves(leaves, poseidon).data


def test_update_is_idempotent_and_reversible(poseidon):
    tree = MerkleTree.from_leaves(_leaves(4), poseidon)
    root = tree.root
    tree.update(3, tree.leaves[3])
    assert tree.root == root

    original = tree.leaves[1]
    tree.update(1, 31337)
    assert tree.root != root
    tree.update(1, original)
    assert tree.root == root


def test_out_of_bounds_index(additive):
    tree = MerkleTree.with_levels(2, additive)
    for bad in (4, -1):
        with pytest.raises(IndexOutOfBounds):
            tree.update(bad, 1)
        with pytest.raises(IndexError):
            tree.prove(bad)


def test_tampered_value_fails(poseidon):
    tree = MerkleTree.from_leaves(_leaves(8), poseidon)
    proof = tree.prove(3)
    forged = proof.model_copy(update={"value": proof.value + 1})
    assert not tree.verify(forged)


def test_tampered_sibling_fails(poseidon):
    tree = MerkleTree.from_leaves(_leaves(8), poseidon)
    proof = tree.prove(6)
    for k in range(len(proof.siblings)):
        siblings = list(proof.siblings)
        siblings[k] = (siblings[k] + 1) % BN256.modulus
        forged = proof.model_copy(update={"siblings": tuple(siblings)})
        assert not tree.verify(forged)


def test_flipped_orientation_fails(poseidon):
    tree = MerkleTree.from_leaves(_leaves(8), poseidon)
    proof = tree.prove(2)
    for level in range(tree.height):
        forged = proof.model_copy(update={"index": proof.index ^ (1 << level)})
        assert not tree.verify(forged)


def test_stale_proof_rejected_after_update(poseidon):
    tree = MerkleTree.from_leaves(_leaves(4), poseidon)
    proof = tree.prove(0)
    tree.update(3, 9)
    assert not tree.verify(proof)
    # still self-consistent against the root it was issued for
    assert verify_inclusion(proof, proof.root, 2, poseidon)


def test_verify_rejects_malformed_proofs(poseidon):
    tree = MerkleTree.from_leaves(_leaves(4), poseidon)
    proof = tree.prove(1)
    root, height = tree.root, tree.height

    assert not verify_inclusion(proof, root, height + 1, poseidon)
    assert not verify_inclusion(proof.model_copy(update={"siblings": proof.siblings[:1]}), root, height, poseidon)
    assert not verify_inclusion(proof.model_copy(update={"index": 5}), root, height, poseidon)
    assert not verify_inclusion(proof.model_copy(update={"index": -1}), root, height, poseidon)
    assert not verify_inclusion(proof.model_copy(update={"siblings": ("x", 1)}), root, height, poseidon)
    assert not verify_inclusion(proof, root + 1, height, poseidon)
    assert not verify_inclusion(object(), root, height, poseidon)
    assert not verify_inclusion(proof, root, "2", poseidon)


def test_empty_flag_is_informational(additive):
    tree = MerkleTree.with_levels(2, additive)
    assert tree.prove(0).empty
    tree.update(1, 5)
    assert not tree.prove(1).empty
    tree.update(1, 0)
    proof = tree.prove(1)
    assert proof.empty
    assert tree.verify(proof)


def test_written_range(additive):
    tree = MerkleTree.with_levels(3, additive)
    assert tree.min_index is None and tree.max_index is None
    tree.update(5, 1)
    tree.update(2, 1)
    tree.insert_leaf(6, 1)
    assert (tree.min_index, tree.max_index) == (2, 6)


class _FlakyHasher:
    """Additive hasher that raises once its call budget is spent."""

    def __init__(self, inner, budget):
        self.inner = inner
        self.field = inner.field
        self.budget = budget

    def zero(self):
        return self.inner.zero()

    def hash(self, a, b):
        if self.budget == 0:
            raise RuntimeError("permutation misconfigured")
        self.budget -= 1
        return self.inner.hash(a, b)


def test_hasher_failure_propagates_and_leaves_tree_intact(additive):
    hasher = _FlakyHasher(additive, budget=3)
    tree = MerkleTree.from_leaves([1, 2, 3, 4], hasher)
    before = list(tree.data)
    hasher.budget = 1
    with pytest.raises(RuntimeError, match="misconfigured"):
        tree.update(0, 10)
    assert tree.data == before


def test_builder_rejects_non_canonical_leaves(additive):
    p = BN256.modulus
    with pytest.raises(FieldElementError):
        MerkleTree.from_leaves([1, 2, 3 + p, 4], additive)
    with pytest.raises(ValueError):
        MerkleTree.from_leaves([p], additive)
    with pytest.raises(FieldElementError):
        MerkleTree.from_leaves([1, -1], additive)
    with pytest.raises(FieldElementError):
        MerkleTree.from_leaves([True, 2], additive)


def test_update_rejects_non_canonical_values(poseidon):
    tree = MerkleTree.from_leaves(_leaves(4), poseidon)
    before = list(tree.data)
    for bad in (BN256.modulus, BN256.modulus + 7, -1):
        with pytest.raises(FieldElementError):
            tree.update(2, bad)
    assert tree.data == before
    assert tree.min_index is None and tree.max_index is None
    # bounds are still checked first
    with pytest.raises(IndexOutOfBounds):
        tree.update(4, BN256.modulus)


def test_verify_rejects_aliased_field_elements(poseidon):
    p = BN256.modulus
    tree = MerkleTree.from_leaves(_leaves(4), poseidon)
    proof = tree.prove(2)
    root, height = tree.root, tree.height
    assert verify_inclusion(proof, root, height, poseidon)

    assert not verify_inclusion(proof.model_copy(update={"value": proof.value + p}), root, height, poseidon)
    assert not verify_inclusion(proof.model_copy(update={"value": proof.value - p}), root, height, poseidon)
    aliased = (proof.siblings[0] + p,) + proof.siblings[1:]
    assert not verify_inclusion(proof.model_copy(update={"siblings": aliased}), root, height, poseidon)
    assert not verify_inclusion(
        proof.model_copy(update={"root": root + p}), root + p, height, poseidon
    )


def test_additive_verify_rejects_aliased_value(additive):
    # the additive digest reduces mod p, so an unreduced value would recompute the same root
    tree = MerkleTree.from_leaves([1, 2, 3, 4], additive)
    proof = tree.prove(2)
    assert tree.verify(proof)
    assert not tree.verify(proof.model_copy(update={"value": 3 + BN256.modulus}))

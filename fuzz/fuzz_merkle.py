"""Fuzz harness for tree construction, single-leaf updates & proof round trips."""
from __future__ import annotations
import atheris
import sys

with atheris.instrument_imports():
    from fieldmerkle_api.hasher import get_hasher
    from fieldmerkle_api.merkle import MerkleTree

HASHER = get_hasher("poseidon-goldilocks-8")


def TestOneInput(data: bytes):  # noqa: N802
    fdp = atheris.FuzzedDataProvider(data)
    # Bounded leaf count keeps each run cheap
    n = fdp.ConsumeIntInRange(1, 16)
    leaves = [fdp.ConsumeIntInRange(0, HASHER.field.modulus - 1) for _ in range(n)]
    tree = MerkleTree.from_leaves(leaves, HASHER)
    for _ in range(fdp.ConsumeIntInRange(0, 4)):
        tree.update(
            fdp.ConsumeIntInRange(0, tree.leafs - 1),
            fdp.ConsumeIntInRange(0, HASHER.field.modulus - 1),
        )
    idx = fdp.ConsumeIntInRange(0, tree.leafs - 1)
    if not tree.verify(tree.prove(idx)):
        raise RuntimeError("valid inclusion proof failed")
    if tree.data != MerkleTree.from_leaves(tree.leaves, HASHER).data:
        raise RuntimeError("incremental update diverged from rebuild")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()

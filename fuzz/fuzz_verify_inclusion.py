"""Mutated-proof fuzzing: any single-field change must fail verification."""
from __future__ import annotations
import atheris
import sys

with atheris.instrument_imports():
    from fieldmerkle_api.hasher import get_hasher
    from fieldmerkle_api.merkle import MerkleTree, verify_inclusion

HASHER = get_hasher("poseidon-goldilocks-8")
P = HASHER.field.modulus


def TestOneInput(data: bytes):  # noqa: N802
    fdp = atheris.FuzzedDataProvider(data)
    levels = fdp.ConsumeIntInRange(1, 4)
    tree = MerkleTree.with_levels(levels, HASHER)
    for i in range(tree.leafs):
        tree.update(i, fdp.ConsumeIntInRange(1, P - 1))
    idx = fdp.ConsumeIntInRange(0, tree.leafs - 1)
    proof = tree.prove(idx)

    target = fdp.ConsumeIntInRange(0, 4)
    delta = fdp.ConsumeIntInRange(1, P - 1)
    if target == 0:
        forged = proof.model_copy(update={"value": (proof.value + delta) % P})
    elif target == 1:
        k = fdp.ConsumeIntInRange(0, levels - 1)
        siblings = list(proof.siblings)
        siblings[k] = (siblings[k] + delta) % P
        forged = proof.model_copy(update={"siblings": tuple(siblings)})
    elif target == 4:
        # same residue, non-canonical representative
        forged = proof.model_copy(update={"value": proof.value + P * delta})
    elif target == 2:
        forged = proof.model_copy(update={"siblings": proof.siblings[:-1]})
    else:
        forged = proof.model_copy(update={"index": idx + tree.leafs})
    if verify_inclusion(forged, tree.root, tree.height, HASHER):
        raise RuntimeError("tampered proof unexpectedly verified")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()

from __future__ import annotations


class MerkleError(Exception):
    """Base class for accumulator errors raised to callers."""


class IndexOutOfBounds(MerkleError, IndexError):
    def __init__(self, index: int, leafs: int):
        super().__init__(f"leaf index {index} out of bounds for {leafs} leafs")
        self.index = index
        self.leafs = leafs


class CapacityError(MerkleError, ValueError):
    """Raised when a tree cannot be sized (no leaves, negative level count)."""


class UnknownHasher(MerkleError, KeyError):
    def __str__(self) -> str:
        return f"unknown hasher: {self.args[0]!r}"


class FieldElementError(MerkleError, ValueError):
    """Raised when a leaf value is not a canonical element of the hasher's field."""

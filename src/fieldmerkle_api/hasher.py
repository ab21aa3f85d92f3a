"""Hasher capability consumed by the Merkle accumulator.

A hasher exposes ``zero()`` and ``hash(a, b)``; ``hash`` returns the whole
output state of the underlying permutation and the tree always takes the
element at ``DIGEST_INDEX`` as the two-to-one digest.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Protocol, Sequence

from .errors import UnknownHasher
from .field import BN256, PrimeField
from .permutation import PERMUTATIONS, Permutation

DIGEST_INDEX = 1
ARITY = 2
# Binary-tree domain tag placed in the capacity lane
DOMAIN_TAG = (1 << ARITY) - 1


class Hasher(Protocol):
    field: PrimeField

    def zero(self) -> int:
        ...

    def hash(self, a: int, b: int) -> Sequence[int]:
        ...


def compress(hasher: Hasher, a: int, b: int) -> int:
    return hasher.hash(a, b)[DIGEST_INDEX]


def pad_pair(a: int, b: int, width: int, tag: int = DOMAIN_TAG) -> List[int]:
    """Assemble the permutation input ``[tag, a, b, 0, ...]``."""
    if width < 3:
        raise ValueError("state width must be >= 3")
    return [tag, a, b] + [0] * (width - 3)


class PermutationHasher:
    """Two-to-one compression over a fixed-width permutation."""

    def __init__(self, permutation: Permutation, tag: int = DOMAIN_TAG):
        self.permutation = permutation
        self.field = permutation.field
        self.tag = tag

    @property
    def width(self) -> int:
        return self.permutation.width

    def zero(self) -> int:
        return self.field.zero

    def hash(self, a: int, b: int) -> List[int]:
        return self.permutation(pad_pair(a, b, self.width, self.tag))


class AdditiveHasher:
    """Toy hasher: digest is ``(a + b) mod p``. Commutative, not collision resistant."""

    def __init__(self, field: PrimeField = BN256):
        self.field = field

    def zero(self) -> int:
        return self.field.zero

    def hash(self, a: int, b: int) -> List[int]:
        return [0, self.field.reduce(a + b), 0]


def _permutation_factory(name: str) -> Callable[[], Hasher]:
    return lambda: PermutationHasher(Permutation(PERMUTATIONS[name]))


HASHERS: Dict[str, Callable[[], Hasher]] = {
    name: _permutation_factory(name) for name in PERMUTATIONS
}
HASHERS["additive-bn256"] = lambda: AdditiveHasher(BN256)


def get_hasher(name: str) -> Hasher:
    try:
        factory = HASHERS[name]
    except KeyError:
        raise UnknownHasher(name) from None
    return factory()

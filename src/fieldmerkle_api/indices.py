"""Flat-array index arithmetic for a complete binary tree.

Levels are stored contiguously, leaves first: level 0 occupies
``[0, leafs)``, level ``k`` occupies ``[offset_k, offset_k + leafs >> k)``
and the root is the last slot. Everything that walks the tree goes through
``indices`` so construction, update and proofs agree on the shape.
"""
from __future__ import annotations

from typing import List, Tuple

from .errors import CapacityError, IndexOutOfBounds


def next_pow2(n: int) -> int:
    """Smallest power of two >= n."""
    if n < 1:
        raise CapacityError("capacity must be at least one leaf")
    return 1 << (n - 1).bit_length()


def log2_pow2(n: int) -> int:
    """log2 of a number that is itself a power of two."""
    return n.bit_length() - 1


def level_offsets(leafs: int) -> List[int]:
    """Start offset of each level, leaf level first, root level last."""
    offsets = []
    offset, width = 0, leafs
    while width >= 1:
        offsets.append(offset)
        offset += width
        width //= 2
    return offsets


def indices(leaf_index: int, height: int) -> Tuple[List[int], List[int]]:
    """Return flat (siblings, parents) offsets from leaf to root."""
    width = 1 << height
    if not 0 <= leaf_index < width:
        raise IndexOutOfBounds(leaf_index, width)
    siblings: List[int] = []
    parents: List[int] = []
    idx = leaf_index
    offset = 0
    for _ in range(height):
        siblings.append(offset + (idx ^ 1))
        parents.append(offset + width + idx // 2)
        offset += width
        width //= 2
        idx //= 2
    return siblings, parents

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .errors import CapacityError, FieldElementError
from .hasher import Hasher, compress
from .indices import indices, level_offsets, log2_pow2, next_pow2
from .models import Proof

logger = logging.getLogger(__name__)


def _check_element(hasher: Hasher, value, index: int) -> None:
    if not hasher.field.contains(value):
        raise FieldElementError(
            f"leaf {index} is not a canonical {hasher.field.name} element"
        )


def zero_hashes(hasher: Hasher, height: int) -> List[int]:
    """Digest of an all-zero subtree for every height 0..height."""
    ladder = [hasher.zero()]
    for _ in range(height):
        ladder.append(compress(hasher, ladder[-1], ladder[-1]))
    return ladder


@dataclass(eq=False)
class MerkleTree:
    """Fixed-capacity binary Merkle tree over field elements.

    All nodes live in ``data`` (length ``2*leafs-1``), leaf level first and
    the root in the last slot; see ``indices`` for the layout.
    """

    data: List[int]
    leafs: int
    height: int
    hasher: Hasher
    min_index: Optional[int] = None
    max_index: Optional[int] = None

    @classmethod
    def from_leaves(cls, leaves: Sequence[int], hasher: Hasher) -> "MerkleTree":
        if not leaves:
            raise CapacityError("cannot build Merkle tree with zero leaves")
        for i, v in enumerate(leaves):
            _check_element(hasher, v, i)
        leafs = next_pow2(len(leaves))
        height = log2_pow2(leafs)
        zero = hasher.zero()
        data = list(leaves) + [zero] * (2 * leafs - 1 - len(leaves))
        offsets = level_offsets(leafs)
        width = leafs
        for level in range(height):
            base, parent_base = offsets[level], offsets[level + 1]
            for i in range(0, width, 2):
                data[parent_base + i // 2] = compress(
                    hasher, data[base + i], data[base + i + 1]
                )
            width //= 2
        logger.debug("built tree: %d leaves, capacity %d, height %d", len(leaves), leafs, height)
        return cls(data, leafs, height, hasher)

    @classmethod
    def with_levels(cls, levels: int, hasher: Hasher) -> "MerkleTree":
        """Empty tree with ``2**levels`` zero leaves (``levels`` leaf-to-root edges)."""
        if levels < 0:
            raise CapacityError("level count must be >= 0")
        leafs = 1 << levels
        data: List[int] = []
        width = leafs
        # every node of an all-zero level k equals zero_hashes[k]
        for z in zero_hashes(hasher, levels):
            data.extend([z] * width)
            width //= 2
        logger.debug("built empty tree: capacity %d, height %d", leafs, levels)
        return cls(data, leafs, levels, hasher)

    @property
    def root(self) -> int:
        return self.data[-1]

    @property
    def leaves(self) -> List[int]:
        return self.data[: self.leafs]

    def level(self, k: int) -> List[int]:
        """Copy of the nodes on level ``k`` (0 = leaves, ``height`` = root)."""
        if not 0 <= k <= self.height:
            raise ValueError(f"level {k} out of range for height {self.height}")
        start = level_offsets(self.leafs)[k]
        return self.data[start : start + (self.leafs >> k)]

    def update(self, index: int, value: int) -> None:
        """Overwrite one leaf and recompute exactly its ancestor chain."""
        siblings, parents = indices(index, self.height)
        _check_element(self.hasher, value, index)
        running = value
        idx = index
        recomputed = []
        for sibling in siblings:
            if idx % 2 == 0:
                running = compress(self.hasher, running, self.data[sibling])
            else:
                running = compress(self.hasher, self.data[sibling], running)
            recomputed.append(running)
            idx //= 2
        # nothing is written until every digest has been computed
        self.data[index] = value
        for parent, digest in zip(parents, recomputed):
            self.data[parent] = digest
        self.min_index = index if self.min_index is None else min(self.min_index, index)
        self.max_index = index if self.max_index is None else max(self.max_index, index)

    insert_leaf = update

    def prove(self, index: int) -> Proof:
        siblings, _ = indices(index, self.height)
        value = self.data[index]
        return Proof(
            index=index,
            value=value,
            siblings=tuple(self.data[s] for s in siblings),
            root=self.root,
            empty=value == self.hasher.zero(),
        )

    def verify(self, proof: Proof) -> bool:
        """Verify ``proof`` against this tree's current root and height."""
        return verify_inclusion(proof, self.root, self.height, self.hasher)


def _is_element(x) -> bool:
    return isinstance(x, int) and not isinstance(x, bool)


def verify_inclusion(proof, expected_root: int, expected_height: int, hasher: Hasher) -> bool:
    """Recompute the root from ``proof`` and compare it with ``expected_root``.

    Never raises for a malformed proof; structural problems return False.
    Exceptions raised by the hasher itself are propagated.
    """
    try:
        index, value, siblings, root = proof.index, proof.value, proof.siblings, proof.root
    except AttributeError:
        return False
    if not _is_element(expected_height):
        return False
    if not isinstance(siblings, (list, tuple)) or len(siblings) != expected_height:
        return False
    if not _is_element(index) or index < 0 or index >> expected_height:
        return False
    # values outside [0, p) would alias canonical ones once the hasher reduces them
    if not all(hasher.field.contains(x) for x in (value, root, *siblings)):
        return False
    if root != expected_root:
        return False
    running = value
    for level, sibling in enumerate(siblings):
        if (index >> level) & 1 == 0:
            running = compress(hasher, running, sibling)
        else:
            running = compress(hasher, sibling, running)
    return running == root == expected_root

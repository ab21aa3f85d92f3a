"""Reference HADES-style permutations (Poseidon round structure).

Each instance runs ``full_rounds`` rounds with the S-box on every lane, split
evenly around ``partial_rounds`` rounds with the S-box on lane 0 only. Every
round is ARK -> S-box -> MDS.

Round constants come from SHAKE-256 over the instance name and the MDS is a
Cauchy matrix, so these are NOT the published Poseidon tables and digests do
not interoperate with other Poseidon implementations.
"""
from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Sequence, Tuple

from .field import BN256, GOLDILOCKS, PALLAS, VESTA, PrimeField


@dataclass(frozen=True)
class PermutationParams:
    name: str
    field: PrimeField
    width: int
    alpha: int
    full_rounds: int
    partial_rounds: int

    def __post_init__(self):
        if self.width < 3:
            raise ValueError("permutation width must be >= 3 for two-to-one compression")
        if self.full_rounds % 2:
            raise ValueError("full_rounds must be even")
        if math.gcd(self.alpha, self.field.modulus - 1) != 1:
            raise ValueError(
                f"x^{self.alpha} is not a permutation of {self.field.name}"
            )

    @property
    def rounds(self) -> int:
        return self.full_rounds + self.partial_rounds


@lru_cache(maxsize=None)
def round_constants(params: PermutationParams) -> Tuple[Tuple[int, ...], ...]:
    p = params.field.modulus
    # 16 extra bytes per constant keep the mod-p bias negligible
    step = params.field.byte_len + 16
    n = params.rounds * params.width
    stream = hashlib.shake_256(f"fieldmerkle/{params.name}/ark".encode()).digest(n * step)
    flat = [int.from_bytes(stream[i * step : (i + 1) * step], "big") % p for i in range(n)]
    return tuple(
        tuple(flat[r * params.width : (r + 1) * params.width]) for r in range(params.rounds)
    )


@lru_cache(maxsize=None)
def mds_matrix(params: PermutationParams) -> Tuple[Tuple[int, ...], ...]:
    # Cauchy matrix 1 / (x_i + y_j) with x_i = i, y_j = t + j
    p = params.field.modulus
    t = params.width
    return tuple(
        tuple(pow(i + t + j, -1, p) for j in range(t)) for i in range(t)
    )


class Permutation:
    def __init__(self, params: PermutationParams):
        self.params = params

    @property
    def field(self) -> PrimeField:
        return self.params.field

    @property
    def width(self) -> int:
        return self.params.width

    def __call__(self, state: Sequence[int]) -> List[int]:
        params = self.params
        if len(state) != params.width:
            raise ValueError(
                f"{params.name} expects {params.width} inputs, got {len(state)}"
            )
        p = params.field.modulus
        alpha = params.alpha
        rc = round_constants(params)
        mds = mds_matrix(params)
        first_partial = params.full_rounds // 2
        last_partial = first_partial + params.partial_rounds

        s = [int(x) % p for x in state]
        for r in range(params.rounds):
            s = [(x + c) % p for x, c in zip(s, rc[r])]
            if first_partial <= r < last_partial:
                s[0] = pow(s[0], alpha, p)
            else:
                s = [pow(x, alpha, p) for x in s]
            s = [sum(m * x for m, x in zip(row, s)) % p for row in mds]
        return s


PERMUTATIONS: Dict[str, PermutationParams] = {
    "poseidon-bn256": PermutationParams("poseidon-bn256", BN256, 3, 5, 8, 57),
    "poseidon-pallas": PermutationParams("poseidon-pallas", PALLAS, 3, 5, 8, 56),
    "poseidon-vesta": PermutationParams("poseidon-vesta", VESTA, 3, 5, 8, 56),
}
for _t in (8, 12, 16, 20):
    PERMUTATIONS[f"poseidon-goldilocks-{_t}"] = PermutationParams(
        f"poseidon-goldilocks-{_t}", GOLDILOCKS, _t, 7, 8, 22
    )
del _t

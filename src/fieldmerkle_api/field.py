"""Prime fields used by the hashers, plus hex import/export of elements.

Field elements are plain ``int`` values in ``[0, p)``. The accumulator never
does arithmetic on them; only hashers and permutations do.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Dict, Iterable, List


@dataclass(frozen=True)
class PrimeField:
    name: str
    modulus: int

    @property
    def zero(self) -> int:
        return 0

    @property
    def bits(self) -> int:
        return self.modulus.bit_length()

    @property
    def byte_len(self) -> int:
        return (self.bits + 7) // 8

    def reduce(self, value: int) -> int:
        return value % self.modulus

    def contains(self, value) -> bool:
        # bool is an int subclass but never a field element
        return (
            isinstance(value, int)
            and not isinstance(value, bool)
            and 0 <= value < self.modulus
        )


BN256 = PrimeField(
    "bn256",
    21888242871839275222246405745257275088548364400416034343698204186575808495617,
)
PALLAS = PrimeField(
    "pallas",
    0x40000000000000000000000000000000224698FC094CF91B992D30ED00000001,
)
VESTA = PrimeField(
    "vesta",
    0x40000000000000000000000000000000224698FC0994A8DD8C46EB2100000001,
)
GOLDILOCKS = PrimeField("goldilocks", (1 << 64) - (1 << 32) + 1)

FIELDS: Dict[str, PrimeField] = {f.name: f for f in (BN256, PALLAS, VESTA, GOLDILOCKS)}


def from_hex(s: str, field: PrimeField) -> int:
    """Parse a big-endian hex string (``0x`` prefix optional), reduced mod p."""
    if not isinstance(s, str):
        raise ValueError("hex value must be a string")
    digits = s[2:] if s[:2].lower() == "0x" else s
    if not digits:
        raise ValueError("empty hex value")
    try:
        raw = bytes.fromhex(digits if len(digits) % 2 == 0 else "0" + digits)
    except ValueError as e:
        raise ValueError(f"invalid hex value: {s!r}") from e
    return field.reduce(int.from_bytes(raw, "big"))


def to_hex(values: Iterable[int], field: PrimeField) -> List[str]:
    """Encode elements as fixed-width ``0x``-prefixed big-endian strings."""
    width = field.byte_len
    return ["0x" + field.reduce(v).to_bytes(width, "big").hex() for v in values]


def random_scalar(field: PrimeField) -> int:
    return secrets.randbelow(field.modulus)


def random_scalar_without_0(field: PrimeField) -> int:
    while True:
        x = random_scalar(field)
        if x != 0:
            return x

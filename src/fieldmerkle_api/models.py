from __future__ import annotations
from typing import List, Optional, Tuple
from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator
from pydantic import ConfigDict


def _element(v):
    # JSON documents carry field elements as 0x-prefixed hex strings
    if isinstance(v, str):
        return int(v, 16)
    return v


class Proof(BaseModel):
    """Inclusion proof for one leaf.

    Self-contained and immutable: it carries the leaf value, the sibling
    chain (leaf to root) and the root it was issued against, and keeps no
    reference to the tree. In JSON mode field elements are hex strings.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    value: int
    siblings: Tuple[int, ...] = ()
    root: int
    empty: bool = False

    @field_validator("value", "root", mode="before")
    @classmethod
    def _parse_element(cls, v):
        return _element(v)

    @field_validator("siblings", mode="before")
    @classmethod
    def _parse_siblings(cls, v):
        if isinstance(v, (list, tuple)):
            return tuple(_element(x) for x in v)
        return v

    @field_serializer("value", "root", when_used="json")
    def _hex(self, v: int) -> str:
        return hex(v)

    @field_serializer("siblings", when_used="json")
    def _hex_siblings(self, v: Tuple[int, ...]) -> List[str]:
        return [hex(x) for x in v]


class SignedRoot(BaseModel):
    leafs: int
    height: int
    hasher: str
    root_hex: str
    ts: str
    signer_pubkey_b64: str
    signature_b64: str


class TreeInfo(BaseModel):
    leafs: int
    height: int
    hasher: str
    root: str
    min_index: Optional[int] = None
    max_index: Optional[int] = None


class CreateTree(BaseModel):
    """Create a tree from explicit hex leaves or from a level count (not both)."""

    model_config = ConfigDict(extra="forbid")

    levels: Optional[int] = Field(default=None, ge=0)
    leaves: Optional[List[str]] = None

    @model_validator(mode="after")
    def _exactly_one(self):
        if (self.levels is None) == (self.leaves is None):
            raise ValueError("provide exactly one of 'levels' or 'leaves'")
        return self


class LeafUpdate(BaseModel):
    value: str


class VerifyRequest(BaseModel):
    proof: Proof
    root: str
    height: int

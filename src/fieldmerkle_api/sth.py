"""Signed root heads: an Ed25519 attestation of a tree's current root.

A holder of the signer's public key can check the head and then verify
inclusion proofs against ``root_hex`` without ever seeing the tree.
"""
from __future__ import annotations
import base64
import datetime
from typing import Tuple

import nacl.exceptions
import nacl.signing
import rfc8785

from .field import to_hex
from .merkle import MerkleTree
from .models import SignedRoot


def B64(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")


def B64D(s: str) -> bytes:
    """Decode base64 ASCII string to bytes with strict validation."""
    try:
        return base64.b64decode(s.encode("ascii"), validate=True)
    except Exception as e:
        raise ValueError("invalid base64") from e


def ed25519_generate() -> Tuple[bytes, bytes]:
    sk = nacl.signing.SigningKey.generate()
    return sk.encode(), sk.verify_key.encode()


def ed25519_verify(pk_bytes: bytes, data: bytes, signature: bytes) -> bool:
    vk = nacl.signing.VerifyKey(pk_bytes)
    try:
        vk.verify(data, signature)
        return True
    except nacl.exceptions.BadSignatureError:
        return False


def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def signed_body(head: dict) -> bytes:
    """RFC 8785 canonical bytes of every field except the signature."""
    return rfc8785.dumps({k: v for k, v in head.items() if k != "signature_b64"})


def make_signed_root(
    tree: MerkleTree, hasher_name: str, sk_bytes: bytes, pk_bytes: bytes
) -> SignedRoot:
    body = {
        "leafs": tree.leafs,
        "height": tree.height,
        "hasher": hasher_name,
        "root_hex": to_hex([tree.root], tree.hasher.field)[0],
        "ts": _now_iso(),
        "signer_pubkey_b64": B64(pk_bytes),
    }
    sig = nacl.signing.SigningKey(sk_bytes).sign(signed_body(body)).signature
    return SignedRoot(**body, signature_b64=B64(sig))

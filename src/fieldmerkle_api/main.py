from __future__ import annotations
from pathlib import Path
from functools import lru_cache
from typing import Optional
import datetime
import logging
from fastapi import FastAPI, HTTPException

from .settings import settings
from .logutil import setup_logging
from .errors import CapacityError, FieldElementError, IndexOutOfBounds, UnknownHasher
from .field import from_hex, to_hex
from .hasher import Hasher, get_hasher
from .locking import ReadWriteLock
from .merkle import MerkleTree, verify_inclusion
from .models import CreateTree, LeafUpdate, TreeInfo, VerifyRequest
from .sth import ed25519_generate, make_signed_root
from .middleware.size_limit import SizeLimitMiddleware

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="field-merkle accumulator")
app.add_middleware(SizeLimitMiddleware)

# One tree per process: exclusive lock for create/update, shared for reads.
_lock = ReadWriteLock()
_tree: Optional[MerkleTree] = None


@lru_cache(maxsize=None)
def _cached_hasher(name: str) -> Hasher:
    return get_hasher(name)


def _hasher() -> Hasher:
    try:
        return _cached_hasher(settings.hasher)
    except UnknownHasher as e:
        logger.error("misconfigured FIELDMERKLE_HASHER: %s", e)
        raise HTTPException(status_code=503, detail=str(e))


def _ensure_tree() -> None:
    global _tree
    if _tree is None:
        with _lock.write():
            if _tree is None:
                _tree = MerkleTree.with_levels(settings.levels, _hasher())
                logger.info("created empty tree with %d levels", settings.levels)


def _info(tree: MerkleTree) -> TreeInfo:
    return TreeInfo(
        leafs=tree.leafs,
        height=tree.height,
        hasher=settings.hasher,
        root=to_hex([tree.root], tree.hasher.field)[0],
        min_index=tree.min_index,
        max_index=tree.max_index,
    )


def _parse(value: str, what: str) -> int:
    try:
        return from_hex(value, _hasher().field)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"invalid {what}")


def _load_keys():
    sk_path = Path(settings.signing_key_path)
    pk_path = Path(settings.signing_pubkey_path)
    if not sk_path.exists() or not pk_path.exists():
        # generate if allowed for development only (gated by FIELDMERKLE_ALLOW_DEV_KEYGEN)
        if not settings.allow_dev_keygen:
            raise FileNotFoundError(
                "signing keypair not found; set FIELDMERKLE_ALLOW_DEV_KEYGEN=true to auto-generate for development"
            )
        sk_path.parent.mkdir(parents=True, exist_ok=True)
        pk_path.parent.mkdir(parents=True, exist_ok=True)
        sk, pk = ed25519_generate()
        sk_path.write_bytes(sk)
        pk_path.write_bytes(pk)
        logger.info("generated development signing keypair at %s", sk_path.parent)
    return sk_path.read_bytes(), pk_path.read_bytes()


@app.post("/tree")
def create_tree(body: CreateTree):
    global _tree
    hasher = _hasher()
    try:
        if body.levels is not None:
            if body.levels > settings.max_levels:
                raise HTTPException(status_code=400, detail="too many levels")
            tree = MerkleTree.with_levels(body.levels, hasher)
        else:
            leaves = [_parse(v, "leaf value") for v in body.leaves]
            if len(leaves) > 1 << settings.max_levels:
                raise HTTPException(status_code=400, detail="too many leaves")
            tree = MerkleTree.from_leaves(leaves, hasher)
    except (CapacityError, FieldElementError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    with _lock.write():
        _tree = tree
        info = _info(tree)
    logger.info("replaced tree: capacity %d, height %d", tree.leafs, tree.height)
    return info.model_dump()


@app.get("/tree")
def tree_info():
    _ensure_tree()
    with _lock.read():
        return _info(_tree).model_dump()


@app.put("/tree/leaves/{index}")
def update_leaf(index: int, body: LeafUpdate):
    value = _parse(body.value, "leaf value")
    _ensure_tree()
    with _lock.write():
        try:
            _tree.update(index, value)
        except IndexOutOfBounds as e:
            raise HTTPException(status_code=404, detail=str(e))
        except FieldElementError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _info(_tree).model_dump()


@app.get("/tree/proofs/{index}")
def get_proof(index: int):
    _ensure_tree()
    with _lock.read():
        try:
            proof = _tree.prove(index)
        except IndexOutOfBounds as e:
            raise HTTPException(status_code=404, detail=str(e))
    return proof.model_dump(mode="json")


@app.post("/verify")
def verify(body: VerifyRequest):
    # touches no tree state, so no lock
    root = _parse(body.root, "root")
    ok = verify_inclusion(body.proof, root, body.height, _hasher())
    return {"valid": ok}


@app.get("/tree/sth")
def signed_root():
    try:
        sk_bytes, pk_bytes = _load_keys()
    except FileNotFoundError as e:
        raise HTTPException(status_code=503, detail=str(e))
    _ensure_tree()
    with _lock.read():
        sth = make_signed_root(_tree, settings.hasher, sk_bytes, pk_bytes)
    return sth.model_dump()


@app.get("/healthz")
def healthz():
    return {
        "ok": True,
        "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }

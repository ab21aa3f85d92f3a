from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from fieldmerkle_api.errors import UnknownHasher
from fieldmerkle_api.field import from_hex
from fieldmerkle_api.hasher import Hasher, get_hasher
from fieldmerkle_api.merkle import verify_inclusion
from fieldmerkle_api.models import Proof
from fieldmerkle_api.sth import B64D, ed25519_verify, signed_body


def verify_proof(
    proof_json: Union[str, bytes, Dict[str, Any]],
    expected_root: Union[str, int],
    expected_height: int,
    hasher: Union[str, Hasher] = "poseidon-bn256",
) -> bool:
    """Return True if a JSON inclusion proof authenticates against ``expected_root``.

    ``proof_json`` is a proof document as produced by ``Proof.model_dump_json``
    (or the parsed dict). ``expected_root`` may be a hex string or an int.
    Any decoding problem yields False.
    """
    try:
        h = get_hasher(hasher) if isinstance(hasher, str) else hasher
    except UnknownHasher:
        return False
    try:
        if isinstance(proof_json, dict):
            proof = Proof.model_validate(proof_json)
        else:
            proof = Proof.model_validate_json(proof_json)
        root = from_hex(expected_root, h.field) if isinstance(expected_root, str) else expected_root
    except (ValidationError, ValueError):
        return False
    return verify_inclusion(proof, root, expected_height, h)


def verify_sth(sth_json: Dict[str, Any]) -> bool:
    """Verify a signed root head (Ed25519 over RFC 8785 canonical JSON)."""
    try:
        sig_b64 = sth_json["signature_b64"]
        pub_b64 = sth_json["signer_pubkey_b64"]
    except (KeyError, TypeError):
        return False
    try:
        return ed25519_verify(B64D(pub_b64), signed_body(sth_json), B64D(sig_b64))
    except Exception:
        return False


def verify_proof_against_sth(
    proof_json: Union[str, bytes, Dict[str, Any]],
    sth_json: Dict[str, Any],
    trusted_pubkey_b64: Optional[str] = None,
) -> bool:
    """Check the head's signature (and signer, if pinned), then the proof against its root."""
    if not verify_sth(sth_json):
        return False
    if trusted_pubkey_b64 is not None and sth_json.get("signer_pubkey_b64") != trusted_pubkey_b64:
        return False
    try:
        root_hex, height, hasher = sth_json["root_hex"], sth_json["height"], sth_json["hasher"]
    except KeyError:
        return False
    if not isinstance(hasher, str):
        return False
    return verify_proof(proof_json, root_hex, height, hasher)

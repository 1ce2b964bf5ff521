"""
Signed ownership-history exports.

Uses Ed25519 (RFC 8032) via PyNaCl. A signed export binds the asset's full
transition chain and its head hash under one signature, so an auditor can
check it offline with only the public key.
"""

import base64
import json
from pathlib import Path
from typing import Any, Dict, Tuple, Union

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from .hashing import canonicalize, verify_entry_chain

SIGNATURE_ALGORITHM = "ed25519"


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode('ascii')


def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode('ascii'))


def generate_signing_key(kid: str) -> Tuple[Dict[str, str], str]:
    """
    Generate a new Ed25519 key.

    Returns:
        Tuple of (key file dict with ``kid`` and ``private_key_b64``,
        base64 public key)
    """
    sk = SigningKey.generate()
    return {"kid": kid, "private_key_b64": b64e(bytes(sk))}, b64e(bytes(sk.verify_key))


def export_body_for_signing(bundle: Dict[str, Any]) -> Dict[str, Any]:
    body = dict(bundle)
    body.pop("signatures", None)
    return body


class HistorySigner:
    """Signs export bundles with one Ed25519 key."""

    def __init__(self, kid: str, private_key_b64: str):
        self._kid = kid
        self._sk = SigningKey(b64d(private_key_b64))

    @classmethod
    def from_key_file(cls, path: Union[str, Path]) -> 'HistorySigner':
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return cls(raw["kid"], raw["private_key_b64"])

    @property
    def kid(self) -> str:
        return self._kid

    @property
    def public_key_b64(self) -> str:
        return b64e(bytes(self._sk.verify_key))

    def sign(self, bundle: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``bundle`` with a ``signatures`` list attached."""
        body = export_body_for_signing(bundle)
        sig = self._sk.sign(canonicalize(body)).signature
        signed = dict(body)
        signed["signatures"] = [{"kid": self._kid, "alg": SIGNATURE_ALGORITHM, "sig_b64": b64e(sig)}]
        return signed


def verify_ed25519(signature_b64: str, payload: bytes, public_key_b64: str) -> bool:
    try:
        VerifyKey(b64d(public_key_b64)).verify(payload, b64d(signature_b64))
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False


def verify_export(bundle: Dict[str, Any], public_key_b64: str) -> Tuple[bool, str]:
    """
    Verify a signed history export.

    Returns:
        (valid, reason)
    """
    sigs = bundle.get("signatures") or []
    if not sigs:
        return False, "missing signature"
    sig = sigs[0]
    if sig.get("alg") != SIGNATURE_ALGORITHM:
        return False, f"unsupported algorithm {sig.get('alg')}"

    body = export_body_for_signing(bundle)
    if not verify_ed25519(sig.get("sig_b64", ""), canonicalize(body), public_key_b64):
        return False, "invalid signature"

    entries = body.get("entries", [])
    if not verify_entry_chain(entries):
        return False, "transition chain mismatch"
    head = entries[-1]["entry_hash"] if entries else None
    if body.get("head_entry_hash") != head:
        return False, "head hash mismatch"
    return True, "ok"

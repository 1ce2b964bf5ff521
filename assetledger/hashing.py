"""
Canonical JSON and hashing for the ownership audit trail.

Canonical JSON:
- Object keys sorted lexicographically
- No whitespace between tokens
- UTF-8 encoded, no ASCII escaping
- Arrays keep their order

Hashes are lowercase SHA-256 hex digests.
"""

import hashlib
import json
from typing import Any, Dict, List, Optional, Union


def canonicalize(obj: Any) -> bytes:
    """Convert an object to canonical JSON bytes."""
    return json.dumps(_canonical_value(obj), separators=(',', ':'), ensure_ascii=False).encode('utf-8')


def _canonical_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    elif isinstance(value, float):
        # Floats do not round-trip deterministically across encoders
        raise ValueError("Cannot canonicalize float values")
    elif isinstance(value, dict):
        return {k: _canonical_value(value[k]) for k in sorted(value.keys())}
    elif isinstance(value, (list, tuple)):
        return [_canonical_value(item) for item in value]
    else:
        raise ValueError(f"Cannot canonicalize type: {type(value)}")


def sha256_hex(data: Union[bytes, str]) -> str:
    """Compute SHA-256 hash and return as hex string."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).hexdigest()


def payload_hash(payload: Dict[str, Any]) -> str:
    return sha256_hex(canonicalize(payload))


def chain_entry_hash(prev_entry_hash: Optional[str], payload_digest: str) -> str:
    """
    Compute the hash chain entry hash.

    Args:
        prev_entry_hash: Hash of the previous entry (or None for the first)
        payload_digest: Hash of the current entry payload

    Returns:
        SHA-256 hex of the concatenated hashes
    """
    data = (prev_entry_hash or "").encode("utf-8") + payload_digest.encode("utf-8")
    return sha256_hex(data)


def verify_entry_chain(entries: List[Dict[str, Any]]) -> bool:
    """
    Recompute a chain of serialized transition entries.

    Each entry must carry ``prev_entry_hash`` and ``entry_hash`` next to its
    payload fields; sequences must run 0, 1, 2... without gaps.
    """
    prev = None
    for expected_sequence, entry in enumerate(entries):
        if entry.get("sequence") != expected_sequence:
            return False
        if entry.get("prev_entry_hash") != prev:
            return False
        body = {k: v for k, v in entry.items() if k not in ("prev_entry_hash", "entry_hash")}
        if entry.get("entry_hash") != chain_entry_hash(prev, payload_hash(body)):
            return False
        prev = entry["entry_hash"]
    return True

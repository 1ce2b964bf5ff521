"""
AssetLedger records.

Records are frozen dataclasses: a mutation produces a new record via
``dataclasses.replace`` and the store swaps it in under a transaction, so a
reader never holds a half-updated value.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .validation import DEFAULT_LIMITS, ValidationLimits


def now_epoch() -> int:
    """Get current Unix timestamp as integer."""
    return int(time.time())


@dataclass(frozen=True)
class LedgerConfig:
    """
    Deployment-time configuration.

    The administrator identity is fixed for the lifetime of the ledger.
    """
    administrator: str
    limits: ValidationLimits = DEFAULT_LIMITS

    def __post_init__(self):
        if not isinstance(self.administrator, str) or not self.administrator:
            raise ValueError("administrator must be a non-empty string")

    def is_administrator(self, principal: str) -> bool:
        return principal == self.administrator


@dataclass(frozen=True)
class CallContext:
    """
    Ambient facts for one call.

    The host environment supplies who is acting and the current height; the
    core never reads either from global state.
    """
    principal: str
    height: int
    timestamp: int = field(default_factory=now_epoch)

    def __post_init__(self):
        if not isinstance(self.principal, str) or not self.principal:
            raise ValueError("principal must be a non-empty string")
        if isinstance(self.height, bool) or not isinstance(self.height, int) or self.height < 0:
            raise ValueError("height must be a non-negative integer")


@dataclass(frozen=True)
class AssetRecord:
    asset_id: int
    designation: str
    owner: str
    size_bytes: int
    registered_at: int
    summary: str
    tags: Tuple[str, ...]
    created_at: int
    last_modified_at: int
    status: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "designation": self.designation,
            "owner": self.owner,
            "size_bytes": self.size_bytes,
            "registered_at": self.registered_at,
            "summary": self.summary,
            "tags": list(self.tags),
            "created_at": self.created_at,
            "last_modified_at": self.last_modified_at,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AssetRecord':
        return cls(
            asset_id=int(data["asset_id"]),
            designation=data["designation"],
            owner=data["owner"],
            size_bytes=int(data["size_bytes"]),
            registered_at=int(data["registered_at"]),
            summary=data["summary"],
            tags=tuple(data["tags"]),
            created_at=int(data["created_at"]),
            last_modified_at=int(data["last_modified_at"]),
            status=data["status"],
        )


@dataclass(frozen=True)
class AccessGrant:
    """
    Grant slot for ``(asset_id, viewer)``.

    Revocation flips ``granted``; the slot itself is never removed.
    """
    asset_id: int
    viewer: str
    granted: bool
    granted_at: int
    level: str
    revoked_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "viewer": self.viewer,
            "granted": self.granted,
            "granted_at": self.granted_at,
            "level": self.level,
            "revoked_at": self.revoked_at,
        }


@dataclass(frozen=True)
class TransitionEntry:
    """One immutable ownership change, chained to its predecessor by hash."""
    asset_id: int
    sequence: int
    from_owner: str
    to_owner: str
    at_height: int
    reason: str
    prev_entry_hash: Optional[str]
    entry_hash: str

    def payload(self) -> Dict[str, Any]:
        """Fields covered by ``entry_hash``."""
        return {
            "asset_id": self.asset_id,
            "sequence": self.sequence,
            "from_owner": self.from_owner,
            "to_owner": self.to_owner,
            "at_height": self.at_height,
            "reason": self.reason,
        }

    def to_dict(self) -> Dict[str, Any]:
        d = self.payload()
        d["prev_entry_hash"] = self.prev_entry_hash
        d["entry_hash"] = self.entry_hash
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TransitionEntry':
        return cls(
            asset_id=int(data["asset_id"]),
            sequence=int(data["sequence"]),
            from_owner=data["from_owner"],
            to_owner=data["to_owner"],
            at_height=int(data["at_height"]),
            reason=data["reason"],
            prev_entry_hash=data.get("prev_entry_hash"),
            entry_hash=data["entry_hash"],
        )


@dataclass(frozen=True)
class MetricCounter:
    category: str
    value: int
    updated_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {"category": self.category, "value": self.value, "updated_at": self.updated_at}


@dataclass(frozen=True)
class AssetAnalytics:
    """Point-in-time analytics computed from one consistent read."""
    asset_id: int
    tenure: int
    size_bytes: int
    tag_count: int
    modification_age: int
    maturity_score: int
    access_complexity: int
    computed_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "tenure": self.tenure,
            "size_bytes": self.size_bytes,
            "tag_count": self.tag_count,
            "modification_age": self.modification_age,
            "maturity_score": self.maturity_score,
            "access_complexity": self.access_complexity,
            "computed_at": self.computed_at,
        }

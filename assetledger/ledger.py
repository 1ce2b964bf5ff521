"""
AssetLedger facade.

The single entry point a front-end embeds. It wires the components to one
store and one configuration, keeps every multi-store mutation inside one
transaction scope, and reports committed mutations and rejections to the
audit logger.

Usage:
    ledger = AssetLedger(LedgerConfig(administrator="admin"))
    ctx = CallContext(principal="alice", height=10)
    asset_id = ledger.register(ctx, None, "Survey", 2048, "Site survey", ["geo"])
    ledger.grant(ctx, asset_id, "bob")
    ledger.analyze(CallContext("bob", 700), asset_id).maturity_score   # 75
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .access import DEFAULT_LEVEL, AccessControlMatrix
from .analytics import AnalyticsEngine
from .errors import LedgerError, MissingAsset, ViewAuthorizationRejected
from .logging_config import AuditLogger, audit_log
from .metrics import MetricCategory, OperationalMetrics
from .models import (
    AccessGrant,
    AssetAnalytics,
    AssetRecord,
    CallContext,
    LedgerConfig,
    MetricCounter,
    TransitionEntry,
)
from .registry import DEFAULT_STATUS, AssetRegistry
from .store import InMemoryLedgerStore, LedgerStore
from .transitions import OwnershipTransitionLog

logger = logging.getLogger(__name__)


class AssetLedger:

    def __init__(
        self,
        config: LedgerConfig,
        store: Optional[LedgerStore] = None,
        audit: Optional[AuditLogger] = None
    ):
        self.config = config
        self.store = store or InMemoryLedgerStore()
        self.audit = audit or audit_log

        self.metrics = OperationalMetrics(self.store)
        self.transitions = OwnershipTransitionLog(self.store)
        self.registry = AssetRegistry(self.store, config, self.transitions, self.metrics)
        self.access = AccessControlMatrix(self.store, config, self.metrics)
        self.analytics = AnalyticsEngine(self.store, config, self.access)

    @property
    def administrator(self) -> str:
        return self.config.administrator

    @contextmanager
    def _audited(self, operation: str, ctx: CallContext, asset_id: Optional[int] = None) -> Iterator[None]:
        try:
            yield
        except LedgerError as e:
            self.audit.operation_rejected(
                operation, e.code.value, ctx.principal,
                asset_id=asset_id if asset_id is not None else e.asset_id,
                detail=e.message
            )
            raise

    # ============================================================
    # Registry
    # ============================================================

    def next_asset_id(self) -> int:
        with self.store.read():
            return self.registry.next_asset_id()

    def register(
        self,
        ctx: CallContext,
        asset_id: Optional[int],
        designation: str,
        size_bytes: int,
        summary: str,
        tags: Sequence[str],
        status: str = DEFAULT_STATUS
    ) -> int:
        with self._audited("register", ctx, asset_id):
            registered = self.registry.register(ctx, asset_id, designation, size_bytes, summary, tags, status)
        self.audit.asset_registered(registered, ctx.principal, ctx.height)
        return registered

    def get(self, asset_id: int) -> Optional[AssetRecord]:
        """Plain lookup; existence is not sensitive."""
        with self.store.read():
            return self.registry.get(asset_id)

    def view(self, ctx: CallContext, asset_id: int) -> AssetRecord:
        """
        Authorized read of a full record.

        Raises:
            MissingAsset: asset does not exist
            ViewAuthorizationRejected: caller is not owner, administrator or grantee
        """
        with self._audited("view", ctx, asset_id), self.store.read():
            record = self.registry.get(asset_id)
            if record is None:
                raise MissingAsset(asset_id)
            if not self.analytics.can_view(record, ctx.principal):
                raise ViewAuthorizationRejected(
                    f"{ctx.principal} is not authorized to view asset {asset_id}",
                    asset_id, ctx.principal
                )
            return record

    def update_metadata(
        self,
        ctx: CallContext,
        asset_id: int,
        designation: Optional[str] = None,
        summary: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        size_bytes: Optional[int] = None,
        status: Optional[str] = None
    ) -> AssetRecord:
        with self._audited("update_metadata", ctx, asset_id):
            updated = self.registry.update_metadata(
                ctx, asset_id,
                designation=designation, summary=summary, tags=tags,
                size_bytes=size_bytes, status=status
            )
        supplied = {"designation": designation, "summary": summary, "tags": tags,
                    "size_bytes": size_bytes, "status": status}
        self.audit.metadata_updated(
            asset_id, ctx.principal, sorted(k for k, v in supplied.items() if v is not None), ctx.height
        )
        return updated

    def transfer_ownership(self, ctx: CallContext, asset_id: int, new_owner: str, reason: str) -> TransitionEntry:
        with self._audited("transfer_ownership", ctx, asset_id):
            entry = self.registry.transfer_ownership(ctx, asset_id, new_owner, reason)
        self.audit.ownership_transferred(
            asset_id, entry.from_owner, entry.to_owner, entry.sequence, reason, ctx.height
        )
        return entry

    def set_status(self, ctx: CallContext, asset_id: int, status: str) -> AssetRecord:
        with self._audited("set_status", ctx, asset_id):
            updated = self.registry.set_status(ctx, asset_id, status)
        self.audit.status_changed(asset_id, status, ctx.principal, ctx.height)
        return updated

    # ============================================================
    # Access control
    # ============================================================

    def grant(self, ctx: CallContext, asset_id: int, viewer: str, level: str = DEFAULT_LEVEL) -> AccessGrant:
        with self._audited("grant", ctx, asset_id):
            grant = self.access.grant(ctx, asset_id, viewer, level)
        self.audit.access_granted(asset_id, viewer, level, ctx.principal, ctx.height)
        return grant

    def revoke(self, ctx: CallContext, asset_id: int, viewer: str) -> AccessGrant:
        with self._audited("revoke", ctx, asset_id):
            grant = self.access.revoke(ctx, asset_id, viewer)
        self.audit.access_revoked(asset_id, viewer, ctx.principal, ctx.height)
        return grant

    def is_authorized(self, asset_id: int, viewer: str) -> bool:
        with self.store.read():
            return self.access.is_authorized(asset_id, viewer)

    def lookup_grant(self, asset_id: int, viewer: str) -> Optional[AccessGrant]:
        with self.store.read():
            return self.access.lookup(asset_id, viewer)

    def grants_for(self, asset_id: int) -> List[AccessGrant]:
        with self.store.read():
            if self.registry.get(asset_id) is None:
                raise MissingAsset(asset_id)
            return self.access.grants_for(asset_id)

    # ============================================================
    # Ownership history
    # ============================================================

    def history(self, asset_id: int) -> List[TransitionEntry]:
        with self.store.read():
            if self.registry.get(asset_id) is None:
                raise MissingAsset(asset_id)
            return self.transitions.history(asset_id)

    def verify_history(self, asset_id: int) -> bool:
        with self.store.read():
            if self.registry.get(asset_id) is None:
                raise MissingAsset(asset_id)
            return self.transitions.verify_chain(asset_id)

    def export_history(self, asset_id: int, height: int) -> Dict[str, Any]:
        """
        Unsigned export bundle of an asset's ownership history.

        See ``assetledger.signing.HistorySigner`` for the signed form.
        """
        with self.store.read():
            entries = self.history(asset_id)
            return {
                "asset_id": asset_id,
                "entries": [e.to_dict() for e in entries],
                "head_entry_hash": self.transitions.head_hash(asset_id),
                "exported_at_height": height,
            }

    # ============================================================
    # Analytics and metrics
    # ============================================================

    def analyze(self, ctx: CallContext, asset_id: int) -> AssetAnalytics:
        with self._audited("analyze", ctx, asset_id):
            return self.analytics.analyze(ctx, asset_id)

    def metrics_snapshot(self) -> Dict[str, MetricCounter]:
        with self.store.read():
            return self.metrics.snapshot()

    def metric_value(self, category: str) -> int:
        with self.store.read():
            return self.metrics.value(category)

    def performance_score(self) -> int:
        with self.store.read():
            return self.metrics.performance_score()

    def total_registered_assets(self) -> int:
        return self.metric_value(MetricCategory.TOTAL_REGISTERED_ASSETS)

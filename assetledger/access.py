"""
Access Control Matrix.

Grant slots keyed by ``(asset_id, viewer)``. A missing slot means no access
(default-deny). Only the asset's current owner or the administrator may
write a slot; revocation flips ``granted`` and keeps the slot.
"""

import logging
from typing import List, Optional

from .errors import AccessPermissionDenied, MissingAsset
from .metrics import MetricCategory, OperationalMetrics
from .models import AccessGrant, AssetRecord, CallContext, LedgerConfig
from .store import LedgerStore
from .validation import check_level, check_principal

logger = logging.getLogger(__name__)

DEFAULT_LEVEL = "viewer"


class AccessControlMatrix:

    def __init__(self, store: LedgerStore, config: LedgerConfig, metrics: OperationalMetrics):
        self._store = store
        self._config = config
        self._metrics = metrics

    def _require_granter(self, ctx: CallContext, asset_id: int) -> AssetRecord:
        record = self._store.get_asset(asset_id)
        if record is None:
            raise MissingAsset(asset_id)
        if ctx.principal != record.owner and not self._config.is_administrator(ctx.principal):
            raise AccessPermissionDenied(
                f"{ctx.principal} may not manage access to asset {asset_id}",
                asset_id, ctx.principal
            )
        return record

    def grant(self, ctx: CallContext, asset_id: int, viewer: str, level: str = DEFAULT_LEVEL) -> AccessGrant:
        """
        Grant ``viewer`` access to ``asset_id`` (upsert).

        Raises:
            MissingAsset: asset does not exist
            AccessPermissionDenied: caller is neither owner nor administrator
            InvalidFieldValue: level is out of bounds
        """
        with self._store.transaction():
            self._require_granter(ctx, asset_id)
            check_level(level, self._config.limits)
            check_principal("viewer", viewer)
            grant = AccessGrant(
                asset_id=asset_id,
                viewer=viewer,
                granted=True,
                granted_at=ctx.height,
                level=level,
            )
            self._store.put_grant(grant)
            self._metrics.increment(MetricCategory.ACCESS_GRANTS, ctx.height)
        logger.debug("granted %s on asset %s to %s", level, asset_id, viewer)
        return grant

    def revoke(self, ctx: CallContext, asset_id: int, viewer: str) -> AccessGrant:
        """
        Revoke ``viewer``'s access. The slot is retained with ``granted=False``.
        """
        with self._store.transaction():
            self._require_granter(ctx, asset_id)
            existing = self._store.get_grant(asset_id, viewer)
            if existing is not None:
                grant = AccessGrant(
                    asset_id=asset_id,
                    viewer=viewer,
                    granted=False,
                    granted_at=existing.granted_at,
                    level=existing.level,
                    revoked_at=ctx.height,
                )
            else:
                grant = AccessGrant(
                    asset_id=asset_id,
                    viewer=viewer,
                    granted=False,
                    granted_at=ctx.height,
                    level=DEFAULT_LEVEL,
                    revoked_at=ctx.height,
                )
            self._store.put_grant(grant)
            self._metrics.increment(MetricCategory.ACCESS_REVOCATIONS, ctx.height)
        logger.debug("revoked access on asset %s from %s", asset_id, viewer)
        return grant

    def lookup(self, asset_id: int, viewer: str) -> Optional[AccessGrant]:
        return self._store.get_grant(asset_id, viewer)

    def is_authorized(self, asset_id: int, viewer: str) -> bool:
        grant = self.lookup(asset_id, viewer)
        # Absent slot defaults to no access
        return grant.granted if grant is not None else False

    def grants_for(self, asset_id: int) -> List[AccessGrant]:
        return self._store.list_grants(asset_id)

    def active_viewer_count(self, asset_id: int) -> int:
        return self._store.count_active_grants(asset_id)

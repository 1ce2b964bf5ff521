"""
Analytics Engine.

Read-only. Composes the registry, the access matrix and the store into a
point-in-time ``AssetAnalytics`` computed under one consistent read.
"""

from .access import AccessControlMatrix
from .errors import AccessPermissionDenied, MissingAsset
from .models import AssetAnalytics, AssetRecord, CallContext, LedgerConfig
from .store import LedgerStore

# (tenure strictly greater than, score), highest bracket first
MATURITY_BRACKETS = (
    (1000, 100),
    (500, 75),
    (100, 50),
)
BASE_MATURITY_SCORE = 25


def maturity_score(tenure: int) -> int:
    """Step function of tenure; the first (highest) matching bracket wins."""
    for threshold, score in MATURITY_BRACKETS:
        if tenure > threshold:
            return score
    return BASE_MATURITY_SCORE


class AnalyticsEngine:

    def __init__(self, store: LedgerStore, config: LedgerConfig, access: AccessControlMatrix):
        self._store = store
        self._config = config
        self._access = access

    def can_view(self, record: AssetRecord, principal: str) -> bool:
        """Owner, administrator or an active grantee."""
        return (principal == record.owner
                or self._config.is_administrator(principal)
                or self._access.is_authorized(record.asset_id, principal))

    def analyze(self, ctx: CallContext, asset_id: int) -> AssetAnalytics:
        """
        Compute analytics for ``asset_id`` as seen at ``ctx.height``.

        Raises:
            MissingAsset: asset does not exist
            AccessPermissionDenied: caller may not view the asset
        """
        with self._store.read():
            record = self._store.get_asset(asset_id)
            if record is None:
                raise MissingAsset(asset_id)
            if not self.can_view(record, ctx.principal):
                raise AccessPermissionDenied(
                    f"{ctx.principal} may not view analytics for asset {asset_id}",
                    asset_id, ctx.principal
                )

            # Heights below the stored ones clamp to zero age
            tenure = max(0, ctx.height - record.registered_at)
            return AssetAnalytics(
                asset_id=asset_id,
                tenure=tenure,
                size_bytes=record.size_bytes,
                tag_count=len(record.tags),
                modification_age=max(0, ctx.height - record.last_modified_at),
                maturity_score=maturity_score(tenure),
                access_complexity=self._access.active_viewer_count(asset_id),
                computed_at=ctx.height,
            )

"""
Asset Registry.

The primary keyed store of asset records and the only component allowed to
rewrite ``owner``. Every mutation validates first, then writes the record,
the transition log and the counters inside one transaction scope.
"""

import logging
from dataclasses import replace
from typing import Optional, Sequence

from .errors import (
    AdministrativeAccessRequired,
    DuplicateRegistration,
    MissingAsset,
    OwnershipVerificationFailed,
)
from .metrics import MetricCategory, OperationalMetrics
from .models import AssetRecord, CallContext, LedgerConfig, TransitionEntry
from .store import LedgerStore
from .transitions import OwnershipTransitionLog
from .validation import (
    check_asset_id,
    check_metadata,
    check_partial_metadata,
    check_principal,
    check_reason,
    check_status,
)

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "active"
SUSPENDED_STATUS = "suspended"
ARCHIVED_STATUS = "archived"

# Statuses only the administrator may enter or leave
MODERATION_STATUSES = frozenset({SUSPENDED_STATUS, ARCHIVED_STATUS})


class AssetRegistry:

    def __init__(
        self,
        store: LedgerStore,
        config: LedgerConfig,
        transitions: OwnershipTransitionLog,
        metrics: OperationalMetrics
    ):
        self._store = store
        self._config = config
        self._transitions = transitions
        self._metrics = metrics

    def next_asset_id(self) -> int:
        """Identifiers are never reused: one past the highest ever stored."""
        return self._store.max_asset_id() + 1

    def get(self, asset_id: int) -> Optional[AssetRecord]:
        return self._store.get_asset(asset_id)

    def _require(self, asset_id: int) -> AssetRecord:
        record = self._store.get_asset(asset_id)
        if record is None:
            raise MissingAsset(asset_id)
        return record

    def _check_moderation(
        self,
        ctx: CallContext,
        asset_id: Optional[int],
        current: Optional[str],
        requested: str
    ) -> None:
        if requested == current or self._config.is_administrator(ctx.principal):
            return
        moderated = current if current in MODERATION_STATUSES else requested
        if moderated in MODERATION_STATUSES:
            raise AdministrativeAccessRequired(
                f"status {moderated!r} on asset {asset_id} is set only by the administrator",
                asset_id, ctx.principal
            )

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
        """
        Register a new asset owned by the caller.

        Args:
            ctx: Acting principal and current height
            asset_id: Identifier to register, or None to assign the next one
            designation: Title, 1..64 characters
            size_bytes: Payload size, 1..1,000,000,000
            summary: Abstract, 1..128 characters
            tags: 1..10 tags of 1..32 characters each
            status: Status code, at most 16 characters

        Returns:
            The registered identifier

        Raises:
            LedgerValidationError subclasses: for the first failed rule
            DuplicateRegistration: identifier already exists
            AdministrativeAccessRequired: non-administrator registers in a moderation status
        """
        limits = self._config.limits
        check_metadata(designation, summary, tags, size_bytes, status, limits)
        if asset_id is not None:
            check_asset_id(asset_id)
        self._check_moderation(ctx, asset_id, None, status)

        with self._store.transaction():
            if asset_id is None:
                asset_id = self.next_asset_id()
            elif self._store.get_asset(asset_id) is not None:
                raise DuplicateRegistration(asset_id)

            record = AssetRecord(
                asset_id=asset_id,
                designation=designation,
                owner=ctx.principal,
                size_bytes=size_bytes,
                registered_at=ctx.height,
                summary=summary,
                tags=tuple(tags),
                created_at=ctx.timestamp,
                last_modified_at=ctx.height,
                status=status,
            )
            self._store.put_asset(record)
            self._metrics.increment(MetricCategory.TOTAL_REGISTERED_ASSETS, ctx.height)
            self._metrics.increment(MetricCategory.REGISTRY_OPERATIONS, ctx.height)

        logger.debug("registered asset %s for %s", asset_id, ctx.principal)
        return asset_id

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
        """
        Edit metadata in place. Owner only; only the supplied fields change.

        Raises:
            MissingAsset: asset does not exist
            OwnershipVerificationFailed: caller is not the current owner
            LedgerValidationError subclasses: for the first failed rule
            AdministrativeAccessRequired: status change into or out of a moderation status
        """
        with self._store.transaction():
            record = self._require(asset_id)
            if ctx.principal != record.owner:
                raise OwnershipVerificationFailed(
                    f"{ctx.principal} does not own asset {asset_id}", asset_id, ctx.principal
                )
            check_partial_metadata(designation, summary, tags, size_bytes, status, self._config.limits)
            if status is not None:
                self._check_moderation(ctx, asset_id, record.status, status)

            changes = {"last_modified_at": ctx.height}
            if designation is not None:
                changes["designation"] = designation
            if summary is not None:
                changes["summary"] = summary
            if tags is not None:
                changes["tags"] = tuple(tags)
            if size_bytes is not None:
                changes["size_bytes"] = size_bytes
            if status is not None:
                changes["status"] = status

            updated = replace(record, **changes)
            self._store.put_asset(updated)
            self._metrics.increment(MetricCategory.METADATA_UPDATES, ctx.height)
            self._metrics.increment(MetricCategory.REGISTRY_OPERATIONS, ctx.height)
        return updated

    def transfer_ownership(
        self,
        ctx: CallContext,
        asset_id: int,
        new_owner: str,
        reason: str
    ) -> TransitionEntry:
        """
        Hand the asset to ``new_owner`` and append the audit entry.

        Raises:
            MissingAsset: asset does not exist
            OwnershipVerificationFailed: caller is neither owner nor administrator
            InvalidFieldValue: new owner or reason is out of bounds
        """
        with self._store.transaction():
            record = self._require(asset_id)
            if ctx.principal != record.owner and not self._config.is_administrator(ctx.principal):
                raise OwnershipVerificationFailed(
                    f"{ctx.principal} may not transfer asset {asset_id}", asset_id, ctx.principal
                )
            check_principal("new_owner", new_owner)
            check_reason(reason, self._config.limits)

            self._store.put_asset(replace(record, owner=new_owner, last_modified_at=ctx.height))
            entry = self._transitions.append(asset_id, record.owner, new_owner, reason, ctx.height)
            self._metrics.increment(MetricCategory.OWNERSHIP_TRANSFERS, ctx.height)
            self._metrics.increment(MetricCategory.REGISTRY_OPERATIONS, ctx.height)
        return entry

    def set_status(self, ctx: CallContext, asset_id: int, status: str) -> AssetRecord:
        """
        Administrator-only status change (moderation, suspension).

        Raises:
            MissingAsset: asset does not exist
            AdministrativeAccessRequired: caller is not the administrator
            InvalidFieldValue: status is out of bounds
        """
        with self._store.transaction():
            record = self._require(asset_id)
            if not self._config.is_administrator(ctx.principal):
                raise AdministrativeAccessRequired(
                    f"status changes on asset {asset_id} are restricted to the administrator",
                    asset_id, ctx.principal
                )
            check_status(status, self._config.limits)
            updated = replace(record, status=status, last_modified_at=ctx.height)
            self._store.put_asset(updated)
            self._metrics.increment(MetricCategory.STATUS_CHANGES, ctx.height)
            self._metrics.increment(MetricCategory.REGISTRY_OPERATIONS, ctx.height)
        return updated

"""
AssetLedger

An asset registry with fine-grained access control, an append-only
ownership audit trail and derived analytics.

The core owns four keyed stores (assets, access grants, ownership
transitions, metric counters) and consumes two ambient facts per call from
its host: who is acting and the current height. Both travel in an explicit
``CallContext``.

Usage:
    from assetledger import AssetLedger, CallContext, LedgerConfig

    ledger = AssetLedger(LedgerConfig(administrator="admin"))

    alice = CallContext(principal="alice", height=100)
    asset_id = ledger.register(
        alice, None,
        designation="Field survey 2024",
        size_bytes=48_000_000,
        summary="Raw LIDAR capture of the north site",
        tags=["lidar", "survey"],
    )

    ledger.grant(alice, asset_id, "bob", level="auditor")
    ledger.transfer_ownership(CallContext("alice", 150), asset_id, "carol", "sale")

    report = ledger.analyze(CallContext("bob", 900), asset_id)
    report.maturity_score    # 75
    ledger.history(asset_id) # [TransitionEntry(sequence=0, ...)]
"""

__version__ = "1.0.0"

from .errors import (
    ErrorCode,
    LedgerError,
    LedgerValidationError,
    AuthorizationError,
    AdministrativeAccessRequired,
    MissingAsset,
    DuplicateRegistration,
    InvalidTitle,
    InvalidAbstract,
    InvalidTagSet,
    FileSizeBoundaryViolation,
    AccessPermissionDenied,
    OwnershipVerificationFailed,
    ViewAuthorizationRejected,
    MetadataTagValidationError,
    InvalidFieldValue,
)

from .validation import (
    ValidationLimits,
    DEFAULT_LIMITS,
    validate_title,
    validate_abstract,
    validate_tag,
    validate_tag_set,
    validate_size,
    validate_status,
    validate_level,
    validate_reason,
    validate_category,
    check_metadata,
)

from .models import (
    CallContext,
    LedgerConfig,
    AssetRecord,
    AccessGrant,
    TransitionEntry,
    MetricCounter,
    AssetAnalytics,
)

from .store import LedgerStore, InMemoryLedgerStore, SqliteLedgerStore
from .metrics import MetricCategory, OperationalMetrics
from .transitions import OwnershipTransitionLog
from .access import AccessControlMatrix
from .registry import AssetRegistry, DEFAULT_STATUS, SUSPENDED_STATUS, ARCHIVED_STATUS, MODERATION_STATUSES
from .analytics import AnalyticsEngine, maturity_score
from .ledger import AssetLedger


__all__ = [
    "__version__",

    # Errors
    "ErrorCode",
    "LedgerError",
    "LedgerValidationError",
    "AuthorizationError",
    "AdministrativeAccessRequired",
    "MissingAsset",
    "DuplicateRegistration",
    "InvalidTitle",
    "InvalidAbstract",
    "InvalidTagSet",
    "FileSizeBoundaryViolation",
    "AccessPermissionDenied",
    "OwnershipVerificationFailed",
    "ViewAuthorizationRejected",
    "MetadataTagValidationError",
    "InvalidFieldValue",

    # Validation
    "ValidationLimits",
    "DEFAULT_LIMITS",
    "validate_title",
    "validate_abstract",
    "validate_tag",
    "validate_tag_set",
    "validate_size",
    "validate_status",
    "validate_level",
    "validate_reason",
    "validate_category",
    "check_metadata",

    # Records
    "CallContext",
    "LedgerConfig",
    "AssetRecord",
    "AccessGrant",
    "TransitionEntry",
    "MetricCounter",
    "AssetAnalytics",

    # Components
    "LedgerStore",
    "InMemoryLedgerStore",
    "SqliteLedgerStore",
    "MetricCategory",
    "OperationalMetrics",
    "OwnershipTransitionLog",
    "AccessControlMatrix",
    "AssetRegistry",
    "DEFAULT_STATUS",
    "SUSPENDED_STATUS",
    "ARCHIVED_STATUS",
    "MODERATION_STATUSES",
    "AnalyticsEngine",
    "maturity_score",
    "AssetLedger",
]

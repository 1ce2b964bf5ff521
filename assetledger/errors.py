"""
AssetLedger error kinds.

Every failure the core can report is one of the codes below. Each code maps to
exactly one exception class so callers can distinguish which rule was
violated instead of receiving a generic "invalid input" signal.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Stable, caller-visible error codes."""
    ADMINISTRATIVE_ACCESS_REQUIRED = "AdministrativeAccessRequired"
    MISSING_ASSET = "MissingAsset"
    DUPLICATE_REGISTRATION = "DuplicateRegistration"
    INVALID_TITLE = "InvalidTitle"
    INVALID_ABSTRACT = "InvalidAbstract"
    INVALID_TAG_SET = "InvalidTagSet"
    FILE_SIZE_BOUNDARY_VIOLATION = "FileSizeBoundaryViolation"
    ACCESS_PERMISSION_DENIED = "AccessPermissionDenied"
    OWNERSHIP_VERIFICATION_FAILED = "OwnershipVerificationFailed"
    VIEW_AUTHORIZATION_REJECTED = "ViewAuthorizationRejected"
    METADATA_TAG_VALIDATION_ERROR = "MetadataTagValidationError"
    INVALID_FIELD_VALUE = "InvalidFieldValue"


class LedgerError(Exception):
    """Base class for all ledger failures."""

    code: ErrorCode = None

    def __init__(self, message: str, asset_id: Optional[int] = None):
        self.message = message
        self.asset_id = asset_id
        super().__init__(f"{self.code.value}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code.value, "detail": self.message}


# ============================================================
# Lookup / uniqueness
# ============================================================

class MissingAsset(LedgerError):
    code = ErrorCode.MISSING_ASSET

    def __init__(self, asset_id: int):
        super().__init__(f"asset {asset_id} does not exist", asset_id)


class DuplicateRegistration(LedgerError):
    code = ErrorCode.DUPLICATE_REGISTRATION

    def __init__(self, asset_id: int):
        super().__init__(f"asset {asset_id} is already registered", asset_id)


# ============================================================
# Validation
# ============================================================

class LedgerValidationError(LedgerError):
    """Raised when a field fails its configured bounds."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class InvalidTitle(LedgerValidationError):
    code = ErrorCode.INVALID_TITLE


class InvalidAbstract(LedgerValidationError):
    code = ErrorCode.INVALID_ABSTRACT


class InvalidTagSet(LedgerValidationError):
    code = ErrorCode.INVALID_TAG_SET


class MetadataTagValidationError(LedgerValidationError):
    code = ErrorCode.METADATA_TAG_VALIDATION_ERROR


class FileSizeBoundaryViolation(LedgerValidationError):
    code = ErrorCode.FILE_SIZE_BOUNDARY_VIOLATION


class InvalidFieldValue(LedgerValidationError):
    code = ErrorCode.INVALID_FIELD_VALUE


# ============================================================
# Authorization
# ============================================================

class AuthorizationError(LedgerError):
    """Base for failures caused by who the caller is."""

    def __init__(self, message: str, asset_id: Optional[int] = None, principal: Optional[str] = None):
        self.principal = principal
        super().__init__(message, asset_id)


class AdministrativeAccessRequired(AuthorizationError):
    code = ErrorCode.ADMINISTRATIVE_ACCESS_REQUIRED


class AccessPermissionDenied(AuthorizationError):
    code = ErrorCode.ACCESS_PERMISSION_DENIED


class OwnershipVerificationFailed(AuthorizationError):
    code = ErrorCode.OWNERSHIP_VERIFICATION_FAILED


class ViewAuthorizationRejected(AuthorizationError):
    code = ErrorCode.VIEW_AUTHORIZATION_REJECTED

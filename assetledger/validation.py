"""
Validation module for AssetLedger.

The predicates are pure and never raise; they answer whether a value fits
its configured bounds. The ``check_*`` helpers combine them into
preconditions and raise the specific error kind for the first failed rule,
before any state is touched.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .errors import (
    FileSizeBoundaryViolation,
    InvalidAbstract,
    InvalidFieldValue,
    InvalidTagSet,
    InvalidTitle,
    MetadataTagValidationError,
)


@dataclass(frozen=True)
class ValidationLimits:
    """Configured bounds for asset metadata and related records."""
    max_title: int = 64
    max_abstract: int = 128
    max_tag: int = 32
    max_tags: int = 10
    max_size_bytes: int = 1_000_000_000
    max_status: int = 16
    max_level: int = 16
    max_reason: int = 64
    max_category: int = 32


DEFAULT_LIMITS = ValidationLimits()


def _length_within(value: Any, min_length: int, max_length: int) -> bool:
    if not isinstance(value, str):
        return False
    return min_length <= len(value) <= max_length


# ============================================================
# Predicates
# ============================================================

def validate_title(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> bool:
    return _length_within(value, 1, limits.max_title)


def validate_abstract(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> bool:
    return _length_within(value, 1, limits.max_abstract)


def validate_tag(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> bool:
    return _length_within(value, 1, limits.max_tag)


def _tag_count_within(tags: Any, limits: ValidationLimits) -> bool:
    if isinstance(tags, (str, bytes)) or not isinstance(tags, Sequence):
        return False
    return 1 <= len(tags) <= limits.max_tags


def validate_tag_set(tags: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> bool:
    """Tag count is within bounds AND every tag passes ``validate_tag``."""
    if not _tag_count_within(tags, limits):
        return False
    return all(validate_tag(tag, limits) for tag in tags)


def validate_size(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 < value <= limits.max_size_bytes


def validate_status(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> bool:
    return _length_within(value, 0, limits.max_status)


def validate_level(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> bool:
    return _length_within(value, 1, limits.max_level)


def validate_reason(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> bool:
    return _length_within(value, 0, limits.max_reason)


def validate_category(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> bool:
    return _length_within(value, 1, limits.max_category)


def validate_asset_id(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return value > 0


# ============================================================
# Preconditions
# ============================================================

def check_title(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> None:
    if not validate_title(value, limits):
        raise InvalidTitle("designation", f"must be 1..{limits.max_title} characters")


def check_abstract(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> None:
    if not validate_abstract(value, limits):
        raise InvalidAbstract("summary", f"must be 1..{limits.max_abstract} characters")


def check_tag_set(tags: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> None:
    """
    Check a tag sequence.

    A wrong number of tags is an ``InvalidTagSet``; an acceptable number of
    tags containing a bad element is a ``MetadataTagValidationError`` naming
    the offending position.
    """
    if not _tag_count_within(tags, limits):
        raise InvalidTagSet("tags", f"must contain 1..{limits.max_tags} tags")
    for index, tag in enumerate(tags):
        if not validate_tag(tag, limits):
            raise MetadataTagValidationError(
                f"tags[{index}]", f"must be a non-empty string of at most {limits.max_tag} characters"
            )


def check_size(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> None:
    if not validate_size(value, limits):
        raise FileSizeBoundaryViolation("size_bytes", f"must be in 1..{limits.max_size_bytes}")


def check_status(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> None:
    if not validate_status(value, limits):
        raise InvalidFieldValue("status", f"must be a string of at most {limits.max_status} characters")


def check_level(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> None:
    if not validate_level(value, limits):
        raise InvalidFieldValue("level", f"must be 1..{limits.max_level} characters")


def check_reason(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> None:
    if not validate_reason(value, limits):
        raise InvalidFieldValue("reason", f"must be a string of at most {limits.max_reason} characters")


def check_category(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> None:
    if not validate_category(value, limits):
        raise InvalidFieldValue("category", f"must be 1..{limits.max_category} characters")


def check_principal(field_name: str, value: Any) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidFieldValue(field_name, "must be a non-empty principal")


def check_asset_id(value: Any) -> None:
    if not validate_asset_id(value):
        raise InvalidFieldValue("asset_id", "must be a positive integer")


def check_metadata(
    designation: Any,
    summary: Any,
    tags: Any,
    size_bytes: Any,
    status: Any,
    limits: ValidationLimits = DEFAULT_LIMITS
) -> None:
    """
    Run every registration rule in field order.

    Raises:
        InvalidTitle, InvalidAbstract, InvalidTagSet,
        MetadataTagValidationError, FileSizeBoundaryViolation,
        InvalidFieldValue: for the first rule that fails
    """
    check_title(designation, limits)
    check_abstract(summary, limits)
    check_tag_set(tags, limits)
    check_size(size_bytes, limits)
    check_status(status, limits)


def check_partial_metadata(
    designation: Optional[Any] = None,
    summary: Optional[Any] = None,
    tags: Optional[Any] = None,
    size_bytes: Optional[Any] = None,
    status: Optional[Any] = None,
    limits: ValidationLimits = DEFAULT_LIMITS
) -> None:
    """Validate only the fields supplied to a metadata update."""
    if designation is not None:
        check_title(designation, limits)
    if summary is not None:
        check_abstract(summary, limits)
    if tags is not None:
        check_tag_set(tags, limits)
    if size_bytes is not None:
        check_size(size_bytes, limits)
    if status is not None:
        check_status(status, limits)

"""
Configuration module for the AssetLedger service.

Centralizes all configuration with environment variable support. The core
never reads the environment; this module turns it into a ``LedgerConfig``
and a store.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

from assetledger import (
    InMemoryLedgerStore,
    LedgerConfig,
    LedgerStore,
    SqliteLedgerStore,
    ValidationLimits,
)
from assetledger.signing import HistorySigner

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("ASSETLEDGER_ENV", "dev")  # dev|stage|prod

# Fixed for the process lifetime
ADMINISTRATOR = os.getenv("ASSETLEDGER_ADMINISTRATOR", "admin")

# Storage
STORE_BACKEND = os.getenv("ASSETLEDGER_STORE", "memory")  # memory|sqlite
DB_PATH = os.getenv("ASSETLEDGER_DB_PATH", "data/assetledger.db")

# History export signing
SIGNING_KEY_PATH = os.getenv("ASSETLEDGER_SIGNING_KEY_PATH", "secrets/history_signing_key.json")

# Logging
LOG_LEVEL = os.getenv("ASSETLEDGER_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("ASSETLEDGER_LOG_JSON", "true").lower() in ("1", "true", "yes")
LOG_FILE = os.getenv("ASSETLEDGER_LOG_FILE") or None

# Validation limit overrides
_DEFAULTS = ValidationLimits()
MAX_TITLE = int(os.getenv("ASSETLEDGER_MAX_TITLE", str(_DEFAULTS.max_title)))
MAX_ABSTRACT = int(os.getenv("ASSETLEDGER_MAX_ABSTRACT", str(_DEFAULTS.max_abstract)))
MAX_TAG = int(os.getenv("ASSETLEDGER_MAX_TAG", str(_DEFAULTS.max_tag)))
MAX_TAGS = int(os.getenv("ASSETLEDGER_MAX_TAGS", str(_DEFAULTS.max_tags)))
MAX_SIZE_BYTES = int(os.getenv("ASSETLEDGER_MAX_SIZE_BYTES", str(_DEFAULTS.max_size_bytes)))


# ============================================================
# Builders
# ============================================================

def build_limits() -> ValidationLimits:
    return ValidationLimits(
        max_title=MAX_TITLE,
        max_abstract=MAX_ABSTRACT,
        max_tag=MAX_TAG,
        max_tags=MAX_TAGS,
        max_size_bytes=MAX_SIZE_BYTES,
    )


def build_ledger_config() -> LedgerConfig:
    return LedgerConfig(administrator=ADMINISTRATOR, limits=build_limits())


def build_store(backend: Optional[str] = None, db_path: Optional[str] = None) -> LedgerStore:
    """
    Create the configured store.

    Args:
        backend: "memory" or "sqlite" (default: ASSETLEDGER_STORE)
        db_path: SQLite file (default: ASSETLEDGER_DB_PATH)
    """
    backend = backend or STORE_BACKEND
    if backend == "sqlite":
        return SqliteLedgerStore(db_path or DB_PATH)
    if backend != "memory":
        raise ValueError(f"Unknown store backend: {backend}")
    return InMemoryLedgerStore()


def load_signer(path: Optional[str] = None) -> Optional[HistorySigner]:
    """The export signer, or None when no key file is present."""
    path = path or SIGNING_KEY_PATH
    if not Path(path).exists():
        return None
    return HistorySigner.from_key_file(path)


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Report whether referenced files exist.
    Returns dict of name -> exists.
    """
    paths = {"signing_key": SIGNING_KEY_PATH}
    if STORE_BACKEND == "sqlite":
        paths["database"] = DB_PATH
    return {name: Path(path).exists() for name, path in paths.items()}


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    return ENV == "prod"


def is_debug() -> bool:
    return os.getenv("ASSETLEDGER_DEBUG", "").lower() in ("1", "true", "yes")


def production_issues() -> List[str]:
    """Settings a production deployment must not start with."""
    if not is_production():
        return []
    issues = []
    if STORE_BACKEND != "sqlite":
        issues.append("ASSETLEDGER_STORE must be sqlite in production")
    if not validate_config()["signing_key"]:
        issues.append(f"signing key not found at {SIGNING_KEY_PATH}")
    return issues

"""
Operational metrics for AssetLedger.

Counters are bumped only as a side effect of registry and access
operations; there is no caller-facing way to write them.
"""

from typing import Dict, Optional

from .models import MetricCounter
from .store import LedgerStore
from .validation import check_category


class MetricCategory:
    """Known counter categories."""
    TOTAL_REGISTERED_ASSETS = "total-registered-assets"
    OWNERSHIP_TRANSFERS = "ownership-transfer-counter"
    METADATA_UPDATES = "metadata-updates"
    STATUS_CHANGES = "status-changes"
    ACCESS_GRANTS = "access-grants"
    ACCESS_REVOCATIONS = "access-revocations"
    REGISTRY_OPERATIONS = "registry-operations"


# Weights of the coarse activity indicator
REGISTRATION_WEIGHT = 5
TRANSFER_WEIGHT = 2


class OperationalMetrics:
    """Monotonic counters keyed by category."""

    def __init__(self, store: LedgerStore):
        self._store = store

    def increment(self, category: str, height: int) -> MetricCounter:
        """Read the current value (0 if absent) and write value + 1 at ``height``."""
        check_category(category)
        current = self._store.get_metric(category)
        value = current.value if current else 0
        counter = MetricCounter(category=category, value=value + 1, updated_at=height)
        self._store.put_metric(counter)
        return counter

    def get(self, category: str) -> Optional[MetricCounter]:
        return self._store.get_metric(category)

    def value(self, category: str) -> int:
        counter = self._store.get_metric(category)
        return counter.value if counter else 0

    def snapshot(self) -> Dict[str, MetricCounter]:
        return {c.category: c for c in self._store.list_metrics()}

    def performance_score(self) -> int:
        return (REGISTRATION_WEIGHT * self.value(MetricCategory.TOTAL_REGISTERED_ASSETS)
                + TRANSFER_WEIGHT * self.value(MetricCategory.OWNERSHIP_TRANSFERS))

"""
Keyed state storage for AssetLedger.

Four keyed stores live behind one ``LedgerStore``: assets, access grants,
ownership transitions and metric counters. Every mutating ledger operation
runs inside ``transaction()``, which serializes writers with a re-entrant
lock and rolls back every store touched in the scope if anything raises.
``read()`` takes the same lock so readers see a single consistent snapshot.

Implementations:
- InMemoryLedgerStore: development/testing, state lives in dicts
- SqliteLedgerStore: durable, atomic multi-table commits
"""

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Union

from .models import AccessGrant, AssetRecord, MetricCounter, TransitionEntry

logger = logging.getLogger(__name__)


class LedgerStore(ABC):
    """
    Abstract interface for ledger state.

    Implementations must be:
    - Atomic (a transaction scope commits fully or not at all)
    - Serialized (one writer at a time)
    - Append-only for transitions (no update or delete of entries)
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator['LedgerStore']:
        """
        Open a transaction scope. Nested scopes join the outermost one.
        """
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                self._begin()
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if outermost:
                    logger.debug("rolling back ledger transaction")
                    self._rollback()
                raise
            else:
                self._depth -= 1
                if outermost:
                    self._commit()

    @contextmanager
    def read(self) -> Iterator['LedgerStore']:
        """Hold the store lock for a consistent multi-key read."""
        with self._lock:
            yield self

    @abstractmethod
    def _begin(self) -> None:
        pass

    @abstractmethod
    def _commit(self) -> None:
        pass

    @abstractmethod
    def _rollback(self) -> None:
        pass

    # Assets

    @abstractmethod
    def get_asset(self, asset_id: int) -> Optional[AssetRecord]:
        pass

    @abstractmethod
    def put_asset(self, record: AssetRecord) -> None:
        pass

    @abstractmethod
    def max_asset_id(self) -> int:
        """Highest identifier ever stored, 0 when empty."""
        pass

    # Access grants

    @abstractmethod
    def get_grant(self, asset_id: int, viewer: str) -> Optional[AccessGrant]:
        pass

    @abstractmethod
    def put_grant(self, grant: AccessGrant) -> None:
        pass

    @abstractmethod
    def list_grants(self, asset_id: int) -> List[AccessGrant]:
        """All grant slots for an asset, ordered by viewer."""
        pass

    def count_active_grants(self, asset_id: int) -> int:
        return sum(1 for g in self.list_grants(asset_id) if g.granted)

    # Ownership transitions

    @abstractmethod
    def append_transition(self, entry: TransitionEntry) -> None:
        """
        Append an entry. Raises ValueError unless ``entry.sequence`` is
        exactly the next sequence number for its asset.
        """
        pass

    @abstractmethod
    def list_transitions(self, asset_id: int) -> List[TransitionEntry]:
        pass

    @abstractmethod
    def last_transition(self, asset_id: int) -> Optional[TransitionEntry]:
        pass

    # Metrics

    @abstractmethod
    def get_metric(self, category: str) -> Optional[MetricCounter]:
        pass

    @abstractmethod
    def put_metric(self, counter: MetricCounter) -> None:
        pass

    @abstractmethod
    def list_metrics(self) -> List[MetricCounter]:
        pass

    # Lifecycle

    @abstractmethod
    def reset(self) -> None:
        """Clear all state. Test isolation only."""
        pass

    def close(self) -> None:
        pass


class InMemoryLedgerStore(LedgerStore):
    """
    In-memory ledger store for development/testing.

    WARNING: Not persistent across restarts.

    Each write inside a transaction scope pushes an undo step for the one
    key it touched; rollback replays the steps newest first.
    """

    def __init__(self):
        super().__init__()
        self._assets: Dict[int, AssetRecord] = {}
        self._grants: Dict[int, Dict[str, AccessGrant]] = {}
        self._transitions: Dict[int, List[TransitionEntry]] = {}
        self._metrics: Dict[str, MetricCounter] = {}
        self._max_asset_id = 0
        self._undo: Optional[List[Callable[[], None]]] = None

    def _begin(self) -> None:
        self._undo = []

    def _commit(self) -> None:
        self._undo = None

    def _rollback(self) -> None:
        steps, self._undo = self._undo, None
        for step in reversed(steps or []):
            step()

    def _remember(self, step: Callable[[], None]) -> None:
        if self._undo is not None:
            self._undo.append(step)

    def _remember_key(self, mapping: dict, key) -> None:
        previous = mapping.get(key)

        def restore():
            if previous is None:
                mapping.pop(key, None)
            else:
                mapping[key] = previous

        self._remember(restore)

    def get_asset(self, asset_id: int) -> Optional[AssetRecord]:
        return self._assets.get(asset_id)

    def put_asset(self, record: AssetRecord) -> None:
        self._remember_key(self._assets, record.asset_id)
        previous_max = self._max_asset_id
        self._remember(lambda: setattr(self, "_max_asset_id", previous_max))
        self._assets[record.asset_id] = record
        self._max_asset_id = max(self._max_asset_id, record.asset_id)

    def max_asset_id(self) -> int:
        return self._max_asset_id

    def get_grant(self, asset_id: int, viewer: str) -> Optional[AccessGrant]:
        return self._grants.get(asset_id, {}).get(viewer)

    def put_grant(self, grant: AccessGrant) -> None:
        slots = self._grants.setdefault(grant.asset_id, {})
        self._remember_key(slots, grant.viewer)
        slots[grant.viewer] = grant

    def list_grants(self, asset_id: int) -> List[AccessGrant]:
        slots = self._grants.get(asset_id, {})
        return [slots[viewer] for viewer in sorted(slots)]

    def append_transition(self, entry: TransitionEntry) -> None:
        entries = self._transitions.setdefault(entry.asset_id, [])
        if entry.sequence != len(entries):
            raise ValueError(
                f"transition sequence {entry.sequence} for asset {entry.asset_id} "
                f"does not follow {len(entries) - 1}"
            )
        self._remember(entries.pop)
        entries.append(entry)

    def list_transitions(self, asset_id: int) -> List[TransitionEntry]:
        return list(self._transitions.get(asset_id, []))

    def last_transition(self, asset_id: int) -> Optional[TransitionEntry]:
        entries = self._transitions.get(asset_id)
        return entries[-1] if entries else None

    def get_metric(self, category: str) -> Optional[MetricCounter]:
        return self._metrics.get(category)

    def put_metric(self, counter: MetricCounter) -> None:
        self._remember_key(self._metrics, counter.category)
        self._metrics[counter.category] = counter

    def list_metrics(self) -> List[MetricCounter]:
        return sorted(self._metrics.values(), key=lambda c: c.category)

    def reset(self) -> None:
        with self._lock:
            self._assets.clear()
            self._grants.clear()
            self._transitions.clear()
            self._metrics.clear()
            self._max_asset_id = 0


# ============================================================
# SQLite
# ============================================================

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS assets (
        asset_id INTEGER PRIMARY KEY,
        designation TEXT NOT NULL,
        owner TEXT NOT NULL,
        size_bytes INTEGER NOT NULL,
        registered_at INTEGER NOT NULL,
        summary TEXT NOT NULL,
        tags_json TEXT NOT NULL,
        created_at INTEGER NOT NULL,
        last_modified_at INTEGER NOT NULL,
        status TEXT NOT NULL
    );""",
    """
    CREATE TABLE IF NOT EXISTS access_grants (
        asset_id INTEGER NOT NULL,
        viewer TEXT NOT NULL,
        granted INTEGER NOT NULL,
        granted_at INTEGER NOT NULL,
        level TEXT NOT NULL,
        revoked_at INTEGER,
        PRIMARY KEY (asset_id, viewer)
    );""",
    """
    CREATE TABLE IF NOT EXISTS ownership_transitions (
        asset_id INTEGER NOT NULL,
        sequence INTEGER NOT NULL,
        from_owner TEXT NOT NULL,
        to_owner TEXT NOT NULL,
        at_height INTEGER NOT NULL,
        reason TEXT NOT NULL,
        prev_entry_hash TEXT,
        entry_hash TEXT NOT NULL,
        PRIMARY KEY (asset_id, sequence)
    );""",
    """
    CREATE TABLE IF NOT EXISTS metrics (
        category TEXT PRIMARY KEY,
        value INTEGER NOT NULL,
        updated_at INTEGER NOT NULL
    );""",
    """
    CREATE INDEX IF NOT EXISTS idx_access_grants_asset
    ON access_grants(asset_id);""",
)


class SqliteLedgerStore(LedgerStore):
    """
    SQLite-backed ledger store.

    One connection per store, shared under the store lock. Transaction
    scopes map to ``BEGIN IMMEDIATE`` / ``COMMIT`` / ``ROLLBACK`` so a
    multi-table update lands atomically.
    """

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self._path = str(path)
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        # Autocommit mode; transaction scopes issue BEGIN explicitly
        conn = sqlite3.connect(self._path, check_same_thread=False, isolation_level=None)
        if self._path != ":memory:":
            conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute("PRAGMA temp_store=MEMORY;")
        conn.row_factory = sqlite3.Row
        self._conn = conn
        self._init_schema()

    def _init_schema(self) -> None:
        with self.transaction():
            for statement in _SCHEMA:
                self._conn.execute(statement)

    @property
    def path(self) -> str:
        return self._path

    def _begin(self) -> None:
        self._conn.execute("BEGIN IMMEDIATE")

    def _commit(self) -> None:
        self._conn.execute("COMMIT")

    def _rollback(self) -> None:
        # SQLite may already have rolled back on its own (SQLITE_FULL, BUSY)
        if self._conn.in_transaction:
            self._conn.execute("ROLLBACK")

    def _fetchone(self, sql: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def _execute(self, sql: str, params: tuple = ()) -> None:
        with self._lock:
            self._conn.execute(sql, params)

    # Assets

    @staticmethod
    def _asset_from_row(row: sqlite3.Row) -> AssetRecord:
        return AssetRecord(
            asset_id=row["asset_id"],
            designation=row["designation"],
            owner=row["owner"],
            size_bytes=row["size_bytes"],
            registered_at=row["registered_at"],
            summary=row["summary"],
            tags=tuple(json.loads(row["tags_json"])),
            created_at=row["created_at"],
            last_modified_at=row["last_modified_at"],
            status=row["status"],
        )

    def get_asset(self, asset_id: int) -> Optional[AssetRecord]:
        row = self._fetchone("SELECT * FROM assets WHERE asset_id=?", (asset_id,))
        return self._asset_from_row(row) if row else None

    def put_asset(self, record: AssetRecord) -> None:
        self._execute(
            "INSERT OR REPLACE INTO assets(asset_id, designation, owner, size_bytes, registered_at, "
            "summary, tags_json, created_at, last_modified_at, status) VALUES(?,?,?,?,?,?,?,?,?,?)",
            (record.asset_id, record.designation, record.owner, record.size_bytes,
             record.registered_at, record.summary, json.dumps(list(record.tags)),
             record.created_at, record.last_modified_at, record.status)
        )

    def max_asset_id(self) -> int:
        row = self._fetchone("SELECT COALESCE(MAX(asset_id), 0) AS max_id FROM assets")
        return row["max_id"]

    # Access grants

    @staticmethod
    def _grant_from_row(row: sqlite3.Row) -> AccessGrant:
        return AccessGrant(
            asset_id=row["asset_id"],
            viewer=row["viewer"],
            granted=bool(row["granted"]),
            granted_at=row["granted_at"],
            level=row["level"],
            revoked_at=row["revoked_at"],
        )

    def get_grant(self, asset_id: int, viewer: str) -> Optional[AccessGrant]:
        row = self._fetchone(
            "SELECT * FROM access_grants WHERE asset_id=? AND viewer=?", (asset_id, viewer)
        )
        return self._grant_from_row(row) if row else None

    def put_grant(self, grant: AccessGrant) -> None:
        self._execute(
            "INSERT OR REPLACE INTO access_grants(asset_id, viewer, granted, granted_at, level, revoked_at) "
            "VALUES(?,?,?,?,?,?)",
            (grant.asset_id, grant.viewer, int(grant.granted), grant.granted_at,
             grant.level, grant.revoked_at)
        )

    def list_grants(self, asset_id: int) -> List[AccessGrant]:
        rows = self._fetchall(
            "SELECT * FROM access_grants WHERE asset_id=? ORDER BY viewer ASC", (asset_id,)
        )
        return [self._grant_from_row(r) for r in rows]

    def count_active_grants(self, asset_id: int) -> int:
        row = self._fetchone(
            "SELECT COUNT(*) AS cnt FROM access_grants WHERE asset_id=? AND granted=1", (asset_id,)
        )
        return row["cnt"]

    # Ownership transitions

    @staticmethod
    def _transition_from_row(row: sqlite3.Row) -> TransitionEntry:
        return TransitionEntry(
            asset_id=row["asset_id"],
            sequence=row["sequence"],
            from_owner=row["from_owner"],
            to_owner=row["to_owner"],
            at_height=row["at_height"],
            reason=row["reason"],
            prev_entry_hash=row["prev_entry_hash"],
            entry_hash=row["entry_hash"],
        )

    def append_transition(self, entry: TransitionEntry) -> None:
        with self._lock:
            last = self.last_transition(entry.asset_id)
            expected = last.sequence + 1 if last else 0
            if entry.sequence != expected:
                raise ValueError(
                    f"transition sequence {entry.sequence} for asset {entry.asset_id} "
                    f"does not follow {expected - 1}"
                )
            self._conn.execute(
                "INSERT INTO ownership_transitions(asset_id, sequence, from_owner, to_owner, "
                "at_height, reason, prev_entry_hash, entry_hash) VALUES(?,?,?,?,?,?,?,?)",
                (entry.asset_id, entry.sequence, entry.from_owner, entry.to_owner,
                 entry.at_height, entry.reason, entry.prev_entry_hash, entry.entry_hash)
            )

    def list_transitions(self, asset_id: int) -> List[TransitionEntry]:
        rows = self._fetchall(
            "SELECT * FROM ownership_transitions WHERE asset_id=? ORDER BY sequence ASC", (asset_id,)
        )
        return [self._transition_from_row(r) for r in rows]

    def last_transition(self, asset_id: int) -> Optional[TransitionEntry]:
        row = self._fetchone(
            "SELECT * FROM ownership_transitions WHERE asset_id=? ORDER BY sequence DESC LIMIT 1",
            (asset_id,)
        )
        return self._transition_from_row(row) if row else None

    # Metrics

    def get_metric(self, category: str) -> Optional[MetricCounter]:
        row = self._fetchone("SELECT * FROM metrics WHERE category=?", (category,))
        if not row:
            return None
        return MetricCounter(category=row["category"], value=row["value"], updated_at=row["updated_at"])

    def put_metric(self, counter: MetricCounter) -> None:
        self._execute(
            "INSERT OR REPLACE INTO metrics(category, value, updated_at) VALUES(?,?,?)",
            (counter.category, counter.value, counter.updated_at)
        )

    def list_metrics(self) -> List[MetricCounter]:
        rows = self._fetchall("SELECT * FROM metrics ORDER BY category ASC")
        return [MetricCounter(category=r["category"], value=r["value"], updated_at=r["updated_at"])
                for r in rows]

    # Lifecycle

    def get_stats(self) -> Dict[str, int]:
        """Row counts per table, for health reporting."""
        stats = {}
        for table in ["assets", "access_grants", "ownership_transitions", "metrics"]:
            row = self._fetchone(f"SELECT COUNT(*) AS cnt FROM {table}")
            stats[f"{table}_count"] = row["cnt"]
        return stats

    def reset(self) -> None:
        with self.transaction():
            for table in ["assets", "access_grants", "ownership_transitions", "metrics"]:
                self._conn.execute(f"DELETE FROM {table}")

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

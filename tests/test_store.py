"""
AssetLedger Store Test Suite

Both backends must commit a transaction scope fully or not at all; the
SQLite backend must survive reopening.
"""

import os
import shutil
import tempfile
import unittest

from assetledger import (
    AssetLedger,
    CallContext,
    InMemoryLedgerStore,
    LedgerConfig,
    MetricCategory,
    SqliteLedgerStore,
)


class _RollbackCases:
    """Shared cases; subclasses provide ``make_store``."""

    def make_store(self):
        raise NotImplementedError

    def setUp(self):
        self.store = self.make_store()
        self.ledger = AssetLedger(LedgerConfig(administrator="admin"), store=self.store)
        self.asset_id = self.ledger.register(
            CallContext("alice", 1), 1, "Survey", 2048, "Site survey", ["geo"]
        )

    def tearDown(self):
        self.store.close()

    def test_failed_scope_leaves_no_partial_state(self):
        with self.assertRaises(RuntimeError):
            with self.store.transaction():
                self.ledger.transfer_ownership(CallContext("alice", 2), self.asset_id, "bob", "sale")
                self.ledger.grant(CallContext("bob", 2), self.asset_id, "carol")
                raise RuntimeError("host aborted")

        self.assertEqual(self.ledger.get(self.asset_id).owner, "alice")
        self.assertEqual(self.ledger.history(self.asset_id), [])
        self.assertFalse(self.ledger.is_authorized(self.asset_id, "carol"))
        self.assertEqual(self.ledger.metric_value(MetricCategory.OWNERSHIP_TRANSFERS), 0)

    def test_committed_scope_is_visible(self):
        with self.store.transaction():
            self.ledger.transfer_ownership(CallContext("alice", 2), self.asset_id, "bob", "sale")
        self.assertEqual(self.ledger.get(self.asset_id).owner, "bob")
        self.assertEqual(len(self.ledger.history(self.asset_id)), 1)

    def test_rolled_back_registration_frees_identifier(self):
        with self.assertRaises(RuntimeError):
            with self.store.transaction():
                self.ledger.register(CallContext("bob", 3), 2, "Other", 1, "Other", ["x"])
                raise RuntimeError("host aborted")
        self.assertIsNone(self.ledger.get(2))
        self.assertEqual(self.ledger.next_asset_id(), 2)

    def test_reset(self):
        self.store.reset()
        self.assertIsNone(self.ledger.get(self.asset_id))
        self.assertEqual(self.ledger.metrics_snapshot(), {})


class TestInMemoryStore(_RollbackCases, unittest.TestCase):

    def make_store(self):
        return InMemoryLedgerStore()

    def test_scope_records_only_touched_keys(self):
        for asset_id in range(2, 200):
            self.ledger.register(CallContext("bulk", 2), asset_id, "Bulk", 1, "Bulk asset", ["b"])
        with self.store.transaction():
            self.assertEqual(self.store._undo, [])
            self.ledger.grant(CallContext("alice", 3), self.asset_id, "bob")
            # one grant slot plus one counter
            self.assertEqual(len(self.store._undo), 2)

    def test_rollback_restores_overwritten_values(self):
        self.ledger.grant(CallContext("alice", 2), self.asset_id, "bob", level="auditor")
        before = self.ledger.metric_value(MetricCategory.ACCESS_GRANTS)
        with self.assertRaises(RuntimeError):
            with self.store.transaction():
                self.ledger.grant(CallContext("alice", 3), self.asset_id, "bob", level="editor")
                self.ledger.update_metadata(CallContext("alice", 3), self.asset_id, summary="Revised")
                raise RuntimeError("host aborted")
        self.assertEqual(self.ledger.lookup_grant(self.asset_id, "bob").level, "auditor")
        self.assertEqual(self.ledger.metric_value(MetricCategory.ACCESS_GRANTS), before)
        self.assertEqual(self.ledger.get(self.asset_id).summary, "Site survey")

    def test_grants_are_indexed_per_asset(self):
        other = self.ledger.register(CallContext("erin", 2), 2, "Other", 1, "Other asset", ["x"])
        self.ledger.grant(CallContext("erin", 3), other, "frank")
        self.ledger.grant(CallContext("alice", 3), self.asset_id, "bob")
        self.assertEqual([g.viewer for g in self.store.list_grants(self.asset_id)], ["bob"])
        self.assertEqual(self.store.count_active_grants(other), 1)


class TestSqliteStore(_RollbackCases, unittest.TestCase):

    def make_store(self):
        self.tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmpdir, True)
        return SqliteLedgerStore(os.path.join(self.tmpdir, "ledger.db"))

    def test_state_survives_reopen(self):
        self.ledger.grant(CallContext("alice", 2), self.asset_id, "bob", level="auditor")
        self.ledger.transfer_ownership(CallContext("alice", 3), self.asset_id, "carol", "sale")
        path = self.store.path
        self.store.close()

        reopened = SqliteLedgerStore(path)
        try:
            ledger = AssetLedger(LedgerConfig(administrator="admin"), store=reopened)
            record = ledger.get(self.asset_id)
            self.assertEqual(record.owner, "carol")
            self.assertEqual(record.tags, ("geo",))
            self.assertEqual(ledger.lookup_grant(self.asset_id, "bob").level, "auditor")
            self.assertTrue(ledger.verify_history(self.asset_id))
            self.assertEqual(ledger.total_registered_assets(), 1)
            self.assertEqual(ledger.next_asset_id(), 2)
        finally:
            reopened.close()
        self.store = SqliteLedgerStore(path)

    def test_rollback_after_sqlite_aborted_on_its_own(self):
        """The original error surfaces even when SQLite already ended the transaction."""
        with self.assertRaises(RuntimeError):
            with self.store.transaction():
                self.ledger.grant(CallContext("alice", 2), self.asset_id, "bob")
                self.store._conn.execute("ROLLBACK")
                raise RuntimeError("disk full")
        self.assertFalse(self.ledger.is_authorized(self.asset_id, "bob"))
        self.ledger.grant(CallContext("alice", 3), self.asset_id, "bob")
        self.assertTrue(self.ledger.is_authorized(self.asset_id, "bob"))

    def test_stats(self):
        stats = self.store.get_stats()
        self.assertEqual(stats["assets_count"], 1)
        self.assertEqual(stats["ownership_transitions_count"], 0)


if __name__ == '__main__':
    unittest.main()

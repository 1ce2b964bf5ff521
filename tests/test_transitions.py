"""
AssetLedger Ownership Transition Log Test Suite

Critical invariant tested:
    HISTORY IS APPEND-ONLY AND ANY EDIT BREAKS THE HASH CHAIN
"""

import unittest
from dataclasses import replace

from assetledger import (
    AssetLedger,
    CallContext,
    InMemoryLedgerStore,
    LedgerConfig,
    MissingAsset,
)
from assetledger.hashing import chain_entry_hash, payload_hash, verify_entry_chain


class TestTransitionChain(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryLedgerStore()
        self.ledger = AssetLedger(LedgerConfig(administrator="admin"), store=self.store)
        self.asset_id = self.ledger.register(
            CallContext("alice", 1), 1, "Survey", 2048, "Site survey", ["geo"]
        )
        self.ledger.transfer_ownership(CallContext("alice", 10), self.asset_id, "bob", "sale")
        self.ledger.transfer_ownership(CallContext("bob", 20), self.asset_id, "carol", "gift")
        self.ledger.transfer_ownership(CallContext("admin", 30), self.asset_id, "dave", "court order")

    def test_history_order_and_links(self):
        history = self.ledger.history(self.asset_id)
        self.assertEqual([e.sequence for e in history], [0, 1, 2])
        self.assertIsNone(history[0].prev_entry_hash)
        self.assertEqual(history[1].prev_entry_hash, history[0].entry_hash)
        self.assertEqual(history[2].prev_entry_hash, history[1].entry_hash)
        self.assertEqual([(e.from_owner, e.to_owner) for e in history],
                         [("alice", "bob"), ("bob", "carol"), ("carol", "dave")])

    def test_entry_hash_recomputes(self):
        first = self.ledger.history(self.asset_id)[0]
        self.assertEqual(first.entry_hash, chain_entry_hash(None, payload_hash(first.payload())))

    def test_chain_verifies(self):
        self.assertTrue(self.ledger.verify_history(self.asset_id))

    def test_tampered_entry_breaks_chain(self):
        entries = self.store._transitions[self.asset_id]
        entries[1] = replace(entries[1], reason="theft")
        self.assertFalse(self.ledger.verify_history(self.asset_id))

    def test_serialized_chain_tamper_detected(self):
        dicts = [e.to_dict() for e in self.ledger.history(self.asset_id)]
        self.assertTrue(verify_entry_chain(dicts))
        dicts[0]["to_owner"] = "mallory"
        self.assertFalse(verify_entry_chain(dicts))

    def test_dropped_entry_detected(self):
        dicts = [e.to_dict() for e in self.ledger.history(self.asset_id)]
        del dicts[1]
        self.assertFalse(verify_entry_chain(dicts))

    def test_store_rejects_out_of_order_append(self):
        last = self.ledger.history(self.asset_id)[-1]
        with self.assertRaises(ValueError):
            self.store.append_transition(replace(last, sequence=7))

    def test_histories_are_per_asset(self):
        other = self.ledger.register(CallContext("erin", 40), 2, "Other", 1, "Other asset", ["x"])
        entry = self.ledger.transfer_ownership(CallContext("erin", 41), other, "frank", "")
        self.assertEqual(entry.sequence, 0)
        self.assertEqual(len(self.ledger.history(self.asset_id)), 3)

    def test_export_bundle(self):
        bundle = self.ledger.export_history(self.asset_id, 50)
        self.assertEqual(bundle["asset_id"], self.asset_id)
        self.assertEqual(len(bundle["entries"]), 3)
        self.assertEqual(bundle["head_entry_hash"], bundle["entries"][-1]["entry_hash"])
        self.assertEqual(bundle["exported_at_height"], 50)

    def test_unknown_asset(self):
        with self.assertRaises(MissingAsset):
            self.ledger.history(404)


if __name__ == '__main__':
    unittest.main()

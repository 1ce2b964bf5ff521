"""
AssetLedger Audit Logging Test Suite
"""

import json
import logging
import unittest

from assetledger import AssetLedger, CallContext, LedgerConfig, OwnershipVerificationFailed
from assetledger.logging_config import StructuredFormatter, set_request_id


class TestAuditLogging(unittest.TestCase):

    def setUp(self):
        self.ledger = AssetLedger(LedgerConfig(administrator="admin"))

    def _events(self, cm):
        return [r.extra_fields for r in cm.records]

    def test_committed_mutations_are_audited(self):
        with self.assertLogs("assetledger.audit", level="INFO") as cm:
            asset_id = self.ledger.register(CallContext("alice", 1), 1, "Survey", 10, "Site survey", ["geo"])
            self.ledger.grant(CallContext("alice", 2), asset_id, "bob")
            self.ledger.transfer_ownership(CallContext("alice", 3), asset_id, "carol", "sale")
        types = [e["event_type"] for e in self._events(cm)]
        self.assertEqual(types, ["ASSET_REGISTERED", "ACCESS_GRANTED", "OWNERSHIP_TRANSFERRED"])

    def test_authorization_rejection_logs_warning(self):
        asset_id = self.ledger.register(CallContext("alice", 1), 1, "Survey", 10, "Site survey", ["geo"])
        with self.assertLogs("assetledger.audit", level="INFO") as cm:
            with self.assertRaises(OwnershipVerificationFailed):
                self.ledger.transfer_ownership(CallContext("mallory", 2), asset_id, "mallory", "")
        record = cm.records[-1]
        self.assertEqual(record.levelno, logging.WARNING)
        self.assertEqual(record.extra_fields["code"], "OwnershipVerificationFailed")
        self.assertEqual(record.extra_fields["principal"], "mallory")
        self.assertEqual(record.extra_fields["asset_id"], asset_id)

    def test_structured_formatter_emits_json(self):
        set_request_id("req-123")
        try:
            record = logging.LogRecord("assetledger.audit", logging.INFO, __file__, 1, "hello", None, None)
            record.extra_fields = {"event_type": "TEST", "asset_id": 9}
            data = json.loads(StructuredFormatter().format(record))
        finally:
            set_request_id("")
        self.assertEqual(data["message"], "hello")
        self.assertEqual(data["request_id"], "req-123")
        self.assertEqual(data["asset_id"], 9)
        self.assertEqual(data["level"], "INFO")


if __name__ == '__main__':
    unittest.main()

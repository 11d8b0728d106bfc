"""
Structured logging tests: record shape, call context, request ids.
"""

import io
import json
import logging
import unittest

from complyreg.logging_config import (
    AuditLogger,
    RequestIdFilter,
    StructuredFormatter,
    request_id_var,
    set_request_id,
)

from helpers import ADMIN, make_ledger


class CapturedLogger:
    """A private logger writing formatted JSON lines to a buffer."""

    def __init__(self, name, env=None):
        self.buffer = io.StringIO()
        handler = logging.StreamHandler(self.buffer)
        handler.addFilter(RequestIdFilter())
        handler.setFormatter(StructuredFormatter(env=env))
        self.logger = logging.getLogger(name)
        self.logger.handlers = [handler]
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

    def lines(self):
        return [json.loads(line) for line in self.buffer.getvalue().splitlines()]


class TestStructuredFormatter(unittest.TestCase):

    def tearDown(self):
        request_id_var.set('')

    def test_audit_record_lifts_registry_context(self):
        captured = CapturedLogger("complyreg.test.audit", env="stage")
        set_request_id("req-42")
        AuditLogger("complyreg.test.audit").mutation_committed(
            "reports", "finalize_report", ADMIN, 42, True
        )

        line = captured.lines()[0]
        self.assertEqual(line["event_type"], "MUTATION_COMMITTED")
        self.assertEqual(line["registry"], "reports")
        self.assertEqual(line["operation"], "finalize_report")
        self.assertEqual(line["caller"], ADMIN)
        self.assertEqual(line["block_height"], 42)
        self.assertEqual(line["service"], "complyreg")
        self.assertEqual(line["env"], "stage")
        self.assertEqual(line["request_id"], "req-42")
        self.assertTrue(line["timestamp"].endswith("Z"))
        self.assertNotIn("location", line)

    def test_extra_context_fields_are_top_level(self):
        captured = CapturedLogger("complyreg.test.plain")
        captured.logger.debug("Dispatching", extra={"caller": ADMIN, "block_height": 7})

        line = captured.lines()[0]
        self.assertEqual(line["caller"], ADMIN)
        self.assertEqual(line["block_height"], 7)
        self.assertNotIn("registry", line)
        self.assertNotIn("env", line)
        self.assertIn("test_extra_context_fields_are_top_level", line["location"])

    def test_exception_is_included(self):
        captured = CapturedLogger("complyreg.test.errors")
        try:
            raise RuntimeError("store unavailable")
        except RuntimeError:
            captured.logger.exception("Call failed")

        self.assertIn("store unavailable", captured.lines()[0]["exception"])


class TestAuditEvents(unittest.TestCase):

    def test_committed_mutation_is_logged_with_height(self):
        ledger, _ = make_ledger(height=100)
        with self.assertLogs("complyreg.audit", level="INFO") as logs:
            ledger.institutions.register(ledger.context(ADMIN), "inst-001", "Bank", "Addr", "LIC")

        audit = logs.records[0].audit
        self.assertEqual(audit["event_type"], "MUTATION_COMMITTED")
        self.assertEqual(audit["registry"], "institutions")
        self.assertEqual(audit["block_height"], 100)

    def test_admin_transfer_records_both_admins(self):
        ledger, _ = make_ledger()
        with self.assertLogs("complyreg.audit", level="WARNING") as logs:
            ledger.reports.transfer_admin(ledger.context(ADMIN), "ST4NEWADMIN")

        audit = logs.records[-1].audit
        self.assertEqual(audit["event_type"], "ADMIN_TRANSFERRED")
        self.assertEqual(audit["caller"], ADMIN)
        self.assertEqual(audit["new_admin"], "ST4NEWADMIN")


class TestRequestId(unittest.TestCase):

    def tearDown(self):
        request_id_var.set('')

    def test_inbound_token_is_kept(self):
        self.assertEqual(set_request_id("req-123"), "req-123")
        self.assertEqual(request_id_var.get(), "req-123")

    def test_missing_id_is_generated(self):
        generated = set_request_id()
        self.assertEqual(len(generated), 32)
        self.assertEqual(request_id_var.get(), generated)

    def test_unsafe_inbound_id_is_replaced(self):
        for bad in ('x", "level": "CRITICAL', "line\nbreak", "a" * 65, "trailing\n"):
            replaced = set_request_id(bad)
            self.assertNotEqual(replaced, bad)
            self.assertEqual(len(replaced), 32)


if __name__ == "__main__":
    unittest.main(verbosity=2)

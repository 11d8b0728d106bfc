"""
Admin Role Test Suite

Each registry holds its own admin; transfers on one never touch another.
"""

import unittest
from unittest import mock

from complyreg import InvalidArgument, Unauthorized
from complyreg.journal import Journal

from helpers import ADMIN, OUTSIDER, make_ledger

NEW_ADMIN = "ST4NEWADMIN"


class TestAdminTransfer(unittest.TestCase):

    def setUp(self):
        self.ledger, _ = make_ledger()

    def test_initial_admin_on_every_registry(self):
        for name, registry in self.ledger.registries().items():
            self.assertEqual(registry.get_admin(), ADMIN, name)

    def test_transfer_is_scoped_to_one_registry(self):
        self.assertTrue(self.ledger.institutions.transfer_admin(self.ledger.context(ADMIN), NEW_ADMIN))

        self.assertEqual(self.ledger.institutions.get_admin(), NEW_ADMIN)
        for name in ("requirements", "submissions", "reports", "verifications"):
            self.assertEqual(self.ledger.registries()[name].get_admin(), ADMIN, name)

    def test_new_admin_gains_and_old_admin_loses_authority(self):
        self.ledger.institutions.transfer_admin(self.ledger.context(ADMIN), NEW_ADMIN)

        with self.assertRaises(Unauthorized):
            self.ledger.institutions.register(self.ledger.context(ADMIN), "inst-001", "B", "A", "L")
        self.ledger.institutions.register(self.ledger.context(NEW_ADMIN), "inst-001", "B", "A", "L")

        # old admin still controls the other registries
        self.ledger.requirements.add_requirement(
            self.ledger.context(ADMIN), "req-001", "T", "D", "monthly", 30
        )

    def test_each_registry_transfers_independently(self):
        for name, registry in self.ledger.registries().items():
            successor = f"ST-{name}"
            registry.transfer_admin(self.ledger.context(ADMIN), successor)
            self.assertEqual(registry.get_admin(), successor)

        admins = {r.get_admin() for r in self.ledger.registries().values()}
        self.assertEqual(len(admins), 5)

    def test_non_admin_cannot_transfer(self):
        with self.assertRaises(Unauthorized):
            self.ledger.reports.transfer_admin(self.ledger.context(OUTSIDER), OUTSIDER)
        self.assertEqual(self.ledger.reports.get_admin(), ADMIN)

    def test_invalid_new_admin(self):
        with self.assertRaises(InvalidArgument):
            self.ledger.reports.transfer_admin(self.ledger.context(ADMIN), "")
        self.assertEqual(self.ledger.reports.get_admin(), ADMIN)

    def test_transfer_is_journaled(self):
        self.ledger.verifications.transfer_admin(self.ledger.context(ADMIN), NEW_ADMIN)
        entry = self.ledger.journal.entries()[-1]
        self.assertEqual(entry.registry, "verifications")
        self.assertEqual(entry.operation, "transfer_admin")
        self.assertEqual(entry.caller, ADMIN)

    def test_initialize_keeps_existing_admin(self):
        self.ledger.institutions.transfer_admin(self.ledger.context(ADMIN), NEW_ADMIN)
        self.ledger.institutions.admin.initialize(ADMIN)
        self.assertEqual(self.ledger.institutions.get_admin(), NEW_ADMIN)


class TestTransferAuditLog(unittest.TestCase):
    """The transfer event is logged only once the transfer has committed."""

    def setUp(self):
        self.ledger, _ = make_ledger()

    def test_committed_transfer_is_logged(self):
        ctx = self.ledger.context(ADMIN)
        with mock.patch("complyreg.registry.audit_log") as audit:
            self.ledger.reports.transfer_admin(ctx, NEW_ADMIN)
        audit.admin_transferred.assert_called_once_with(
            "reports", ADMIN, NEW_ADMIN, ctx.block_height
        )

    def test_failed_journal_append_logs_no_transfer(self):
        with mock.patch("complyreg.registry.audit_log") as audit, \
                mock.patch.object(Journal, "append", side_effect=RuntimeError("disk full")):
            with self.assertRaises(RuntimeError):
                self.ledger.reports.transfer_admin(self.ledger.context(ADMIN), NEW_ADMIN)
        audit.admin_transferred.assert_not_called()
        audit.mutation_committed.assert_not_called()
        self.assertEqual(self.ledger.reports.get_admin(), ADMIN)

    def test_rejected_transfer_logs_no_transfer(self):
        with mock.patch("complyreg.registry.audit_log") as audit:
            with self.assertRaises(Unauthorized):
                self.ledger.reports.transfer_admin(self.ledger.context(OUTSIDER), OUTSIDER)
        audit.admin_transferred.assert_not_called()
        audit.mutation_rejected.assert_called_once()

if __name__ == "__main__":
    unittest.main(verbosity=2)

"""
Submission Registry Test Suite
"""

import unittest

from complyreg import (
    AlreadyExists,
    InvalidArgument,
    InvalidTransition,
    NotFound,
    SubmissionStatus,
    Unauthorized,
    content_digest,
)

from helpers import (
    ADMIN,
    INSTITUTION,
    OUTSIDER,
    REQUIREMENT,
    SUBMITTER,
    make_ledger,
    seed_assignment,
    seed_institution,
    submit,
)


class TestSubmitData(unittest.TestCase):

    def setUp(self):
        self.ledger, self.height = make_ledger(height=100)
        seed_assignment(self.ledger)
        self.registry = self.ledger.submissions

    def test_submission_is_open_to_any_caller(self):
        self.height.set(105)
        self.assertEqual(submit(self.ledger, "sub-001", caller=OUTSIDER), "sub-001")

        submission = self.registry.get_submission("sub-001")
        self.assertEqual(submission.status, SubmissionStatus.PENDING)
        self.assertEqual(submission.submission_date, 105)
        self.assertEqual(submission.data_hash, content_digest("sub-001"))

        metadata = self.registry.get_submission_metadata("sub-001")
        self.assertEqual(metadata.submitter, OUTSIDER)
        self.assertEqual(metadata.data_location, "ipfs://sub-001")
        self.assertEqual(metadata.data_format, "json")

    def test_hex_digest_accepted(self):
        digest = content_digest("payload")
        self.registry.submit_data(
            self.ledger.context(SUBMITTER), "sub-001", INSTITUTION, REQUIREMENT,
            "sha256:" + digest.hex(), "ipfs://x", "csv", ""
        )
        self.assertEqual(self.registry.get_submission("sub-001").data_hash, digest)

    def test_short_digest_rejected(self):
        with self.assertRaises(InvalidArgument) as cm:
            self.registry.submit_data(
                self.ledger.context(SUBMITTER), "sub-001", INSTITUTION, REQUIREMENT,
                b"\x00" * 31, "ipfs://x", "csv", ""
            )
        self.assertEqual(cm.exception.field, "data_hash")
        self.assertEqual(cm.exception.details["observed_length"], 31)
        self.assertIsNone(self.registry.get_submission("sub-001"))

    def test_unassigned_requirement_rejected(self):
        self.ledger.requirements.add_requirement(
            self.ledger.context(ADMIN), "req-002", "Annual", "Yearly", "annual", 60
        )
        with self.assertRaises(NotFound):
            submit(self.ledger, "sub-001", requirement_id="req-002")

    def test_unknown_institution_rejected(self):
        with self.assertRaises(NotFound):
            submit(self.ledger, "sub-001", institution_id="missing")

    def test_duplicate_submission_rejected(self):
        submit(self.ledger, "sub-001")
        with self.assertRaises(AlreadyExists):
            submit(self.ledger, "sub-001", caller=OUTSIDER)
        self.assertEqual(self.registry.get_submission_metadata("sub-001").submitter, SUBMITTER)

    def test_absent_lookups(self):
        self.assertIsNone(self.registry.get_submission("missing"))
        self.assertIsNone(self.registry.get_submission_metadata("missing"))


class TestValidateSubmission(unittest.TestCase):

    def setUp(self):
        self.ledger, _ = make_ledger()
        seed_assignment(self.ledger)
        self.registry = self.ledger.submissions
        submit(self.ledger, "sub-001")

    def test_approve(self):
        self.assertTrue(self.registry.validate_submission(self.ledger.context(ADMIN), "sub-001", "approved"))
        self.assertEqual(self.registry.get_submission("sub-001").status, SubmissionStatus.APPROVED)

    def test_reject(self):
        self.registry.validate_submission(self.ledger.context(ADMIN), "sub-001", SubmissionStatus.REJECTED)
        self.assertEqual(self.registry.get_submission("sub-001").status, SubmissionStatus.REJECTED)

    def test_terminal_status_is_final(self):
        ctx = self.ledger.context(ADMIN)
        self.registry.validate_submission(ctx, "sub-001", "approved")
        for status in ("approved", "rejected", "pending"):
            with self.assertRaises(InvalidTransition):
                self.registry.validate_submission(ctx, "sub-001", status)
        self.assertEqual(self.registry.get_submission("sub-001").status, SubmissionStatus.APPROVED)

    def test_pending_is_not_a_target(self):
        with self.assertRaises(InvalidTransition):
            self.registry.validate_submission(self.ledger.context(ADMIN), "sub-001", "pending")

    def test_unknown_status_label(self):
        with self.assertRaises(InvalidTransition):
            self.registry.validate_submission(self.ledger.context(ADMIN), "sub-001", "escalated")
        self.assertEqual(self.registry.get_submission("sub-001").status, SubmissionStatus.PENDING)

    def test_unknown_submission(self):
        with self.assertRaises(NotFound):
            self.registry.validate_submission(self.ledger.context(ADMIN), "missing", "approved")

    def test_non_admin_cannot_validate(self):
        with self.assertRaises(Unauthorized):
            self.registry.validate_submission(self.ledger.context(SUBMITTER), "sub-001", "approved")


class TestUnverifiedInstitution(unittest.TestCase):

    def test_unverified_institution_has_no_assignments(self):
        ledger, _ = make_ledger()
        seed_institution(ledger, verified=False)
        with self.assertRaises(NotFound):
            submit(ledger, "sub-001")


if __name__ == "__main__":
    unittest.main(verbosity=2)

"""
Institution Registry Test Suite

Onboarding, one-shot verification, and the two re-verification policies.
"""

import unittest

from complyreg import (
    AlreadyExists,
    AlreadyVerified,
    InvalidArgument,
    NotFound,
    RegistryPolicy,
    RepeatPolicy,
    Unauthorized,
)

from helpers import ADMIN, OUTSIDER, make_ledger


class TestRegistration(unittest.TestCase):

    def setUp(self):
        self.ledger, self.height = make_ledger(height=100)
        self.registry = self.ledger.institutions

    def test_register_stores_unverified_institution(self):
        result = self.registry.register(
            self.ledger.context(ADMIN), "inst-001", "Example Bank", "123 Finance St", "LIC-12345"
        )
        self.assertEqual(result, "inst-001")

        institution = self.registry.get("inst-001")
        self.assertEqual(institution.name, "Example Bank")
        self.assertEqual(institution.license_number, "LIC-12345")
        self.assertFalse(institution.verified)
        self.assertIsNone(institution.verification_date)
        self.assertFalse(self.registry.is_verified("inst-001"))

    def test_non_admin_cannot_register(self):
        with self.assertRaises(Unauthorized):
            self.registry.register(self.ledger.context(OUTSIDER), "inst-001", "Bank", "Addr", "LIC")
        self.assertIsNone(self.registry.get("inst-001"))

    def test_duplicate_id_rejected(self):
        ctx = self.ledger.context(ADMIN)
        self.registry.register(ctx, "inst-001", "Example Bank", "Addr", "LIC-1")
        with self.assertRaises(AlreadyExists):
            self.registry.register(ctx, "inst-001", "Other Bank", "Elsewhere", "LIC-2")
        self.assertEqual(self.registry.get("inst-001").name, "Example Bank")

    def test_identifier_bounds(self):
        ctx = self.ledger.context(ADMIN)
        with self.assertRaises(InvalidArgument) as cm:
            self.registry.register(ctx, "", "Bank", "Addr", "LIC")
        self.assertEqual(cm.exception.field, "institution_id")
        with self.assertRaises(InvalidArgument):
            self.registry.register(ctx, "x" * 65, "Bank", "Addr", "LIC")
        self.registry.register(ctx, "x" * 64, "Bank", "Addr", "LIC")

    def test_absent_lookup_returns_none(self):
        self.assertIsNone(self.registry.get("missing"))
        self.assertFalse(self.registry.exists("missing"))

    def test_is_verified_unknown_raises(self):
        with self.assertRaises(NotFound):
            self.registry.is_verified("missing")


class TestVerification(unittest.TestCase):

    def setUp(self):
        self.ledger, self.height = make_ledger(height=100)
        self.registry = self.ledger.institutions
        self.registry.register(self.ledger.context(ADMIN), "inst-001", "Bank", "Addr", "LIC")

    def test_verify_stamps_current_height(self):
        self.height.set(120)
        self.assertTrue(self.registry.verify(self.ledger.context(ADMIN), "inst-001"))

        institution = self.registry.get("inst-001")
        self.assertTrue(institution.verified)
        self.assertEqual(institution.verification_date, 120)

    def test_verify_unknown_institution(self):
        with self.assertRaises(NotFound):
            self.registry.verify(self.ledger.context(ADMIN), "missing")

    def test_authorization_checked_before_existence(self):
        with self.assertRaises(Unauthorized):
            self.registry.verify(self.ledger.context(OUTSIDER), "missing")

    def test_non_admin_cannot_verify(self):
        with self.assertRaises(Unauthorized):
            self.registry.verify(self.ledger.context(OUTSIDER), "inst-001")
        self.assertFalse(self.registry.is_verified("inst-001"))

    def test_strict_reverify_rejected(self):
        self.registry.verify(self.ledger.context(ADMIN), "inst-001")
        self.height.set(200)
        with self.assertRaises(AlreadyVerified):
            self.registry.verify(self.ledger.context(ADMIN), "inst-001")
        self.assertEqual(self.registry.get("inst-001").verification_date, 100)


class TestIdempotentReverify(unittest.TestCase):

    def setUp(self):
        policy = RegistryPolicy(reverify=RepeatPolicy.IDEMPOTENT)
        self.ledger, self.height = make_ledger(height=100, policy=policy)
        self.registry = self.ledger.institutions
        ctx = self.ledger.context(ADMIN)
        self.registry.register(ctx, "inst-001", "Bank", "Addr", "LIC")
        self.registry.verify(ctx, "inst-001")

    def test_reverify_succeeds_without_change(self):
        journal_length = len(self.ledger.journal.entries())
        self.height.set(200)

        self.assertTrue(self.registry.verify(self.ledger.context(ADMIN), "inst-001"))
        self.assertEqual(self.registry.get("inst-001").verification_date, 100)
        self.assertEqual(len(self.ledger.journal.entries()), journal_length)

    def test_reverify_still_requires_admin(self):
        with self.assertRaises(Unauthorized):
            self.registry.verify(self.ledger.context(OUTSIDER), "inst-001")


if __name__ == "__main__":
    unittest.main(verbosity=2)

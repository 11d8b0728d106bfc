"""
Input validation, hashing and canonical encoding tests.
"""

import unittest

from complyreg import (
    CallContext,
    InvalidArgument,
    ManualHeightOracle,
    canonicalize,
    composite_key,
    content_digest,
    sha256_hash,
)
from complyreg.hashing import coerce_digest
from complyreg.validation import (
    MAX_TEXT_LENGTH,
    validate_height,
    validate_identifier_list,
    validate_text,
)


class TestDigests(unittest.TestCase):

    def test_raw_and_hex_forms_agree(self):
        raw = content_digest("payload")
        self.assertEqual(len(raw), 32)
        for form in (raw, raw.hex(), raw.hex().upper(), "0x" + raw.hex(), sha256_hash("payload")):
            self.assertEqual(coerce_digest(form, "data_hash"), raw)

    def test_wrong_length_reports_observed_size(self):
        for value, size in ((b"", 0), (b"\x01" * 33, 33), ("ab" * 16, 16)):
            with self.assertRaises(InvalidArgument) as cm:
                coerce_digest(value, "report_hash")
            self.assertEqual(cm.exception.details["observed_length"], size)

    def test_non_digest_types_rejected(self):
        for value in (None, 42, ["00"] * 32, "zz" * 32):
            with self.assertRaises(InvalidArgument):
                coerce_digest(value, "data_hash")


class TestCanonicalization(unittest.TestCase):

    def test_key_order_is_irrelevant(self):
        self.assertEqual(canonicalize({"b": 1, "a": [1, 2]}), canonicalize({"a": [1, 2], "b": 1}))
        self.assertEqual(canonicalize({"b": 1, "a": 2}), b'{"a":2,"b":1}')

    def test_bytes_encoded_as_hex(self):
        self.assertEqual(canonicalize({"h": b"\x0a\xff"}), b'{"h":"0aff"}')

    def test_composite_key_is_unambiguous(self):
        self.assertEqual(composite_key("inst-001", "req-001"), '["inst-001","req-001"]')
        self.assertNotEqual(composite_key("a:b", "c"), composite_key("a", "b:c"))

    def test_unsupported_type(self):
        with self.assertRaises(ValueError):
            canonicalize({"x": object()})


class TestValidators(unittest.TestCase):

    def test_text_length(self):
        self.assertEqual(validate_text("", "notes"), "")
        validate_text("x" * MAX_TEXT_LENGTH, "notes")
        with self.assertRaises(InvalidArgument):
            validate_text("x" * (MAX_TEXT_LENGTH + 1), "notes")
        with self.assertRaises(InvalidArgument):
            validate_text(None, "notes")

    def test_height(self):
        self.assertEqual(validate_height(0, "due_date"), 0)
        for bad in (-1, True, 1.5, "10"):
            with self.assertRaises(InvalidArgument):
                validate_height(bad, "due_date")

    def test_identifier_list(self):
        self.assertEqual(validate_identifier_list(("a", "b"), "ids"), ["a", "b"])
        for bad in ("ab", [], ["a", "a"], ["a", ""], None):
            with self.assertRaises(InvalidArgument):
                validate_identifier_list(bad, "ids")


class TestCallContext(unittest.TestCase):

    def test_context_requires_caller_and_height(self):
        ctx = CallContext("ST1", 5)
        self.assertEqual((ctx.caller, ctx.block_height), ("ST1", 5))
        with self.assertRaises(ValueError):
            CallContext("", 5)
        with self.assertRaises(InvalidArgument):
            CallContext("ST1", -1)

    def test_manual_height_never_decreases(self):
        oracle = ManualHeightOracle(10)
        self.assertEqual(oracle.advance(5), 15)
        oracle.set(15)
        with self.assertRaises(ValueError):
            oracle.set(14)
        self.assertEqual(oracle.next_for_call(), 15)


if __name__ == "__main__":
    unittest.main(verbosity=2)

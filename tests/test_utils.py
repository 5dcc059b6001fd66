"""Tests for shared utility functions."""

from datetime import timedelta

from src.logging_context import call_context, get_call_id, get_call_logger, CallIdFilter
from src.utils import medication_key, normalize_phone, strictly_after, utc_now


class TestNormalizePhone:
    def test_strips_spaces(self):
        assert normalize_phone("555 010 1234") == "5550101234"

    def test_strips_dashes(self):
        assert normalize_phone("555-010-1234") == "5550101234"

    def test_strips_parentheses(self):
        assert normalize_phone("(555) 010 1234") == "5550101234"

    def test_preserves_leading_plus(self):
        assert normalize_phone("+1 555 010 1234") == "+15550101234"

    def test_clean_number_unchanged(self):
        assert normalize_phone("+1234567890") == "+1234567890"

    def test_strips_whitespace(self):
        assert normalize_phone("  5550101234  ") == "5550101234"


class TestMedicationKey:
    def test_lowercases_and_collapses_spaces(self):
        assert medication_key("  Lisinopril   10MG ") == "lisinopril 10mg"

    def test_same_key_for_case_variants(self):
        assert medication_key("Metformin") == medication_key("METFORMIN")


class TestStrictlyAfter:
    def test_no_previous(self):
        assert strictly_after(None) <= utc_now()

    def test_future_previous_is_nudged(self):
        future = utc_now() + timedelta(seconds=5)
        assert strictly_after(future) == future + timedelta(microseconds=1)

    def test_past_previous(self):
        past = utc_now() - timedelta(seconds=5)
        assert strictly_after(past) > past


class TestCallContext:
    def test_default(self):
        assert get_call_id() == "NO_CALL_ID"

    def test_binds_and_restores(self):
        with call_context("CA1"):
            assert get_call_id() == "CA1"
            with call_context("CA2"):
                assert get_call_id() == "CA2"
            assert get_call_id() == "CA1"
        assert get_call_id() == "NO_CALL_ID"

    def test_logger_filter_attached_once(self):
        logger = get_call_logger("tests.call_logger")
        get_call_logger("tests.call_logger")
        assert sum(isinstance(f, CallIdFilter) for f in logger.filters) == 1

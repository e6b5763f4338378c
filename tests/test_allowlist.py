"""Tests for the sender allow-list."""

from smsrelay.allowlist import AllowList, normalize_number, validate_number


class TestAllowList:

    def test_formatting_is_ignored(self):
        allowlist = AllowList(["+1 (555) 123-4567"])
        assert allowlist.is_allowed("+15551234567") is True
        assert allowlist.is_allowed("+1.555.123.4567") is True

    def test_partial_number_matches(self):
        """Carriers sometimes drop the country code."""
        allowlist = AllowList(["+15551234567"])
        assert allowlist.is_allowed("5551234567") is True

    def test_other_numbers_rejected(self):
        allowlist = AllowList(["+15551234567"])
        assert allowlist.is_allowed("+447700900123") is False
        assert allowlist.is_allowed("") is False

    def test_empty_list_rejects_everyone(self):
        assert AllowList([]).is_allowed("+15551234567") is False

    def test_invalid_entries_are_skipped(self):
        allowlist = AllowList(["+15551234567", "123", "call-me-maybe", ""])
        assert allowlist.numbers == ["+15551234567"]
        assert len(allowlist.warnings) == 3

    def test_from_config(self):
        allowlist = AllowList.from_config({"allowlist": {"numbers": ["+15551234567", "+15557654321"]}})
        assert allowlist.summary() == "2 numbers: +15551234567, +15557654321"

    def test_summary(self):
        assert AllowList().summary() == "No numbers configured"
        assert AllowList(["+15551234567"]).summary() == "1 number: +15551234567"


class TestValidation:

    def test_normalize_number(self):
        assert normalize_number("+1 (555) 123-4567") == "+15551234567"

    def test_validate_number(self):
        assert validate_number("+1 555 123 4567") is None
        assert validate_number("   ") == "Phone number cannot be empty"
        assert validate_number("1234") == "Phone number too short"
        assert validate_number("1" * 21) == "Phone number too long"
        assert validate_number("555-CALL-NOW") == "Invalid phone number format"

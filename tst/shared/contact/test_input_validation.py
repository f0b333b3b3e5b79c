"""
Tests for contact form field validation and sanitization.
"""
import pytest

from src.shared.contact.input_validation import (
    sanitize,
    sanitize_fields,
    validate_email,
    validate_required,
)

VALID_FIELDS = {
    "name": "Test User",
    "email": "test@example.com",
    "subject": "Hello",
    "message": "Hi there",
}


class TestValidateRequired:

    def test_all_fields_present(self):
        assert validate_required(VALID_FIELDS) is True

    @pytest.mark.parametrize("field", ["name", "email", "subject", "message"])
    def test_missing_field(self, field):
        fields = dict(VALID_FIELDS)
        del fields[field]
        assert validate_required(fields) is False

    @pytest.mark.parametrize("value", ["", "   ", "\t\n"])
    def test_blank_field(self, value):
        assert validate_required({**VALID_FIELDS, "message": value}) is False

    def test_non_string_field_counts_as_missing(self):
        assert validate_required({**VALID_FIELDS, "name": 42}) is False
        assert validate_required({**VALID_FIELDS, "subject": None}) is False


class TestValidateEmail:

    @pytest.mark.parametrize("email", [
        "test@example.com",
        "First.Last+tag@sub.example.co.uk",
        "under_score%x@my-domain.IO",
        "  padded@example.com  ",
    ])
    def test_valid_emails(self, email):
        assert validate_email(email) is True

    @pytest.mark.parametrize("email", [
        "not-an-email",
        "missing-at.example.com",
        "user@domain",
        "user@domain.c",
        "user name@example.com",
        "user@exa mple.com",
        "@example.com",
        "user@.com1",
    ])
    def test_invalid_emails(self, email):
        assert validate_email(email) is False

    def test_non_string(self):
        assert validate_email(None) is False


class TestSanitize:

    def test_strips_angle_brackets(self):
        assert sanitize("a<b>c") == "abc"

    def test_plain_text_unchanged(self):
        assert sanitize("abc") == "abc"

    def test_trims_whitespace(self):
        assert sanitize("  hello world \n") == "hello world"

    def test_escapes_markup_characters(self):
        assert sanitize("Tom & Jerry") == "Tom &amp; Jerry"
        assert sanitize('say "hi"') == "say &quot;hi&quot;"
        assert sanitize("it's") == "it&#x27;s"
        assert sanitize("a/b") == "a&#x2F;b"

    def test_entities_not_double_escaped(self):
        assert sanitize("'/") == "&#x27;&#x2F;"

    def test_script_tag(self):
        sanitized = sanitize("<script>alert(1)</script>")
        assert sanitized == "scriptalert(1)&#x2F;script"
        assert "<" not in sanitized and ">" not in sanitized

    def test_idempotent_without_escapable_characters(self):
        once = sanitize(" a<b>c ")
        assert sanitize(once) == once

    def test_empty(self):
        assert sanitize("") == ""

    def test_sanitize_fields_only_keeps_form_fields(self):
        fields = {**VALID_FIELDS, "name": " <b>Ann</b> ", "extra": "ignored"}
        sanitized = sanitize_fields(fields)
        assert sanitized == {
            "name": "bAnn&#x2F;b",
            "email": "test@example.com",
            "subject": "Hello",
            "message": "Hi there",
        }

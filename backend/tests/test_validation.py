"""
Pinboard Backend: Field Validation Tests
=========================================

What we test:
    ✅ Position create/update rules (title, description length, address)
    ✅ Signup rules (name, email syntax, password length)
    ✅ Email normalization
    ✅ raise_for_errors carries every field error
"""

import pytest
from email_validator import EmailNotValidError

from pinboard.exceptions import FieldError, ValidationError
from pinboard.validation import (
    normalize_email,
    raise_for_errors,
    validate_position_create,
    validate_position_update,
    validate_signup,
)


def _fields(errors):
    return [error.field for error in errors]


class TestPositionRules:

    def test_valid_create(self):
        assert validate_position_create("Cafe", "Nice spot", "1 Main St") == []

    def test_description_minimum_length(self):
        assert _fields(validate_position_update("Cafe", "abcd")) == ["description"]
        assert validate_position_update("Cafe", "abcde") == []

    def test_blank_title_and_address(self):
        errors = validate_position_create("   ", "Nice spot", "")
        assert _fields(errors) == ["title", "address"]
        assert errors[0].message == "Title must not be empty."

    def test_update_ignores_address(self):
        assert validate_position_update("Cafe", "Nice spot") == []


class TestSignupRules:

    def test_valid_signup(self):
        assert validate_signup("Max", "max@example.com", "secret123") == []

    def test_all_fields_invalid(self):
        errors = validate_signup("", "max@", "12345")
        assert _fields(errors) == ["name", "email", "password"]
        assert errors[2].message == "Password must be at least 6 characters long."

    def test_normalize_email_lowercases(self):
        assert normalize_email("Max@Example.COM") == "max@example.com"

    def test_normalize_email_rejects_garbage(self):
        with pytest.raises(EmailNotValidError):
            normalize_email("not an email")


class TestRaiseForErrors:

    def test_no_errors_passes(self):
        raise_for_errors([])

    def test_errors_are_reported(self):
        errors = [FieldError("title", "Title must not be empty.")]

        with pytest.raises(ValidationError) as exc_info:
            raise_for_errors(errors)

        assert exc_info.value.message == "Invalid inputs passed, please check your data."
        assert exc_info.value.context["fields"] == [
            {"field": "title", "message": "Title must not be empty."}
        ]

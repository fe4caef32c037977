"""
Pinboard Backend: Request Field Validation
===========================================

What:  One validation function per mutating endpoint. Each returns a list of
       FieldError; an empty list means the input is acceptable.
How:   Routes call the matching function before any service or database
       work and raise ValidationError (422) with the collected errors.
Who:   routes/positions.py and routes/users.py.

Rules:
    Position create:  title not empty, description >= 5 chars, address not empty
    Position update:  title not empty, description >= 5 chars
    Signup:           name not empty, valid email, password >= 6 chars
"""

from typing import List, Optional

from email_validator import EmailNotValidError, validate_email

from pinboard.exceptions import FieldError, ValidationError

DESCRIPTION_MIN_LENGTH = 5
PASSWORD_MIN_LENGTH = 6


def _require_text(field: str, value: Optional[str]) -> Optional[FieldError]:
    if value is None or not value.strip():
        return FieldError(field, f"{field.capitalize()} must not be empty.")
    return None


def _require_min_length(field: str, value: Optional[str], minimum: int) -> Optional[FieldError]:
    if value is None or len(value) < minimum:
        return FieldError(
            field, f"{field.capitalize()} must be at least {minimum} characters long."
        )
    return None


def validate_position_update(title: Optional[str], description: Optional[str]) -> List[FieldError]:
    """Checks shared by create and update: title and description."""
    errors = [
        _require_text("title", title),
        _require_min_length("description", description, DESCRIPTION_MIN_LENGTH),
    ]
    return [error for error in errors if error is not None]


def validate_position_create(
    title: Optional[str],
    description: Optional[str],
    address: Optional[str],
) -> List[FieldError]:
    errors = validate_position_update(title, description)
    address_error = _require_text("address", address)
    if address_error:
        errors.append(address_error)
    return errors


def normalize_email(email: str) -> str:
    """
    Return the canonical form of an email address.

    Raises EmailNotValidError for syntactically invalid addresses. The
    deliverability (DNS) check is disabled; only syntax is validated.
    """
    result = validate_email(email, check_deliverability=False)
    return result.normalized.lower()


def validate_signup(
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
) -> List[FieldError]:
    errors = []
    name_error = _require_text("name", name)
    if name_error:
        errors.append(name_error)

    try:
        normalize_email(email or "")
    except EmailNotValidError:
        errors.append(FieldError("email", "Email must be a valid email address."))

    password_error = _require_min_length("password", password, PASSWORD_MIN_LENGTH)
    if password_error:
        errors.append(password_error)
    return errors


def raise_for_errors(errors: List[FieldError]) -> None:
    """Raise a 422 ValidationError carrying every field error, if any."""
    if errors:
        raise ValidationError(errors=errors)

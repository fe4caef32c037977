"""
Pinboard Backend: Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) map them to
       JSON error responses with the right HTTP status code.
Who:   Raised by services, validators and route dependencies.

Exception Hierarchy:
    PinboardError (base)
    ├── ValidationError              → 422 Unprocessable Entity
    │   ├── AddressNotFoundError     → 422 (geocoder found nothing)
    │   └── UserExistsError          → 422 (email already registered)
    ├── AuthenticationError          → 401 (missing or invalid token)
    ├── NotAuthorizedError           → 401 (requester does not own the resource)
    ├── InvalidCredentialsError      → 403 (login rejected)
    ├── NotFoundError                → 404 Not Found
    ├── FileStorageError             → 500 Internal Server Error
    ├── DatabaseError                → 500 Internal Server Error
    └── GeocodingServiceError        → 500 (upstream geocoder failed)
        └── CircuitBreakerOpenError  → 500 with Retry-After
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


class PinboardError(Exception):
    """
    Base exception for all Pinboard application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, only exposed where a handler
                  explicitly chooses to)
    """

    def __init__(
        self,
        message: str = "An unknown error occurred!",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


@dataclass(frozen=True)
class FieldError:
    """A single failed field check produced by the validators."""

    field: str
    message: str

    def as_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationError(PinboardError):
    """
    Raised when client input fails validation.

    HTTP: 422 Unprocessable Entity

    Example response:
        {
            "error": "validation_error",
            "message": "Invalid inputs passed, please check your data.",
            "details": {"fields": [{"field": "description", "message": "..."}]}
        }
    """

    def __init__(
        self,
        message: str = "Invalid inputs passed, please check your data.",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        errors: Optional[List[FieldError]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        self.errors = list(errors or [])
        if self.errors:
            ctx["fields"] = [error.as_dict() for error in self.errors]
        super().__init__(message=message, context=ctx)
        self.field = field


class AddressNotFoundError(ValidationError):
    """The geocoder returned no coordinates for the submitted address."""

    def __init__(self, address: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Could not find location for the specified address.",
            field="address",
            context={**(context or {}), "address": address},
        )


class UserExistsError(ValidationError):
    """Signup with an email address that is already registered."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="User exists already, please login instead.",
            field="email",
            context=context,
        )


class AuthenticationError(PinboardError):
    """
    Raised by the authorization gate.

    When: No Authorization header, a malformed header, or a token that is
          expired or fails signature verification.
    HTTP: 401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication failed!",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotAuthorizedError(PinboardError):
    """
    Raised when an authenticated requester acts on a resource they do not own.

    HTTP: 401 Unauthorized. Nothing is mutated when this is raised.
    """

    def __init__(
        self,
        message: str = "You are not allowed to modify this resource.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidCredentialsError(PinboardError):
    """Login with an unknown email or a wrong password. HTTP: 403 Forbidden."""

    def __init__(
        self,
        message: str = "Invalid credentials, could not log you in.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class TokenSigningError(PinboardError):
    """
    An access token could not be issued.

    When: JWT_KEY is empty or PyJWT rejects the signing key.
    HTTP: 500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Could not issue an access token, please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PinboardError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that into
    NotFoundError so the handler can answer 404 with the service's message.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"Could not find {resource} for the provided id."
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class FileStorageError(PinboardError):
    """
    Raised when file system operations fail (disk full, permission denied).

    HTTP: 500. The message is generic; the path and OS error stay in context.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(PinboardError):
    """
    Raised when a database read or write fails unexpectedly.

    HTTP: 500. The message is the operation-specific "...please try again"
    text chosen by the service; driver details are only logged.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class GeocodingServiceError(PinboardError):
    """
    Raised when the geocoding provider fails after all retries.

    HTTP: 500. `retry_after` (seconds) is sent as a Retry-After header when set.
    """

    def __init__(
        self,
        message: str = "Could not resolve the address right now, please try again later.",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(GeocodingServiceError):
    """
    Raised when the geocoding circuit breaker is OPEN.

    How the circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for recovery_timeout seconds)
        → After the timeout → HALF-OPEN (allow one test call)
        → Test succeeds → CLOSED; test fails → OPEN again
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "Address lookup is temporarily unavailable due to repeated failures. "
            f"Please try again in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, retry_after=recovery_time, context=ctx)
        self.recovery_time = recovery_time

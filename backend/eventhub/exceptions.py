"""
EventHub Backend — Custom Exception Hierarchy
===============================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    EventHubError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── UnauthorizedError        → 401 Unauthorized (no / wrong credentials)
    ├── ForbiddenError           → 403 Forbidden (bad token, unconfirmed email)
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict (duplicate email, double booking)
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── DatabaseError            → 500 Internal Server Error
    ├── FileStorageError         → 500 Internal Server Error
    └── NotificationError        → never rendered; workflows log and swallow it

Design Decision:
    Services raise typed exceptions instead of returning result objects.
    Each failure kind maps to exactly one HTTP status, so the routes stay
    free of error branching and every component reports failures the same way.
"""

from typing import Any, Dict, Optional


class EventHubError(Exception):
    """
    Base exception for all EventHub application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only for client errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(EventHubError):
    """
    Raised when client input fails validation.

    When:    Missing required fields, unparsable dates, unknown status values,
             gallery over capacity, deleting a service that still has bookings.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnauthorizedError(EventHubError):
    """
    Raised when credentials are absent or do not match.

    When:    No bearer token on a protected route; unknown email or wrong
             password at login.
    HTTP:    401 Unauthorized (with WWW-Authenticate: Bearer)
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(EventHubError):
    """
    Raised when credentials are present but not acceptable.

    When:    Token signature invalid or token expired; login attempted before
             the email address was confirmed.
    HTTP:    403 Forbidden

    Kept distinct from UnauthorizedError so clients can tell "log in" apart
    from "your session is bad" and "confirm your email first".
    """

    def __init__(
        self,
        message: str = "Access denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(EventHubError):
    """
    Raised when a requested resource does not exist.

    When:    GET /api/services/{id} with an unknown id, gallery entry not found.
    HTTP:    404 Not Found

    SQLAlchemy returns None for missing records; services convert that None
    into NotFoundError so HTTP concerns stay out of the query code.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(EventHubError):
    """
    Raised when a write would break a uniqueness rule.

    When:    Registering an email that already exists; booking a service on a
             day that already holds a non-cancelled booking (whether caught by
             the availability check or by the database's unique index).
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The request conflicts with existing data",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(EventHubError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic. Detailed error
        info (SQL, constraint names) is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(EventHubError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, MIME detection unavailable.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotificationError(EventHubError):
    """
    Raised by notifiers when a message could not be delivered.

    Notifications are best-effort: the booking and registration workflows
    catch this, log it, and carry on. It never reaches an HTTP handler.
    """

    def __init__(
        self,
        message: str = "Notification could not be delivered",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(EventHubError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after

"""
Chirp Backend — Custom Exception Hierarchy
============================================

What:  Typed errors for every failure a Chirp request can end in.
How:   Each error carries a client-safe message, a context dict for the
       logs and the HTTP status it maps to. main.register_exception_handlers
       turns them into the {error, message, details, request_id} body.
Who:   Raised by services, the session dependency and the media hosts.

Exception Hierarchy:
    ChirpError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── UnauthorizedError        → 401 Unauthorized (missing/invalid/expired session)
    ├── ForbiddenError           → 403 Forbidden (authenticated, not entitled)
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict (username/email already taken)
    ├── MediaHostError           → 500 Internal Server Error (image upload/delete failed)
    ├── CircuitBreakerOpenError  → 503 Service Unavailable (media host circuit open)
    ├── DatabaseError            → 500 Internal Server Error
    └── RateLimitExceededError   → 429 Too Many Requests

Propagation rule:
    Services raise these and let them pass through unchanged. Only
    SQLAlchemyError is translated (into DatabaseError); anything else
    reaches the catch-all handler as an unexpected 500.
"""

from typing import Any, Dict, Optional


class ChirpError(Exception):
    """
    Base exception for all Chirp application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; only some handlers return it)
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ChirpError):
    """
    Raised when client input fails validation.

    When:    Malformed IDs, self-follow, password change rules, bad image data.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Invalid post ID",
            "details": {"field": "post_id"}
        }
    """

    status_code = 400

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


class UnauthorizedError(ChirpError):
    """
    Raised when the session is missing, invalid, or expired, or when
    credentials do not match.

    HTTP:    401 Unauthorized

    Login failures always use the same message whether the username or the
    password was wrong.
    """

    status_code = 401

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(ChirpError):
    """
    Raised when an authenticated user acts on something they do not own.

    When:    Deleting another user's post or notification.
    HTTP:    403 Forbidden
    """

    status_code = 403

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ChirpError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown username, post ID, notification ID.
    HTTP:    404 Not Found

    SQLAlchemy returns None for missing records (not an exception); the
    service layer converts None into this exception.
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(ChirpError):
    """
    Raised when a write would violate a uniqueness constraint.

    When:    Signup or profile update with a username/email that already exists.
    HTTP:    409 Conflict
    """

    status_code = 409

    def __init__(
        self,
        message: str = "Username or email already taken",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class MediaHostError(ChirpError):
    """
    Raised when the media host fails to store or delete an image.

    When:    After tenacity retries are exhausted, or the host rejected the image.
    HTTP:    500 Internal Server Error

    Response message is generic; the host's status and body are logged only.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Image upload failed. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CircuitBreakerOpenError(ChirpError):
    """
    Raised when the media host circuit breaker is in OPEN state.

    When:    After cb_failure_threshold consecutive failures (default: 5).
    HTTP:    503 Service Unavailable

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for recovery_timeout seconds)
        → After timeout → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED
        → If test fails → OPEN again
    """

    status_code = 503

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Image service is temporarily unavailable due to repeated failures. "
            f"Please retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class DatabaseError(ChirpError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic. Detailed error
    info (statement, constraint name) is logged server-side only.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(ChirpError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests
    """

    status_code = 429

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

"""
Ecol Backend: Custom Exception Hierarchy
========================================

What:  Application-specific exceptions for the error scenarios of the API.
Why:   Targeted handling with the right HTTP status and a user-safe message,
       without leaking internal details to the client.
How:   Each exception carries a message and an optional context dict.
       Global handlers (registered in main.py) turn them into JSON bodies.

Exception Hierarchy:
    EcolError (base)
    ├── ValidationError          → 400 Bad Request
    ├── NotFoundError            → 400 Bad Request (kept for client compatibility)
    ├── FileStorageError         → 500 Internal Server Error
    ├── DatabaseError            → 500 Internal Server Error
    └── RateLimitExceededError   → 429 Too Many Requests
"""

from typing import Any, Dict, Optional


class EcolError(Exception):
    """
    Base exception for all Ecol application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where the handler allows)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(EcolError):
    """
    Raised when client input fails validation.

    When:    Malformed item id list, unknown item ids, invalid point body,
             unsupported upload type or size.
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


class NotFoundError(EcolError):
    """
    Raised when a requested resource does not exist.

    The web client treats any 400 on GET /points/{id} as "Point not found",
    so the handler answers 400 rather than 404.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class FileStorageError(EcolError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, upload directory not writable,
             content type detection unavailable.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(EcolError):
    """
    Raised when database operations fail unexpectedly.

    The client always receives a generic message; the SQL error is logged
    server-side through `context`.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(EcolError):
    """Raised when a client exceeds the per-IP request rate limit (HTTP 429)."""

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

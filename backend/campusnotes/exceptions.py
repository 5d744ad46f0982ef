"""
CampusNotes Backend: Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every expected failure.
Why:   Targeted error handling with appropriate HTTP status codes and
       user-friendly messages, without leaking internal details.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) turn them into
       structured JSON error responses.

Exception Hierarchy:
    CampusNotesError (base)
    ├── ValidationError          → 400 Bad Request
    │   └── EmptySelectionError  → 400 Bad Request (nothing selected)
    ├── AuthenticationError      → 401 Unauthorized
    ├── RoleDeniedError          → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    └── StorageError             → 500 Internal Server Error
        ├── DatabaseError        → metadata transaction failed
        └── ObjectStoreError     → blob store call or blob fetch failed

Propagation Policy:
    Validation, auth, role and not-found errors are expected outcomes: they
    are reported directly and never trigger retries. StorageError aborts the
    current operation; inside a cascade delete the transaction is rolled back
    first. Blob deletion failures after a committed delete are logged by the
    services and never raised.
"""

from typing import Any, Dict, Optional


class CampusNotesError(Exception):
    """
    Base exception for all CampusNotes application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but not returned for 5xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CampusNotesError):
    """
    Raised when client input fails validation.

    When:    Malformed identifier, missing required field, duplicate email or
             employee id, taxonomy references that do not belong together.
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


class EmptySelectionError(ValidationError):
    """Raised when an operation that needs at least one item received none."""

    def __init__(
        self,
        message: str = "No notes selected",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, field=field, context=context)


class AuthenticationError(CampusNotesError):
    """
    Raised when the request carries no usable bearer token.

    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RoleDeniedError(CampusNotesError):
    """
    Raised when the authenticated caller lacks the role an operation needs.

    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        required: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if required:
            ctx["required_role"] = required
        super().__init__(message=message, context=ctx)


class NotFoundError(CampusNotesError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that None into
    NotFoundError so routes never deal with missing-row checks.
    HTTP:    404 Not Found
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
            if resource_id:
                message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class StorageError(CampusNotesError):
    """
    Raised when the metadata store or the object store fails.

    HTTP:    500 Internal Server Error

    Security Note:
        The message is generic. Driver messages, SQL and bucket names stay in
        `context`, which is only logged server-side.
    """

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(StorageError):
    """A metadata query or transaction failed; the transaction was rolled back."""

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ObjectStoreError(StorageError):
    """An object store call (presign, delete) or a blob fetch failed."""

    def __init__(
        self,
        message: str = "File storage is temporarily unavailable. Please try again later.",
        key: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if key:
            ctx["key"] = key
        super().__init__(message=message, context=ctx)
        self.key = key

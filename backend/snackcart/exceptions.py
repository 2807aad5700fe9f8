"""
SnackCart Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions shared by the server and the client.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) translate the
       server-side ones into JSON error responses; the client transport raises
       the same classes when it decodes an error response.

Exception Hierarchy:
    SnackCartError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── NotFoundError            → 404 Not Found
    ├── StoreError               → 500 Internal Server Error
    ├── FileStorageError         → 500 Internal Server Error
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── TransportError           → client only: no usable server response

ValidationError and NotFoundError are actionable: the view-model shows their
message to the user. StoreError and TransportError are logged and surfaced as
a generic failure notice.
"""

from typing import Any, Dict, Optional


class SnackCartError(Exception):
    """
    Base exception for all SnackCart application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, not returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SnackCartError):
    """
    Raised when input fails validation.

    When:    Missing required snack fields, unparsable or negative price,
             unknown category, unsupported or oversized upload.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "All fields are required",
            "details": {"missing": ["price"]}
        }
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


class NotFoundError(SnackCartError):
    """
    Raised when an operation targets an identifier that does not exist.

    HTTP:    404 Not Found

    The service layer converts SQLAlchemy's `None` result (and malformed ids,
    which can never exist) into this exception.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        message: Optional[str] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource_id = resource_id


class StoreError(SnackCartError):
    """
    Raised when the persistence layer fails.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic. Driver messages,
    SQL and constraint names stay in the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(SnackCartError):
    """
    Raised when writing an uploaded photo to disk fails.

    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(SnackCartError):
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


class TransportError(SnackCartError):
    """
    Raised by the client when no usable response came back.

    When:    Connection refused, timeout expiry, or a body that is not the
             JSON the contract promises.
    """

    def __init__(
        self,
        message: str = "Could not reach the snack service. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

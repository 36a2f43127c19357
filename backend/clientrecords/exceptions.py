"""
Client Records Backend — Custom Exception Hierarchy
=====================================================

What:  Application-specific exceptions, one per failure kind.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching status code.
Who:   Raised by services and dependencies; caught by global handlers.

Every service operation either returns its value or raises one of these.
There is no second error channel.

Exception Hierarchy:
    ClientRecordsError (base)
    ├── ValidationError          → 400 Bad Request (InvalidArgument)
    ├── NotFoundError            → 404 Not Found
    │   └── ClientNotFoundError  → 400 Bad Request (client routes' contract)
    ├── ConflictError            → 406 Not Acceptable
    ├── AuthenticationError      → 401 Unauthorized
    └── InternalError            → 500 Internal Server Error
        ├── DatabaseError
        └── FileStorageError
"""

from typing import Any, Dict, Optional


class ClientRecordsError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        context:     Additional debug info (logged but NOT returned to client)
        status_code: HTTP status the global handler answers with
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ClientRecordsError):
    """
    Raised when client input fails a business rule.

    When:    Unknown search discriminator, missing upload, bad file type or size.
    HTTP:    400 Bad Request
    """

    status_code = 400
    error_code = "validation_error"

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


class NotFoundError(ClientRecordsError):
    """
    Raised when a requested resource does not exist or is outside the
    caller's organization.

    HTTP:    404 Not Found
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ClientNotFoundError(NotFoundError):
    """
    Client lookup miss on the client record routes.

    HTTP:    400 Bad Request. The client routes have always answered a
             missing record with 400 and the frontend keys off it.
    """

    status_code = 400

    def __init__(self, client_id: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            resource="client",
            resource_id=client_id,
            message="Client not found",
            context=context,
        )


class ConflictError(ClientRecordsError):
    """
    Raised when an operation is refused because of existing relationships.

    When:    Deleting a client that is still an attendee of an org event.
    HTTP:    406 Not Acceptable
    """

    status_code = 406
    error_code = "conflict"

    def __init__(
        self,
        message: str = "The request conflicts with existing records",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthenticationError(ClientRecordsError):
    """
    Raised when the bearer token is missing, malformed, expired or forged.

    HTTP:    401 Unauthorized (with WWW-Authenticate: Bearer)
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Could not validate credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InternalError(ClientRecordsError):
    """
    Store or filesystem failure. The message returned to the client is
    generic; the underlying error is kept in context and logged.

    HTTP:    500 Internal Server Error
    """

    status_code = 500
    error_code = "server_error"


class DatabaseError(InternalError):
    """A database query, insert, update or delete failed."""

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(InternalError):
    """Could not write, read or delete a photo on the uploads volume."""

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

"""
User Directory API: Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for the failure modes of the user routes.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return the standard response envelope with the matching status code.
Who:   Raised by the user service and the database layer; caught by handlers.

Exception Hierarchy:
    UserAPIError (base)                → 500
    ├── ValidationError                → 400 Bad Request
    ├── NotFoundError                  → 404 Not Found
    └── StoreError                     → 500 Internal Server Error
        ├── InvalidIdentifierError     → 500 (token is not a store identifier)
        └── StoreTimeoutError          → 500 (operation budget expired)

Unlike a typical public API, the message of every exception here is
returned to the caller verbatim in `data.data` of the envelope.
"""

from typing import Any, Dict, Optional


class UserAPIError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  Error description, returned in the response payload
        context:  Additional debug info (logged, not returned)
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(UserAPIError):
    """
    Raised when the request body is malformed or a required field is missing.

    HTTP:    400 Bad Request
    When:    Invalid JSON, a missing key, or an empty string in one of
             name / dob / address / description.
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


class NotFoundError(UserAPIError):
    """
    Raised when a mutation targets an identifier that matches no record.

    HTTP:    404 Not Found
    When:    DELETE or PUT /user/{id} where nothing matched.
    """

    status_code = 404

    def __init__(
        self,
        message: str = "User with specified ID not found!",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class StoreError(UserAPIError):
    """
    Raised when a store operation fails.

    HTTP:    500 Internal Server Error
    When:    Connection lost, query failure, lookup miss on GET /user/{id}.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidIdentifierError(StoreError):
    """Raised when a path token cannot be parsed as a store identifier."""

    def __init__(self, token: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["token"] = token
        super().__init__(
            message=f"the provided identifier '{token}' is not a valid user ID",
            context=ctx,
        )
        self.token = token


class StoreTimeoutError(StoreError):
    """Raised when a store operation exceeds its time budget."""

    def __init__(
        self,
        operation: str,
        timeout: float,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"operation": operation, "timeout": timeout})
        super().__init__(
            message=f"store operation '{operation}' timed out after {timeout:g}s",
            context=ctx,
        )
        self.operation = operation
        self.timeout = timeout

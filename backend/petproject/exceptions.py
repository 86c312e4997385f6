"""
PetProject Backend - Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions shared by the store layer, the services
       and the HTTP surface.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) translate them
       into structured JSON error responses with the matching status code.
Who:   Raised by document store backends and services; caught by handlers.

Exception Hierarchy:
    PetProjectError (base)
    ├── InvalidArgumentError     → 400 Bad Request (malformed username, self-follow, bad cursor)
    │   └── ValidationError      → 400 Bad Request (upload type/size, field-level)
    ├── AuthenticationRequiredError → 401 Unauthorized (no caller identity)
    ├── PermissionDeniedError    → 403 Forbidden (delete by non-owner)
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict (username taken, document exists)
    ├── TransientStoreError      → 503 Service Unavailable (store unreachable)
    ├── BlobStorageError         → 500 Internal Server Error
    ├── LLMServiceError          → 503 Service Unavailable (retry later)
    └── CircuitBreakerOpenError  → 503 Service Unavailable (circuit open)

The store layer never retries. TransientStoreError is surfaced unmodified and
the caller owns the retry policy.
"""

from typing import Any, Dict, Optional


class PetProjectError(Exception):
    """
    Base exception for all PetProject application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class InvalidArgumentError(PetProjectError):
    """
    Raised when a caller passes an argument the operation cannot accept.

    When:    Malformed username, self-follow, page size out of range,
             undecodable pagination cursor, draft violating a model rule.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Invalid argument",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ValidationError(InvalidArgumentError):
    """
    Raised when uploaded content fails validation.

    When:    Media type not allowed, file empty or over the size limit.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, field=field, context=context)


class AuthenticationRequiredError(PetProjectError):
    """
    Raised when a request that acts on behalf of an account carries no
    X-Account-ID header.

    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Sign in to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(PetProjectError):
    """
    Raised when the requester is not allowed to act on a resource.

    When:    Deleting a post or question owned by another account.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PetProjectError):
    """
    Raised when a requested document does not exist.

    The document store returns a snapshot with exists=False for reads; services
    convert that into NotFoundError. Backends raise it directly for updates and
    must-exist deletes against missing documents.
    HTTP:    404 Not Found
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
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(PetProjectError):
    """
    Raised when a create-if-absent write finds an existing document.

    When:    Username already reserved (by anyone, including the caller),
             account already has a permanent username, follow edge exists.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class TransientStoreError(PetProjectError):
    """
    Raised when the document store is unreachable or aborted the operation.

    When:    Network failure, deadline exceeded, contention abort.
    HTTP:    503 Service Unavailable with Retry-After

    No partial state is left behind: batches either commit or fail as a unit.
    """

    def __init__(
        self,
        message: str = "The data store is temporarily unavailable. Please try again.",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class BlobStorageError(PetProjectError):
    """
    Raised when a media upload or delete fails in the blob store.

    HTTP:    500 Internal Server Error

    Deletes after a document removal are best-effort: services log this error
    and continue rather than propagate it.
    """

    def __init__(
        self,
        message: str = "Media storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LLMServiceError(PetProjectError):
    """
    Raised when the text-generation service (Gemini) fails after all retries,
    or returns output that cannot be interpreted.

    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "AI service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(PetProjectError):
    """
    Raised when the circuit breaker around the text-generation client is OPEN.

    CLOSED → (threshold failures) → OPEN → (recovery timeout) → HALF_OPEN
    → success → CLOSED, failure → OPEN.
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"AI service is temporarily unavailable due to repeated failures. "
            f"The service will automatically retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time

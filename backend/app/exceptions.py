"""
NoteMark Backend - Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for every failure the pipeline can report.
How:   Each exception carries a client-safe message, a machine-readable `code`
       and an optional context dict. Global exception handlers (main.py) map
       them to HTTP status codes; the note pipeline wraps them in `Err` results.
Who:   Raised by services and repositories; caught by the pipeline and handlers.

Exception Hierarchy:
    NoteMarkError (base)
    ├── ValidationError                   → 400 Bad Request
    │   ├── InvalidFileTypeError          → 400 (not a .md upload)
    │   └── DecodeError                   → 400 (bytes not valid in the fixed encoding)
    ├── NotFoundError                     → 404 Not Found
    ├── RemoteServiceUnavailableError     → 503 Service Unavailable
    │   └── CircuitBreakerOpenError       → 503 (failing fast)
    ├── RemoteResponseMalformedError      → 502 Bad Gateway
    ├── GrammarCheckFailedError           → 500 Internal Server Error
    ├── DatabaseError                     → 500 Internal Server Error
    └── InternalError                     → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class NoteMarkError(Exception):
    """
    Base exception for all NoteMark application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for server errors)
        code:     Machine-readable error kind
    """

    code = "error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NoteMarkError):
    """
    Raised when client input fails validation (HTTP 400).

    When: upload too large, wrong file type, undecodable bytes.
    """

    code = "validation_error"

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


class InvalidFileTypeError(ValidationError):
    """Raised when an uploaded filename does not end in `.md`."""

    code = "invalid_file_type"

    def __init__(self, filename: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["filename"] = filename
        super().__init__(
            message="Invalid file type. Only .md files are supported.",
            field="file",
            context=ctx,
        )


class DecodeError(ValidationError):
    """
    Raised when uploaded bytes are not valid in the configured encoding.

    The decoder never guesses another encoding and never substitutes a
    placeholder text, so this is the only outcome for bad bytes.
    """

    code = "decode_error"

    def __init__(self, encoding: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["encoding"] = encoding
        super().__init__(
            message=f"The uploaded file is not valid {encoding} text.",
            field="file",
            context=ctx,
        )


class NotFoundError(NoteMarkError):
    """Raised when a requested resource does not exist (HTTP 404)."""

    code = "not_found"

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


class RemoteServiceUnavailableError(NoteMarkError):
    """
    Raised when the remote grammar service cannot be reached or keeps failing.

    When:    Network errors, timeouts, or API errors after retries are exhausted.
    HTTP:    503 Service Unavailable, with Retry-After when known.
    """

    code = "remote_service_unavailable"

    def __init__(
        self,
        message: str = "The AI grammar service is temporarily unavailable. Please try again later.",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(RemoteServiceUnavailableError):
    """
    Raised while the circuit breaker around the remote service is OPEN.

    CLOSED → (threshold consecutive failures) → OPEN
    OPEN   → (recovery timeout elapsed)       → HALF_OPEN (one trial call)
    HALF_OPEN → success → CLOSED, failure → OPEN
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(
            message=(
                "The AI grammar service is temporarily unavailable due to repeated failures. "
                f"Please retry in approximately {recovery_time} seconds."
            ),
            retry_after=recovery_time,
            context=ctx,
        )
        self.recovery_time = recovery_time


class RemoteResponseMalformedError(NoteMarkError):
    """
    Raised when the remote service replied but the reply holds no usable JSON.

    Covers: no `{`/`}` pair, invalid JSON, missing required fields.
    Never retried: a new attempt would hit the same prompt/response contract.
    """

    code = "remote_response_malformed"

    def __init__(
        self,
        message: str = "The AI grammar service returned an unreadable response.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class GrammarCheckFailedError(NoteMarkError):
    """Raised when the local grammar engine itself fails (HTTP 500)."""

    code = "grammar_check_failed"

    def __init__(
        self,
        message: str = "The grammar check could not be completed.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(NoteMarkError):
    """
    Raised when database operations fail unexpectedly (HTTP 500).

    The client message is always generic; SQL details go to the log only.
    """

    code = "database_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InternalError(NoteMarkError):
    """Wraps an unexpected exception caught at the pipeline boundary (HTTP 500)."""

    code = "internal_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

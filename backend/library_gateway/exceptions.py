"""
Library Gateway — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for the few ways a request can fail.
How:   Each exception carries a user-facing message, an optional details
       string and a context dict. Global exception handlers (registered in
       main.py) turn them into JSON responses with the right status code.
Who:   Raised by services and middleware; caught by global handlers.

Exception Hierarchy:
    GatewayError (base)          → 500 Internal Server Error
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── PayloadTooLargeError     → 413 Payload Too Large
    ├── StorageServiceError      → 500 Internal Server Error (S3 call failed)
    └── LLMServiceError          → 503 Service Unavailable (every model failed)

Response body (same shape the frontend already parses):
    {"error": "<message>", "details": "<optional>", "request_id": "<id>"}
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """
    Base exception for all gateway errors.

    Attributes:
        message:  User-facing error description (returned as "error")
        details:  Optional extra text returned as "details"
        context:  Debug info (logged but NOT returned to client)
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(GatewayError):
    """
    Raised when client input fails validation.

    When:    Missing title, missing file, unsupported file type, unparseable
             file URL.
    HTTP:    400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        details: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, details=details, context=ctx)
        self.field = field


class PayloadTooLargeError(GatewayError):
    """
    Raised when an upload or a request body exceeds the configured limit.

    HTTP:    413 Payload Too Large
    """

    status_code = 413

    def __init__(
        self,
        limit: int,
        actual: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        limit_mb = limit / (1024 * 1024)
        message = f"File size exceeds maximum of {limit_mb:.0f}MB"
        ctx = context or {}
        ctx["limit"] = limit
        if actual is not None:
            ctx["actual"] = actual
        super().__init__(message=message, context=ctx)
        self.limit = limit


class StorageServiceError(GatewayError):
    """
    Raised when an S3 operation fails.

    What:    put_object / delete_object / head_bucket raised, or retries on a
             connection error were exhausted.
    HTTP:    500 Internal Server Error

    The route decides the message ("Failed to upload book", ...); the SDK
    error text goes into details so the operator can see it in the browser
    console without reading server logs.
    """

    def __init__(
        self,
        message: str = "Object storage operation failed",
        details: Optional[str] = None,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if code:
            ctx["code"] = code
        super().__init__(message=message, details=details, context=ctx)
        self.code = code


class LLMServiceError(GatewayError):
    """
    Raised when every model in a Gemini fallback chain failed.

    Summary generation never raises this (it has a canned fallback); the
    diagnostic route does, so the operator sees which error came last.
    HTTP:    503 Service Unavailable
    """

    status_code = 503

    def __init__(
        self,
        message: str = "AI service is temporarily unavailable",
        details: Optional[str] = None,
        attempted_models: Optional[list] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if attempted_models:
            ctx["attempted_models"] = attempted_models
        super().__init__(message=message, details=details, context=ctx)
        self.attempted_models = attempted_models or []

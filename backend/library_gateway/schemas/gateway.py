"""
Library Gateway — Pydantic Request/Response Schemas
====================================================

What:  Pydantic models defining the API contract between frontend and backend.
How:   FastAPI uses these models to parse request bodies, serialize responses,
       and generate the OpenAPI documentation.

Field naming:
    The frontend predates this backend and reads camelCase keys (fileUrl,
    bucketExists, ...). Python attributes stay snake_case; the wire names are
    set with aliases and FastAPI serializes by alias.
"""

from typing import Optional

from pydantic import BaseModel, Field


_ALIASED = {"populate_by_name": True}


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class SummaryRequest(BaseModel):
    """
    Book metadata sent by the admin form when it asks for an AI summary.

    title is optional at the schema level so a missing title produces the
    gateway's own 400 message instead of FastAPI's 422.
    """
    title: Optional[str] = Field(default=None, description="Book title (required)")
    author: Optional[str] = Field(default=None, description="Book author")
    category: Optional[str] = Field(default=None, description="Subject category, e.g. 'Electronics'")


class DeleteFileRequest(BaseModel):
    file_url: Optional[str] = Field(
        default=None,
        alias="fileUrl",
        description="Location returned by an earlier upload",
    )

    model_config = _ALIASED


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class SummaryResponse(BaseModel):
    summary: str = Field(description="Three-sentence summary, or the canned fallback")


class UploadResponse(BaseModel):
    """
    What:  Result of a successful upload.
    Who:   Returned by POST /api/upload/book and POST /api/upload/notice.

    The frontend stores fileUrl with the book/notice record and sends it back
    to DELETE /api/delete-file when the record is removed.
    """
    message: str = Field(description="Human-readable success message")
    file_url: str = Field(alias="fileUrl", description="Public URL of the stored object")
    key: str = Field(description="Object storage key, e.g. books/1700000000000_dsp.pdf")

    model_config = _ALIASED


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Liveness only: the process is up and routing requests."""
    status: str = Field(default="OK")
    message: str = Field(default="Backend server is running")


class StorageCheckResponse(BaseModel):
    """Successful bucket probe returned by GET /api/test-aws."""
    status: str = Field(default="AWS Connected")
    bucket_exists: bool = Field(default=True, alias="bucketExists")
    bucket_name: str = Field(alias="bucketName")

    model_config = _ALIASED


class StorageCheckFailure(BaseModel):
    """Failed bucket probe: status names the failure class, error explains it."""
    status: str
    error: str


class GeminiCheckResponse(BaseModel):
    status: str = Field(description="e.g. '✅ gemini-2.0-flash Working!'")
    model: str = Field(description="Model that answered")
    response: str = Field(description="The model's reply to the probe prompt")


class GeminiCheckFailure(BaseModel):
    error: str
    details: Optional[str] = None
    available_models: str = Field(alias="availableModels")

    model_config = _ALIASED


# ══════════════════════════════════════════════════════════════════════════
# Error Response Model: Consistent error format across all endpoints
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "Failed to upload book",
            "details": "An error occurred (AccessDenied) when calling the PutObject operation",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Human-readable error description")
    details: Optional[str] = Field(default=None, description="Underlying error text, when useful")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")

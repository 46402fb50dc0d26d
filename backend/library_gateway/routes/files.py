"""
Library Gateway — File Upload & Delete Routes
==============================================

What:  POST /api/upload/book, POST /api/upload/notice, DELETE /api/delete-file.
How:   Buffer the multipart file in memory, validate it, hand it to
       StorageService, reshape the result as JSON.
Who:   Called by the admin pages when a book or notice is added or removed.

Request Flow (upload):
    1. Client sends multipart/form-data with a 'file' field
    2. Body size was already bounded by BodySizeLimitMiddleware
    3. Read at most max_file_size + 1 bytes (one extra to detect overflow)
    4. StorageService.validate_upload → presence, PDF type, size
    5. StorageService.upload → put_object under books/ or notices/
    6. Return {message, fileUrl, key}
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, File, UploadFile

from library_gateway.config import settings
from library_gateway.exceptions import StorageServiceError, ValidationError
from library_gateway.schemas.gateway import (
    DeleteFileRequest,
    ErrorResponse,
    MessageResponse,
    UploadResponse,
)
from library_gateway.services.storage_service import (
    BOOKS_FOLDER,
    NOTICES_FOLDER,
    storage_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Files"])

_UPLOAD_RESPONSES = {
    200: {"description": "File stored", "model": UploadResponse},
    400: {"description": "No file, or not a PDF", "model": ErrorResponse},
    413: {"description": "File larger than the upload limit", "model": ErrorResponse},
    500: {"description": "Object storage failure", "model": ErrorResponse},
}


async def _store_upload(file: Optional[UploadFile], folder: str, label: str) -> UploadResponse:
    """Shared body of the two upload routes; `label` is "Book" or "Notice"."""
    if file is None:
        raise ValidationError(message="No file uploaded", field="file")

    try:
        content = await file.read(settings.max_file_size + 1)
    finally:
        await file.close()

    storage_service.validate_upload(file.filename, file.content_type, content)

    logger.info("Uploading %s to S3: %s (%d bytes)", label.lower(), file.filename, len(content))
    try:
        stored = await storage_service.upload(
            folder=folder,
            filename=file.filename,
            content=content,
            content_type=file.content_type,
        )
    except StorageServiceError as e:
        raise StorageServiceError(
            message=f"Failed to upload {label.lower()}",
            details=e.details,
            code=e.code,
            context=e.context,
        ) from e

    logger.info("Upload successful: %s", stored.location)
    return UploadResponse(
        message=f"{label} uploaded successfully",
        file_url=stored.location,
        key=stored.key,
    )


@router.post(
    "/upload/book",
    response_model=UploadResponse,
    responses=_UPLOAD_RESPONSES,
    summary="Upload a book PDF",
)
async def upload_book(
    file: Optional[UploadFile] = File(default=None, description="Book PDF, max 10MB"),
) -> UploadResponse:
    return await _store_upload(file, BOOKS_FOLDER, "Book")


@router.post(
    "/upload/notice",
    response_model=UploadResponse,
    responses=_UPLOAD_RESPONSES,
    summary="Upload a notice PDF",
)
async def upload_notice(
    file: Optional[UploadFile] = File(default=None, description="Notice PDF, max 10MB"),
) -> UploadResponse:
    return await _store_upload(file, NOTICES_FOLDER, "Notice")


@router.delete(
    "/delete-file",
    response_model=MessageResponse,
    responses={
        200: {"description": "Object removed (or already absent)", "model": MessageResponse},
        400: {"description": "Missing or unparseable fileUrl", "model": ErrorResponse},
        500: {"description": "Object storage failure", "model": ErrorResponse},
    },
    summary="Delete a stored file by its URL",
)
async def delete_file(
    payload: Optional[DeleteFileRequest] = Body(default=None),
) -> MessageResponse:
    """
    Delete the object behind a URL previously returned by an upload route.

    The key is everything after the host, URL-decoded; see
    StorageService.key_from_location.
    """
    file_url = (payload.file_url or "").strip() if payload else ""
    if not file_url:
        raise ValidationError(message="File URL is required", field="fileUrl")

    try:
        await storage_service.delete(file_url)
    except StorageServiceError as e:
        raise StorageServiceError(
            message="Failed to delete file",
            details=e.details,
            code=e.code,
            context=e.context,
        ) from e

    return MessageResponse(message="File deleted successfully")

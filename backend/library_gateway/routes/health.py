"""
Library Gateway — Health & Diagnostic Routes
=============================================

What:  Liveness and dependency probes.
Who:   Uptime monitors (/api/health) and operators checking a new deployment
       (/api/test-aws, /api/ai/test-gemini-2).

    GET /api/health            process is up; touches no dependency
    GET /api/test-aws          head_bucket on the configured bucket
    GET /api/ai/test-gemini-2  one short prompt through the diagnostic chain

The dependency probes answer 500 when the dependency is unusable so a
deployment script can fail on the status code alone.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from library_gateway.config import settings
from library_gateway.exceptions import LLMServiceError
from library_gateway.schemas.gateway import (
    GeminiCheckFailure,
    GeminiCheckResponse,
    HealthResponse,
    StorageCheckFailure,
    StorageCheckResponse,
)
from library_gateway.services.gemini_service import gemini_service
from library_gateway.services.storage_service import BucketCheck, storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])

_STORAGE_FAILURE_STATUS = {
    BucketCheck.NOT_FOUND: "Bucket Not Found",
    BucketCheck.ACCESS_DENIED: "Access Denied",
    BucketCheck.FAILED: "AWS Connection Failed",
}


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Process liveness check",
)
async def health_check() -> HealthResponse:
    return HealthResponse()


@router.get(
    "/test-aws",
    response_model=StorageCheckResponse,
    responses={500: {"description": "Bucket unreachable", "model": StorageCheckFailure}},
    summary="Check S3 bucket connectivity",
)
async def test_aws():
    """
    Probe the configured bucket with head_bucket.

    Failure statuses:
        Bucket Not Found       the bucket does not exist
        Access Denied          credentials lack s3:ListBucket on it
        AWS Connection Failed  anything else (network, bad credentials, ...)
    """
    check = await storage_service.check_bucket()

    if check.ok:
        return StorageCheckResponse(bucket_name=check.bucket_name)

    logger.error("AWS Test Error: %s", check.error)
    failure = StorageCheckFailure(
        status=_STORAGE_FAILURE_STATUS[check.status],
        error=check.error or "Unknown error",
    )
    return JSONResponse(status_code=500, content=failure.model_dump())


@router.get(
    "/ai/test-gemini-2",
    response_model=GeminiCheckResponse,
    responses={500: {"description": "No Gemini model answered", "model": GeminiCheckFailure}},
    summary="Check which Gemini model answers",
)
async def test_gemini():
    models = settings.diagnostic_models

    try:
        result = await gemini_service.probe()
    except LLMServiceError as e:
        failure = GeminiCheckFailure(
            error="Both Gemini models failed" if len(models) == 2 else "All Gemini models failed",
            details=e.details,
            available_models="Try: " + ", ".join(settings.known_models),
        )
        return JSONResponse(status_code=500, content=failure.model_dump(by_alias=True))

    if result.used_fallback:
        status = f"✅ {result.model} Working ({models[0]} not available)"
    else:
        status = f"✅ {result.model} Working!"

    return GeminiCheckResponse(status=status, model=result.model, response=result.text)

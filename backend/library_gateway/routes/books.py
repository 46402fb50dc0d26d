"""
Library Gateway — Book Summary Route
=====================================

What:  POST /api/books/generate-summary
How:   Reads {title, author, category}, delegates to SummaryService, returns
       {summary}.
Who:   Called by the admin "Add book" form's "Generate with AI" button.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body

from library_gateway.exceptions import GatewayError, ValidationError
from library_gateway.schemas.gateway import ErrorResponse, SummaryRequest, SummaryResponse
from library_gateway.services.summary_service import summary_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/books", tags=["Books"])


@router.post(
    "/generate-summary",
    response_model=SummaryResponse,
    responses={
        200: {"description": "Summary from Gemini or the canned fallback", "model": SummaryResponse},
        400: {"description": "Title missing", "model": ErrorResponse},
        500: {"description": "Unexpected failure", "model": ErrorResponse},
    },
    summary="Generate a short AI summary for a book",
    description=(
        "Tries each configured Gemini model in order. If all of them fail, a "
        "canned summary built from the title and category is returned instead, "
        "so a 200 response always carries usable text."
    ),
)
async def generate_summary(
    payload: Optional[SummaryRequest] = Body(default=None),
) -> SummaryResponse:
    payload = payload or SummaryRequest()

    try:
        result = await summary_service.generate(
            title=payload.title,
            author=payload.author,
            category=payload.category,
        )
    except ValidationError:
        raise
    except Exception as e:
        logger.error("Summary generation error: %s", e, exc_info=True)
        raise GatewayError(message="Failed to generate summary", details=str(e)) from e

    logger.info(
        "AI summary generated successfully (%s)",
        result.model or "canned fallback",
    )
    return SummaryResponse(summary=result.summary)

"""
Library Gateway — Book Summary Service
=======================================

What:  Produces a short summary for a book from its title, author and category.
How:   Runs the Gemini fallback chain from settings.summary_models. The first
       model gets a detailed prompt; later models get a brief one. If every
       model fails, a canned summary built from the metadata is returned.
Who:   Called by POST /api/books/generate-summary.

The canned text means the admin form always receives something to put in the
summary field. A failed chain is logged at ERROR but is not an HTTP error.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from library_gateway.config import settings
from library_gateway.exceptions import LLMServiceError, ValidationError
from library_gateway.services.gemini_service import gemini_service
from library_gateway.services.llm_base import LLMService

logger = logging.getLogger(__name__)


DETAILED_PROMPT = """Create a specific, accurate 3-sentence technical summary for the book "{title}" by {author}.

Research and explain:
- What the actual subject matter is (if it's "Zigbee Introduction", explain what Zigbee technology is)
- Key concepts or topics covered
- Why this is valuable for engineering/computer science students

Be specific and avoid generic phrases. Provide real technical details about the topic."""

BRIEF_PROMPT = 'Briefly summarize what "{title}" by {author} is about for engineering students.'

CANNED_SUMMARY = (
    '"{title}" provides comprehensive coverage of {category} concepts essential for '
    "{institution} students. The book offers both theoretical foundations and practical "
    "applications relevant to modern engineering challenges."
)


@dataclass
class SummaryResult:
    summary: str
    model: Optional[str]  # None when the canned text was used
    fallback_used: bool


class SummaryService:
    """Summary generation over an LLMService fallback chain."""

    def __init__(self, llm: Optional[LLMService] = None):
        self.llm = llm or gemini_service

    @staticmethod
    def build_prompt(attempt: int, title: str, author: Optional[str]) -> str:
        if attempt == 0:
            return DETAILED_PROMPT.format(title=title, author=author or "unknown author")
        return BRIEF_PROMPT.format(title=title, author=author or "unknown author")

    @staticmethod
    def canned_summary(title: str, category: Optional[str]) -> str:
        return CANNED_SUMMARY.format(
            title=title,
            category=category.lower() if category else "technical",
            institution=settings.institution_name,
        )

    async def generate(
        self,
        title: Optional[str],
        author: Optional[str] = None,
        category: Optional[str] = None,
    ) -> SummaryResult:
        """
        Summarize a book.

        Raises:
            ValidationError: title is missing or blank. Model failures never
                raise; they fall through to the canned summary.
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError(message="Book title is required", field="title")

        logger.info("Generating AI summary for: %s", title)

        try:
            result = await self.llm.generate_with_fallback(
                settings.summary_models,
                lambda attempt, _model: self.build_prompt(attempt, title, author),
            )
        except LLMServiceError as e:
            logger.error(
                "Every summary model failed for %s (%s): %s",
                title,
                ", ".join(e.attempted_models),
                e.details,
            )
            return SummaryResult(
                summary=self.canned_summary(title, category),
                model=None,
                fallback_used=True,
            )

        return SummaryResult(
            summary=result.text,
            model=result.model,
            fallback_used=result.used_fallback,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
summary_service = SummaryService()

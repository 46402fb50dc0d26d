"""
Library Gateway — Google Gemini Service Implementation
=======================================================

What:  LLMService backed by the Google Generative AI SDK.
How:   One GenerativeModel per model identifier, created on first use and
       reused. Each call is a single-turn generate_content_async with a
       response timeout.
Who:   Instantiated once at import; used by SummaryService and by the
       /api/ai/test-gemini-2 diagnostic route.

Failures are not retried here. Resilience comes from the fallback chain in
LLMService.generate_with_fallback(): a failing model is skipped in favour of
the next one.
"""

import logging
import time
from typing import Dict

import google.generativeai as genai

from library_gateway.config import settings
from library_gateway.services.llm_base import FallbackResult, LLMService

logger = logging.getLogger(__name__)


class GeminiService(LLMService):
    """
    Google Gemini text generation.

    The probe prompts are short and cheap: the first model is asked something
    that exercises real generation, the fallbacks only need to prove they
    answer at all.
    """

    PRIMARY_PROBE_PROMPT = "Explain what Zigbee technology is in 2 sentences for engineering students."
    FALLBACK_PROBE_PROMPT = "Say 'Hello World' in one word."

    def __init__(self):
        # The SDK keeps the API key in module-level state
        if settings.gemini_api_key and settings.gemini_api_key != "your_gemini_api_key_here":
            genai.configure(api_key=settings.gemini_api_key)

        self._models: Dict[str, "genai.GenerativeModel"] = {}

        logger.info(
            "GeminiService initialized with summary chain=%s",
            " → ".join(settings.summary_models),
        )

    def _model(self, name: str):
        model = self._models.get(name)
        if model is None:
            model = genai.GenerativeModel(name)
            self._models[name] = model
        return model

    async def generate_text(self, model: str, prompt: str) -> str:
        start_time = time.time()

        response = await self._model(model).generate_content_async(
            prompt,
            request_options={"timeout": settings.gemini_timeout},
        )

        # .text raises ValueError when the candidate was blocked
        text = (response.text or "").strip()
        duration_ms = (time.time() - start_time) * 1000

        if not text:
            raise ValueError(f"Empty response from {model}")

        logger.debug("%s answered in %.0fms (%d chars)", model, duration_ms, len(text))
        return text

    async def probe(self) -> FallbackResult:
        """
        Check which diagnostic model answers.

        Raises:
            LLMServiceError: No model in settings.diagnostic_models answered.
        """
        return await self.generate_with_fallback(
            settings.diagnostic_models,
            lambda attempt, _model: (
                self.PRIMARY_PROBE_PROMPT if attempt == 0 else self.FALLBACK_PROBE_PROMPT
            ),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
gemini_service = GeminiService()

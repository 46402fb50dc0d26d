"""
Library Gateway — Abstract LLM Service Interface
=================================================

What:  Abstract base class for text-generation providers, plus the fallback
       chain every caller uses.
How:   Concrete implementations implement generate_text() for one model.
       generate_with_fallback() walks an ordered list of model identifiers
       and returns the first answer.
Who:   GeminiService implements it; SummaryService and the diagnostic route
       call generate_with_fallback().

Fallback chain:
    models = ["gemini-2.0-flash", "gemini-1.5-flash"]

    attempt 1: generate_text(models[0], prompt_for(0, models[0]))
        ok   → return
        fail → log, next
    attempt 2: generate_text(models[1], prompt_for(1, models[1]))
        ok   → return
        fail → LLMServiceError(attempted_models=models, details=<last error>)

    No state is carried between calls: every request starts again from the
    first model.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Sequence

from library_gateway.exceptions import LLMServiceError

logger = logging.getLogger(__name__)

PromptBuilder = Callable[[int, str], str]


@dataclass
class FallbackResult:
    """The answer and which link of the chain produced it."""
    text: str
    model: str
    attempt: int  # 0-based position in the chain

    @property
    def used_fallback(self) -> bool:
        return self.attempt > 0


class LLMService(ABC):
    """
    Abstract interface for text generation.

    Contract:
        - generate_text() makes exactly one call to one model, no retries
        - it returns non-empty text or raises (any exception type)
        - generate_with_fallback() is the only place failures are caught
    """

    @abstractmethod
    async def generate_text(self, model: str, prompt: str) -> str:
        """
        Generate text from a single model.

        Args:
            model:  Provider model identifier, e.g. "gemini-2.0-flash".
            prompt: Complete prompt text.

        Returns:
            Stripped response text. Never empty.

        Raises:
            Any exception from the provider SDK, or ValueError for an empty answer.
        """
        ...

    async def generate_with_fallback(
        self,
        models: Sequence[str],
        prompt_for: PromptBuilder,
    ) -> FallbackResult:
        """
        Try each model in order until one answers.

        Args:
            models:     Ordered model identifiers (the fallback chain).
            prompt_for: Builds the prompt for (position, model). Lets the
                        primary model get a richer prompt than the fallbacks.

        Raises:
            LLMServiceError: Every model failed. details holds the last error.
        """
        last_error = None

        for attempt, model in enumerate(models):
            if attempt:
                logger.info("Trying %s as fallback...", model)
            try:
                text = await self.generate_text(model, prompt_for(attempt, model))
            except Exception as e:
                last_error = e
                logger.error("Generation with %s failed: %s", model, e)
                continue

            logger.info("Generated %d chars with %s", len(text), model)
            return FallbackResult(text=text, model=model, attempt=attempt)

        raise LLMServiceError(
            message="All models in the fallback chain failed",
            details=str(last_error) if last_error else "No models configured",
            attempted_models=list(models),
        )

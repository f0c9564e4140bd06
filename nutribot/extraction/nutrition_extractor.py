"""Nutrition extraction orchestrator.

Per call:

    Idle → CacheCheck ─ hit ──────────────────────────────→ Done (source=cache)
                      └ miss → ModelCall ─ error ─────────→ ExtractionError
                                         └ text → Parse → Validate
                                                   ├ valid → CacheStore → Done
                                                   └ invalid ──────────→ Done

Nothing is kept between calls except the cache. Only the model call
suspends; cache access, parsing and validation are synchronous.
"""

import asyncio
import logging
from typing import List, Optional

from nutribot.data_layer.models import ParsedFood, ValidationOutcome
from nutribot.data_layer.settings import ExtractionSettings
from nutribot.extraction.extraction_errors import ExtractionError, InputError, ParseError
from nutribot.extraction.nutrition_cache import NutritionCache
from nutribot.extraction.nutrition_validator import NutritionValidator
from nutribot.extraction.prompt_builder import PromptBuilder
from nutribot.extraction.response_parser import ResponseParser
from nutribot.providers.completion_provider import CompletionServiceError, TextCompletionService

logger = logging.getLogger(__name__)


class NutritionExtractor:
    """Turns food descriptions into validated nutrition outcomes.

    Usage:
        from nutribot.providers.gemini_provider import GeminiCompletionService

        settings = ExtractionSettings()
        extractor = NutritionExtractor(
            service=GeminiCompletionService.from_env(),
            cache=NutritionCache(ttl_seconds=settings.cache_ttl_seconds),
            settings=settings,
        )

        outcome = await extractor.extract_one("grilled chicken breast", 200)
        outcomes = await extractor.extract_from_message("rice, beans and a fried egg")
    """

    def __init__(
        self,
        service: TextCompletionService,
        cache: NutritionCache,
        settings: Optional[ExtractionSettings] = None,
        validator: Optional[NutritionValidator] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        parser: Optional[ResponseParser] = None,
    ):
        self.settings = settings or ExtractionSettings()
        self.service = service
        self.cache = cache
        self.validator = validator or NutritionValidator(self.settings)
        self.prompt_builder = prompt_builder or PromptBuilder(self.settings)
        self.parser = parser or ResponseParser(self.settings)

    async def extract_one(self, description: str, weight_grams: float) -> ValidationOutcome:
        """Extract nutrition for one food of known weight.

        Returns:
            Valid outcome (from cache or model) or Invalid outcome with reason

        Raises:
            InputError: Empty description or weight outside (0, max_weight_grams]
            ExtractionError: The text-completion call failed or timed out
        """
        self._check_description(description, "description")
        self._check_weight(weight_grams)

        cached = self.cache.get(description, weight_grams)
        if cached is not None:
            logger.debug("Nutrition data retrieved from cache: %r (%sg)", description, weight_grams)
            return cached.from_cache()

        prompt = self.prompt_builder.build_single(description, weight_grams)
        raw_text = await self._complete(prompt, "extract_one", description)

        try:
            parsed = self.parser.parse_single(raw_text, default_weight_grams=weight_grams)
        except ParseError as e:
            logger.warning("Could not parse model response for %r: %s", description, e.reason)
            return ValidationOutcome.invalid(
                e.reason, {"food_name": description, "weight_grams": weight_grams, **e.attempted}
            )

        outcome = self._validate_one(parsed)
        if outcome.is_valid:
            self.cache.set(description, weight_grams, outcome)
        return outcome

    async def extract_from_message(self, message: str) -> List[ValidationOutcome]:
        """Extract every food mentioned in a free-text message.

        One model call for the whole message. Each food is validated on its
        own: invalid foods come back as Invalid outcomes next to valid ones,
        in the order the model listed them. Valid foods are cached under
        their own name and weight.

        Raises:
            InputError: Empty or whitespace-only message
            ExtractionError: The text-completion call failed or timed out
        """
        self._check_description(message, "message")

        prompt = self.prompt_builder.build_batch(message)
        raw_text = await self._complete(prompt, "extract_from_message", message)

        try:
            items = self.parser.parse_batch(raw_text)
        except ParseError as e:
            logger.warning("Could not parse batch response: %s", e.reason)
            return [ValidationOutcome.invalid(e.reason, {"message": message, **e.attempted})]

        outcomes: List[ValidationOutcome] = []
        for item in items:
            if not item.success:
                outcomes.append(ValidationOutcome.invalid(item.error.reason, item.error.attempted))
                continue

            outcome = self._validate_one(item.food)
            if outcome.is_valid:
                self.cache.set(outcome.record.food_name, outcome.record.weight_grams, outcome)
            outcomes.append(outcome)

        valid_count = sum(1 for o in outcomes if o.is_valid)
        logger.info(
            "Extracted %d/%d foods from message", valid_count, len(outcomes)
        )
        return outcomes

    def _validate_one(self, parsed: ParsedFood) -> ValidationOutcome:
        """Single validation path shared by both entry points."""
        outcome = self.validator.validate(parsed.record, parsed.confidence, parsed.notes)
        if outcome.is_valid:
            logger.info(
                "Nutrition extracted: %s (%sg, %s kcal)",
                outcome.record.food_name,
                outcome.record.weight_grams,
                outcome.record.calories,
            )
        else:
            logger.warning("Nutrition rejected for %r: %s", parsed.record.food_name, outcome.reason)
        return outcome

    async def _complete(self, prompt: str, operation: str, description: str) -> str:
        """Call the model with a timeout; any failure becomes ExtractionError."""
        timeout = self.settings.request_timeout_seconds
        try:
            return await asyncio.wait_for(self.service.complete(prompt), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error("Text-completion call timed out after %ss during %s", timeout, operation)
            raise ExtractionError(
                operation, f"timed out after {timeout}s", "TIMEOUT", description
            ) from e
        except CompletionServiceError as e:
            logger.error("Text-completion call failed during %s: %s", operation, e)
            raise ExtractionError(operation, e.message, e.error_code, description) from e
        except Exception as e:
            logger.error("Text-completion call failed during %s", operation, exc_info=True)
            raise ExtractionError(operation, str(e) or e.__class__.__name__, None, description) from e

    @staticmethod
    def _check_description(text: str, field: str) -> None:
        if not isinstance(text, str) or not text.strip():
            raise InputError(field, text, "must not be empty")

    def _check_weight(self, weight_grams: float) -> None:
        max_weight = self.settings.max_weight_grams
        if (
            not isinstance(weight_grams, (int, float))
            or isinstance(weight_grams, bool)
            or not 0 < weight_grams <= max_weight
        ):
            raise InputError(
                "weight_grams", weight_grams, f"must be greater than 0 and at most {max_weight:g} g"
            )

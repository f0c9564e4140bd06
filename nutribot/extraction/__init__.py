"""Extraction pipeline: free-text food descriptions to validated nutrition."""

from nutribot.extraction.extraction_errors import (
    NutritionPipelineError,
    ExtractionErrorCode,
    InputError,
    ExtractionError,
    ParseError,
)

from nutribot.extraction.nutrition_cache import (
    NutritionCache,
    CacheEntry,
    CacheStats,
    make_cache_key,
    run_periodic_cleanup,
)

from nutribot.extraction.nutrition_validator import (
    NutritionValidator,
    calorie_deviation,
    expected_calories,
    check_food_name,
)

from nutribot.extraction.prompt_builder import (
    PromptBuilder,
    REFERENCE_FOODS,
)

from nutribot.extraction.response_parser import (
    ResponseParser,
    BatchItem,
    strip_code_fences,
)

from nutribot.extraction.nutrition_extractor import NutritionExtractor

__all__ = [
    # Error types
    "NutritionPipelineError",
    "ExtractionErrorCode",
    "InputError",
    "ExtractionError",
    "ParseError",
    # Caching
    "NutritionCache",
    "CacheEntry",
    "CacheStats",
    "make_cache_key",
    "run_periodic_cleanup",
    # Validation
    "NutritionValidator",
    "calorie_deviation",
    "expected_calories",
    "check_food_name",
    # Prompts
    "PromptBuilder",
    "REFERENCE_FOODS",
    # Parsing
    "ResponseParser",
    "BatchItem",
    "strip_code_fences",
    # Orchestration
    "NutritionExtractor",
]

"""FastAPI server for the nutrition extraction pipeline."""

import asyncio
import contextlib
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from nutribot.data_layer.models import LoggedMeal, MacroTotals
from nutribot.data_layer.settings import configure_logging, load_settings
from nutribot.extraction.extraction_errors import ExtractionError, InputError
from nutribot.extraction.nutrition_cache import NutritionCache, run_periodic_cleanup
from nutribot.extraction.nutrition_extractor import NutritionExtractor
from nutribot.nutrition.aggregator import NutritionAggregator
from nutribot.nutrition.weekly_report import WeeklyReportBuilder
from nutribot.output.formatters import analysis_to_dict, outcome_to_dict, weekly_report_to_dict
from nutribot.providers.gemini_provider import GeminiCompletionService

logger = logging.getLogger(__name__)


class ExtractRequest(BaseModel):
    description: str
    weight_grams: float


class MessageRequest(BaseModel):
    message: str


class LoggedMealRequest(BaseModel):
    logged_at: Union[datetime, date]
    calories: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0
    meal_id: Optional[str] = None


class WeeklyReportRequest(BaseModel):
    reference_date: Optional[date] = None
    meals: List[LoggedMealRequest] = Field(default_factory=list)


def _to_logged_meal(meal: LoggedMealRequest) -> LoggedMeal:
    return LoggedMeal(
        logged_at=meal.logged_at,
        totals=MacroTotals(
            calories=meal.calories,
            protein_g=meal.protein_g,
            carbs_g=meal.carbs_g,
            fat_g=meal.fat_g,
        ),
        meal_id=meal.meal_id,
    )


def _raise_http(exc: Exception) -> None:
    """Map pipeline exceptions to HTTP errors."""
    if isinstance(exc, InputError):
        raise HTTPException(status_code=422, detail=exc.to_dict()) from exc
    if isinstance(exc, ExtractionError):
        raise HTTPException(status_code=502, detail=exc.to_dict()) from exc
    raise HTTPException(status_code=500, detail=str(exc)) from exc


def create_app(extractor: NutritionExtractor, cache: Optional[NutritionCache] = None) -> FastAPI:
    """Build the API around an already-wired extractor.

    Args:
        extractor: NutritionExtractor used by the extraction routes
        cache: Cache exposed by the cache routes (default: the extractor's)

    Returns:
        FastAPI application
    """
    if cache is None:
        cache = extractor.cache
    interval = extractor.settings.cleanup_interval_seconds
    aggregator = NutritionAggregator()
    report_builder = WeeklyReportBuilder()

    @contextlib.asynccontextmanager
    async def lifespan(_app: FastAPI):
        sweep = asyncio.create_task(run_periodic_cleanup(cache, interval))
        logger.info("Cache cleanup scheduled every %ss", interval)
        try:
            yield
        finally:
            sweep.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweep

    app = FastAPI(title="Nutribot API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Local development
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post("/api/extract")
    async def extract(request: ExtractRequest) -> Dict[str, Any]:
        try:
            outcome = await extractor.extract_one(request.description, request.weight_grams)
        except Exception as exc:
            _raise_http(exc)
        return outcome_to_dict(outcome)

    @app.post("/api/extract/message")
    async def extract_message(request: MessageRequest) -> Dict[str, Any]:
        try:
            outcomes = await extractor.extract_from_message(request.message)
        except Exception as exc:
            _raise_http(exc)
        return {
            "outcomes": [outcome_to_dict(o) for o in outcomes],
            "analysis": analysis_to_dict(aggregator.summarize(outcomes)),
        }

    @app.get("/api/cache/stats")
    def cache_stats() -> Dict[str, int]:
        return cache.stats().to_dict()

    @app.post("/api/cache/cleanup")
    def cache_cleanup() -> Dict[str, int]:
        return {"removed": cache.cleanup_expired()}

    @app.post("/api/reports/weekly")
    def weekly_report(request: WeeklyReportRequest) -> Dict[str, Any]:
        meals = [_to_logged_meal(m) for m in request.meals]
        report = report_builder.build(meals, request.reference_date)
        return weekly_report_to_dict(report)

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    return app


def main(config_path: Optional[str] = None, host: str = "0.0.0.0", port: int = 8000) -> None:
    """Wire the Gemini-backed extractor and serve the API with uvicorn."""
    settings = load_settings(config_path)
    configure_logging(settings.log_level)

    cache = NutritionCache(ttl_seconds=settings.cache_ttl_seconds)
    extractor = NutritionExtractor(
        service=GeminiCompletionService.from_settings(settings),
        cache=cache,
        settings=settings,
    )
    uvicorn.run(create_app(extractor, cache), host=host, port=port)


if __name__ == "__main__":
    main()

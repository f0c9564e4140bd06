"""Data models for the nutrition extraction pipeline."""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class Confidence(Enum):
    """Model-reported certainty about an extracted record."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_string(
        cls, value: Optional[str], aliases: Optional[Dict[str, str]] = None
    ) -> Optional["Confidence"]:
        """Convert a model label (possibly localized) to Confidence.

        Args:
            value: Label returned by the model (e.g. "high", "média")
            aliases: Optional localized label -> canonical label map

        Returns:
            Confidence enum or None if the label is unknown
        """
        if not isinstance(value, str):
            return None
        label = value.strip().lower()
        if aliases:
            label = aliases.get(label, label)
        for level in cls:
            if level.value == label:
                return level
        return None


class OutcomeSource(Enum):
    """Where a valid outcome came from."""

    MODEL = "model"
    CACHE = "cache"


@dataclass(frozen=True)
class NutritionRecord:
    """Raw nutrition values extracted for one food.

    Numeric fields are Optional because the model may omit them; the
    validator rejects any record with a missing required value.
    """

    food_name: str
    weight_grams: Optional[float]
    calories: Optional[float]
    protein_g: Optional[float]
    carbs_g: Optional[float]
    fat_g: Optional[float]
    fiber_g: Optional[float] = None  # optional, not every food reports it

    def to_dict(self) -> Dict[str, Any]:
        return {
            "food_name": self.food_name,
            "weight_grams": self.weight_grams,
            "calories": self.calories,
            "protein_g": self.protein_g,
            "carbs_g": self.carbs_g,
            "fat_g": self.fat_g,
            "fiber_g": self.fiber_g,
        }


@dataclass(frozen=True)
class ParsedFood:
    """One food as read from model output, before validation."""

    record: NutritionRecord
    confidence: Optional[str]  # raw label, checked by the validator
    notes: Optional[str] = None


@dataclass(frozen=True)
class ValidationOutcome:
    """Tagged result of extracting one food.

    Either is_valid=True with record/confidence/source/warnings set,
    or is_valid=False with reason and the attempted fields populated.
    """

    is_valid: bool
    record: Optional[NutritionRecord] = None
    confidence: Optional[Confidence] = None
    source: Optional[OutcomeSource] = None
    warnings: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    reason: Optional[str] = None
    attempted: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def valid(
        cls,
        record: NutritionRecord,
        confidence: Confidence,
        source: OutcomeSource = OutcomeSource.MODEL,
        warnings: Optional[List[str]] = None,
        notes: Optional[str] = None,
    ) -> "ValidationOutcome":
        """Create an accepted outcome."""
        return cls(
            is_valid=True,
            record=record,
            confidence=confidence,
            source=source,
            warnings=list(warnings or []),
            notes=notes,
        )

    @classmethod
    def invalid(cls, reason: str, attempted: Optional[Dict[str, Any]] = None) -> "ValidationOutcome":
        """Create a rejected outcome.

        Args:
            reason: Human-readable explanation of the rejection
            attempted: Best-effort partial data that failed (for diagnostics)
        """
        return cls(is_valid=False, reason=reason, attempted=dict(attempted or {}))

    def from_cache(self) -> "ValidationOutcome":
        """Return a copy re-tagged as a cache hit with no warnings."""
        return replace(self, source=OutcomeSource.CACHE, warnings=[])


@dataclass
class MacroTotals:
    """Summed calories and macros."""

    calories: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0

    def rounded(self, ndigits: int = 2) -> "MacroTotals":
        return MacroTotals(
            calories=round(self.calories, ndigits),
            protein_g=round(self.protein_g, ndigits),
            carbs_g=round(self.carbs_g, ndigits),
            fat_g=round(self.fat_g, ndigits),
        )


@dataclass
class AnalysisItem:
    """A single valid food inside a meal analysis."""

    name: str
    weight_grams: float
    nutrients: MacroTotals
    confidence: Optional[Confidence] = None
    source: Optional[OutcomeSource] = None


@dataclass
class MealAnalysis:
    """Line items and totals for one extracted message."""

    items: List[AnalysisItem]
    totals: MacroTotals
    skipped: int = 0  # outcomes rejected during extraction

    @property
    def has_items(self) -> bool:
        return len(self.items) > 0


@dataclass
class LoggedMeal:
    """A meal the user already logged, as supplied by the persistence layer."""

    logged_at: Union[date, datetime]
    totals: MacroTotals
    meal_id: Optional[str] = None


@dataclass
class DayTotals:
    """Macros for a single calendar day in a weekly report."""

    date: str  # YYYY-MM-DD
    calories: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0
    meal_count: int = 0


@dataclass
class WeeklyTotals:
    """Week-level sums and per-active-day averages."""

    totals: MacroTotals
    averages: MacroTotals
    days_with_meals: int


@dataclass
class WeeklyReport:
    """Monday-based weekly nutrition report."""

    start_date: str
    end_date: str
    days: List[DayTotals]
    weekly: WeeklyTotals

"""Consistency checks for extracted nutrition records.

A record is accepted only when it is physically and arithmetically
plausible:
- every required numeric field is present, finite and non-negative
- weight is in (0, max_weight_grams]
- protein + carbs + fat (+ fiber) fit inside the food's weight
- reported calories match the Atwater estimate from the macros
  (4 kcal/g carbohydrate, 4 kcal/g protein, 9 kcal/g fat)
- the food name is not a placeholder or deny-listed term
- confidence is one of high/medium/low

Calorie deviation policy (configurable via ExtractionSettings):
- strict: deviation above calorie_tolerance_pct is rejected
- lenient: deviation up to calorie_warning_ceiling_pct is accepted with
  a warning, anything above the ceiling is rejected

Comparisons use full precision; only messages are rounded.
"""

import math
import re
from typing import Iterable, List, Optional, Union

from nutribot.data_layer.models import (
    Confidence,
    NutritionRecord,
    OutcomeSource,
    ValidationOutcome,
)
from nutribot.data_layer.settings import ExtractionSettings


KCAL_PER_G_CARBS = 4.0
KCAL_PER_G_PROTEIN = 4.0
KCAL_PER_G_FAT = 9.0

MIN_FOOD_NAME_LENGTH = 3

REQUIRED_NUMERIC_FIELDS = ("weight_grams", "calories", "protein_g", "carbs_g", "fat_g")

_DIGITS_ONLY = re.compile(r"^[\d\s.,]+$")


def _contains_term(text: str, term: str) -> bool:
    return re.search(r"(?<!\w)" + re.escape(term) + r"(?!\w)", text) is not None


def expected_calories(protein_g: float, carbs_g: float, fat_g: float) -> float:
    """Atwater estimate of energy from macros."""
    return (
        carbs_g * KCAL_PER_G_CARBS
        + protein_g * KCAL_PER_G_PROTEIN
        + fat_g * KCAL_PER_G_FAT
    )


def calorie_deviation(calories: float, protein_g: float, carbs_g: float, fat_g: float) -> float:
    """Relative deviation of reported calories from the Atwater estimate.

    Returns:
        |calories - expected| / max(expected, 1), as a fraction
    """
    expected = expected_calories(protein_g, carbs_g, fat_g)
    return abs(calories - expected) / max(expected, 1.0)


def check_food_name(
    name: Optional[str],
    invalid_terms: Iterable[str],
    generic_tokens: Iterable[str],
) -> Optional[str]:
    """Return a rejection reason for a food name, or None if acceptable.

    Rejects empty names, names shorter than three characters, digit-only
    names, exact generic placeholders and names containing a deny-listed
    term as a whole word ("non-alcoholic beer" does not match "alcohol").
    """
    if not isinstance(name, str):
        return "invalid food name: missing"

    trimmed = name.strip()
    if not trimmed:
        return "invalid food name: empty"
    if len(trimmed) < MIN_FOOD_NAME_LENGTH:
        return f"invalid food name: '{trimmed}' is too short"
    if _DIGITS_ONLY.match(trimmed):
        return f"invalid food name: '{trimmed}' is only digits"

    lowered = trimmed.lower()
    if lowered in {token.lower() for token in generic_tokens}:
        return f"invalid food name: '{trimmed}' is a generic placeholder"
    for term in invalid_terms:
        if term and _contains_term(lowered, term.lower()):
            return f"invalid food name: '{trimmed}' contains '{term}'"

    return None


def _is_valid_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value >= 0
    )


class NutritionValidator:
    """Validator for raw nutrition records returned by the model.

    Usage:
        validator = NutritionValidator(settings)
        outcome = validator.validate(record, "medium")
        if not outcome.is_valid:
            print(outcome.reason)
    """

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or ExtractionSettings()

    def validate(
        self,
        record: NutritionRecord,
        confidence: Union[Confidence, str, None],
        notes: Optional[str] = None,
    ) -> ValidationOutcome:
        """Validate one record.

        Args:
            record: Parsed record
            confidence: Confidence enum or the model's raw label
            notes: Optional model notes carried onto a valid outcome

        Returns:
            Valid outcome (source=model, possibly with warnings) or an
            Invalid outcome with the reason and the attempted fields
        """
        attempted = record.to_dict()
        attempted["confidence"] = confidence.value if isinstance(confidence, Confidence) else confidence
        warnings: List[str] = []

        bad_fields = [
            name for name in REQUIRED_NUMERIC_FIELDS
            if not _is_valid_number(getattr(record, name))
        ]
        if record.fiber_g is not None and not _is_valid_number(record.fiber_g):
            bad_fields.append("fiber_g")
        if bad_fields:
            return ValidationOutcome.invalid(
                f"missing or invalid field: {', '.join(bad_fields)}", attempted
            )

        if record.weight_grams <= 0 or record.weight_grams > self.settings.max_weight_grams:
            return ValidationOutcome.invalid(
                f"implausible weight: {record.weight_grams:g} g "
                f"(must be within 0-{self.settings.max_weight_grams:g} g)",
                attempted,
            )

        macro_mass = record.protein_g + record.carbs_g + record.fat_g
        if record.fiber_g is not None and record.fiber_g > record.carbs_g:
            # Fiber reported outside carbohydrate also occupies mass
            macro_mass += record.fiber_g
            warnings.append(
                f"fiber ({record.fiber_g:g} g) exceeds carbohydrate ({record.carbs_g:g} g)"
            )
        if macro_mass > record.weight_grams:
            return ValidationOutcome.invalid(
                f"macros exceed food weight: {macro_mass:.2f} g of macros "
                f"in {record.weight_grams:g} g of food",
                attempted,
            )

        mismatch = self._check_calories(record, warnings)
        if mismatch:
            return ValidationOutcome.invalid(mismatch, attempted)

        name_problem = check_food_name(
            record.food_name,
            self.settings.invalid_name_terms,
            self.settings.generic_name_tokens,
        )
        if name_problem:
            return ValidationOutcome.invalid(name_problem, attempted)

        level = confidence if isinstance(confidence, Confidence) else Confidence.from_string(
            confidence, self.settings.confidence_aliases
        )
        if level is None:
            return ValidationOutcome.invalid(
                f"invalid confidence level: {confidence!r}", attempted
            )
        if level is Confidence.LOW:
            warnings.append("low confidence: values are a rough estimate")

        return ValidationOutcome.valid(
            record=record,
            confidence=level,
            source=OutcomeSource.MODEL,
            warnings=warnings,
            notes=notes,
        )

    def _check_calories(self, record: NutritionRecord, warnings: List[str]) -> Optional[str]:
        """Apply the calorie policy.

        Appends a warning for borderline deviations under the lenient
        policy; returns a rejection reason when the deviation is too large.
        """
        expected = expected_calories(record.protein_g, record.carbs_g, record.fat_g)
        deviation_pct = calorie_deviation(
            record.calories, record.protein_g, record.carbs_g, record.fat_g
        ) * 100
        detail = (
            f"reported {record.calories:g} kcal vs {expected:.2f} kcal "
            f"from macros ({deviation_pct:.2f}% deviation)"
        )

        if deviation_pct <= self.settings.calorie_tolerance_pct:
            return None

        if (
            self.settings.calorie_policy == "lenient"
            and deviation_pct <= self.settings.calorie_warning_ceiling_pct
        ):
            warnings.append(f"calorie-macro deviation: {detail}")
            return None

        return f"calorie-macro mismatch: {detail}"

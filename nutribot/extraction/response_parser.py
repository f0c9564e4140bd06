"""Parsing of raw model text into nutrition records.

The model is asked for bare JSON but often wraps it in code fences or
adds a sentence around it. Parsing therefore:
1. strips code fences (and any text outside the outermost braces)
2. decodes JSON
3. checks required fields and numeric types
4. rejects placeholder or deny-listed food names
5. maps external field names onto NutritionRecord

Every failure raises ParseError. The parser does not decide whether a
failure is retryable; the extractor turns ParseError into an Invalid
outcome.
"""

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from nutribot.data_layer.models import NutritionRecord, ParsedFood
from nutribot.data_layer.settings import ExtractionSettings
from nutribot.extraction.extraction_errors import ParseError
from nutribot.extraction.nutrition_validator import check_food_name


MALFORMED_OUTPUT = "malformed structured output"

NUMERIC_FIELDS = ("weight_grams", "calories", "protein_g", "carbs_g", "fat_g", "fiber_g")

# Alternative spellings seen in model output → canonical field
FIELD_ALIASES = {
    "name": "food_name",
    "food": "food_name",
    "weight_g": "weight_grams",
    "weight": "weight_grams",
    "kcal": "calories",
    "protein": "protein_g",
    "carb_g": "carbs_g",
    "carbohydrates_g": "carbs_g",
    "carbs": "carbs_g",
    "fat": "fat_g",
    "fiber": "fiber_g",
}

_FENCE = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*```", re.DOTALL)


@dataclass
class BatchItem:
    """One entry of a batch response.

    Exactly one of food / error is set. A bad entry does not fail the
    whole batch.
    """
    index: int
    food: Optional[ParsedFood] = None
    error: Optional[ParseError] = None

    @property
    def success(self) -> bool:
        return self.food is not None


def strip_code_fences(raw_text: str) -> str:
    """Remove markdown fences and surrounding chatter from model output."""
    text = (raw_text or "").strip()
    match = _FENCE.search(text)
    if match:
        text = match.group(1).strip()
    if text.startswith("["):
        return text
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        text = text[start:end + 1]
    return text


class ResponseParser:
    """Parser for model nutrition responses.

    Usage:
        parser = ResponseParser(settings)
        food = parser.parse_single(raw_text, default_weight_grams=200)
        items = parser.parse_batch(raw_text)
    """

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or ExtractionSettings()

    def parse_single(
        self, raw_text: str, default_weight_grams: Optional[float] = None
    ) -> ParsedFood:
        """Parse a single-food response.

        Args:
            raw_text: Raw model output
            default_weight_grams: Weight to use if the model omitted it

        Returns:
            ParsedFood

        Raises:
            ParseError: If output is malformed or the entry is unacceptable
        """
        data = self._decode(raw_text)
        if not isinstance(data, dict):
            raise ParseError(MALFORMED_OUTPUT, {"raw": _truncate(raw_text)})
        return self.parse_food(data, default_weight_grams)

    def parse_batch(self, raw_text: str) -> List[BatchItem]:
        """Parse a multi-food response.

        Returns:
            One BatchItem per element of "foods", in model output order

        Raises:
            ParseError: If output is malformed or "foods" is missing/empty
        """
        data = self._decode(raw_text)
        if not isinstance(data, dict):
            raise ParseError(MALFORMED_OUTPUT, {"raw": _truncate(raw_text)})

        foods = data.get("foods")
        if not isinstance(foods, list):
            raise ParseError("missing 'foods' list", {"raw": _truncate(raw_text)})
        if not foods:
            raise ParseError("no foods found in message", {"raw": _truncate(raw_text)})

        items: List[BatchItem] = []
        for index, entry in enumerate(foods):
            if not isinstance(entry, dict):
                items.append(BatchItem(index=index, error=ParseError(
                    MALFORMED_OUTPUT, {"entry": entry}
                )))
                continue
            try:
                items.append(BatchItem(index=index, food=self.parse_food(entry)))
            except ParseError as e:
                items.append(BatchItem(index=index, error=e))
        return items

    def parse_food(
        self, entry: Dict[str, Any], default_weight_grams: Optional[float] = None
    ) -> ParsedFood:
        """Read one food object.

        Raises:
            ParseError: Missing food_name/calories, non-numeric value or a
                rejected food name
        """
        fields = _normalize_keys(entry)
        attempted = {k: fields.get(k) for k in ("food_name",) + NUMERIC_FIELDS if k in fields}

        food_name = fields.get("food_name")
        if not isinstance(food_name, str) or not food_name.strip():
            raise ParseError("missing required field: food_name", attempted)
        if "calories" not in fields or fields["calories"] is None:
            raise ParseError("missing required field: calories", attempted)

        for name in NUMERIC_FIELDS:
            value = fields.get(name)
            if value is not None and not _is_finite_number(value):
                raise ParseError(f"non-numeric field: {name}", attempted)

        name_problem = check_food_name(
            food_name,
            self.settings.invalid_name_terms,
            self.settings.generic_name_tokens,
        )
        if name_problem:
            raise ParseError(name_problem, attempted)

        weight = fields.get("weight_grams")
        if weight is None:
            weight = default_weight_grams

        record = NutritionRecord(
            food_name=food_name.strip(),
            weight_grams=_as_float(weight),
            calories=_as_float(fields.get("calories")),
            protein_g=_as_float(fields.get("protein_g")),
            carbs_g=_as_float(fields.get("carbs_g")),
            fat_g=_as_float(fields.get("fat_g")),
            fiber_g=_as_float(fields.get("fiber_g")),
        )

        confidence = fields.get("confidence")
        notes = fields.get("notes")
        return ParsedFood(
            record=record,
            confidence=confidence if isinstance(confidence, str) else None,
            notes=notes.strip() if isinstance(notes, str) and notes.strip() else None,
        )

    @staticmethod
    def _decode(raw_text: str) -> Any:
        cleaned = strip_code_fences(raw_text)
        try:
            return json.loads(cleaned)
        except (ValueError, TypeError):
            raise ParseError(MALFORMED_OUTPUT, {"raw": _truncate(raw_text)})


def _normalize_keys(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Lowercase keys and fold known aliases onto canonical names."""
    normalized: Dict[str, Any] = {}
    for key, value in entry.items():
        key = str(key).strip().lower()
        canonical = FIELD_ALIASES.get(key, key)
        # Canonical spelling wins over an alias
        if canonical in normalized and key != canonical:
            continue
        normalized[canonical] = value
    return normalized


def _is_finite_number(value: Any) -> bool:
    """True for ints and floats that fit in a finite float (bools excluded)."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


def _as_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def _truncate(text: Optional[str], limit: int = 500) -> str:
    text = text or ""
    return text if len(text) <= limit else text[:limit] + "..."

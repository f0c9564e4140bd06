"""Tests for parsing raw model output into nutrition records."""

import json

import pytest

from nutribot.data_layer.settings import ExtractionSettings
from nutribot.extraction.extraction_errors import ParseError
from nutribot.extraction.response_parser import (
    MALFORMED_OUTPUT,
    ResponseParser,
    strip_code_fences,
)


CHICKEN = {
    "food_name": "Chicken breast",
    "weight_grams": 200,
    "calories": 311,
    "protein_g": 62.0,
    "carbs_g": 0.0,
    "fat_g": 7.0,
    "confidence": "medium",
    "notes": "  average values  ",
}


@pytest.fixture
def parser():
    return ResponseParser(ExtractionSettings())


class TestStripCodeFences:
    """Tests for fence and chatter removal."""

    def test_json_fence(self):
        """Test a ```json fenced block."""
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_fence(self):
        """Test a fence without a language tag."""
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_surrounding_text(self):
        """Test that prose around the object is dropped."""
        assert strip_code_fences('Here you go: {"a": {"b": 2}} Enjoy!') == '{"a": {"b": 2}}'

    def test_bare_json_untouched(self):
        """Test that clean output passes through."""
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'

    def test_none_input(self):
        """Test that None becomes an empty string."""
        assert strip_code_fences(None) == ""


class TestParseSingle:
    """Tests for single-food responses."""

    def test_parses_clean_json(self, parser):
        """Test a well-formed object."""
        parsed = parser.parse_single(json.dumps(CHICKEN))

        assert parsed.record.food_name == "Chicken breast"
        assert parsed.record.weight_grams == 200.0
        assert parsed.record.calories == 311.0
        assert parsed.record.protein_g == 62.0
        assert parsed.record.fiber_g is None
        assert parsed.confidence == "medium"
        assert parsed.notes == "average values"

    def test_parses_fenced_json(self, parser):
        """Test the common ```json wrapping."""
        raw = "```json\n" + json.dumps(CHICKEN) + "\n```"

        assert parser.parse_single(raw).record.food_name == "Chicken breast"

    def test_default_weight_used_when_missing(self, parser):
        """Test that the requested weight fills a missing weight_grams."""
        data = {k: v for k, v in CHICKEN.items() if k != "weight_grams"}

        parsed = parser.parse_single(json.dumps(data), default_weight_grams=150)

        assert parsed.record.weight_grams == 150.0

    def test_field_aliases(self, parser):
        """Test that alternative key spellings are accepted."""
        raw = json.dumps({
            "name": "Banana", "weight": 120, "kcal": 120,
            "protein": 1.7, "carbs": 28.6, "fat": 0.1, "Confidence": "high",
        })

        parsed = parser.parse_single(raw)

        assert parsed.record.food_name == "Banana"
        assert parsed.record.carbs_g == 28.6
        assert parsed.confidence == "high"

    def test_canonical_key_wins_over_alias(self, parser):
        """Test that calories beats kcal when both are present."""
        data = dict(CHICKEN, kcal=999)

        assert parser.parse_single(json.dumps(data)).record.calories == 311.0

    def test_non_json_raises(self, parser):
        """Test that prose without JSON is malformed."""
        with pytest.raises(ParseError) as exc_info:
            parser.parse_single("Sorry, I cannot help with that.")

        assert exc_info.value.reason == MALFORMED_OUTPUT
        assert "raw" in exc_info.value.attempted

    def test_array_top_level_raises(self, parser):
        """Test that a JSON list is not a single food."""
        with pytest.raises(ParseError) as exc_info:
            parser.parse_single("[1, 2, 3]")

        assert exc_info.value.reason == MALFORMED_OUTPUT

    def test_single_object_list_raises(self, parser):
        """Test that a one-element list holding a food is not a single food."""
        with pytest.raises(ParseError) as exc_info:
            parser.parse_single("[" + json.dumps(CHICKEN) + "]")

        assert exc_info.value.reason == MALFORMED_OUTPUT

    def test_fenced_list_raises(self, parser):
        """Test the same list wrapped in a code fence."""
        with pytest.raises(ParseError):
            parser.parse_single("```json\n[" + json.dumps(CHICKEN) + "]\n```")

    def test_missing_food_name(self, parser):
        """Test that food_name is required."""
        data = {k: v for k, v in CHICKEN.items() if k != "food_name"}

        with pytest.raises(ParseError) as exc_info:
            parser.parse_single(json.dumps(data))

        assert exc_info.value.reason == "missing required field: food_name"

    def test_missing_calories(self, parser):
        """Test that calories is required."""
        data = {k: v for k, v in CHICKEN.items() if k != "calories"}

        with pytest.raises(ParseError) as exc_info:
            parser.parse_single(json.dumps(data))

        assert exc_info.value.reason == "missing required field: calories"
        assert exc_info.value.attempted["food_name"] == "Chicken breast"

    def test_numeric_string_rejected(self, parser):
        """Test that "62" is not accepted as a number."""
        data = dict(CHICKEN, protein_g="62")

        with pytest.raises(ParseError) as exc_info:
            parser.parse_single(json.dumps(data))

        assert exc_info.value.reason == "non-numeric field: protein_g"

    def test_boolean_rejected(self, parser):
        """Test that booleans are not numbers."""
        with pytest.raises(ParseError):
            parser.parse_single(json.dumps(dict(CHICKEN, fat_g=True)))

    def test_placeholder_name_rejected(self, parser):
        """Test that "not specified" never becomes a record."""
        with pytest.raises(ParseError) as exc_info:
            parser.parse_single(json.dumps(dict(CHICKEN, food_name="not specified")))

        assert exc_info.value.reason.startswith("invalid food name")

    def test_integer_too_large_for_float(self, parser):
        """Test that a 400-digit calorie value is rejected, not an OverflowError."""
        data = dict(CHICKEN, calories=int("9" * 400))

        with pytest.raises(ParseError) as exc_info:
            parser.parse_single(json.dumps(data))

        assert exc_info.value.reason == "non-numeric field: calories"

    def test_integer_beyond_conversion_limit(self, parser):
        """Test that a 5000-digit literal is a parse failure, not a ValueError."""
        raw = json.dumps(CHICKEN).replace('"calories": 311', '"calories": ' + "1" * 5000)

        with pytest.raises(ParseError) as exc_info:
            parser.parse_single(raw)

        # Interpreters without the int digit limit decode it and fail the float check
        assert exc_info.value.reason in (MALFORMED_OUTPUT, "non-numeric field: calories")

    def test_float_overflowing_to_infinity(self, parser):
        """Test that 1e400 (decoded as inf) is rejected."""
        raw = json.dumps(CHICKEN).replace('"fat_g": 7.0', '"fat_g": 1e400')

        with pytest.raises(ParseError) as exc_info:
            parser.parse_single(raw)

        assert exc_info.value.reason == "non-numeric field: fat_g"

    def test_non_string_confidence_dropped(self, parser):
        """Test that a numeric confidence becomes None for the validator."""
        parsed = parser.parse_single(json.dumps(dict(CHICKEN, confidence=0.9)))

        assert parsed.confidence is None


class TestParseBatch:
    """Tests for multi-food responses."""

    def test_preserves_order(self, parser):
        """Test that items come back in model order."""
        foods = [dict(CHICKEN, food_name=name) for name in ("Rice", "Beans", "Egg fried")]

        items = parser.parse_batch(json.dumps({"foods": foods}))

        assert [item.index for item in items] == [0, 1, 2]
        assert [item.food.record.food_name for item in items] == ["Rice", "Beans", "Egg fried"]

    def test_bad_entry_does_not_fail_batch(self, parser):
        """Test that a placeholder entry becomes a per-item error."""
        foods = [
            dict(CHICKEN, food_name="Rice"),
            dict(CHICKEN, food_name="não especificado"),
            "not an object",
        ]

        items = parser.parse_batch(json.dumps({"foods": foods}))

        assert items[0].success
        assert not items[1].success
        assert items[1].error.reason.startswith("invalid food name")
        assert not items[2].success
        assert items[2].error.reason == MALFORMED_OUTPUT

    def test_oversized_number_does_not_fail_batch(self, parser):
        """Test that an overflowing entry becomes a per-item error."""
        foods = [dict(CHICKEN, food_name="Rice"), dict(CHICKEN, calories=int("9" * 400))]

        items = parser.parse_batch(json.dumps({"foods": foods}))

        assert items[0].success
        assert not items[1].success
        assert items[1].error.reason == "non-numeric field: calories"

    def test_missing_foods_list(self, parser):
        """Test that the wrapper object is required."""
        with pytest.raises(ParseError) as exc_info:
            parser.parse_batch(json.dumps(CHICKEN))

        assert exc_info.value.reason == "missing 'foods' list"

    def test_empty_foods_list(self, parser):
        """Test that a message with no foods is a parse failure."""
        with pytest.raises(ParseError) as exc_info:
            parser.parse_batch('{"foods": []}')

        assert exc_info.value.reason == "no foods found in message"

    def test_malformed_batch(self, parser):
        """Test truncated JSON."""
        with pytest.raises(ParseError) as exc_info:
            parser.parse_batch('{"foods": [{"food_name": "Rice"')

        assert exc_info.value.reason == MALFORMED_OUTPUT

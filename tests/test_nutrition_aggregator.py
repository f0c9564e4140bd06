"""Tests for meal analysis aggregation."""

import pytest

from nutribot.data_layer.models import (
    Confidence,
    NutritionRecord,
    OutcomeSource,
    ValidationOutcome,
)
from nutribot.nutrition.aggregator import NutritionAggregator


def valid(name, weight, calories, protein, carbs, fat, source=OutcomeSource.MODEL):
    record = NutritionRecord(
        food_name=name,
        weight_grams=weight,
        calories=calories,
        protein_g=protein,
        carbs_g=carbs,
        fat_g=fat,
    )
    return ValidationOutcome.valid(record, Confidence.MEDIUM, source=source)


class TestNutritionAggregator:
    """Tests for NutritionAggregator.summarize."""

    def test_sums_valid_items(self):
        """Test totals over two foods."""
        outcomes = [
            valid("Rice", 150, 192.0, 3.8, 42.2, 0.3),
            valid("Fried egg", 50, 90.0, 6.3, 0.4, 7.0, source=OutcomeSource.CACHE),
        ]

        analysis = NutritionAggregator.summarize(outcomes)

        assert analysis.has_items
        assert [item.name for item in analysis.items] == ["Rice", "Fried egg"]
        assert analysis.items[1].source == OutcomeSource.CACHE
        assert analysis.totals.calories == 282.0
        assert analysis.totals.protein_g == pytest.approx(10.1)
        assert analysis.totals.carbs_g == pytest.approx(42.6)
        assert analysis.totals.fat_g == pytest.approx(7.3)
        assert analysis.skipped == 0

    def test_invalid_outcomes_skipped(self):
        """Test that rejections are counted, not summed."""
        outcomes = [
            valid("Rice", 150, 192.0, 3.8, 42.2, 0.3),
            ValidationOutcome.invalid("calorie-macro mismatch"),
        ]

        analysis = NutritionAggregator.summarize(outcomes)

        assert len(analysis.items) == 1
        assert analysis.skipped == 1
        assert analysis.totals.calories == 192.0

    def test_totals_rounded_to_two_decimals(self):
        """Test rounding of floating-point sums."""
        outcomes = [valid("Item one", 10, 0.1, 0.333, 0.0, 0.0) for _ in range(3)]

        analysis = NutritionAggregator.summarize(outcomes)

        assert analysis.totals.calories == 0.3
        assert analysis.totals.protein_g == 1.0

    def test_nothing_valid(self):
        """Test an analysis with no usable foods."""
        analysis = NutritionAggregator.summarize([ValidationOutcome.invalid("no foods found in message")])

        assert not analysis.has_items
        assert analysis.totals.calories == 0.0
        assert analysis.skipped == 1

    def test_empty_input(self):
        """Test an empty outcome list."""
        analysis = NutritionAggregator().summarize([])

        assert analysis.items == []
        assert analysis.skipped == 0

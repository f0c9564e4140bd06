"""Nutrition aggregator for summing extracted foods into a meal analysis."""
from typing import Iterable

from nutribot.data_layer.models import (
    AnalysisItem,
    MacroTotals,
    MealAnalysis,
    ValidationOutcome,
)


class NutritionAggregator:
    """Aggregator for combining extraction outcomes."""

    @staticmethod
    def summarize(outcomes: Iterable[ValidationOutcome]) -> MealAnalysis:
        """Build line items and totals from extraction outcomes.

        Invalid outcomes are counted in ``skipped`` and left out of the
        totals. Totals are rounded to 2 decimals; items keep full precision.

        Args:
            outcomes: Outcomes in extraction order

        Returns:
            MealAnalysis (items empty if nothing was valid)
        """
        items = []
        skipped = 0
        total_calories = 0.0
        total_protein = 0.0
        total_carbs = 0.0
        total_fat = 0.0

        for outcome in outcomes:
            if not outcome.is_valid:
                skipped += 1
                continue

            record = outcome.record
            items.append(AnalysisItem(
                name=record.food_name,
                weight_grams=record.weight_grams,
                nutrients=MacroTotals(
                    calories=record.calories,
                    protein_g=record.protein_g,
                    carbs_g=record.carbs_g,
                    fat_g=record.fat_g,
                ),
                confidence=outcome.confidence,
                source=outcome.source,
            ))
            total_calories += record.calories
            total_protein += record.protein_g
            total_carbs += record.carbs_g
            total_fat += record.fat_g

        totals = MacroTotals(
            calories=total_calories,
            protein_g=total_protein,
            carbs_g=total_carbs,
            fat_g=total_fat,
        ).rounded()

        return MealAnalysis(items=items, totals=totals, skipped=skipped)

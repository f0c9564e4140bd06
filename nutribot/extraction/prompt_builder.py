"""Prompt construction for nutrition extraction.

Prompts are a pure function of their inputs and the builder's settings:
the same description and weight always produce the same string, so
tests can assert on required substrings or full equality.

Every prompt states:
- the literal input text
- the exact JSON output format (field names, types, ranges)
- the 4/4/9 calorie consistency rule and the tolerance
- prohibitions against inventing preparation methods or ingredients
- confidence decision rules
- reference values for a few common foods to anchor scale
"""

import json
from typing import List, Optional, Tuple

from nutribot.data_layer.settings import ExtractionSettings


# (name, calories, protein_g, carbs_g, fat_g) per 100 g
REFERENCE_FOODS: List[Tuple[str, float, float, float, float]] = [
    ("White rice, cooked", 128, 2.5, 28.1, 0.2),
    ("Black beans, cooked", 76, 4.8, 13.6, 0.5),
    ("Chicken breast, grilled", 152, 32.0, 0.0, 2.5),
    ("Whole egg, boiled", 146, 13.3, 0.6, 9.5),
    ("Banana", 100, 1.4, 23.8, 0.1),
    ("French bread", 289, 8.0, 58.6, 3.1),
]

OUTPUT_FIELDS = [
    ("food_name", "string", "specific food name; never a placeholder"),
    ("weight_grams", "number", "portion weight in grams, greater than 0 and at most {max_weight}"),
    ("calories", "integer", "kcal for the whole portion, 0 or more"),
    ("protein_g", "number", "grams of protein, 1 decimal, 0 or more"),
    ("carbs_g", "number", "grams of carbohydrate, 1 decimal, 0 or more"),
    ("fat_g", "number", "grams of fat, 1 decimal, 0 or more"),
    ("fiber_g", "number", "grams of fiber, 1 decimal (optional)"),
    ("confidence", "string", "one of \"high\", \"medium\", \"low\""),
    ("notes", "string", "short optional remark, e.g. \"average values, preparation not stated\""),
]


class PromptBuilder:
    """Builds deterministic extraction prompts.

    Usage:
        builder = PromptBuilder(settings)
        prompt = builder.build_single("grilled chicken breast", 200)
        batch_prompt = builder.build_batch("rice, beans and a fried egg")
    """

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or ExtractionSettings()

    def build_single(self, description: str, weight_grams: float) -> str:
        """Prompt for one food with a known weight."""
        weight = _format_number(weight_grams)
        example = {
            "food_name": "Chicken breast",
            "weight_grams": 200,
            "calories": 311,
            "protein_g": 62.0,
            "carbs_g": 0.0,
            "fat_g": 7.0,
            "confidence": "medium",
            "notes": "average values, preparation not stated",
        }
        sections = [
            "You are an expert nutritionist. Analyse the food below and return accurate nutrition data.",
            f'Food: "{description}"\nWeight: {weight} g',
            "Return ONLY one valid JSON object (no markdown, no code fences) with these fields:\n"
            + self._field_list()
            + f"\nweight_grams must be exactly {weight}.",
            self._consistency_rules(),
            self._fidelity_rules(),
            self._confidence_rules(),
            self._reference_values(),
            "Example of a valid answer:\n" + json.dumps(example, ensure_ascii=False),
        ]
        return "\n\n".join(sections)

    def build_batch(self, message: str) -> str:
        """Prompt for every food mentioned in a free-text message."""
        example = {
            "foods": [
                {
                    "food_name": "White rice, cooked",
                    "weight_grams": 150,
                    "calories": 192,
                    "protein_g": 3.8,
                    "carbs_g": 42.2,
                    "fat_g": 0.3,
                    "confidence": "medium",
                },
                {
                    "food_name": "Whole egg, fried",
                    "weight_grams": 50,
                    "calories": 90,
                    "protein_g": 6.3,
                    "carbs_g": 0.4,
                    "fat_g": 7.0,
                    "confidence": "high",
                },
            ]
        }
        sections = [
            "You are an expert nutritionist. Identify every food the user ate in the message below "
            "and return accurate nutrition data for each one.",
            f'Message: "{message}"',
            "Return ONLY one valid JSON object (no markdown, no code fences) of the form "
            '{"foods": [ ... ]}, where each element has these fields:\n'
            + self._field_list()
            + "\nUse the quantity stated in the message for weight_grams; when none is stated, "
            "use a typical single portion.",
            "Decomposition rules:\n"
            "1. List foods in the same order they are mentioned in the message.\n"
            "2. Split compound foods into their parts: a filled pastry or a sandwich yields "
            "separate entries for the dough/bread and for the filling.\n"
            "3. Do NOT add foods, drinks, sides or condiments that are not mentioned.\n"
            "4. If the message mentions no food at all, return {\"foods\": []}.",
            self._consistency_rules(),
            self._fidelity_rules(),
            self._confidence_rules(),
            self._reference_values(),
            "Example of a valid answer:\n" + json.dumps(example, ensure_ascii=False),
        ]
        return "\n\n".join(sections)

    def _field_list(self) -> str:
        max_weight = _format_number(self.settings.max_weight_grams)
        return "\n".join(
            f'- "{name}" ({kind}): {desc.format(max_weight=max_weight)}'
            for name, kind, desc in OUTPUT_FIELDS
        )

    def _consistency_rules(self) -> str:
        tolerance = _format_number(self.settings.calorie_tolerance_pct)
        return (
            "Consistency rules (mandatory):\n"
            "1. calories must equal carbs_g x 4 + protein_g x 4 + fat_g x 9 "
            f"within {tolerance}%.\n"
            "2. Check this before answering; if it does not hold, correct the macros or the "
            "calories until it does.\n"
            "3. protein_g + carbs_g + fat_g must not exceed weight_grams.\n"
            "4. All values refer to the whole portion, not to 100 g."
        )

    @staticmethod
    def _fidelity_rules() -> str:
        return (
            "Fidelity rules:\n"
            "1. Do NOT invent a preparation method that was not stated (fried, grilled, breaded...).\n"
            "2. Do NOT invent ingredients, sauces or fillings that were not stated.\n"
            "3. When preparation is not stated, use a generic name without preparation "
            '(e.g. "Chicken breast") and average values.\n'
            '4. Never answer with placeholders such as "not specified", "unknown" or "food".'
        )

    @staticmethod
    def _confidence_rules() -> str:
        return (
            "Confidence rules:\n"
            '- "high": the preparation is explicit (e.g. "fried chicken", "grilled breast") '
            "and the food is well catalogued.\n"
            '- "medium": the description is vague or generic, or preparation is not stated.\n'
            '- "low": the estimate is speculative, e.g. regional dishes or homemade recipes '
            "with unknown ingredients."
        )

    @staticmethod
    def _reference_values() -> str:
        lines = [
            f"- {name}: {_format_number(kcal)} kcal, {_format_number(p)} g protein, "
            f"{_format_number(c)} g carbs, {_format_number(f)} g fat"
            for name, kcal, p, c, f in REFERENCE_FOODS
        ]
        return "Reference values per 100 g:\n" + "\n".join(lines)


def _format_number(value: float) -> str:
    """Render 200.0 as "200" and 12.5 as "12.5"."""
    value = float(value)
    return str(int(value)) if value.is_integer() else f"{value:g}"

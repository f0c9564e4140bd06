"""Formatters for extraction output (chat text, Markdown and JSON)."""

import json
from typing import Any, Dict, List, Optional

from nutribot.data_layer.models import (
    MacroTotals,
    MealAnalysis,
    ValidationOutcome,
    WeeklyReport,
)


def _format_grams(value: Optional[float]) -> str:
    """Format a gram amount, dropping a trailing .0 (e.g. "200g", "12.5g")."""
    if value is None:
        return "?g"
    if value == int(value):
        return f"{int(value)}g"
    return f"{value:.1f}".rstrip('0').rstrip('.') + "g"


def format_macro_line(totals: MacroTotals) -> str:
    """Format calories and macros on one line.

    Args:
        totals: MacroTotals object

    Returns:
        String like "330 kcal | P 62.0g | C 0.0g | F 7.0g"
    """
    return (
        f"{totals.calories:.0f} kcal | P {totals.protein_g:.1f}g | "
        f"C {totals.carbs_g:.1f}g | F {totals.fat_g:.1f}g"
    )


def format_outcome_text(outcome: ValidationOutcome) -> str:
    """Format one outcome as a short chat reply.

    Args:
        outcome: ValidationOutcome from the extractor

    Returns:
        Multi-line string; Invalid outcomes show the rejection reason
    """
    if not outcome.is_valid:
        name = outcome.attempted.get("food_name") if outcome.attempted else None
        header = f"❌ Could not register {name}" if name else "❌ Could not register food"
        return f"{header}\nReason: {outcome.reason}"

    record = outcome.record
    lines = [
        f"✅ {record.food_name} ({_format_grams(record.weight_grams)})",
        f"🔥 {record.calories:.0f} kcal",
        f"🥩 Protein: {record.protein_g:.1f}g",
        f"🍞 Carbs: {record.carbs_g:.1f}g",
        f"🥑 Fat: {record.fat_g:.1f}g",
    ]
    if record.fiber_g is not None:
        lines.append(f"🌾 Fiber: {record.fiber_g:.1f}g")
    if outcome.confidence is not None:
        lines.append(f"Confidence: {outcome.confidence.value}")
    for warning in outcome.warnings:
        lines.append(f"⚠️ {warning}")
    return "\n".join(lines)


def format_analysis_markdown(analysis: MealAnalysis) -> str:
    """Format a MealAnalysis as Markdown.

    Args:
        analysis: MealAnalysis from NutritionAggregator

    Returns:
        Formatted Markdown string
    """
    lines = ["# Meal Analysis\n"]

    if not analysis.has_items:
        lines.append("No foods could be identified in this message.")
        if analysis.skipped:
            lines.append(f"\n{analysis.skipped} item(s) were rejected.")
        lines.append("")
        return "\n".join(lines)

    lines.append("## Foods")
    for item in analysis.items:
        lines.append(
            f"- **{item.name}** ({_format_grams(item.weight_grams)}): "
            f"{format_macro_line(item.nutrients)}"
        )
    lines.append("")

    lines.append("## Totals")
    lines.append(f"**Calories:** {analysis.totals.calories:.0f} kcal")
    lines.append(f"**Protein:** {analysis.totals.protein_g:.1f}g")
    lines.append(f"**Carbs:** {analysis.totals.carbs_g:.1f}g")
    lines.append(f"**Fat:** {analysis.totals.fat_g:.1f}g")
    lines.append("")

    if analysis.skipped:
        lines.append(f"⚠️ {analysis.skipped} item(s) were rejected and left out of the totals.")
        lines.append("")

    return "\n".join(lines)


def format_weekly_report_markdown(report: WeeklyReport) -> str:
    """Format a WeeklyReport as a Markdown table plus weekly summary."""
    lines = [f"# Weekly Report ({report.start_date} to {report.end_date})\n"]

    lines.append("| Date | Meals | Calories | Protein | Carbs | Fat |")
    lines.append("|------|-------|----------|---------|-------|-----|")
    for day in report.days:
        lines.append(
            f"| {day.date} | {day.meal_count} | {day.calories:.0f} | "
            f"{day.protein_g:.1f}g | {day.carbs_g:.1f}g | {day.fat_g:.1f}g |"
        )
    lines.append("")

    weekly = report.weekly
    lines.append("## Week Totals")
    lines.append(format_macro_line(weekly.totals))
    lines.append("")
    lines.append(f"## Daily Average ({weekly.days_with_meals} day(s) with meals)")
    lines.append(format_macro_line(weekly.averages))
    lines.append("")

    return "\n".join(lines)


def _macros_to_dict(totals: MacroTotals) -> Dict[str, float]:
    return {
        "calories": totals.calories,
        "protein_g": totals.protein_g,
        "carbs_g": totals.carbs_g,
        "fat_g": totals.fat_g,
    }


def outcome_to_dict(outcome: ValidationOutcome) -> Dict[str, Any]:
    """Format a ValidationOutcome as JSON (for API usage).

    Args:
        outcome: ValidationOutcome from the extractor

    Returns:
        Dictionary ready for JSON serialization
    """
    if not outcome.is_valid:
        return {
            "is_valid": False,
            "reason": outcome.reason,
            "attempted": outcome.attempted,
        }

    return {
        "is_valid": True,
        "record": outcome.record.to_dict(),
        "confidence": outcome.confidence.value if outcome.confidence else None,
        "source": outcome.source.value if outcome.source else None,
        "warnings": list(outcome.warnings),
        "notes": outcome.notes,
    }


def analysis_to_dict(analysis: MealAnalysis) -> Dict[str, Any]:
    """Format a MealAnalysis as JSON."""
    items: List[Dict[str, Any]] = []
    for item in analysis.items:
        items.append({
            "name": item.name,
            "weight_grams": item.weight_grams,
            "nutrients": _macros_to_dict(item.nutrients),
            "confidence": item.confidence.value if item.confidence else None,
            "source": item.source.value if item.source else None,
        })

    return {
        "items": items,
        "totals": _macros_to_dict(analysis.totals),
        "skipped": analysis.skipped,
        "has_items": analysis.has_items,
    }


def weekly_report_to_dict(report: WeeklyReport) -> Dict[str, Any]:
    """Format a WeeklyReport as JSON."""
    days = []
    for day in report.days:
        days.append({
            "date": day.date,
            "calories": day.calories,
            "protein_g": day.protein_g,
            "carbs_g": day.carbs_g,
            "fat_g": day.fat_g,
            "meal_count": day.meal_count,
        })

    return {
        "start_date": report.start_date,
        "end_date": report.end_date,
        "days": days,
        "weekly": {
            "totals": _macros_to_dict(report.weekly.totals),
            "averages": _macros_to_dict(report.weekly.averages),
            "days_with_meals": report.weekly.days_with_meals,
        },
    }


def format_json_string(data: Any, indent: int = 2) -> str:
    """Format a JSON-ready structure as a string.

    Args:
        data: Output of one of the *_to_dict converters
        indent: JSON indentation (default: 2)

    Returns:
        JSON string (non-ASCII food names kept as-is)
    """
    return json.dumps(data, indent=indent, ensure_ascii=False)

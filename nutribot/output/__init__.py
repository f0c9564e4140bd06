"""Output formatting for extraction results and reports."""

from nutribot.output.formatters import (
    format_outcome_text,
    format_analysis_markdown,
    format_weekly_report_markdown,
    outcome_to_dict,
    analysis_to_dict,
    weekly_report_to_dict,
    format_json_string
)

__all__ = [
    "format_outcome_text",
    "format_analysis_markdown",
    "format_weekly_report_markdown",
    "outcome_to_dict",
    "analysis_to_dict",
    "weekly_report_to_dict",
    "format_json_string"
]

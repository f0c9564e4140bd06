"""Weekly nutrition report over logged meals.

The week runs Monday to Sunday. A report requested mid-week stops at the
reference date; the remaining days are still listed with zero values.
Averages are taken over days that have at least one meal.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, Optional, Union

from nutribot.data_layer.models import (
    DayTotals,
    LoggedMeal,
    MacroTotals,
    WeeklyReport,
    WeeklyTotals,
)

logger = logging.getLogger(__name__)

DAYS_IN_WEEK = 7


def week_start(reference: date) -> date:
    """Monday of the week containing *reference*."""
    return reference - timedelta(days=reference.weekday())


def date_key(value: Union[date, datetime]) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


class WeeklyReportBuilder:
    """Builds Monday-based weekly reports from logged meals."""

    def build(
        self,
        meals: Iterable[LoggedMeal],
        reference_date: Optional[date] = None
    ) -> WeeklyReport:
        """Build the report for the week containing *reference_date*.

        Args:
            meals: Logged meals (any order; meals outside the week are skipped)
            reference_date: Day the report is requested for (default: today)

        Returns:
            WeeklyReport with seven day rows sorted by date
        """
        if isinstance(reference_date, datetime):
            reference_date = reference_date.date()
        reference = reference_date or date.today()
        start = week_start(reference)
        week_end = start + timedelta(days=DAYS_IN_WEEK - 1)
        report_end = min(reference, week_end)

        days: Dict[str, DayTotals] = {}
        for offset in range(DAYS_IN_WEEK):
            key = date_key(start + timedelta(days=offset))
            days[key] = DayTotals(date=key)

        report_end_key = date_key(report_end)
        for meal in meals:
            key = date_key(meal.logged_at)
            day = days.get(key)
            if day is None or key > report_end_key:
                logger.warning(
                    "Meal %s dated %s is outside %s..%s and will be skipped",
                    meal.meal_id, key, date_key(start), report_end_key,
                )
                continue
            day.calories += meal.totals.calories
            day.protein_g += meal.totals.protein_g
            day.carbs_g += meal.totals.carbs_g
            day.fat_g += meal.totals.fat_g
            day.meal_count += 1

        rows = []
        for key in sorted(days):
            day = days[key]
            rows.append(DayTotals(
                date=day.date,
                calories=round(day.calories, 2),
                protein_g=round(day.protein_g, 2),
                carbs_g=round(day.carbs_g, 2),
                fat_g=round(day.fat_g, 2),
                meal_count=day.meal_count,
            ))

        totals = MacroTotals(
            calories=sum(d.calories for d in rows),
            protein_g=sum(d.protein_g for d in rows),
            carbs_g=sum(d.carbs_g for d in rows),
            fat_g=sum(d.fat_g for d in rows),
        )
        days_with_meals = sum(1 for d in rows if d.meal_count > 0)
        divisor = days_with_meals or 1
        averages = MacroTotals(
            calories=totals.calories / divisor,
            protein_g=totals.protein_g / divisor,
            carbs_g=totals.carbs_g / divisor,
            fat_g=totals.fat_g / divisor,
        )

        return WeeklyReport(
            start_date=date_key(start),
            end_date=report_end_key,
            days=rows,
            weekly=WeeklyTotals(
                totals=totals.rounded(),
                averages=averages.rounded(),
                days_with_meals=days_with_meals,
            ),
        )

"""Monthly recurrence rules: nth weekday and calendar date."""

from datetime import date

from ..utils.datetime_utils import js_weekday, last_day_of_month, months_between
from .base import RecurrenceRule


class _MonthlyRule(RecurrenceRule):
    """Shared month-interval guard."""

    def in_active_month(self, day: date) -> bool:
        start = self.recurrence.start
        if start is None:
            return True
        diff = months_between(start, day)
        return diff >= 0 and diff % self.interval == 0


class MonthlyWeekdayRule(_MonthlyRule):
    """Selected weekdays within selected ordinal weeks of the month.

    The ordinal week of a date is ``(day - 1) // 7 + 1``, so the first Monday
    always falls in week 1. ``'last'`` matches the final occurrence of the
    weekday in the month.
    """

    def matches(self, day: date) -> bool:
        weeks = self.recurrence.weeks
        weekdays = self.recurrence.weekdays
        if not weeks or not weekdays:
            return False
        if not self.in_active_month(day):
            return False

        if js_weekday(day) not in weekdays:
            return False

        occurrence = (day.day - 1) // 7 + 1
        is_last = day.day + 7 > last_day_of_month(day)
        return any(
            (week == 'last' and is_last) or week == occurrence
            for week in weeks
        )

    def get_rule_name(self) -> str:
        """Return rule name."""
        return "MONTHLY"


class MonthlyDateRule(_MonthlyRule):
    """Selected days of the month; ``'last'`` is the final calendar day."""

    def matches(self, day: date) -> bool:
        monthdays = self.recurrence.monthdays
        if not monthdays:
            return False
        if not self.in_active_month(day):
            return False

        last = last_day_of_month(day)
        return any(
            (value == 'last' and day.day == last) or value == day.day
            for value in monthdays
        )

    def get_rule_name(self) -> str:
        """Return rule name."""
        return "MONTHLY_DATE"

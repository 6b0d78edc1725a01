"""Weekly recurrence rule."""

from datetime import date

from ..utils.datetime_utils import js_weekday, week_start
from .base import RecurrenceRule

# Anchor week when a routine has no start date (a Sunday)
EPOCH_WEEK = date(1970, 1, 4)


class WeeklyRule(RecurrenceRule):
    """Selected weekdays, every ``interval`` weeks.

    Weeks run Sunday to Saturday and are counted from the week containing the
    start date.
    """

    def matches(self, day: date) -> bool:
        weekdays = self.recurrence.weekdays
        if not weekdays:
            return False

        start = self.recurrence.start
        anchor = week_start(start) if start is not None else EPOCH_WEEK
        week_diff = (week_start(day) - anchor).days // 7
        if week_diff < 0 or week_diff % self.interval != 0:
            return False

        return js_weekday(day) in weekdays

    def get_rule_name(self) -> str:
        """Return rule name."""
        return "WEEKLY"

"""Daily recurrence rule."""

from datetime import date

from ..utils.datetime_utils import days_between
from .base import RecurrenceRule


class DailyRule(RecurrenceRule):
    """Every ``interval`` days counted from the start date."""

    def matches(self, day: date) -> bool:
        start = self.recurrence.start
        if start is None:
            # No anchor to count from
            return self.interval == 1
        diff = days_between(start, day)
        return diff >= 0 and diff % self.interval == 0

    def get_rule_name(self) -> str:
        """Return rule name."""
        return "DAILY"

"""Recurrence rule implementations."""

from datetime import date
from typing import Optional

from ..models.task import Recurrence
from .base import RecurrenceRule
from .daily import DailyRule
from .monthly import MonthlyDateRule, MonthlyWeekdayRule
from .parser import parse_recurrence
from .weekly import WeeklyRule

_RULES = {
    'daily': DailyRule,
    'weekly': WeeklyRule,
    'monthly': MonthlyWeekdayRule,
    'monthly_date': MonthlyDateRule,
}


def rule_for(recurrence: Recurrence) -> RecurrenceRule:
    """Create the rule evaluating a recurrence."""
    try:
        rule_class = _RULES[recurrence.type]
    except KeyError:
        raise ValueError(f"Unknown recurrence type: {recurrence.type}")
    return rule_class(recurrence)


def occurs_on(recurrence: Optional[Recurrence], day: date) -> bool:
    """Does a routine with this recurrence occur on the date?"""
    if recurrence is None:
        return False
    return rule_for(recurrence).occurs_on(day)


__all__ = [
    'RecurrenceRule',
    'DailyRule',
    'WeeklyRule',
    'MonthlyWeekdayRule',
    'MonthlyDateRule',
    'parse_recurrence',
    'rule_for',
    'occurs_on',
]

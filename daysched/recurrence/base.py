"""Base recurrence rule interface."""

from abc import ABC, abstractmethod
from datetime import date

from ..models.task import Recurrence


class RecurrenceRule(ABC):
    """Abstract base class for recurrence rules."""

    def __init__(self, recurrence: Recurrence):
        """Initialize rule with a normalized recurrence."""
        self.recurrence = recurrence
        # interval <= 0 behaves as 1
        self.interval = max(1, recurrence.interval or 1)

    def occurs_on(self, day: date) -> bool:
        """Check enablement, move override and bounds, then the cadence."""
        rec = self.recurrence
        if not rec.enabled:
            return False

        # A moved routine is snoozed until the target, forced on it,
        # and follows its normal cadence afterwards
        if rec.moved_invalid:
            return False
        if rec.moved_to is not None:
            if day < rec.moved_to:
                return False
            if day == rec.moved_to:
                return True

        if rec.start is not None and day < rec.start:
            return False
        if rec.end is not None and day > rec.end:
            return False

        return self.matches(day)

    @abstractmethod
    def matches(self, day: date) -> bool:
        """Cadence check for a date already inside the rule's bounds."""
        pass

    @abstractmethod
    def get_rule_name(self) -> str:
        """Return the name of this rule."""
        pass

"""Moves idle instances out of elapsed time slots."""

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional

from ..models.task import STATE_IDLE, TaskInstance
from ..utils.datetime_utils import NO_SLOT, current_slot, slot_start_minutes

logger = logging.getLogger(__name__)


def migrate_idle_to_current_slot(instances: Iterable[TaskInstance], current: str) -> List[TaskInstance]:
    """Reassign idle instances from earlier slots to the current slot.

    Order and manual positioning are kept. Instances without a slot, in the
    current or a later slot, or not idle are left alone. Returns the moved
    instances.
    """
    current_start = slot_start_minutes(current)
    if current_start is None:
        raise ValueError("Current slot must be a time slot, not 'none'")

    moved = []
    for inst in instances:
        if inst.state != STATE_IDLE:
            continue
        slot_key = inst.slot_key or NO_SLOT
        start = slot_start_minutes(slot_key)
        if start is None or start >= current_start:
            continue
        inst.slot_key = current
        moved.append(inst)
    return moved


class SlotMigrator:
    """Applies slot migration for a moment in time."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now

    def today(self) -> date:
        return (self.now or datetime.now()).date()

    def current_slot(self) -> str:
        return current_slot(self.now)

    def migrate(self, instances: Iterable[TaskInstance]) -> List[TaskInstance]:
        slot = self.current_slot()
        moved = migrate_idle_to_current_slot(instances, slot)
        if moved:
            logger.info("Moved %d idle task(s) into %s", len(moved), slot)
        return moved

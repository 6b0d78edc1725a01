"""Order keys, normalization and the state-priority sort within slots."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from ..models.task import STATE_DONE, STATE_IDLE, STATE_RUNNING, TaskInstance
from ..utils.datetime_utils import NO_SLOT, SLOT_KEYS, parse_minutes

logger = logging.getLogger(__name__)

SLOT_SEQUENCE = SLOT_KEYS + [NO_SLOT]

_STATE_RANK = {STATE_DONE: 0, STATE_RUNNING: 1, STATE_IDLE: 2}
_LATEST = datetime.max
_NO_ORDER = float('inf')

DRAG_REFUSAL = "Cannot place above running or completed tasks"


def state_rank(instance: TaskInstance) -> int:
    return _STATE_RANK.get(instance.state, 2)


def slot_index(slot_key: str) -> int:
    """Position of a slot in display order; raises ValueError for unknown keys."""
    try:
        return SLOT_SEQUENCE.index(slot_key or NO_SLOT)
    except ValueError:
        raise ValueError(f"Unknown slot key: {slot_key}")


@dataclass
class PlacementResult:
    """Outcome of a drag placement request."""

    accepted: bool
    reason: Optional[str] = None
    order: Optional[int] = None


class OrderingEngine:
    """Assigns and maintains the numeric order keys of instances within slots."""

    def __init__(self, step: int = 100):
        self.step = step if isinstance(step, int) and step > 1 else 100

    # -------------------- sorting --------------------
    def sort_key(self, instance: TaskInstance):
        """Comparator key: state rank, then order or start time, then stable tie-breakers."""
        rank = state_rank(instance)
        if instance.state == STATE_IDLE:
            order = instance.order if instance.order is not None else _NO_ORDER
            scheduled = parse_minutes(instance.task.scheduled_time)
            return (
                rank,
                order,
                scheduled if scheduled is not None else _NO_ORDER,
                instance.display_title,
                instance.instance_id,
            )
        return (
            rank,
            instance.start_time or _LATEST,
            instance.stop_time or _LATEST,
            instance.display_title,
            instance.instance_id,
        )

    def sort_slot(self, instances: Sequence[TaskInstance]) -> List[TaskInstance]:
        return sorted(instances, key=self.sort_key)

    def sort_instances(self, instances: Sequence[TaskInstance]) -> List[TaskInstance]:
        """All instances in slot display order, each slot sorted by the comparator."""
        return sorted(
            instances,
            key=lambda inst: (slot_index(inst.slot_key),) + self.sort_key(inst),
        )

    # -------------------- order keys --------------------
    def calculate_order(self, target_index: int, siblings: Sequence[TaskInstance]) -> int:
        """Order key for inserting at target_index among idle siblings.

        Siblings whose neighbours are too close to split are renumbered in
        place (see ``normalize``) before the midpoint is taken.
        """
        if not siblings:
            return self.step

        working = list(siblings)
        if any(inst.order is None for inst in working):
            self.normalize(working)

        ordered = sorted((i for i in working if i.order is not None), key=lambda inst: inst.order)
        if not ordered:
            return self.step
        index = min(max(target_index, 0), len(ordered))

        if index == 0:
            return ordered[0].order - self.step
        if index == len(ordered):
            return ordered[-1].order + self.step

        previous = ordered[index - 1].order
        following = ordered[index].order
        if following - previous <= 1:
            logger.debug("Order gap %s..%s exhausted, renumbering slot", previous, following)
            self.normalize(ordered)
            ordered.sort(key=lambda inst: inst.order)
            previous = ordered[index - 1].order
            following = ordered[index].order
        return (previous + following) // 2

    def normalize(self, instances: Sequence[TaskInstance]) -> List[TaskInstance]:
        """Renumber idle instances to step multiples in their current sort order."""
        idle = [inst for inst in self.sort_slot(instances) if inst.state == STATE_IDLE]
        for position, inst in enumerate(idle, start=1):
            inst.order = position * self.step
        return idle

    def ensure_orders(self, instances: Sequence[TaskInstance], force_done: bool = False) -> None:
        """Fill in missing order keys, slot by slot."""
        by_slot: Dict[str, List[TaskInstance]] = {}
        for inst in instances:
            by_slot.setdefault(inst.slot_key or NO_SLOT, []).append(inst)
        for slot_instances in by_slot.values():
            self._ensure_slot(slot_instances, force_done)

    def _ensure_slot(self, instances: List[TaskInstance], force_done: bool) -> None:
        done = [i for i in instances if i.state == STATE_DONE]
        running = [i for i in instances if i.state == STATE_RUNNING]
        idle = [i for i in instances if i.state == STATE_IDLE]
        known: List[int] = []

        if force_done or any(i.order is None for i in done):
            by_start = sorted(done, key=lambda i: (i.start_time or _LATEST, i.instance_id))
            for position, inst in enumerate(by_start, start=1):
                inst.order = position * self.step
        known.extend(i.order for i in done)

        known.extend(i.order for i in running if i.order is not None)
        running_missing = [i for i in running if i.order is None]
        if running_missing:
            cursor = max(known, default=0) + self.step
            for inst in sorted(running_missing, key=lambda i: (i.start_time or _LATEST, i.instance_id)):
                inst.order = cursor
                known.append(cursor)
                cursor += self.step

        known.extend(i.order for i in idle if i.order is not None)
        idle_missing = [i for i in idle if i.order is None]
        if not idle_missing:
            return

        scheduled = [i for i in idle_missing if parse_minutes(i.task.scheduled_time) is not None]
        unscheduled = [i for i in idle_missing if parse_minutes(i.task.scheduled_time) is None]

        if unscheduled:
            # Placed above everything, first in title order nearest the top of the rest
            cursor = min(known) - self.step if known else self.step
            for inst in sorted(unscheduled, key=lambda i: (i.display_title, i.instance_id)):
                inst.order = cursor
                known.append(cursor)
                cursor -= self.step

        if scheduled:
            cursor = max(known, default=0) + self.step
            ordered = sorted(
                scheduled,
                key=lambda i: (parse_minutes(i.task.scheduled_time), i.display_title, i.instance_id),
            )
            for inst in ordered:
                inst.order = cursor
                cursor += self.step

    # -------------------- drag placement --------------------
    def move_instance(
        self,
        instances: Sequence[TaskInstance],
        instance: TaskInstance,
        target_slot: str,
        target_index: int,
    ) -> PlacementResult:
        """Move an idle instance to a position in a slot.

        ``target_index`` counts positions in the target slot's sorted list
        (done and running instances included, the moved instance excluded).
        A refused move leaves every instance untouched.
        """
        slot_index(target_slot)
        if instance.state != STATE_IDLE:
            return PlacementResult(False, "Only idle tasks can be moved")

        slot_members = self.sort_slot([
            inst for inst in instances
            if (inst.slot_key or NO_SLOT) == target_slot and inst is not instance
        ])
        locked = sum(1 for inst in slot_members if inst.state != STATE_IDLE)
        if target_index < locked:
            return PlacementResult(False, DRAG_REFUSAL)

        idle_siblings = [inst for inst in slot_members if inst.state == STATE_IDLE]
        order = self.calculate_order(target_index - locked, idle_siblings)
        instance.slot_key = target_slot
        instance.order = order
        instance.manually_positioned = True
        return PlacementResult(True, order=order)

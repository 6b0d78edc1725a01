"""Task definition, instance and execution-log data models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple, Union

WeekOrdinal = Union[int, str]  # 1..5 or 'last'
MonthDay = Union[int, str]  # 1..31 or 'last'

STATE_IDLE = 'idle'
STATE_RUNNING = 'running'
STATE_DONE = 'done'
STATES = (STATE_IDLE, STATE_RUNNING, STATE_DONE)


@dataclass(frozen=True)
class Recurrence:
    """Normalized recurrence rule of a routine task.

    Fields:
        type: One of "daily", "weekly", "monthly" (nth weekday), "monthly_date".
        interval: Days, weeks or months between occurrences (>= 1).
        start / end: Optional inclusive bounds.
        enabled: Disabled rules never occur.
        weekdays: Weekday set (0=Sunday) for weekly and monthly rules.
        weeks: Ordinal weeks (1..5 or 'last') for monthly rules.
        monthdays: Days of month (1..31 or 'last') for monthly_date rules.
        moved_to: Snooze/move override date (``target_date``).
    """

    type: str = 'daily'
    interval: int = 1
    start: Optional[date] = None
    end: Optional[date] = None
    enabled: bool = True
    weekdays: Tuple[int, ...] = ()
    weeks: Tuple[WeekOrdinal, ...] = ()
    monthdays: Tuple[MonthDay, ...] = ()
    moved_to: Optional[date] = None
    moved_invalid: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'interval': self.interval,
            'start': self.start.isoformat() if self.start else None,
            'end': self.end.isoformat() if self.end else None,
            'enabled': self.enabled,
            'weekdays': list(self.weekdays),
            'weeks': list(self.weeks),
            'monthdays': list(self.monthdays),
        }


@dataclass(frozen=True)
class ProjectLink:
    """Project a task belongs to."""

    title: Optional[str] = None
    path: Optional[str] = None


@dataclass(frozen=True)
class TaskDefinition:
    """Identity of a task independent of any specific day.

    Built fresh on every reconciliation pass and never patched in place.
    """

    title: str
    path: str
    backing_file: Optional[str] = None
    is_routine: bool = False
    recurrence: Optional[Recurrence] = None
    scheduled_time: Optional[str] = None
    project: Optional[ProjectLink] = None
    current_name: Optional[str] = None

    @property
    def is_virtual(self) -> bool:
        """True when no file backs this definition."""
        return self.backing_file is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'path': self.path,
            'isVirtual': self.is_virtual,
            'isRoutine': self.is_routine,
            'recurrence': self.recurrence.to_dict() if self.recurrence else None,
            'scheduledTime': self.scheduled_time,
            'projectTitle': self.project.title if self.project else None,
            'projectPath': self.project.path if self.project else None,
            'currentName': self.current_name,
        }


@dataclass
class TaskInstance:
    """One concrete appearance of a task definition on one date."""

    task: TaskDefinition
    instance_id: str
    date: date
    state: str = STATE_IDLE
    slot_key: str = 'none'
    order: Optional[int] = None
    start_time: Optional[datetime] = None
    stop_time: Optional[datetime] = None
    manually_positioned: bool = False
    executed_title: Optional[str] = None

    def __post_init__(self):
        """Validate state value."""
        if self.state not in STATES:
            raise ValueError(f"Unknown instance state: {self.state}")

    @property
    def display_title(self) -> str:
        """Title as executed when known, else the definition's title."""
        return self.executed_title or self.task.title

    def order_key(self) -> str:
        """Key under which this instance's order is saved for the day."""
        return f"{self.instance_id}::{self.slot_key or 'none'}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'instanceId': self.instance_id,
            'title': self.display_title,
            'path': self.task.path,
            'state': self.state,
            'slotKey': self.slot_key,
            'order': self.order,
            'startTime': self.start_time.isoformat() if self.start_time else None,
            'stopTime': self.stop_time.isoformat() if self.stop_time else None,
            'manuallyPositioned': self.manually_positioned,
            'executedTitle': self.executed_title,
        }


@dataclass
class ExecutionEntry:
    """One entry of the monthly execution log."""

    task_title: str
    instance_id: Optional[str] = None
    task_path: Optional[str] = None
    start_time: Optional[str] = None
    stop_time: Optional[str] = None
    slot_key: Optional[str] = None
    project: Optional[str] = None
    task_type: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> 'ExecutionEntry':
        """Build from a stored log entry, tolerating missing or odd fields."""
        known = {
            'taskTitle', 'taskName', 'instanceId', 'taskPath', 'startTime',
            'stopTime', 'slotKey', 'project', 'taskType',
        }
        title = _text(raw.get('taskTitle')) or _text(raw.get('taskName')) or 'Untitled Task'
        return cls(
            task_title=title,
            instance_id=_text(raw.get('instanceId')),
            task_path=_text(raw.get('taskPath')),
            start_time=_text(raw.get('startTime')),
            stop_time=_text(raw.get('stopTime')),
            slot_key=_text(raw.get('slotKey')),
            project=_text(raw.get('project')),
            task_type=_text(raw.get('taskType')),
            extra={k: v for k, v in raw.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            'instanceId': self.instance_id,
            'taskTitle': self.task_title,
            'taskPath': self.task_path,
            'startTime': self.start_time,
            'stopTime': self.stop_time,
            'slotKey': self.slot_key,
            'project': self.project,
            'taskType': self.task_type,
        })
        return {k: v for k, v in data.items() if v is not None}


def basename(path: str) -> str:
    """File name without folders or the .md suffix."""
    name = path.rsplit('/', 1)[-1]
    if name.endswith('.md'):
        name = name[:-3]
    return name


def _text(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None

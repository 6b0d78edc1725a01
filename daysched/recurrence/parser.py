"""Frontmatter to Recurrence parsing.

Malformed fields never raise: each one is logged and treated as absent, so a
task with a broken recurrence still loads with default capabilities.
"""

import logging
from typing import Any, List, Mapping, Optional, Tuple

from ..models.task import Recurrence
from ..utils.datetime_utils import parse_date
from ..utils.fields import is_routine_flag, read_field

logger = logging.getLogger(__name__)

ROUTINE_TYPES = ('daily', 'weekly', 'monthly', 'monthly_date')
LEGACY_WEEKDAY_SETS = {
    'weekdays': (1, 2, 3, 4, 5),
    'weekends': (0, 6),
}


def parse_recurrence(frontmatter: Optional[Mapping[str, Any]]) -> Optional[Recurrence]:
    """Normalize a task's frontmatter into a Recurrence, or None for non-routines."""
    if not frontmatter or not is_routine_flag(frontmatter):
        return None

    raw_type = read_field(frontmatter, 'routine_type', 'daily')
    legacy_set = LEGACY_WEEKDAY_SETS.get(raw_type) if isinstance(raw_type, str) else None
    if raw_type in ROUTINE_TYPES:
        routine_type = raw_type
    else:
        if legacy_set is None:
            logger.debug("Unknown routine_type %r treated as weekly", raw_type)
        routine_type = 'weekly'

    start = _date_field(frontmatter, 'routine_start')
    end = _date_field(frontmatter, 'routine_end')
    moved_to, moved_invalid = _moved_target(frontmatter)

    weekdays: Tuple[int, ...] = ()
    weeks: tuple = ()
    monthdays: tuple = ()

    if routine_type == 'weekly':
        if legacy_set is not None:
            weekdays = legacy_set
        else:
            weekdays = _weekday_set(read_field(frontmatter, 'routine_weekdays'))
            if not weekdays:
                single = _to_weekday(read_field(frontmatter, 'routine_weekday'))
                weekdays = (single,) if single is not None else ()

    elif routine_type == 'monthly':
        weeks = _week_set(read_field(frontmatter, 'routine_weeks'))
        if not weeks:
            single_week = _single_week(frontmatter)
            weeks = (single_week,) if single_week is not None else ()
        weekdays = _weekday_set(read_field(frontmatter, 'monthly_weekdays'))
        if not weekdays:
            single = _to_weekday(read_field(frontmatter, 'monthly_weekday'))
            weekdays = (single,) if single is not None else ()

    elif routine_type == 'monthly_date':
        monthdays = _monthday_set(read_field(frontmatter, 'routine_monthdays'))
        if not monthdays:
            single_day = _to_monthday(read_field(frontmatter, 'routine_monthday'))
            monthdays = (single_day,) if single_day is not None else ()

    return Recurrence(
        type=routine_type,
        interval=_to_positive_int(frontmatter.get('routine_interval'), 1),
        start=start,
        end=end,
        enabled=not _is_false(frontmatter.get('routine_enabled')),
        weekdays=weekdays,
        weeks=weeks,
        monthdays=monthdays,
        moved_to=moved_to,
        moved_invalid=moved_invalid,
    )


def _single_week(frontmatter: Mapping[str, Any]):
    """Ordinal week from routine_week (1-based) or legacy monthly_week (0-based)."""
    if frontmatter.get('routine_week') is not None:
        value = frontmatter.get('routine_week')
        if value == 'last':
            return 'last'
        week = _to_int(value)
        if week is not None and 1 <= week <= 5:
            return week
        logger.warning("Ignoring invalid routine_week %r", value)
        return None

    legacy = frontmatter.get('monthly_week')
    if legacy is None:
        return None
    if legacy == 'last':
        return 'last'
    zero_based = _to_int(legacy)
    if zero_based is not None and 0 <= zero_based <= 4:
        return zero_based + 1
    logger.warning("Ignoring invalid monthly_week %r", legacy)
    return None


def _moved_target(frontmatter: Mapping[str, Any]):
    target = frontmatter.get('target_date')
    if not target or target == frontmatter.get('routine_start'):
        return None, False
    parsed = parse_date(target)
    if parsed is None:
        logger.warning("Unparsable target_date %r hides the routine", target)
        return None, True
    return parsed, False


def _date_field(frontmatter: Mapping[str, Any], key: str):
    value = frontmatter.get(key)
    if value is None or value == '':
        return None
    parsed = parse_date(value)
    if parsed is None:
        logger.warning("Ignoring invalid %s %r", key, value)
    return parsed


def _is_false(value) -> bool:
    if value is False:
        return True
    return isinstance(value, str) and value.strip().lower() == 'false'


def _to_int(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _to_positive_int(value, fallback: int) -> int:
    number = _to_int(value)
    if number is None and isinstance(value, float) and value >= 1:
        number = int(value)
    if number is not None and number >= 1:
        return number
    return fallback


def _to_weekday(value) -> Optional[int]:
    number = _to_int(value)
    if number is not None and 0 <= number <= 6:
        return number
    return None


def _to_monthday(value):
    if value == 'last':
        return 'last'
    number = _to_int(value)
    if number is not None and 1 <= number <= 31:
        return number
    return None


def _weekday_set(value) -> Tuple[int, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    found = {_to_weekday(v) for v in value}
    found.discard(None)
    return tuple(sorted(found))


def _week_set(value) -> tuple:
    if not isinstance(value, (list, tuple)):
        return ()
    result: List = []
    for candidate in value:
        if candidate == 'last':
            week = 'last'
        else:
            week = _to_int(candidate)
            if week is None or not 1 <= week <= 5:
                continue
        if week not in result:
            result.append(week)
    return tuple(result)


def _monthday_set(value) -> tuple:
    if not isinstance(value, (list, tuple)):
        return ()
    result: List = []
    for candidate in value:
        day = _to_monthday(candidate)
        if day is not None and day not in result:
            result.append(day)
    return tuple(result)

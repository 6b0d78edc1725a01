"""Date, time and slot utilities."""

from datetime import date, datetime, timedelta
from typing import List, Optional

SLOT_KEYS: List[str] = ['0:00-8:00', '8:00-12:00', '12:00-16:00', '16:00-0:00']
NO_SLOT = 'none'

# Start of each slot in minutes after midnight
_SLOT_STARTS = {
    '0:00-8:00': 0,
    '8:00-12:00': 8 * 60,
    '12:00-16:00': 12 * 60,
    '16:00-0:00': 16 * 60,
}


def parse_date(value) -> Optional[date]:
    """Parse a YYYY-MM-DD string (or pass through a date). Returns None when invalid."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip(), '%Y-%m-%d').date()
    except ValueError:
        return None


def format_date(day: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return day.strftime('%Y-%m-%d')


def parse_minutes(value) -> Optional[int]:
    """Parse an "HH:mm" (or "HH:mm:ss") string into minutes after midnight."""
    if not isinstance(value, str):
        return None
    parts = value.strip().split(':')
    if len(parts) < 2:
        return None
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        return None
    if hours < 0 or minutes < 0 or minutes > 59:
        return None
    return hours * 60 + minutes


def parse_time_on(day: date, value) -> Optional[datetime]:
    """Combine a date with an "HH:mm[:ss]" string."""
    if not isinstance(value, str) or not value.strip():
        return None
    parts = value.strip().split(':')
    numbers = []
    for part in parts[:3]:
        try:
            numbers.append(int(part))
        except ValueError:
            numbers.append(0)
    while len(numbers) < 3:
        numbers.append(0)
    hours, minutes, seconds = numbers
    try:
        return datetime.combine(day, datetime.min.time()) + timedelta(
            hours=hours, minutes=minutes, seconds=seconds
        )
    except OverflowError:
        return None


def slot_for_minutes(minutes: int) -> str:
    """Map minutes after midnight to one of the four day slots."""
    minutes = minutes % (24 * 60)
    if minutes < 8 * 60:
        return '0:00-8:00'
    if minutes < 12 * 60:
        return '8:00-12:00'
    if minutes < 16 * 60:
        return '12:00-16:00'
    return '16:00-0:00'


def slot_for_time(value) -> Optional[str]:
    """Slot of an "HH:mm" string, or None when the string does not parse."""
    minutes = parse_minutes(value)
    if minutes is None:
        return None
    return slot_for_minutes(minutes)


def current_slot(now: Optional[datetime] = None) -> str:
    """Slot containing the given moment (defaults to now)."""
    now = now or datetime.now()
    return slot_for_minutes(now.hour * 60 + now.minute)


def slot_start_minutes(slot_key: str) -> Optional[int]:
    """Start of a slot in minutes; None for the "none" slot."""
    if slot_key == NO_SLOT:
        return None
    if slot_key not in _SLOT_STARTS:
        raise ValueError(f"Unknown slot key: {slot_key}")
    return _SLOT_STARTS[slot_key]


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative when end is earlier)."""
    return (end - start).days


def js_weekday(day: date) -> int:
    """Weekday with 0=Sunday .. 6=Saturday, the numbering used in task files."""
    return (day.weekday() + 1) % 7


def week_start(day: date) -> date:
    """Sunday starting the week containing the date."""
    return day - timedelta(days=js_weekday(day))


def last_day_of_month(day: date) -> int:
    """Number of the final calendar day in the date's month."""
    if day.month == 12:
        following = date(day.year + 1, 1, 1)
    else:
        following = date(day.year, day.month + 1, 1)
    return (following - timedelta(days=1)).day


def months_between(start: date, end: date) -> int:
    """Calendar months from start's month to end's month."""
    return (end.year - start.year) * 12 + (end.month - start.month)

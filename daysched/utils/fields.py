"""Frontmatter field access with legacy-name fallbacks.

Task files have accumulated several generations of field names. Every read of
a field with a legacy spelling goes through this module so that callers never
scatter ``a or b`` fallbacks:

* reads always prefer the current name and fall back to legacy names in order;
* writes can target either the current name (``prefer_new=True``, removing the
  legacy copy) or the legacy name, which older vaults still expect.
"""

import re
from typing import Any, Dict, Mapping, Optional, Tuple

SCHEDULED_TIME_LEGACY = '開始時刻'

# Current name first, then legacy names in priority order
FIELD_NAMES: Dict[str, Tuple[str, ...]] = {
    'scheduled_time': ('scheduled_time', SCHEDULED_TIME_LEGACY),
    'is_routine': ('isRoutine', 'routine'),
    'routine_type': ('routine_type', 'routineType'),
    'routine_weekday': ('routine_weekday', 'weekday'),
    'routine_weekdays': ('routine_weekdays', 'weekdays'),
    'monthly_weekday': ('routine_weekday', 'monthly_weekday'),
    'monthly_weekdays': ('routine_weekdays', 'monthly_weekdays'),
    'routine_weeks': ('routine_weeks', 'monthly_weeks'),
    'routine_monthday': ('routine_monthday', 'monthly_monthday'),
    'routine_monthdays': ('routine_monthdays', 'monthly_monthdays'),
}

_WIKILINK_RE = re.compile(r'\[\[([^\]|#]+)(?:[#|][^\]]*)?\]\]')
_MISSING = object()


def read_field(frontmatter: Optional[Mapping[str, Any]], name: str, default: Any = None) -> Any:
    """Read a logical field, preferring the current key over legacy keys."""
    if not frontmatter:
        return default
    for key in FIELD_NAMES.get(name, (name,)):
        value = frontmatter.get(key, _MISSING)
        if value is not _MISSING and value is not None:
            return value
    return default


def get_scheduled_time(frontmatter: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Scheduled start time ("HH:mm") from either field name."""
    value = read_field(frontmatter, 'scheduled_time')
    # YAML 1.1 reads an unquoted 9:30 as sexagesimal minutes
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value < 24 * 60:
        return f"{value // 60:02d}:{value % 60:02d}"
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def set_scheduled_time(
    frontmatter: Optional[Dict[str, Any]],
    value: Optional[str],
    prefer_new: bool = False,
) -> None:
    """Write the scheduled time, targeting the current or the legacy key."""
    if frontmatter is None:
        return
    if not value:
        frontmatter.pop('scheduled_time', None)
        frontmatter.pop(SCHEDULED_TIME_LEGACY, None)
        return
    if prefer_new:
        frontmatter['scheduled_time'] = value
        frontmatter.pop(SCHEDULED_TIME_LEGACY, None)
    else:
        # Legacy vaults: leave an existing scheduled_time untouched
        frontmatter[SCHEDULED_TIME_LEGACY] = value


def is_routine_flag(frontmatter: Optional[Mapping[str, Any]]) -> bool:
    value = read_field(frontmatter, 'is_routine', False)
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', '1')
    return value is True


def string_field(frontmatter: Optional[Mapping[str, Any]], name: str) -> Optional[str]:
    """Non-blank string value of a field, else None."""
    value = read_field(frontmatter, name)
    if isinstance(value, str) and value.strip():
        return value
    return None


def extract_project_title(value: Any) -> Optional[str]:
    """Project title from a ``[[Title]]`` wikilink (or a bare string)."""
    if not isinstance(value, str) or not value.strip():
        return None
    match = _WIKILINK_RE.search(value)
    if match:
        return match.group(1).strip()
    return value.strip()

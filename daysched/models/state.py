"""Per-date deletion, hide and duplicate records."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Union

TEMPORARY = 'temporary'
PERMANENT = 'permanent'


@dataclass(frozen=True)
class InstanceDeletion:
    """Structured deletion record scoped to one date.

    ``temporary`` removes a single instance; ``permanent`` also removed the
    backing file and keeps suppressing it on later dates. A record without an
    ``instance_id`` matches every instance of its path.
    """

    path: Optional[str]
    instance_id: Optional[str] = None
    deletion_type: str = TEMPORARY
    deleted_at: Optional[datetime] = None

    @property
    def is_permanent(self) -> bool:
        return self.deletion_type == PERMANENT

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> Optional['InstanceDeletion']:
        if not isinstance(raw, dict):
            return None
        path = raw.get('path') if isinstance(raw.get('path'), str) else None
        instance_id = raw.get('instanceId') if isinstance(raw.get('instanceId'), str) else None
        if not path and not instance_id:
            return None
        deletion_type = PERMANENT if raw.get('deletionType') == PERMANENT else TEMPORARY
        return cls(
            path=path,
            instance_id=instance_id or None,
            deletion_type=deletion_type,
            deleted_at=_parse_timestamp(raw.get('deletedAt', raw.get('timestamp'))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'instanceId': self.instance_id,
            'deletionType': self.deletion_type,
            'deletedAt': self.deleted_at.isoformat() if self.deleted_at else None,
        }


@dataclass(frozen=True)
class LegacyPathDeletion:
    """Entry of the old global deleted-files list: a bare path, always permanent."""

    path: str

    is_permanent = True
    instance_id = None
    deleted_at = None


DeletionRecord = Union[InstanceDeletion, LegacyPathDeletion]


@dataclass(frozen=True)
class HiddenRoutineRecord:
    """Hides a routine's instance for one date without touching the file."""

    path: Optional[str]
    instance_id: Optional[str] = None

    @classmethod
    def from_raw(cls, raw) -> Optional['HiddenRoutineRecord']:
        # Early versions stored bare path strings
        if isinstance(raw, str):
            return cls(path=raw) if raw else None
        if not isinstance(raw, dict):
            return None
        path = raw.get('path') if isinstance(raw.get('path'), str) else None
        instance_id = raw.get('instanceId') if isinstance(raw.get('instanceId'), str) else None
        if not path and not instance_id:
            return None
        return cls(path=path, instance_id=instance_id)

    def to_dict(self) -> Dict[str, Any]:
        return {'path': self.path, 'instanceId': self.instance_id}


@dataclass(frozen=True)
class DuplicatedInstanceRecord:
    """Extra idle copy of a task created by the user for one date."""

    instance_id: str
    original_path: str
    slot_key: str = 'none'
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> Optional['DuplicatedInstanceRecord']:
        if not isinstance(raw, dict):
            return None
        instance_id = raw.get('instanceId')
        original_path = raw.get('originalPath')
        if not isinstance(instance_id, str) or not isinstance(original_path, str):
            return None
        slot_key = raw.get('slotKey') if isinstance(raw.get('slotKey'), str) else 'none'
        return cls(
            instance_id=instance_id,
            original_path=original_path,
            slot_key=slot_key,
            created_at=_parse_timestamp(raw.get('createdAt', raw.get('timestamp'))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'instanceId': self.instance_id,
            'originalPath': self.original_path,
            'slotKey': self.slot_key,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


def _parse_timestamp(value) -> Optional[datetime]:
    """Accept ISO strings or epoch milliseconds."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        # Compare everything as naive local time
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed
    return None

"""Per-date deletion and hidden-routine state."""

import logging
from datetime import date, datetime, time
from typing import Callable, Dict, Iterable, List, Optional

from ..models.state import (
    PERMANENT,
    TEMPORARY,
    DeletionRecord,
    HiddenRoutineRecord,
    InstanceDeletion,
    LegacyPathDeletion,
)
from ..models.task import TaskInstance
from ..utils.datetime_utils import format_date, parse_date
from .kvstore import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

DELETED_PREFIX = 'deleted-instances-'
HIDDEN_PREFIX = 'hidden-routines-'
LEGACY_DELETED_KEY = 'deleted-tasks'


def day_key(day) -> str:
    """YYYY-MM-DD key for a date; a missing date is a programming error."""
    parsed = parse_date(day)
    if parsed is None:
        raise ValueError(f"A valid date is required, got {day!r}")
    return format_date(parsed)


def deletion_matches(record: DeletionRecord, instance_id: Optional[str], path: Optional[str]) -> bool:
    """Single lookup rule shared by both deletion schema generations.

    A record matches its exact instance id, or, when it carries no instance
    id (legacy bare paths, old whole-file deletions), any instance of its path.
    """
    if record.instance_id:
        return instance_id is not None and record.instance_id == instance_id
    return path is not None and record.path == path


class DeletionStateStore:
    """Reads and writes deletion/hidden records through an injected store."""

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._permanent_cache: Dict[str, Dict[str, Optional[datetime]]] = {}

    # -------------------- reading --------------------
    def get_deleted(self, day) -> List[InstanceDeletion]:
        raw = self._read(DELETED_PREFIX + day_key(day), [])
        if not isinstance(raw, list):
            return []
        records = [InstanceDeletion.from_dict(entry) for entry in raw]
        return [r for r in records if r is not None]

    def get_legacy(self) -> List[LegacyPathDeletion]:
        raw = self._read(LEGACY_DELETED_KEY, [])
        if not isinstance(raw, list):
            return []
        return [LegacyPathDeletion(path) for path in raw if isinstance(path, str) and path]

    def get_hidden(self, day) -> List[HiddenRoutineRecord]:
        raw = self._read(HIDDEN_PREFIX + day_key(day), [])
        if not isinstance(raw, list):
            return []
        records = [HiddenRoutineRecord.from_raw(entry) for entry in raw]
        return [r for r in records if r is not None]

    # -------------------- lookups --------------------
    def is_deleted(self, instance_id: Optional[str], path: Optional[str], day) -> bool:
        """Is this instance removed by a record of the given date?"""
        return any(deletion_matches(r, instance_id, path) for r in self.get_deleted(day))

    def is_hidden(self, instance_id: Optional[str], path: Optional[str], day) -> bool:
        for hidden in self.get_hidden(day):
            if hidden.instance_id:
                if hidden.instance_id == instance_id:
                    return True
            elif path is not None and hidden.path == path:
                return True
        return False

    def is_permanently_deleted(self, path: str, day, file_created_at: Optional[datetime] = None) -> bool:
        """Has the file at path been permanently deleted on or before the date?

        A file created after the latest permanent deletion is a new file and is
        not suppressed.
        """
        index = self._permanent_index(day_key(day))
        if path not in index:
            return False
        deleted_at = index[path]
        if deleted_at is None or file_created_at is None:
            return True
        return file_created_at <= deleted_at

    def _permanent_index(self, key: str) -> Dict[str, Optional[datetime]]:
        """Map of path -> latest permanent deletion moment up to a date (None = unknown)."""
        cached = self._permanent_cache.get(key)
        if cached is not None:
            return cached

        index: Dict[str, Optional[datetime]] = {}
        for legacy in self.get_legacy():
            index[legacy.path] = None

        for store_key in self._keys(DELETED_PREFIX):
            record_day = store_key[len(DELETED_PREFIX):]
            if record_day > key or parse_date(record_day) is None:
                continue
            end_of_day = datetime.combine(parse_date(record_day), time.max)
            for record in self.get_deleted(record_day):
                if not record.is_permanent or not record.path:
                    continue
                moment = record.deleted_at or end_of_day
                if record.path in index and index[record.path] is None:
                    continue
                previous = index.get(record.path)
                if previous is None or moment > previous:
                    index[record.path] = moment

        self._permanent_cache[key] = index
        return index

    # -------------------- writing --------------------
    def record(self, day, entries: Iterable[InstanceDeletion]) -> bool:
        """Append deletion records for a date. Returns False when persisting failed."""
        key = day_key(day)
        current = self.get_deleted(key)
        permanent_paths = {r.path for r in current if r.is_permanent}
        for entry in entries:
            if entry in current:
                continue
            if entry.is_permanent and entry.path in permanent_paths:
                continue
            if entry.is_permanent:
                permanent_paths.add(entry.path)
            current.append(entry)
        return self._write(DELETED_PREFIX + key, [r.to_dict() for r in current])

    def delete_instance(
        self,
        day,
        instance: TaskInstance,
        permanent: bool = False,
        now: Optional[datetime] = None,
    ) -> bool:
        """Record the removal of one instance (and, when permanent, its file)."""
        entry = InstanceDeletion(
            path=instance.task.path,
            instance_id=instance.instance_id,
            deletion_type=PERMANENT if permanent else TEMPORARY,
            deleted_at=now or datetime.now(),
        )
        return self.record(day, [entry])

    def hide(self, day, path: Optional[str], instance_id: Optional[str] = None) -> bool:
        """Hide a routine for one date (all its instances when instance_id is None)."""
        key = day_key(day)
        hidden = self.get_hidden(key)
        entry = HiddenRoutineRecord(path=path, instance_id=instance_id)
        if entry in hidden:
            return True
        hidden.append(entry)
        return self._write(HIDDEN_PREFIX + key, [h.to_dict() for h in hidden])

    def cleanup_stale(
        self,
        day,
        file_exists: Callable[[str], bool],
        file_created_at: Optional[Callable[[str], Optional[datetime]]] = None,
    ) -> int:
        """Drop the date's permanent deletions whose file has been recreated since.

        A record is dropped only when its file exists and was created after the
        deletion (a record without a timestamp counts as deleted at the end of
        its date). Temporary records, records whose file is absent or has an
        unknown creation time, and the legacy path list are left alone.
        Returns the number of records removed.
        """
        key = day_key(day)
        end_of_day = datetime.combine(parse_date(key), time.max)
        entries = self.get_deleted(key)
        kept: List[InstanceDeletion] = []
        for entry in entries:
            if entry.is_permanent and entry.path and file_exists(entry.path):
                created = file_created_at(entry.path) if file_created_at else None
                deleted_at = entry.deleted_at or end_of_day
                if created is not None and deleted_at < created:
                    logger.info("Dropping stale permanent deletion of %s on %s", entry.path, key)
                    continue
            kept.append(entry)

        removed = len(entries) - len(kept)
        if removed:
            self._write(DELETED_PREFIX + key, [r.to_dict() for r in kept])
        return removed

    def _read(self, key: str, default):
        try:
            return self.store.get(key, default)
        except StoreError as e:
            logger.warning("Cannot read %s, treated as empty: %s", key, e)
            return default

    def _keys(self, prefix: str) -> List[str]:
        try:
            return self.store.keys(prefix)
        except StoreError as e:
            logger.warning("Cannot list %s* keys, treated as empty: %s", prefix, e)
            return []

    def _write(self, key: str, value) -> bool:
        self._permanent_cache.clear()
        try:
            self.store.set(key, value)
        except StoreError as e:
            logger.error("Failed to persist %s: %s", key, e)
            return False
        return True


def is_visible(
    deletions: DeletionStateStore,
    instance_id: Optional[str],
    path: Optional[str],
    day: date,
) -> bool:
    """Neither deleted nor hidden on the date."""
    if deletions.is_deleted(instance_id, path, day):
        return False
    if deletions.is_hidden(instance_id, path, day):
        return False
    return True

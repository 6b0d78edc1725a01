"""Per-date slot overrides, saved orders and duplicated instances."""

import hashlib
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..models.state import DuplicatedInstanceRecord
from ..models.task import TaskInstance
from .deletion import day_key
from .kvstore import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

SLOT_OVERRIDES_PREFIX = 'slot-overrides-'
ORDERS_PREFIX = 'orders-'
DUPLICATED_PREFIX = 'duplicated-instances-'


class DayStateStore:
    """Reads and writes the per-day layout state through an injected store."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    # -------------------- slot overrides --------------------
    def get_slot_overrides(self, day) -> Dict[str, str]:
        raw = self._read(SLOT_OVERRIDES_PREFIX + day_key(day), {})
        if not isinstance(raw, dict):
            return {}
        return {k: v for k, v in raw.items() if isinstance(k, str) and isinstance(v, str)}

    def set_slot_override(self, day, path: str, slot_key: str) -> bool:
        overrides = self.get_slot_overrides(day)
        overrides[path] = slot_key
        return self._write(SLOT_OVERRIDES_PREFIX + day_key(day), overrides)

    # -------------------- orders --------------------
    def get_orders(self, day) -> Dict[str, int]:
        """Saved order numbers keyed by "<instanceId>::<slotKey>"."""
        raw = self._read(ORDERS_PREFIX + day_key(day), {})
        if not isinstance(raw, dict):
            return {}
        orders: Dict[str, int] = {}
        for key, value in raw.items():
            if isinstance(value, bool):
                continue
            if isinstance(value, (int, float)):
                orders[key] = int(value)
            elif isinstance(value, dict) and isinstance(value.get('order'), (int, float)):
                # Older shape: {"order": n, "slot": "..."} keyed by id only
                slot = value.get('slot') if isinstance(value.get('slot'), str) else 'none'
                normalized = key if '::' in key else f"{key}::{slot}"
                orders[normalized] = int(value['order'])
        return orders

    def save_orders(self, day, instances: Iterable[TaskInstance]) -> bool:
        orders = {
            inst.order_key(): inst.order
            for inst in instances
            if inst.order is not None
        }
        return self._write(ORDERS_PREFIX + day_key(day), orders)

    # -------------------- duplicates --------------------
    def get_duplicated(self, day) -> List[DuplicatedInstanceRecord]:
        raw = self._read(DUPLICATED_PREFIX + day_key(day), [])
        if not isinstance(raw, list):
            return []
        records = [DuplicatedInstanceRecord.from_dict(entry) for entry in raw]
        return [r for r in records if r is not None]

    def duplicate(self, day, instance: TaskInstance, now: Optional[datetime] = None) -> DuplicatedInstanceRecord:
        """Record an extra idle copy of an instance's task for the date."""
        now = now or datetime.now()
        records = self.get_duplicated(day)
        seed = f"{instance.task.path}|{day_key(day)}|dup|{len(records)}|{now.isoformat()}"
        record = DuplicatedInstanceRecord(
            instance_id=hashlib.sha1(seed.encode('utf-8')).hexdigest()[:16],
            original_path=instance.task.path,
            slot_key=instance.slot_key,
            created_at=now,
        )
        records.append(record)
        self._write(DUPLICATED_PREFIX + day_key(day), [r.to_dict() for r in records])
        return record

    def _read(self, key: str, default):
        try:
            return self.store.get(key, default)
        except StoreError as e:
            logger.warning("Cannot read %s, treated as empty: %s", key, e)
            return default

    def _write(self, key: str, value) -> bool:
        try:
            self.store.set(key, value)
        except StoreError as e:
            logger.error("Failed to persist %s: %s", key, e)
            return False
        return True

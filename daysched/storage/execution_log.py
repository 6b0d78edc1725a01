"""Monthly execution log documents."""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List

from ..models.task import ExecutionEntry
from .deletion import day_key

logger = logging.getLogger(__name__)


def empty_month_document() -> Dict[str, Any]:
    return {
        'metadata': {},
        'dailySummary': {},
        'taskExecutions': {},
        'patterns': {},
    }


class ExecutionLog:
    """One JSON document per month at ``<log_folder>/<YYYY-MM>-tasks.json``."""

    def __init__(self, log_dir):
        self.log_dir = Path(log_dir)

    def month_path(self, day: date) -> Path:
        key = day_key(day)
        return self.log_dir / f"{key[:7]}-tasks.json"

    def load_month(self, day: date) -> Dict[str, Any]:
        """Read the month's document; missing or corrupt files read as empty."""
        path = self.month_path(day)
        if not path.exists():
            return empty_month_document()
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Execution log %s unreadable, treating as empty: %s", path, e)
            return empty_month_document()
        if not isinstance(data, dict):
            logger.warning("Execution log %s is not an object, treating as empty", path)
            return empty_month_document()
        for section, default in empty_month_document().items():
            if not isinstance(data.get(section), dict):
                data[section] = default
        return data

    def load_day(self, day: date) -> List[ExecutionEntry]:
        """Entries recorded for the date, in stored order."""
        raw = self.load_month(day)['taskExecutions'].get(day_key(day))
        if not isinstance(raw, list):
            return []
        return [ExecutionEntry.from_dict(entry) for entry in raw if isinstance(entry, dict)]

    def record(self, day: date, entry: ExecutionEntry) -> None:
        """Merge an entry: replace the one with the same instanceId, else append."""
        data = self.load_month(day)
        entries = data['taskExecutions'].setdefault(day_key(day), [])
        if not isinstance(entries, list):
            entries = data['taskExecutions'][day_key(day)] = []
        stored = entry.to_dict()

        if entry.instance_id:
            for index, existing in enumerate(entries):
                if isinstance(existing, dict) and existing.get('instanceId') == entry.instance_id:
                    entries[index] = stored
                    break
            else:
                entries.append(stored)
        else:
            entries.append(stored)

        self._write(day, data)

    def remove(self, day: date, instance_id: str) -> bool:
        """Delete the entry with the instance id. Returns True if one was removed."""
        data = self.load_month(day)
        entries = data['taskExecutions'].get(day_key(day))
        if not isinstance(entries, list):
            return False
        kept = [e for e in entries if not (isinstance(e, dict) and e.get('instanceId') == instance_id)]
        if len(kept) == len(entries):
            return False
        data['taskExecutions'][day_key(day)] = kept
        self._write(day, data)
        return True

    def _write(self, day: date, data: Dict[str, Any]) -> None:
        path = self.month_path(day)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

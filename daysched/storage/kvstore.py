"""Date-keyed key-value persistence for per-day state."""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a store cannot be read or written."""


class KeyValueStore(ABC):
    """Minimal store interface: whole values are read and replaced, never patched."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def keys(self, prefix: str = '') -> List[str]:
        pass


class MemoryStore(KeyValueStore):
    """In-process store, values copied through JSON on every write."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Value for {key} is not serializable: {e}") from e

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = '') -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


class JsonFileStore(KeyValueStore):
    """Store backed by one JSON object on disk.

    The file is re-read on every access so concurrent writers see each other's
    last full write (last writer wins per key).
    """

    def __init__(self, path):
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError:
            logger.warning("Corrupt state file %s treated as empty", self.path)
            return {}
        except OSError as e:
            raise StoreError(f"Cannot read {self.path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Cannot write {self.path}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)

    def keys(self, prefix: str = '') -> List[str]:
        return sorted(k for k in self._load() if k.startswith(prefix))

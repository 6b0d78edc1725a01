"""Routine rename history."""

import json
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)


class AliasTable:
    """Maps a routine's current name to the names it had before.

    The reverse index (former name -> current name) is rebuilt whenever the
    mapping changes, so ``find_current_name`` is a dict lookup.
    """

    def __init__(self, aliases: Optional[Mapping[str, List[str]]] = None, path=None):
        self.path = Path(path) if path is not None else None
        self._aliases: Dict[str, List[str]] = {}
        self._reverse: Dict[str, str] = {}
        self._set(aliases or {})

    @classmethod
    def load(cls, path) -> 'AliasTable':
        """Load the alias document; unreadable documents yield an empty table."""
        path = Path(path)
        if not path.exists():
            return cls(path=path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load routine alias history %s: %s", path, e)
            return cls(path=path)
        if not isinstance(data, dict):
            logger.warning("Routine alias history %s is not an object", path)
            return cls(path=path)
        return cls(data, path=path)

    def save(self) -> bool:
        if self.path is None:
            return False
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(self._aliases, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error("Failed to save routine alias history %s: %s", self.path, e)
            return False
        return True

    def _set(self, aliases: Mapping[str, List[str]]) -> None:
        self._aliases = {}
        for current, former in aliases.items():
            if not isinstance(current, str) or not isinstance(former, list):
                continue
            names: List[str] = []
            for name in former:
                if isinstance(name, str) and name and name != current and name not in names:
                    names.append(name)
            self._aliases[current] = names

        self._reverse = {}
        for current, former in self._aliases.items():
            for name in former:
                # First current name listing a former name wins
                self._reverse.setdefault(name, current)

    def get_aliases(self, name: str) -> List[str]:
        return list(self._aliases.get(name, []))

    def find_current_name(self, former_name: str) -> Optional[str]:
        """Current name of a task once known as former_name, or None."""
        current = self._reverse.get(former_name)
        if current is None or current == former_name:
            return None
        return current

    def get_all_possible_names(self, name: str) -> List[str]:
        """The name, its former names, and (when name is itself former) its current family."""
        names = [name]
        for alias in self._aliases.get(name, []):
            if alias not in names:
                names.append(alias)
        current = self.find_current_name(name)
        if current:
            for candidate in [current] + self._aliases.get(current, []):
                if candidate not in names:
                    names.append(candidate)
        return names

    def add_alias(self, new_name: str, old_name: str) -> None:
        """Record that old_name was renamed to new_name."""
        if not new_name or not old_name or new_name == old_name:
            return
        aliases = {k: list(v) for k, v in self._aliases.items()}
        history = aliases.pop(old_name, [])
        merged = aliases.get(new_name, []) + history + [old_name]
        aliases[new_name] = merged
        self._set(aliases)

    def to_dict(self) -> Dict[str, List[str]]:
        return {k: list(v) for k, v in self._aliases.items()}

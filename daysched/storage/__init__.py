"""Persistence collaborators: vault files, execution log and per-day state."""

from .aliases import AliasTable
from .day_state import DayStateStore
from .deletion import DeletionStateStore, deletion_matches, is_visible
from .execution_log import ExecutionLog
from .kvstore import JsonFileStore, KeyValueStore, MemoryStore, StoreError
from .vault import TaskFile, Vault

__all__ = [
    'AliasTable',
    'DayStateStore',
    'DeletionStateStore',
    'deletion_matches',
    'is_visible',
    'ExecutionLog',
    'KeyValueStore',
    'MemoryStore',
    'JsonFileStore',
    'StoreError',
    'TaskFile',
    'Vault',
]

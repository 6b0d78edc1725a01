"""Shared fixtures: a temporary vault with task files, state store and log."""

import textwrap
from pathlib import Path

import pytest

from daysched.engine.reconciler import InstanceReconciler
from daysched.models.task import ExecutionEntry
from daysched.storage.aliases import AliasTable
from daysched.storage.day_state import DayStateStore
from daysched.storage.deletion import DeletionStateStore
from daysched.storage.execution_log import ExecutionLog
from daysched.storage.kvstore import MemoryStore
from daysched.storage.vault import Vault

TASK_FOLDER = 'TaskChute/Task'
PROJECT_FOLDER = 'TaskChute/Project'
LOG_FOLDER = 'TaskChute/Log'


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    (tmp_path / TASK_FOLDER).mkdir(parents=True)
    return tmp_path


@pytest.fixture
def write_task(vault_root):
    """Write ``<folder>/<name>.md`` with the given YAML frontmatter; returns the vault path."""

    def _write(name: str, frontmatter: str = '', folder: str = TASK_FOLDER, body: str = '#task\n') -> str:
        path = vault_root / folder / f"{name}.md"
        path.parent.mkdir(parents=True, exist_ok=True)
        text = f"---\n{textwrap.dedent(frontmatter).strip()}\n---\n{body}" if frontmatter else body
        path.write_text(text, encoding='utf-8')
        return f"{folder}/{name}.md"

    return _write


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def execution_log(vault_root):
    return ExecutionLog(vault_root / LOG_FOLDER)


@pytest.fixture
def log_entry(execution_log):
    """Append an execution entry for a date."""

    def _log(day, title, start='09:00:00', stop='09:30:00', **fields):
        entry = ExecutionEntry(task_title=title, start_time=start, stop_time=stop, **fields)
        execution_log.record(day, entry)
        return entry

    return _log


@pytest.fixture
def deletions(store):
    return DeletionStateStore(store)


@pytest.fixture
def day_state(store):
    return DayStateStore(store)


@pytest.fixture
def vault(vault_root):
    return Vault(vault_root, TASK_FOLDER, PROJECT_FOLDER)


@pytest.fixture
def reconciler(vault, execution_log, deletions, day_state):
    return InstanceReconciler(
        vault=vault,
        execution_log=execution_log,
        deletions=deletions,
        aliases=AliasTable(),
        day_state=day_state,
    )

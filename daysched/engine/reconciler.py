"""Instance reconciliation: merges task files and the execution log into one day list."""

import hashlib
import logging
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from ..models.task import (
    STATE_DONE,
    STATE_IDLE,
    ExecutionEntry,
    TaskDefinition,
    TaskInstance,
    basename,
)
from ..models.trace import ReconcileResult, SkippedCandidate
from ..recurrence import occurs_on, parse_recurrence
from ..storage.aliases import AliasTable
from ..storage.day_state import DayStateStore
from ..storage.deletion import DeletionStateStore, is_visible
from ..storage.execution_log import ExecutionLog
from ..storage.kvstore import JsonFileStore, KeyValueStore
from ..storage.vault import TaskFile, Vault
from ..utils.config import alias_file_path
from ..utils.datetime_utils import (
    NO_SLOT,
    SLOT_KEYS,
    format_date,
    parse_date,
    parse_time_on,
    slot_for_time,
)
from ..utils.fields import get_scheduled_time
from .migration import SlotMigrator
from .ordering import OrderingEngine

logger = logging.getLogger(__name__)

_VALID_SLOTS = set(SLOT_KEYS) | {NO_SLOT}


def make_instance_id(*parts: str) -> str:
    """Deterministic instance id derived from its identifying parts."""
    seed = '|'.join(parts)
    return hashlib.sha1(seed.encode('utf-8')).hexdigest()[:16]


class InstanceReconciler:
    """Builds the task definitions and instances of one date.

    Collaborators are injected: the vault lists candidate files, the execution
    log supplies today's entries, the deletion store filters removed and
    hidden instances and the alias table links renamed routines to their
    history. The optional day state adds duplicates, slot overrides and saved
    orders.
    """

    def __init__(
        self,
        vault: Vault,
        execution_log: ExecutionLog,
        deletions: DeletionStateStore,
        aliases: Optional[AliasTable] = None,
        day_state: Optional[DayStateStore] = None,
        ordering: Optional[OrderingEngine] = None,
        migrator: Optional[SlotMigrator] = None,
    ):
        self.vault = vault
        self.execution_log = execution_log
        self.deletions = deletions
        self.aliases = aliases or AliasTable()
        self.day_state = day_state
        self.ordering = ordering or OrderingEngine()
        self.migrator = migrator or SlotMigrator()

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        store: Optional[KeyValueStore] = None,
        migrator: Optional[SlotMigrator] = None,
    ) -> 'InstanceReconciler':
        """Wire the reconciler from a loaded configuration."""
        root = Path(config['vault']['root'])
        paths = config['paths']
        store = store or JsonFileStore(root / paths['state_file'])
        return cls(
            vault=Vault(root, paths['task_folder'], paths['project_folder']),
            execution_log=ExecutionLog(root / paths['log_folder']),
            deletions=DeletionStateStore(store),
            aliases=AliasTable.load(root / alias_file_path(config)),
            day_state=DayStateStore(store),
            ordering=OrderingEngine(config.get('ordering', {}).get('step', 100)),
            migrator=migrator,
        )

    def reconcile(self, day) -> ReconcileResult:
        """Build the day list for a date."""
        target = parse_date(day)
        if target is None:
            raise ValueError(f"reconcile requires a date, got {day!r}")
        date_key = format_date(target)

        with ThreadPoolExecutor(max_workers=2) as pool:
            log_future = pool.submit(self.execution_log.load_day, target)
            files_future = pool.submit(self.vault.list_task_files)
            executions = log_future.result()
            files = files_future.result()

        pruned = self.deletions.cleanup_stale(target, self.vault.exists, self.vault.created_at)

        pass_state = _PassState()
        self._add_executed(target, date_key, executions, files, pass_state)
        self._add_scheduled(target, date_key, executions, files, pass_state)
        if self.day_state is not None:
            self._add_duplicates(target, pass_state)
            self._apply_day_state(target, pass_state.instances)
        else:
            for inst in pass_state.instances:
                if inst.state == STATE_IDLE:
                    inst.slot_key = self._default_slot(inst.task)

        self.ordering.ensure_orders(pass_state.instances)
        migrated: List[TaskInstance] = []
        if target == self.migrator.today():
            migrated = self.migrator.migrate(pass_state.instances)
        instances = self.ordering.sort_instances(pass_state.instances)

        logger.info(
            "Reconciled %s: %d task(s), %d instance(s), %d skipped",
            date_key, len(pass_state.definitions), len(instances), len(pass_state.skipped),
        )
        return ReconcileResult(
            date=target,
            tasks=list(pass_state.definitions.values()),
            instances=instances,
            skipped=pass_state.skipped,
            pruned_deletions=pruned,
            migrated=migrated,
        )

    # -------------------- executed tasks --------------------
    def _add_executed(
        self,
        target: date,
        date_key: str,
        executions: List[ExecutionEntry],
        files: List[TaskFile],
        state: '_PassState',
    ) -> None:
        by_path = {f.path: f for f in files}
        by_name: Dict[str, TaskFile] = {}
        for f in files:
            by_name.setdefault(f.basename, f)

        groups: 'OrderedDict[str, List[ExecutionEntry]]' = OrderedDict()
        for entry in executions:
            groups.setdefault(entry.task_title, []).append(entry)

        for title, entries in groups.items():
            state.visited_names.add(title)
            task_file, current_name = self._match_file(title, entries, by_path, by_name)

            if task_file is not None:
                state.visited_names.add(task_file.basename)
                state.claimed_paths.add(task_file.path)
                definition = state.definitions.get(task_file.path)
                if definition is None:
                    definition = self._definition_from_file(task_file, current_name)
            else:
                definition = self._virtual_definition(title, entries[0])
                definition = state.definitions.get(definition.path, definition)

            kept = 0
            for ordinal, entry in enumerate(entries):
                instance_id = entry.instance_id or make_instance_id(definition.path, date_key, title, str(ordinal))
                if instance_id in state.seen_ids:
                    logger.debug("Log entry %s repeats an instance id, ignored", instance_id)
                    continue
                if not is_visible(self.deletions, instance_id, definition.path, target):
                    state.skip(definition.path, "deleted or hidden")
                    continue
                state.add(TaskInstance(
                    task=definition,
                    instance_id=instance_id,
                    date=target,
                    state=STATE_DONE,
                    slot_key=self._executed_slot(target, entry),
                    start_time=parse_time_on(target, entry.start_time),
                    stop_time=parse_time_on(target, entry.stop_time),
                    executed_title=entry.task_title,
                ))
                kept += 1

            if kept:
                state.definitions.setdefault(definition.path, definition)

    def _match_file(
        self,
        title: str,
        entries: List[ExecutionEntry],
        by_path: Dict[str, TaskFile],
        by_name: Dict[str, TaskFile],
    ) -> Tuple[Optional[TaskFile], Optional[str]]:
        """Backing file of a logged title and, when reached through an alias, the current name."""
        for entry in entries:
            if entry.task_path and entry.task_path in by_path:
                return by_path[entry.task_path], None
        if title in by_name:
            return by_name[title], None
        current = self.aliases.find_current_name(title)
        if current and current in by_name:
            logger.debug("Log title %r resolved to renamed task %r", title, current)
            return by_name[current], current
        return None, None

    def _virtual_definition(self, title: str, entry: ExecutionEntry) -> TaskDefinition:
        path = entry.task_path or f"{self.vault.task_folder}/{title}.md"
        project = self.vault.resolve_project({'project': entry.project}) if entry.project else None
        return TaskDefinition(
            title=title,
            path=path,
            backing_file=None,
            is_routine=entry.task_type == 'routine',
            project=project,
        )

    def _executed_slot(self, target: date, entry: ExecutionEntry) -> str:
        if entry.slot_key in _VALID_SLOTS:
            return entry.slot_key
        start = parse_time_on(target, entry.start_time)
        if start is not None:
            return slot_for_time(start.strftime('%H:%M')) or NO_SLOT
        return NO_SLOT

    # -------------------- file-backed idle tasks --------------------
    def _add_scheduled(
        self,
        target: date,
        date_key: str,
        executions: List[ExecutionEntry],
        files: List[TaskFile],
        state: '_PassState',
    ) -> None:
        executed_titles = {entry.task_title for entry in executions}

        for task_file in files:
            if task_file.path in state.claimed_paths or task_file.basename in state.visited_names:
                continue
            if not task_file.is_task:
                logger.debug("%s is not tagged as a task", task_file.path)
                continue
            definition = self._definition_from_file(task_file)

            if definition.is_routine:
                if not occurs_on(definition.recurrence, target):
                    logger.debug("%s not due on %s", task_file.path, date_key)
                    continue
                names = self.aliases.get_all_possible_names(task_file.basename)
                if any(name in executed_titles for name in names):
                    state.skip(task_file.path, "already executed under another name")
                    continue
            elif not self._non_routine_due(task_file, target):
                continue

            instance_id = make_instance_id(task_file.path, date_key)
            if not is_visible(self.deletions, instance_id, task_file.path, target):
                state.skip(task_file.path, "deleted or hidden")
                continue
            if self.deletions.is_permanently_deleted(task_file.path, target, task_file.created_at):
                state.skip(task_file.path, "permanently deleted")
                continue

            state.definitions.setdefault(definition.path, definition)
            state.claimed_paths.add(task_file.path)
            state.add(TaskInstance(task=definition, instance_id=instance_id, date=target))

    def _non_routine_due(self, task_file: TaskFile, target: date) -> bool:
        """Non-routine files show on their target date, else on their creation date."""
        raw_target = task_file.frontmatter.get('target_date')
        if raw_target is not None:
            return parse_date(raw_target) == target
        if task_file.created_at is None:
            return False
        return task_file.created_at.date() == target

    def _definition_from_file(self, task_file: TaskFile, current_name: Optional[str] = None) -> TaskDefinition:
        frontmatter = task_file.frontmatter
        try:
            recurrence = parse_recurrence(frontmatter)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning("Routine metadata of %s unusable, loading as non-routine: %s", task_file.path, e)
            recurrence = None
        return TaskDefinition(
            title=task_file.basename,
            path=task_file.path,
            backing_file=task_file.path,
            is_routine=recurrence is not None,
            recurrence=recurrence,
            scheduled_time=get_scheduled_time(frontmatter),
            project=self.vault.resolve_project(frontmatter),
            current_name=current_name,
        )

    # -------------------- day state --------------------
    def _add_duplicates(self, target: date, state: '_PassState') -> None:
        for record in self.day_state.get_duplicated(target):
            if record.instance_id in state.seen_ids:
                continue
            definition = state.definitions.get(record.original_path)
            if definition is None:
                if self.vault.exists(record.original_path):
                    task_file = TaskFile(
                        path=record.original_path,
                        frontmatter=self.vault.read_frontmatter(record.original_path),
                        created_at=self.vault.created_at(record.original_path),
                    )
                    definition = self._definition_from_file(task_file)
                else:
                    definition = TaskDefinition(
                        title=basename(record.original_path),
                        path=record.original_path,
                    )
            if not is_visible(self.deletions, record.instance_id, definition.path, target):
                state.skip(definition.path, "duplicate deleted or hidden")
                continue
            state.definitions.setdefault(definition.path, definition)
            slot_key = record.slot_key if record.slot_key in _VALID_SLOTS else NO_SLOT
            state.add(TaskInstance(
                task=definition,
                instance_id=record.instance_id,
                date=target,
                slot_key=slot_key,
            ))

    def _apply_day_state(self, target: date, instances: List[TaskInstance]) -> None:
        overrides = self.day_state.get_slot_overrides(target)
        for inst in instances:
            if inst.state != STATE_IDLE:
                continue
            override = overrides.get(inst.task.path)
            if override in _VALID_SLOTS:
                inst.slot_key = override
            elif inst.slot_key == NO_SLOT:
                inst.slot_key = self._default_slot(inst.task)

        saved = self.day_state.get_orders(target)
        for inst in instances:
            order = saved.get(inst.order_key())
            if order is not None:
                inst.order = order

    @staticmethod
    def _default_slot(task: TaskDefinition) -> str:
        return slot_for_time(task.scheduled_time) or NO_SLOT


class _PassState:
    """Accumulators of one reconciliation pass."""

    def __init__(self):
        self.definitions: 'OrderedDict[str, TaskDefinition]' = OrderedDict()
        self.instances: List[TaskInstance] = []
        self.skipped: List[SkippedCandidate] = []
        self.seen_ids: Set[str] = set()
        self.visited_names: Set[str] = set()
        self.claimed_paths: Set[str] = set()

    def add(self, instance: TaskInstance) -> None:
        self.seen_ids.add(instance.instance_id)
        self.instances.append(instance)

    def skip(self, path: str, reason: str) -> None:
        self.skipped.append(SkippedCandidate(path=path, reason=reason))


def reconcile(
    day,
    vault: Vault,
    execution_log: ExecutionLog,
    deletions: DeletionStateStore,
    aliases: Optional[AliasTable] = None,
    day_state: Optional[DayStateStore] = None,
) -> ReconcileResult:
    """Reconcile one date with the given collaborators."""
    return InstanceReconciler(vault, execution_log, deletions, aliases, day_state).reconcile(day)

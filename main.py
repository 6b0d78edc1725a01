"""Main entry point for the daysched task reconciliation engine."""

import argparse
import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

from daysched.engine.migration import SlotMigrator
from daysched.engine.reconciler import InstanceReconciler
from daysched.models.task import STATE_DONE
from daysched.storage.aliases import AliasTable
from daysched.storage.day_state import DayStateStore
from daysched.storage.deletion import DeletionStateStore
from daysched.storage.kvstore import JsonFileStore
from daysched.utils.config import alias_file_path, get_default_config, load_config
from daysched.utils.datetime_utils import parse_date, parse_time_on

logger = logging.getLogger('daysched')


def setup_logging(config: Dict[str, Any]):
    """Configure root logging from the config's logging section."""
    level = str(config.get('logging', {}).get('level', 'INFO')).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def _state_store(config: Dict[str, Any]) -> JsonFileStore:
    root = Path(config['vault']['root'])
    return JsonFileStore(root / config['paths']['state_file'])


def run_reconcile(config: Dict[str, Any], day: date, as_json: bool = False):
    """Print the day list for a date."""
    result = InstanceReconciler.from_config(config, _state_store(config)).reconcile(day)
    if as_json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(result.to_human_readable())
    return result


def run_migrate(config: Dict[str, Any], day: date, now: Optional[datetime] = None):
    """Move idle tasks out of elapsed slots and persist the new layout."""
    store = _state_store(config)
    now = now or datetime.combine(day, datetime.now().time())
    reconciler = InstanceReconciler.from_config(config, store, SlotMigrator(now))
    result = reconciler.reconcile(day)

    moved = result.migrated
    day_state = DayStateStore(store)
    for inst in moved:
        day_state.set_slot_override(day, inst.task.path, inst.slot_key)
    day_state.save_orders(day, result.instances)

    print(f"Moved {len(moved)} idle task(s)")
    for inst in moved:
        print(f"  {inst.display_title} -> {inst.slot_key}")
    return moved


def run_cleanup(config: Dict[str, Any], day: date):
    """Prune permanent deletion records whose file exists again."""
    reconciler = InstanceReconciler.from_config(config, _state_store(config))
    removed = reconciler.deletions.cleanup_stale(
        day, reconciler.vault.exists, reconciler.vault.created_at
    )
    print(f"Removed {removed} stale deletion record(s)")
    return removed


def run_delete(config: Dict[str, Any], day: date, instance_id: str, permanent: bool = False) -> bool:
    """Delete one instance; permanent deletion also removes the task file."""
    store = _state_store(config)
    reconciler = InstanceReconciler.from_config(config, store)
    result = reconciler.reconcile(day)

    instance = next((i for i in result.instances if i.instance_id == instance_id), None)
    if instance is None:
        print(f"No instance {instance_id} on {day.isoformat()}", file=sys.stderr)
        return False

    reconciler.deletions.delete_instance(day, instance, permanent=permanent)
    if instance.state == STATE_DONE:
        reconciler.execution_log.remove(day, instance.instance_id)
    if permanent and instance.task.backing_file:
        file_path = reconciler.vault.absolute(instance.task.backing_file)
        if file_path.exists():
            file_path.unlink()
            logger.info("Removed task file %s", instance.task.backing_file)

    print(f"Deleted {instance.display_title} ({'permanent' if permanent else 'temporary'})")
    return True


def run_hide(config: Dict[str, Any], day: date, path: str) -> bool:
    """Hide a routine for one date."""
    deletions = DeletionStateStore(_state_store(config))
    ok = deletions.hide(day, path)
    print(f"Hid {path} on {day.isoformat()}")
    return ok


def run_alias(config: Dict[str, Any], new_name: str, old_name: str) -> bool:
    """Record a routine rename."""
    path = Path(config['vault']['root']) / alias_file_path(config)
    aliases = AliasTable.load(path)
    aliases.add_alias(new_name, old_name)
    ok = aliases.save()
    print(f"{new_name}: {', '.join(aliases.get_aliases(new_name))}")
    return ok


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Daily task instance reconciliation engine"
    )
    parser.add_argument(
        'command',
        choices=['reconcile', 'migrate', 'cleanup', 'delete', 'hide', 'alias'],
        help='Command to run'
    )
    parser.add_argument(
        'names',
        nargs='*',
        help='For alias: NEW_NAME OLD_NAME'
    )
    parser.add_argument(
        '--config',
        type=str,
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )
    parser.add_argument(
        '--date',
        type=str,
        default=None,
        help='Date to operate on, YYYY-MM-DD (default: today)'
    )
    parser.add_argument('--json', action='store_true', help='Print the reconcile result as JSON')
    parser.add_argument('--now', type=str, default=None, help='Current time HH:MM for migrate')
    parser.add_argument('--instance-id', type=str, default=None, help='Instance to delete')
    parser.add_argument('--permanent', action='store_true', help='Delete the task file as well')
    parser.add_argument('--path', type=str, default=None, help='Vault-relative task path to hide')

    args = parser.parse_args(argv)

    config = load_config(args.config) if Path(args.config).exists() else get_default_config()
    setup_logging(config)

    day = parse_date(args.date) if args.date else date.today()
    if day is None:
        parser.error(f"invalid --date: {args.date}")

    if args.command == 'reconcile':
        run_reconcile(config, day, args.json)
    elif args.command == 'migrate':
        now = None
        if args.now:
            now = parse_time_on(day, args.now)
            if now is None:
                parser.error(f"invalid --now: {args.now}")
        run_migrate(config, day, now)
    elif args.command == 'cleanup':
        run_cleanup(config, day)
    elif args.command == 'delete':
        if not args.instance_id:
            parser.error("delete requires --instance-id")
        if not run_delete(config, day, args.instance_id, args.permanent):
            return 1
    elif args.command == 'hide':
        if not args.path:
            parser.error("hide requires --path")
        run_hide(config, day, args.path)
    elif args.command == 'alias':
        if len(args.names) != 2:
            parser.error("alias requires NEW_NAME OLD_NAME")
        run_alias(config, args.names[0], args.names[1])

    return 0


if __name__ == "__main__":
    sys.exit(main())

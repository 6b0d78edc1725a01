"""Tests for the command-line entry point."""

import json
import textwrap

import pytest

import main
from daysched.storage.aliases import AliasTable
from daysched.storage.deletion import DeletionStateStore
from daysched.storage.kvstore import JsonFileStore


@pytest.fixture
def cli_vault(tmp_path):
    task_dir = tmp_path / 'TaskChute' / 'Task'
    task_dir.mkdir(parents=True)
    (task_dir / 'Stretch.md').write_text(textwrap.dedent("""\
        ---
        isRoutine: true
        routine_type: daily
        scheduled_time: '09:00'
        ---
        #task
    """), encoding='utf-8')
    config = tmp_path / 'config.yaml'
    config.write_text(f"vault:\n  root: '{tmp_path.as_posix()}'\n", encoding='utf-8')
    return tmp_path, str(config)


def state_store(root):
    return JsonFileStore(root / 'TaskChute' / 'Log' / 'day-state.json')


def test_reconcile_json(cli_vault, capsys):
    _, config = cli_vault
    assert main.main(['reconcile', '--config', config, '--date', '2024-03-04', '--json']) == 0

    output = json.loads(capsys.readouterr().out)
    assert output['date'] == '2024-03-04'
    assert [i['title'] for i in output['taskInstances']] == ['Stretch']


def test_reconcile_human_readable(cli_vault, capsys):
    _, config = cli_vault
    main.main(['reconcile', '--config', config, '--date', '2024-03-04'])
    out = capsys.readouterr().out
    assert '[8:00-12:00]' in out
    assert 'Stretch' in out


def test_migrate_persists_slot_override(cli_vault, capsys):
    root, config = cli_vault
    main.main(['migrate', '--config', config, '--date', '2024-03-04', '--now', '17:15'])

    assert 'Moved 1 idle task(s)' in capsys.readouterr().out
    overrides = state_store(root).get('slot-overrides-2024-03-04')
    assert overrides == {'TaskChute/Task/Stretch.md': '16:00-0:00'}


def test_hide_and_delete(cli_vault, capsys):
    root, config = cli_vault
    main.main(['reconcile', '--config', config, '--date', '2024-03-04', '--json'])
    instance_id = json.loads(capsys.readouterr().out)['taskInstances'][0]['instanceId']

    assert main.main(['delete', '--config', config, '--date', '2024-03-04',
                      '--instance-id', instance_id]) == 0
    deletions = DeletionStateStore(state_store(root))
    assert deletions.is_deleted(instance_id, 'TaskChute/Task/Stretch.md', '2024-03-04')

    main.main(['hide', '--config', config, '--date', '2024-03-05', '--path', 'TaskChute/Task/Stretch.md'])
    assert deletions.is_hidden(None, 'TaskChute/Task/Stretch.md', '2024-03-05')


def test_delete_unknown_instance(cli_vault, capsys):
    _, config = cli_vault
    assert main.main(['delete', '--config', config, '--date', '2024-03-04', '--instance-id', 'nope']) == 1


def test_permanent_delete_removes_file(cli_vault):
    root, config = cli_vault
    from daysched.engine.reconciler import make_instance_id
    instance_id = make_instance_id('TaskChute/Task/Stretch.md', '2024-03-04')

    main.main(['delete', '--config', config, '--date', '2024-03-04',
               '--instance-id', instance_id, '--permanent'])

    assert not (root / 'TaskChute' / 'Task' / 'Stretch.md').exists()


def test_alias(cli_vault):
    root, config = cli_vault
    main.main(['alias', 'Morning stretch', 'Stretch', '--config', config])
    table = AliasTable.load(root / 'TaskChute' / 'Task' / 'routine-aliases.json')
    assert table.find_current_name('Stretch') == 'Morning stretch'


def test_argument_errors(cli_vault):
    _, config = cli_vault
    with pytest.raises(SystemExit):
        main.main(['alias', 'only-one', '--config', config])
    with pytest.raises(SystemExit):
        main.main(['reconcile', '--config', config, '--date', 'soon'])

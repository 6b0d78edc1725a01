"""Tests for configuration loading."""

import json

import pytest

from daysched.utils.config import alias_file_path, get_default_config, load_config


def test_defaults():
    config = get_default_config()
    assert config['paths']['task_folder'] == 'TaskChute/Task'
    assert config['ordering']['step'] == 100
    assert alias_file_path(config) == 'TaskChute/Task/routine-aliases.json'


def test_partial_yaml_is_merged_over_defaults(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text("paths:\n  task_folder: Tasks\nlogging:\n  level: DEBUG\n", encoding='utf-8')

    config = load_config(str(path))

    assert config['paths']['task_folder'] == 'Tasks'
    assert config['paths']['log_folder'] == 'TaskChute/Log'
    assert config['logging']['level'] == 'DEBUG'
    assert alias_file_path(config) == 'Tasks/routine-aliases.json'


def test_json_config(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'paths': {'alias_file': 'aliases.json'}}), encoding='utf-8')
    assert alias_file_path(load_config(str(path))) == 'aliases.json'


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / 'config.yml'
    path.write_text('', encoding='utf-8')
    assert load_config(str(path)) == get_default_config()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / 'nope.yaml'))


def test_unsupported_format(tmp_path):
    path = tmp_path / 'config.toml'
    path.write_text('x = 1', encoding='utf-8')
    with pytest.raises(ValueError):
        load_config(str(path))

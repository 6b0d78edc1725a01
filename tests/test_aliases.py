"""Tests for the routine alias table."""

import json

from daysched.storage.aliases import AliasTable


def test_find_current_name():
    table = AliasTable({'Morning run': ['Jog', 'Run']})
    assert table.find_current_name('Jog') == 'Morning run'
    assert table.find_current_name('Run') == 'Morning run'
    assert table.find_current_name('Morning run') is None
    assert table.find_current_name('Unknown') is None


def test_all_possible_names():
    table = AliasTable({'Morning run': ['Jog', 'Run']})
    assert table.get_all_possible_names('Morning run') == ['Morning run', 'Jog', 'Run']
    assert table.get_all_possible_names('Other') == ['Other']


def test_add_alias_folds_history():
    table = AliasTable({'B': ['A']})
    table.add_alias('C', 'B')
    assert table.get_aliases('C') == ['A', 'B']
    assert table.get_aliases('B') == []
    assert table.find_current_name('A') == 'C'


def test_add_alias_ignores_self_rename():
    table = AliasTable()
    table.add_alias('A', 'A')
    assert table.to_dict() == {}


def test_renaming_back_drops_self_reference():
    table = AliasTable()
    table.add_alias('B', 'A')
    table.add_alias('A', 'B')
    assert table.get_aliases('A') == ['B']
    assert table.find_current_name('B') == 'A'


def test_load_and_save(tmp_path):
    path = tmp_path / 'routine-aliases.json'
    path.write_text(json.dumps({'New': ['Old']}), encoding='utf-8')

    table = AliasTable.load(path)
    assert table.find_current_name('Old') == 'New'

    table.add_alias('Newer', 'New')
    assert table.save()
    assert json.loads(path.read_text(encoding='utf-8')) == {'Newer': ['Old', 'New']}


def test_load_missing_or_corrupt_file_is_empty(tmp_path):
    assert AliasTable.load(tmp_path / 'missing.json').to_dict() == {}

    corrupt = tmp_path / 'corrupt.json'
    corrupt.write_text('{not json', encoding='utf-8')
    assert AliasTable.load(corrupt).to_dict() == {}


def test_malformed_entries_are_skipped():
    table = AliasTable({'Good': ['Old', 3, ''], 'Bad': 'not a list'})
    assert table.to_dict() == {'Good': ['Old']}

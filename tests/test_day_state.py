"""Tests for slot overrides, saved orders and duplicated instances."""

from datetime import date, datetime

from daysched.models.task import TaskDefinition, TaskInstance
from daysched.storage.day_state import DayStateStore
from daysched.storage.kvstore import JsonFileStore, MemoryStore

DAY = date(2024, 3, 1)


def make_instance(instance_id='id-1', slot_key='8:00-12:00', order=None):
    return TaskInstance(
        task=TaskDefinition(title='a', path='Task/a.md'),
        instance_id=instance_id,
        date=DAY,
        slot_key=slot_key,
        order=order,
    )


def test_slot_overrides(day_state):
    day_state.set_slot_override(DAY, 'Task/a.md', '12:00-16:00')
    assert day_state.get_slot_overrides(DAY) == {'Task/a.md': '12:00-16:00'}
    assert day_state.get_slot_overrides(date(2024, 3, 2)) == {}


def test_save_and_get_orders(day_state):
    day_state.save_orders(DAY, [make_instance('a', order=150), make_instance('b', order=None)])
    assert day_state.get_orders(DAY) == {'a::8:00-12:00': 150}


def test_legacy_order_shape_is_normalized():
    store = MemoryStore({'orders-2024-03-01': {
        'a': {'order': 300, 'slot': '12:00-16:00'},
        'b::none': 200,
        'c': True,
    }})
    assert DayStateStore(store).get_orders(DAY) == {'a::12:00-16:00': 300, 'b::none': 200}


def test_duplicate_creates_record(day_state):
    record = day_state.duplicate(DAY, make_instance(), now=datetime(2024, 3, 1, 9))
    stored = day_state.get_duplicated(DAY)
    assert stored == [record]
    assert record.original_path == 'Task/a.md'
    assert record.slot_key == '8:00-12:00'
    assert record.instance_id != 'id-1'


def test_json_file_store_round_trips_state(tmp_path):
    path = tmp_path / 'state' / 'day-state.json'
    first = DayStateStore(JsonFileStore(path))
    first.set_slot_override(DAY, 'Task/a.md', '16:00-0:00')

    second = DayStateStore(JsonFileStore(path))
    assert second.get_slot_overrides(DAY) == {'Task/a.md': '16:00-0:00'}


def test_corrupt_json_file_reads_as_empty(tmp_path):
    path = tmp_path / 'day-state.json'
    path.write_text('{oops', encoding='utf-8')
    store = JsonFileStore(path)
    assert store.get('orders-2024-03-01', {}) == {}
    assert store.keys() == []

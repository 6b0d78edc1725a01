"""Tests for moving idle instances out of elapsed slots."""

from datetime import date, datetime

import pytest

from daysched.engine.migration import SlotMigrator, migrate_idle_to_current_slot
from daysched.models.task import TaskDefinition, TaskInstance


def make(instance_id, slot_key, state='idle', order=100, manual=False):
    return TaskInstance(
        task=TaskDefinition(title=instance_id, path=f"Task/{instance_id}.md"),
        instance_id=instance_id,
        date=date(2024, 3, 1),
        state=state,
        slot_key=slot_key,
        order=order,
        manually_positioned=manual,
    )


def test_moves_elapsed_idle_instances():
    stale = make('stale', '8:00-12:00', order=250, manual=True)
    moved = migrate_idle_to_current_slot([stale], '16:00-0:00')
    assert moved == [stale]
    assert stale.slot_key == '16:00-0:00'
    assert stale.order == 250
    assert stale.manually_positioned


def test_leaves_current_later_unslotted_and_finished_instances():
    current = make('current', '16:00-0:00')
    unslotted = make('unslotted', 'none')
    done = make('done', '8:00-12:00', state='done')
    running = make('running', '0:00-8:00', state='running')

    moved = migrate_idle_to_current_slot([current, unslotted, done, running], '16:00-0:00')

    assert moved == []
    assert current.slot_key == '16:00-0:00'
    assert unslotted.slot_key == 'none'
    assert done.slot_key == '8:00-12:00'
    assert running.slot_key == '0:00-8:00'


def test_later_slot_is_untouched():
    later = make('later', '12:00-16:00')
    assert migrate_idle_to_current_slot([later], '8:00-12:00') == []
    assert later.slot_key == '12:00-16:00'


def test_current_slot_must_be_a_time_slot():
    with pytest.raises(ValueError):
        migrate_idle_to_current_slot([], 'none')
    with pytest.raises(ValueError):
        migrate_idle_to_current_slot([], '9:00-10:00')


def test_migrator_uses_given_moment():
    stale = make('stale', '0:00-8:00')
    migrator = SlotMigrator(now=datetime(2024, 3, 1, 13, 5))
    assert migrator.current_slot() == '12:00-16:00'
    assert migrator.migrate([stale]) == [stale]
    assert stale.slot_key == '12:00-16:00'
    assert migrator.today() == date(2024, 3, 1)

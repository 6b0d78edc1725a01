"""Tests for order keys, the slot comparator and drag placement."""

from datetime import date, datetime

import pytest

from daysched.engine.ordering import DRAG_REFUSAL, OrderingEngine, state_rank
from daysched.models.task import TaskDefinition, TaskInstance

DAY = date(2024, 3, 1)
SLOT = '8:00-12:00'


def make(instance_id, state='idle', order=None, slot_key=SLOT, start=None, scheduled=None, title=None):
    task = TaskDefinition(title=title or instance_id, path=f"Task/{instance_id}.md", scheduled_time=scheduled)
    return TaskInstance(
        task=task,
        instance_id=instance_id,
        date=DAY,
        state=state,
        slot_key=slot_key,
        order=order,
        start_time=start,
    )


@pytest.fixture
def engine():
    return OrderingEngine()


class TestCalculateOrder:
    @pytest.mark.parametrize('index,expected', [(0, 0), (1, 150), (2, 250), (3, 400)])
    def test_midpoint_law(self, engine, index, expected):
        siblings = [make('a', order=100), make('b', order=200), make('c', order=300)]
        assert engine.calculate_order(index, siblings) == expected

    def test_empty_slot(self, engine):
        assert engine.calculate_order(0, []) == 100

    def test_exhausted_gap_renumbers(self, engine):
        siblings = [make('a', order=100), make('b', order=101), make('c', order=102)]
        order = engine.calculate_order(1, siblings)
        assert [s.order for s in siblings] == [100, 200, 300]
        assert order == 150

    def test_missing_orders_are_seeded(self, engine):
        siblings = [make('a', order=None), make('b', order=None)]
        assert engine.calculate_order(2, siblings) == 300


class TestSorting:
    def test_state_rank(self):
        assert state_rank(make('d', state='done')) < state_rank(make('r', state='running'))
        assert state_rank(make('r', state='running')) < state_rank(make('i'))

    def test_done_and_running_sort_before_idle(self, engine):
        idle = make('i', order=-500)
        running = make('r', state='running', start=datetime(2024, 3, 1, 10))
        done_late = make('d2', state='done', start=datetime(2024, 3, 1, 9, 30))
        done_early = make('d1', state='done', start=datetime(2024, 3, 1, 9))
        ordered = engine.sort_slot([idle, running, done_late, done_early])
        assert [i.instance_id for i in ordered] == ['d1', 'd2', 'r', 'i']

    def test_instances_follow_slot_order(self, engine):
        late = make('late', slot_key='16:00-0:00', order=100)
        none = make('none', slot_key='none', order=100)
        early = make('early', slot_key='0:00-8:00', order=100)
        assert [i.instance_id for i in engine.sort_instances([none, late, early])] == ['early', 'late', 'none']

    def test_unknown_slot_is_rejected(self, engine):
        with pytest.raises(ValueError):
            engine.sort_instances([make('x', slot_key='9:00-10:00')])


class TestEnsureOrders:
    def test_fills_missing_orders(self, engine):
        done_b = make('db', state='done', start=datetime(2024, 3, 1, 9, 30))
        done_a = make('da', state='done', start=datetime(2024, 3, 1, 9))
        kept = make('kept', order=500)
        scheduled = make('sched', scheduled='10:00')
        loose_b = make('loose-b', title='B')
        loose_a = make('loose-a', title='A')

        engine.ensure_orders([done_b, done_a, kept, scheduled, loose_b, loose_a])

        assert (done_a.order, done_b.order) == (100, 200)
        assert kept.order == 500
        # unscheduled idle go above the lowest known order, first title nearest it
        assert (loose_a.order, loose_b.order) == (0, -100)
        assert scheduled.order == 600

    def test_running_goes_after_done(self, engine):
        done = make('d', state='done', start=datetime(2024, 3, 1, 9))
        running = make('r', state='running', start=datetime(2024, 3, 1, 10))
        engine.ensure_orders([running, done])
        assert done.order == 100
        assert running.order == 200

    def test_slots_are_independent(self, engine):
        a = make('a', slot_key='0:00-8:00')
        b = make('b', slot_key='none')
        engine.ensure_orders([a, b])
        assert a.order == 100 and b.order == 100


class TestMoveInstance:
    def test_refuses_placing_above_done(self, engine):
        done = make('d', state='done', start=datetime(2024, 3, 1, 9), order=100)
        other = make('o', order=200)
        moving = make('m', slot_key='12:00-16:00', order=700)

        result = engine.move_instance([done, other, moving], moving, SLOT, 0)

        assert not result.accepted
        assert result.reason == DRAG_REFUSAL
        assert moving.slot_key == '12:00-16:00'
        assert moving.order == 700
        assert not moving.manually_positioned

    def test_places_between_idle_siblings(self, engine):
        done = make('d', state='done', start=datetime(2024, 3, 1, 9), order=100)
        first = make('a', order=200)
        second = make('b', order=400)
        moving = make('m', slot_key='none', order=100)

        result = engine.move_instance([done, first, second, moving], moving, SLOT, 2)

        assert result.accepted
        assert moving.slot_key == SLOT
        assert moving.order == 300
        assert moving.manually_positioned

    def test_only_idle_instances_move(self, engine):
        running = make('r', state='running', start=datetime(2024, 3, 1, 9))
        result = engine.move_instance([running], running, 'none', 0)
        assert not result.accepted
        assert running.slot_key == SLOT

    def test_unknown_target_slot(self, engine):
        moving = make('m')
        with pytest.raises(ValueError):
            engine.move_instance([moving], moving, 'morning', 0)

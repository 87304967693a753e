import pytest

from centipede.sim.tick_scheduler import TickScheduler


def test_callback_runs_after_exact_number_of_ticks():
    scheduler = TickScheduler()
    calls = []
    scheduler.call_later(lambda: calls.append("a"), 3)

    scheduler.tick()
    scheduler.tick()
    assert calls == []
    assert scheduler.pending == 1

    scheduler.tick()
    assert calls == ["a"]
    assert scheduler.pending == 0
    assert scheduler.tick_count == 3


def test_due_tasks_run_in_scheduling_order():
    scheduler = TickScheduler()
    calls = []
    scheduler.call_later(lambda: calls.append(1))
    scheduler.call_later(lambda: calls.append(2))
    scheduler.tick()
    assert calls == [1, 2]


def test_task_scheduled_from_callback_waits_for_next_tick():
    scheduler = TickScheduler()
    calls = []

    def first():
        calls.append("first")
        scheduler.call_later(lambda: calls.append("second"))

    scheduler.call_later(first)
    scheduler.tick()
    assert calls == ["first"]
    scheduler.tick()
    assert calls == ["first", "second"]


def test_cancel_and_clear():
    scheduler = TickScheduler()
    calls = []
    task = scheduler.call_later(lambda: calls.append("cancelled"))
    task.cancel()
    scheduler.call_later(lambda: calls.append("cleared"), 2)
    scheduler.clear()

    scheduler.tick()
    scheduler.tick()
    assert calls == []
    assert scheduler.pending == 0


def test_zero_tick_delay_is_rejected():
    with pytest.raises(ValueError):
        TickScheduler().call_later(lambda: None, 0)

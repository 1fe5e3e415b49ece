import os
import sys
import threading
import time

import pytest

# Make project root importable when running tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from sevengcity.network.scheduler import Scheduler


@pytest.fixture
def scheduler():
    sched = Scheduler(name="test-scheduler")
    yield sched
    sched.shutdown()


def test_call_later_never_fires_early(scheduler):
    fired = threading.Event()
    stamps = {}

    def callback():
        stamps['at'] = time.monotonic()
        fired.set()

    start = time.monotonic()
    scheduler.call_later(0.05, callback)
    assert fired.wait(timeout=2)
    assert stamps['at'] - start >= 0.05


def test_timers_fire_in_due_order(scheduler):
    order = []
    done = threading.Event()

    scheduler.call_later(0.06, lambda: (order.append("late"), done.set()))
    scheduler.call_later(0.02, lambda: order.append("early"))
    scheduler.call_later(0.04, lambda: order.append("middle"))

    assert done.wait(timeout=2)
    assert order == ["early", "middle", "late"]


def test_cancelled_timer_does_not_fire(scheduler):
    fired = threading.Event()
    timer = scheduler.call_later(0.05, fired.set)
    timer.cancel()
    assert not fired.wait(timeout=0.2)


def test_call_every_repeats_until_cancelled(scheduler):
    calls = []
    timer = scheduler.call_every(0.01, lambda: calls.append(1))
    time.sleep(0.2)
    timer.cancel()
    seen = len(calls)
    assert seen >= 3
    time.sleep(0.05)
    assert len(calls) <= seen + 1


def test_failing_callback_does_not_stop_scheduler(scheduler):
    survived = threading.Event()

    def boom():
        raise RuntimeError("boom")

    scheduler.call_later(0.0, boom)
    scheduler.call_later(0.02, survived.set)
    assert survived.wait(timeout=2)


def test_shutdown_abandons_pending_timers():
    sched = Scheduler()
    fired = threading.Event()
    sched.call_later(0.1, fired.set)
    sched.shutdown()
    assert not fired.wait(timeout=0.3)
    assert sched.pending() == 0

    late = sched.call_later(0.0, fired.set)
    assert late.cancelled
    assert not fired.wait(timeout=0.1)


def test_call_every_rejects_non_positive_interval(scheduler):
    with pytest.raises(ValueError):
        scheduler.call_every(0, lambda: None)


def test_schedule_racing_shutdown_leaves_no_live_timer():
    sched = Scheduler()
    timers = []
    go = threading.Event()

    def producer():
        go.wait()
        for _ in range(500):
            timers.append(sched.call_later(10.0, lambda: None))

    producers = [threading.Thread(target=producer) for _ in range(4)]
    for t in producers:
        t.start()
    go.set()
    sched.shutdown()
    for t in producers:
        t.join()

    assert len(timers) == 2000
    assert all(timer.cancelled for timer in timers)
    assert sched.pending() == 0

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
from sevengcity.network.slices import Slice
from sevengcity.network.token_bucket import TokenBucket


def make_bucket(capacity=1000, bandwidth=8000, ticks=20):
    return TokenBucket(Slice("s", "test", bandwidth, capacity, 5), ticks_per_second=ticks)


def test_bucket_starts_full():
    bucket = make_bucket(capacity=4096)
    assert bucket.tokens == 4096


def test_consume_sequence_within_capacity_always_admitted():
    bucket = make_bucket(capacity=1000)
    for n in [100, 250, 0, 400, 250]:
        assert bucket.try_consume(n)
    assert bucket.tokens == 0


def test_oversize_request_fails_without_partial_consumption():
    bucket = make_bucket(capacity=1000)
    assert bucket.try_consume(700)
    assert not bucket.try_consume(301)
    assert bucket.tokens == 300
    assert bucket.try_consume(300)


def test_negative_consume_rejected():
    with pytest.raises(ValueError):
        make_bucket().try_consume(-1)


def test_refill_per_tick_follows_bandwidth():
    bucket = make_bucket(capacity=1000, bandwidth=8000, ticks=20)
    assert bucket.refill_per_tick() == 50

    bucket.slice.bandwidth_bps = 16000
    assert bucket.refill_per_tick() == 100

    # Tiny rates still make progress
    bucket.slice.bandwidth_bps = 1
    assert bucket.refill_per_tick() == 1


def test_replenish_never_exceeds_capacity():
    bucket = make_bucket(capacity=1000, bandwidth=8_000_000)
    bucket.try_consume(10)
    for _ in range(50):
        bucket.replenish()
        assert bucket.tokens <= 1000
    assert bucket.tokens == 1000


def test_replenish_adds_one_tick():
    bucket = make_bucket(capacity=1000, bandwidth=8000)
    assert bucket.try_consume(1000)
    assert bucket.replenish() == 50
    assert bucket.replenish() == 100


def test_concurrent_consumers_never_overdraw():
    bucket = make_bucket(capacity=10_000)
    admitted = []
    lock = threading.Lock()

    def worker():
        count = 0
        for _ in range(500):
            if bucket.try_consume(7):
                count += 1
        with lock:
            admitted.append(count)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    total = sum(admitted)
    assert total == 10_000 // 7
    assert bucket.tokens == 10_000 - total * 7


def test_start_registers_periodic_replenishment():
    scheduler = Scheduler()
    try:
        bucket = make_bucket(capacity=1000, bandwidth=80_000, ticks=100)
        bucket.try_consume(1000)
        bucket.start(scheduler)
        deadline = time.monotonic() + 2.0
        while bucket.tokens == 0 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert bucket.tokens > 0

        bucket.shutdown()
        time.sleep(0.05)
        level = bucket.tokens
        time.sleep(0.1)
        assert bucket.tokens == level
    finally:
        scheduler.shutdown()

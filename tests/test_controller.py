import os
import sys
import threading

import pytest

# Make project root importable when running tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from sevengcity.control.controller import BandwidthController, ControllerConfig, ControlSignal
from sevengcity.metrics.aggregator import MetricsAggregator
from sevengcity.network.messages import SealedMessage
from sevengcity.network.scheduler import Scheduler
from sevengcity.network.slices import Slice


def receive(metrics, latency_ms, times=1):
    msg = SealedMessage("a", "b", "s", "telemetry", b"x", None, 1)
    for _ in range(times):
        metrics.on_receive(msg, latency_ms)


def make_controller(bandwidth=3_000_000, target=5, **cfg):
    metrics = MetricsAggregator()
    slice_ = Slice("slice-safety", "safety", bandwidth, 128 * 1024, target)
    metrics.register_slice(slice_)
    controller = BandwidthController([slice_], metrics, ControllerConfig(**cfg))
    return controller, slice_, metrics


def test_high_latency_increases_by_eighth():
    controller, slice_, metrics = make_controller()
    receive(metrics, 12.0)

    changes = controller.tick()

    assert changes == {"slice-safety": 3_375_000}
    assert slice_.bandwidth_bps == 3_375_000
    assert metrics.slice_bandwidths()["slice-safety"] == 3_375_000


def test_small_slice_increase_uses_floor_step():
    controller, slice_, metrics = make_controller(bandwidth=400_000)
    receive(metrics, 12.0)
    controller.tick()
    assert slice_.bandwidth_bps == 550_000


def test_increase_bounded_by_max_step():
    controller, slice_, metrics = make_controller(bandwidth=80_000_000)
    receive(metrics, 50.0)
    controller.tick()
    assert slice_.bandwidth_bps == 86_000_000


def test_drops_alone_trigger_increase():
    controller, slice_, metrics = make_controller()
    receive(metrics, 1.0)
    metrics.on_drop()
    controller.tick()
    assert slice_.bandwidth_bps > 3_000_000


def test_healthy_slice_decays():
    controller, slice_, metrics = make_controller()
    receive(metrics, 1.0)
    controller.tick()
    assert slice_.bandwidth_bps == 2_880_000


def test_decay_bounded_by_min_bandwidth():
    controller, slice_, metrics = make_controller(bandwidth=100_000)
    assert controller.tick() == {}
    assert slice_.bandwidth_bps == 100_000

    for _ in range(200):
        controller.tick()
    assert slice_.bandwidth_bps == 100_000


def test_repeated_decay_converges_to_floor():
    controller, slice_, _ = make_controller(bandwidth=200_000)
    for _ in range(50):
        controller.tick()
    assert slice_.bandwidth_bps == 100_000
    assert controller.tick_count == 50


def test_next_bandwidth_is_pure():
    controller, slice_, _ = make_controller()
    assert controller.next_bandwidth(slice_, ControlSignal(6.0, 0)) == 3_375_000
    assert controller.next_bandwidth(slice_, ControlSignal(5.0, 0)) == 2_880_000
    assert slice_.bandwidth_bps == 3_000_000


def test_cumulative_signal_remembers_early_drop():
    controller, slice_, metrics = make_controller()
    metrics.on_drop()
    controller.tick()
    first = slice_.bandwidth_bps
    controller.tick()
    assert slice_.bandwidth_bps > first


def test_windowed_signal_forgets_early_drop():
    controller, slice_, metrics = make_controller(windowed=True)
    metrics.on_drop()
    controller.tick()
    grown = slice_.bandwidth_bps
    assert grown > 3_000_000

    controller.tick()
    assert slice_.bandwidth_bps == int(grown * 0.96)


def test_windowed_latency_uses_only_new_samples():
    controller, _, metrics = make_controller(windowed=True)
    receive(metrics, 100.0, times=10)
    assert controller.read_signal().avg_latency_ms == pytest.approx(100.0)

    receive(metrics, 2.0, times=5)
    signal = controller.read_signal()
    assert signal.avg_latency_ms == pytest.approx(2.0)
    assert signal.drops == 0


def test_every_slice_reads_the_same_signal():
    metrics = MetricsAggregator()
    tight = Slice("slice-safety", "safety", 3_000_000, 1024, 5)
    loose = Slice("slice-city", "city", 2_000_000, 1024, 15)
    controller = BandwidthController([tight, loose], metrics)
    receive(metrics, 10.0)

    changes = controller.tick()

    assert changes["slice-safety"] > 3_000_000
    assert changes["slice-city"] < 2_000_000


@pytest.mark.parametrize("kwargs", [
    {"interval_s": 0},
    {"floor_step_bps": 0},
    {"floor_step_bps": 10, "max_step_bps": 5},
    {"min_bandwidth_bps": 0},
    {"decay": 1.0},
    {"decay": 0.0},
])
def test_config_validation(kwargs):
    with pytest.raises(ValueError):
        ControllerConfig(**kwargs)


def test_start_ticks_on_scheduler_and_close_stops():
    scheduler = Scheduler()
    metrics = MetricsAggregator()
    slice_ = Slice("slice-city", "city", 2_000_000, 1024, 15)
    controller = BandwidthController([slice_], metrics,
                                     ControllerConfig(interval_s=0.02), scheduler)
    ticked = threading.Event()
    original = controller.tick

    def counting_tick():
        result = original()
        if controller.tick_count >= 3:
            ticked.set()
        return result

    controller.tick = counting_tick
    try:
        controller.start()
        assert ticked.wait(2)
        controller.close()
        count = controller.tick_count
        threading.Event().wait(0.1)
        assert controller.tick_count <= count + 1
    finally:
        scheduler.shutdown()
    assert slice_.bandwidth_bps < 2_000_000


def test_slice_below_floor_is_raised_to_floor_when_healthy():
    controller, slice_, metrics = make_controller(bandwidth=8000)
    receive(metrics, 1.0)
    assert controller.tick() == {"slice-safety": 100_000}
    assert slice_.bandwidth_bps == 100_000

import base64
import json
import os
import sys
import threading
import time

import numpy as np
import pytest

# Make project root importable when running tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from sevengcity.city import EDGE, CityConfig, SmartCity, default_nodes
from sevengcity.control.controller import ControllerConfig
from sevengcity.crypto.transforms import AesGcmTransform
from sevengcity.errors import UnknownDestination
from sevengcity.network.channel import Admission
from sevengcity.network.scheduler import Scheduler
from sevengcity.network.slices import Band, default_slices
from sevengcity.nodes.payloads import hologram_chunk, pad_bytes, preview, telemetry_json
from sevengcity.nodes.traffic import TrafficGenerator, TrafficPattern


# ═══════════════════════════════════════════════════════════════════════════
# Payloads
# ═══════════════════════════════════════════════════════════════════════════

def test_pad_bytes_cycles_filler_and_never_truncates():
    assert pad_bytes(b"", 25) == b"ABCDEFGHIJKLMNOPQRSTUVWAB"
    assert pad_bytes(b"xy", 4) == b"xyCD"
    assert pad_bytes(b"abcdef", 3) == b"abcdef"


def test_telemetry_json_reaches_requested_size():
    body = telemetry_json(256, np.random.default_rng(1))
    assert len(body) == 256
    head = body[:body.index(b"}") + 1]
    record = json.loads(head)
    assert record["type"] == "telemetry"
    assert record["status"] == "OK"
    assert 0 <= record["spd"] < 150


def test_telemetry_json_larger_than_request_is_kept_whole():
    body = telemetry_json(10)
    assert len(body) > 10
    assert json.loads(body)["type"] == "telemetry"


def test_hologram_chunk_layout():
    body = hologram_chunk(16 * 1024, np.random.default_rng(2))
    assert len(body) == 16 * 1024
    assert body.startswith(b"HOLO:")
    _, header_b64, _ = body.split(b":", 2)
    assert len(base64.b64decode(header_b64)) == 64


def test_preview_is_bounded():
    text = preview(b"z" * 1000)
    assert text.startswith("bytes=1000 head(b64)=")
    assert text.endswith(base64.b64encode(b"z" * 40).decode("ascii"))


# ═══════════════════════════════════════════════════════════════════════════
# Traffic generator
# ═══════════════════════════════════════════════════════════════════════════

class SendRecorder:
    """Node stand-in exposing the attributes the generator reads."""

    def __init__(self, patterns, fail_for=()):
        self.name = "Car-X1"
        self.patterns = tuple(patterns)
        self.fail_for = set(fail_for)
        self.sent = []
        self.enough = threading.Event()

    def send(self, band, plain):
        if plain.destination in self.fail_for:
            raise UnknownDestination(plain.destination)
        self.sent.append((band, plain))
        if len(self.sent) >= 5:
            self.enough.set()
        return Admission.SCHEDULED


def test_pattern_validation():
    with pytest.raises(ValueError):
        TrafficPattern(Band.THZ, "slice-safety", EDGE, "video", 10, 0.02)
    with pytest.raises(ValueError):
        TrafficPattern(Band.THZ, "slice-safety", EDGE, "telemetry", 10, 0)


def test_fire_builds_payload_for_pattern():
    pattern = TrafficPattern(Band.OPTICAL, "slice-holo", EDGE, "holo", 2048, 0.05)
    node = SendRecorder([pattern])
    generator = TrafficGenerator(node, Scheduler(), np.random.default_rng(0))

    generator.fire(pattern)

    band, plain = node.sent[0]
    assert band is Band.OPTICAL
    assert plain.source == "Car-X1"
    assert plain.destination == EDGE
    assert plain.slice_id == "slice-holo"
    assert plain.kind == "holo"
    assert len(plain.body) == 2048
    assert generator.fired == 1


def test_fire_to_unknown_destination_is_logged_and_counted():
    pattern = TrafficPattern(Band.THZ, "slice-safety", "Z", "telemetry", 64, 0.05)
    node = SendRecorder([pattern], fail_for={"Z"})
    generator = TrafficGenerator(node, Scheduler())

    generator.fire(pattern)

    assert generator.failed == 1
    assert generator.fired == 0


def test_generator_runs_periodically_until_stopped():
    scheduler = Scheduler()
    pattern = TrafficPattern(Band.THZ, "slice-safety", EDGE, "telemetry", 64, 0.01)
    node = SendRecorder([pattern])
    generator = TrafficGenerator(node, scheduler)
    try:
        generator.start()
        assert node.enough.wait(2)
        generator.stop()
        count = len(node.sent)
        time.sleep(0.1)
        assert len(node.sent) <= count + 1
    finally:
        scheduler.shutdown()


# ═══════════════════════════════════════════════════════════════════════════
# Smart city scenario
# ═══════════════════════════════════════════════════════════════════════════

def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


def test_default_city_layout():
    nodes = default_nodes()
    assert set(nodes) == {"Car-X1", "Drone-D7", "AR-G1", "SensorHub", EDGE}
    assert nodes[EDGE] == ()
    assert len(nodes["Car-X1"]) == 2
    assert all(p.destination == EDGE for patterns in nodes.values() for p in patterns)
    assert {s.slice_id for s in default_slices()} == {"slice-safety", "slice-holo", "slice-city"}


def test_city_runs_and_closes():
    city = SmartCity(CityConfig(seed=7, controller=ControllerConfig(interval_s=0.2)))
    assert len(city.generators) == 4
    with city:
        assert wait_for(lambda: city.snapshot().packets_received > 0)
        assert wait_for(lambda: city.controller.tick_count > 0)

    snap = city.snapshot()
    assert snap.packets_sent > 0
    assert snap.bytes_sent > 0
    assert snap.packets_received + snap.packets_dropped <= snap.packets_sent
    assert snap.average_latency_ms > 0
    assert set(snap.slice_bandwidths) == {"slice-safety", "slice-holo", "slice-city"}
    assert not city.channel.is_open
    assert not any(node.running for node in city.nodes.values())

    time.sleep(0.2)
    assert city.snapshot().packets_sent == snap.packets_sent


def test_city_with_aes_transform_and_custom_handler():
    seen = []
    city = SmartCity(CityConfig(transform="aes", seed=3),
                     handler=lambda node, plain, latency: seen.append(node.name))
    assert isinstance(city.transform, AesGcmTransform)
    with city:
        assert wait_for(lambda: len(seen) > 0)
    assert set(seen) == {EDGE}
    assert city.snapshot().transform_failures == 0

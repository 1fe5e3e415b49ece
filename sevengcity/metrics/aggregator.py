"""
Metrics Aggregator

Counters shared by every component of the simulation, plus the live
slice table read by the exporter and the dashboard.

Each counter has its own lock so concurrent increments are never lost
and a reader only ever waits on a single counter. Across counters a
snapshot is eventually consistent: it may observe a send before the
matching receive is counted, never the other way round.
"""

import threading
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Dict, Union

if TYPE_CHECKING:
    from ..network.messages import SealedMessage
    from ..network.slices import Slice

Number = Union[int, float]


class AtomicCounter:
    """Monotonic counter safe under many concurrent writers."""

    __slots__ = ("_value", "_lock")

    def __init__(self, initial: Number = 0):
        self._value = initial
        self._lock = threading.Lock()

    def add(self, amount: Number) -> Number:
        with self._lock:
            self._value += amount
            return self._value

    def increment(self) -> Number:
        return self.add(1)

    @property
    def value(self) -> Number:
        return self._value


@dataclass(frozen=True)
class MetricsSnapshot:
    """Read-only view handed to exporters and the dashboard."""
    packets_sent: int = 0
    packets_received: int = 0
    packets_dropped: int = 0
    bytes_sent: int = 0
    bytes_received: int = 0
    latency_sum_ms: float = 0.0
    latency_count: int = 0
    transform_failures: int = 0
    slice_bandwidths: Dict[str, int] = field(default_factory=dict)

    @property
    def average_latency_ms(self) -> float:
        if self.latency_count == 0:
            return 0.0
        return self.latency_sum_ms / self.latency_count

    def as_dict(self) -> dict:
        data = asdict(self)
        data["average_latency_ms"] = self.average_latency_ms
        return data


class MetricsAggregator:
    """
    Shared simulation metrics.

    Constructed once per simulation and passed by reference to the
    channel, nodes and controller.
    """

    def __init__(self):
        self.packets_sent = AtomicCounter()
        self.packets_received = AtomicCounter()
        self.packets_dropped = AtomicCounter()
        self.bytes_sent = AtomicCounter()
        self.bytes_received = AtomicCounter()
        self.latency_sum_ms = AtomicCounter(0.0)
        self.latency_count = AtomicCounter()
        self.transform_failures = AtomicCounter()

        self._slices: Dict[str, "Slice"] = {}
        self._slices_lock = threading.Lock()

    # ─────────────────────────────────────────────────────────────────────
    # Writers
    # ─────────────────────────────────────────────────────────────────────
    def on_send(self, nbytes: int) -> None:
        self.packets_sent.increment()
        self.bytes_sent.add(nbytes)

    def on_receive(self, message: "SealedMessage", latency_ms: float) -> None:
        self.packets_received.increment()
        self.bytes_received.add(message.plain_size)
        self.latency_sum_ms.add(latency_ms)
        self.latency_count.increment()

    def on_drop(self) -> None:
        self.packets_dropped.increment()

    def on_transform_failure(self) -> None:
        self.transform_failures.increment()

    def register_slice(self, slice_: "Slice") -> "Slice":
        """Add ``slice_`` to the live table unless its id is already present."""
        with self._slices_lock:
            return self._slices.setdefault(slice_.slice_id, slice_)

    # ─────────────────────────────────────────────────────────────────────
    # Readers
    # ─────────────────────────────────────────────────────────────────────
    def average_latency_ms(self) -> float:
        count = self.latency_count.value
        if count == 0:
            return 0.0
        return self.latency_sum_ms.value / count

    def slices(self) -> Dict[str, "Slice"]:
        with self._slices_lock:
            return dict(self._slices)

    def slice_bandwidths(self) -> Dict[str, int]:
        return {sid: s.bandwidth_bps for sid, s in self.slices().items()}

    def snapshot(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            packets_sent=self.packets_sent.value,
            packets_received=self.packets_received.value,
            packets_dropped=self.packets_dropped.value,
            bytes_sent=self.bytes_sent.value,
            bytes_received=self.bytes_received.value,
            latency_sum_ms=self.latency_sum_ms.value,
            latency_count=self.latency_count.value,
            transform_failures=self.transform_failures.value,
            slice_bandwidths=self.slice_bandwidths(),
        )

    def summary(self) -> str:
        s = self.snapshot()
        return (
            f"sent={s.packets_sent} recv={s.packets_received} drop={s.packets_dropped} "
            f"bytesSent={s.bytes_sent} bytesRecv={s.bytes_received} "
            f"avgLatMs={s.average_latency_ms:.2f}"
        )

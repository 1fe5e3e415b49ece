"""
Actor Nodes

Every device of the city (vehicle, drone, AR glasses, sensor hub, edge
server) is the same ``Node`` type. They differ only in the traffic
patterns attached to them, which an external ``TrafficGenerator`` fires.

Data Flow:
----------
1. send(): directory lookup -> transform.seal -> metrics -> channel.transmit
2. Channel delivers the sealed message into the destination inbox later
3. Consumer loop: poll inbox -> latency -> transform.open -> metrics -> handler

Per-message failures (a message that cannot be opened, a raising
handler) are logged and skipped; only ``close()`` stops the loop.
"""

import logging
import queue
import threading
import time
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence

from ..config import NODE_POLL_INTERVAL_S
from ..crypto.transforms import ConfidentialityTransform
from ..errors import TransformFailure, UnknownDestination
from ..metrics.aggregator import MetricsAggregator
from ..network.channel import Admission, Channel
from ..network.messages import PlainMessage, SealedMessage
from ..network.slices import Band
from .payloads import preview

if TYPE_CHECKING:
    from .traffic import TrafficPattern

logger = logging.getLogger(__name__)

MessageHandler = Callable[["Node", PlainMessage, float], None]


def log_message(node: "Node", plain: PlainMessage, latency_ms: float) -> None:
    """Default handler: one log line per received message."""
    logger.debug("[%s] <- (%s) slice=%s kind=%s latency=%.2fms : %s",
                 node.name, plain.source, plain.slice_id, plain.kind,
                 latency_ms, preview(plain.body))


class Directory:
    """Thread-safe name -> node lookup used to resolve send destinations."""

    def __init__(self):
        self._nodes: Dict[str, "Node"] = {}
        self._lock = threading.Lock()

    def register(self, node: "Node") -> None:
        with self._lock:
            self._nodes[node.name] = node

    def unregister(self, name: str) -> None:
        with self._lock:
            self._nodes.pop(name, None)

    def lookup(self, name: str) -> "Node":
        """
        Resolve ``name``.

        Raises
        ------
        UnknownDestination
            If no node is registered under ``name``
        """
        with self._lock:
            node = self._nodes.get(name)
        if node is None:
            raise UnknownDestination(name)
        return node

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._nodes)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._nodes

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)


class Node:
    """
    Actor with an unbounded FIFO inbox and a single consumer thread.

    Parameters
    ----------
    name : str
        Unique node name, also its directory key
    directory : Directory
        Destination resolver
    channel : Channel
        Channel used for every send
    transform : ConfidentialityTransform
        Seals outgoing and opens incoming messages
    metrics : MetricsAggregator
        Shared counters
    patterns : sequence of TrafficPattern
        (band, slice) traffic this node is allowed to emit
    handler : callable, optional
        ``handler(node, plain, latency_ms)`` called per received message
    poll_interval_s : float
        Bounded inbox wait; the loop notices ``close()`` within this time
    """

    def __init__(
        self,
        name: str,
        directory: Directory,
        channel: Channel,
        transform: ConfidentialityTransform,
        metrics: MetricsAggregator,
        patterns: Sequence["TrafficPattern"] = (),
        handler: Optional[MessageHandler] = None,
        poll_interval_s: float = NODE_POLL_INTERVAL_S,
    ):
        self.name = name
        self.directory = directory
        self.channel = channel
        self.transform = transform
        self.metrics = metrics
        self.patterns = tuple(patterns)
        self.handler = handler or log_message
        self.poll_interval_s = poll_interval_s

        self.inbox: "queue.Queue[SealedMessage]" = queue.Queue()
        self._running = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def __repr__(self) -> str:
        return f"Node({self.name!r}, patterns={len(self.patterns)})"

    @property
    def running(self) -> bool:
        return self._running.is_set()

    # ─────────────────────────────────────────────────────────────────────
    # Sending side
    # ─────────────────────────────────────────────────────────────────────
    def send(self, band: Band, plain: PlainMessage) -> Admission:
        """
        Seal ``plain`` and hand it to the channel.

        Delivery is asynchronous; the returned ``Admission`` only says
        whether the channel accepted the message for delivery.

        Raises
        ------
        UnknownDestination
            If ``plain.destination`` is not in the directory. Nothing is
            sealed, counted or transmitted in that case.
        """
        destination = self.directory.lookup(plain.destination)
        sealed = self.transform.seal(plain)
        self.metrics.on_send(len(plain.body))
        return self.channel.transmit(band, sealed, destination)

    def deliver(self, message: SealedMessage) -> None:
        """Enqueue an inbound message. Safe from any thread."""
        self.inbox.put_nowait(message)

    # ─────────────────────────────────────────────────────────────────────
    # Receiving side
    # ─────────────────────────────────────────────────────────────────────
    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._running.set()
        self._thread = threading.Thread(target=self.run, name=f"node-{self.name}", daemon=True)
        self._thread.start()

    def run(self) -> None:
        """Consumer loop; returns within one poll interval of ``close()``."""
        while self._running.is_set():
            try:
                message = self.inbox.get(timeout=self.poll_interval_s)
            except queue.Empty:
                continue
            self.process(message)

    def process(self, message: SealedMessage) -> bool:
        """
        Open and account a single inbound message.

        Returns
        -------
        bool
            False if the message was discarded because it could not be opened
        """
        latency_ms = message.age_ms(time.monotonic())
        try:
            plain = self.transform.open(message)
        except TransformFailure as e:
            self.metrics.on_transform_failure()
            logger.warning("[%s] discarded message from %s on %s: %s",
                           self.name, message.source, message.slice_id, e)
            return False
        except Exception:
            # Any other error raised by the transform is a failed open too
            self.metrics.on_transform_failure()
            logger.exception("[%s] transform %s crashed on message from %s",
                             self.name, self.transform.name(), message.source)
            return False

        self.metrics.on_receive(message, latency_ms)
        try:
            self.handler(self, plain, latency_ms)
        except Exception:
            logger.exception("[%s] message handler failed", self.name)
        return True

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop the consumer loop; optionally wait up to ``timeout`` for it."""
        self._running.clear()
        thread = self._thread
        if timeout is not None and thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

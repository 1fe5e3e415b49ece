"""
Traffic Generator

Drives a node from its traffic patterns. Who sends what and how often
is configuration held here, not node state: a node only exposes its
allowed (band, slice) patterns.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ..errors import TransformFailure, UnknownDestination
from ..network.messages import PlainMessage
from ..network.scheduler import Scheduler, Timer
from ..network.slices import Band
from .node import Node
from .payloads import PAYLOADS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrafficPattern:
    """One periodic flow emitted by a node."""
    band: Band
    slice_id: str
    destination: str
    kind: str                   # "telemetry" or "holo", selects the payload generator
    payload_bytes: int
    period_s: float
    initial_delay_s: float = 0.0

    def __post_init__(self):
        if self.kind not in PAYLOADS:
            raise ValueError(f"Unknown payload kind '{self.kind}'")
        if self.period_s <= 0:
            raise ValueError(f"period_s must be positive: {self.period_s}")


class TrafficGenerator:
    """
    Fires every pattern of ``node`` on the shared scheduler.

    Parameters
    ----------
    node : Node
        Sender; its ``patterns`` are the flows to emit
    scheduler : Scheduler
        Shared scheduler running the periodic sends
    rng : np.random.Generator, optional
        Random source for payload contents
    """

    def __init__(self, node: Node, scheduler: Scheduler,
                 rng: Optional[np.random.Generator] = None):
        self.node = node
        self.scheduler = scheduler
        self.rng = rng or np.random.default_rng()
        self.fired = 0
        self.failed = 0
        self._timers: List[Timer] = []

    def start(self) -> None:
        if self._timers:
            return
        for pattern in self.node.patterns:
            timer = self.scheduler.call_every(
                pattern.period_s,
                lambda p=pattern: self.fire(p),
                initial_delay_s=pattern.initial_delay_s,
            )
            self._timers.append(timer)

    def fire(self, pattern: TrafficPattern) -> None:
        """Build one payload for ``pattern`` and send it."""
        body = PAYLOADS[pattern.kind](pattern.payload_bytes, self.rng)
        plain = PlainMessage(
            source=self.node.name,
            destination=pattern.destination,
            slice_id=pattern.slice_id,
            kind=pattern.kind,
            body=body,
        )
        try:
            self.node.send(pattern.band, plain)
        except (UnknownDestination, TransformFailure) as e:
            self.failed += 1
            logger.warning("[%s] send failed: %s", self.node.name, e)
            return
        self.fired += 1

    def stop(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()

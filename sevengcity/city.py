"""
Smart City Scenario

Wires the default 7G city: three slices, two bands, five nodes and the
bandwidth controller, all sharing one metrics aggregator and one
scheduler.

┌─────────────────────────────────────────────────────────────────────────┐
│  Node        Band      Slice          Kind        Size     Period       │
├─────────────────────────────────────────────────────────────────────────┤
│  Car-X1      THZ       slice-safety   telemetry   256 B    20 ms        │
│  Car-X1      OPTICAL   slice-holo     holo        16 KiB   50 ms        │
│  Drone-D7    THZ       slice-safety   telemetry   200 B    33 ms        │
│  AR-G1       OPTICAL   slice-holo     holo        24 KiB   42 ms        │
│  SensorHub   THZ       slice-city     telemetry   200 B    100 ms       │
│  Edge-DC     (receiver only)                                            │
└─────────────────────────────────────────────────────────────────────────┘
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from .control.controller import BandwidthController, ControllerConfig
from .crypto.transforms import ConfidentialityTransform, make_transform
from .metrics.aggregator import MetricsAggregator, MetricsSnapshot
from .network.channel import Channel
from .network.scheduler import Scheduler
from .network.slices import DEFAULT_BAND_PROFILES, Band, BandProfile, Slice, default_slices
from .nodes.node import Directory, MessageHandler, Node
from .nodes.traffic import TrafficGenerator, TrafficPattern

logger = logging.getLogger(__name__)

EDGE = "Edge-DC"


def default_nodes() -> Dict[str, Tuple[TrafficPattern, ...]]:
    """Node name -> traffic patterns of the default city."""
    return {
        EDGE: (),
        "Car-X1": (
            TrafficPattern(Band.THZ, "slice-safety", EDGE, "telemetry", 256, 0.020, 0.100),
            TrafficPattern(Band.OPTICAL, "slice-holo", EDGE, "holo", 16 * 1024, 0.050, 0.200),
        ),
        "Drone-D7": (
            TrafficPattern(Band.THZ, "slice-safety", EDGE, "telemetry", 200, 0.033, 0.150),
        ),
        "AR-G1": (
            TrafficPattern(Band.OPTICAL, "slice-holo", EDGE, "holo", 24 * 1024, 0.042, 0.250),
        ),
        "SensorHub": (
            TrafficPattern(Band.THZ, "slice-city", EDGE, "telemetry", 200, 0.100, 0.300),
        ),
    }


@dataclass
class CityConfig:
    """Scenario configuration for ``SmartCity``."""
    transform: str = "stream"
    seed: Optional[int] = None
    slices: List[Slice] = field(default_factory=default_slices)
    bands: Dict[Band, BandProfile] = field(default_factory=lambda: dict(DEFAULT_BAND_PROFILES))
    nodes: Dict[str, Tuple[TrafficPattern, ...]] = field(default_factory=default_nodes)
    controller: ControllerConfig = field(default_factory=ControllerConfig)


class SmartCity:
    """
    The assembled simulation.

    Parameters
    ----------
    config : CityConfig, optional
        Scenario; defaults to the five-node city in the module table
    transform : ConfidentialityTransform, optional
        Overrides ``config.transform``
    handler : callable, optional
        Message handler installed on every node
    """

    def __init__(
        self,
        config: Optional[CityConfig] = None,
        transform: Optional[ConfidentialityTransform] = None,
        handler: Optional[MessageHandler] = None,
    ):
        self.config = config or CityConfig()
        rng = np.random.default_rng(self.config.seed)

        self.metrics = MetricsAggregator()
        self.scheduler = Scheduler()
        self.transform = transform or make_transform(self.config.transform)

        self.channel = Channel(self.metrics, self.scheduler, rng=rng)
        for band, profile in self.config.bands.items():
            self.channel.config(band, profile)
        for slice_ in self.config.slices:
            self.channel.register_slice(slice_)

        self.directory = Directory()
        self.nodes: Dict[str, Node] = {}
        for name, patterns in self.config.nodes.items():
            node = Node(name, self.directory, self.channel, self.transform,
                        self.metrics, patterns=patterns, handler=handler)
            self.directory.register(node)
            self.nodes[name] = node

        self.generators: List[TrafficGenerator] = [
            TrafficGenerator(node, self.scheduler, rng=np.random.default_rng(rng.integers(2**32)))
            for node in self.nodes.values() if node.patterns
        ]
        self.controller = BandwidthController(
            self.config.slices, self.metrics, self.config.controller, self.scheduler
        )
        self._started = False

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        logger.info("Crypto provider: %s", self.transform.name())
        logger.info("Nodes online: %s", ", ".join(self.directory.names()))
        for node in self.nodes.values():
            node.start()
        self.controller.start()
        for generator in self.generators:
            generator.start()

    def close(self) -> None:
        """Stop traffic, control, nodes and channel, in that order."""
        for generator in self.generators:
            generator.stop()
        self.controller.close()
        for node in self.nodes.values():
            node.close(timeout=1.0)
        self.channel.close()
        self.scheduler.shutdown()
        self._started = False

    def snapshot(self) -> MetricsSnapshot:
        return self.metrics.snapshot()

    def __enter__(self) -> "SmartCity":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

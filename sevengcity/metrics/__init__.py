"""
Metrics Module - Shared Counters and Exporters

Usage
-----
>>> from sevengcity.metrics import MetricsAggregator
>>> metrics = MetricsAggregator()
>>> metrics.on_send(256)
>>> metrics.snapshot().packets_sent
1
"""

from .aggregator import AtomicCounter, MetricsAggregator, MetricsSnapshot
from .exporter import MetricsExporter, SimulationCollector

__all__ = [
    "AtomicCounter",
    "MetricsAggregator",
    "MetricsExporter",
    "MetricsSnapshot",
    "SimulationCollector",
]

"""
Prometheus Text Exporter

Read-only consumer of the metrics aggregator. A custom collector reads a
fresh snapshot on every scrape, so the exporter never holds state of its
own and never blocks the simulation beyond single counter reads.

Exposed series
--------------
seven_g_packets_total{type="sent"|"recv"|"drop"}
seven_g_bytes_total{type="sent"|"recv"}
seven_g_transform_failures_total
seven_g_avg_latency_ms
seven_g_slice_bandwidth_bps{slice="..."}
"""

import logging
import threading
from socketserver import ThreadingMixIn
from typing import Optional
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CollectorRegistry, generate_latest, make_wsgi_app
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily

from ..config import METRICS_ADDR, METRICS_PORT, METRICS_PREFIX
from .aggregator import MetricsAggregator

logger = logging.getLogger(__name__)


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


class _ScrapeLogHandler(WSGIRequestHandler):
    """Request handler that logs scrapes at DEBUG instead of stderr."""

    def log_message(self, format, *args):
        logger.debug("scrape from %s: %s", self.address_string(), format % args)


class SimulationCollector:
    """Translate a metrics snapshot into Prometheus metric families."""

    def __init__(self, metrics: MetricsAggregator, prefix: str = METRICS_PREFIX):
        self.metrics = metrics
        self.prefix = prefix

    def collect(self):
        snap = self.metrics.snapshot()

        packets = CounterMetricFamily(
            f"{self.prefix}_packets", "Packets counters", labels=["type"]
        )
        packets.add_metric(["sent"], snap.packets_sent)
        packets.add_metric(["recv"], snap.packets_received)
        packets.add_metric(["drop"], snap.packets_dropped)
        yield packets

        nbytes = CounterMetricFamily(
            f"{self.prefix}_bytes", "Bytes counters", labels=["type"]
        )
        nbytes.add_metric(["sent"], snap.bytes_sent)
        nbytes.add_metric(["recv"], snap.bytes_received)
        yield nbytes

        yield CounterMetricFamily(
            f"{self.prefix}_transform_failures",
            "Messages discarded because they could not be opened",
            value=snap.transform_failures,
        )

        yield GaugeMetricFamily(
            f"{self.prefix}_avg_latency_ms",
            "Average latency in ms",
            value=snap.average_latency_ms,
        )

        bandwidth = GaugeMetricFamily(
            f"{self.prefix}_slice_bandwidth_bps",
            "Current slice bandwidth settings",
            labels=["slice"],
        )
        for slice_id, bps in sorted(snap.slice_bandwidths.items()):
            bandwidth.add_metric([slice_id], bps)
        yield bandwidth


class MetricsExporter:
    """
    HTTP endpoint serving the simulation metrics in Prometheus text format.

    Uses a private ``CollectorRegistry`` so several simulations (or test
    cases) can live in one process.

    Parameters
    ----------
    metrics : MetricsAggregator
        Source of every scrape
    port : int
        Listening port (default: 9400, 0 picks a free port)
    addr : str
        Bind address
    """

    def __init__(self, metrics: MetricsAggregator, port: int = METRICS_PORT,
                 addr: str = METRICS_ADDR):
        self.metrics = metrics
        self.port = port
        self.addr = addr
        self.registry = CollectorRegistry(auto_describe=False)
        self.registry.register(SimulationCollector(metrics))
        self._server = None
        self._thread = None

    def render(self) -> str:
        """Current metrics as Prometheus exposition text."""
        return generate_latest(self.registry).decode("utf-8")

    @property
    def bound_port(self) -> Optional[int]:
        if self._server is None:
            return None
        return self._server.server_port

    def start(self) -> None:
        """Serve ``/metrics`` from a daemon thread. No-op if already serving."""
        if self._server is not None:
            return
        self._server = make_server(
            self.addr, self.port, make_wsgi_app(self.registry),
            server_class=_ThreadingWSGIServer, handler_class=_ScrapeLogHandler,
        )
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="metrics-exporter", daemon=True
        )
        self._thread.start()
        logger.info("Prometheus exporter listening on http://%s:%d/metrics",
                    self.addr, self.bound_port)

    def close(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        self._thread.join(timeout=1.0)
        self._server = None
        self._thread = None

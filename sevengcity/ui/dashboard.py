"""
Live Dashboard - Main Window

Read-only view of the simulation metrics, polled once per second.

Layout:
┌──────────────────────────────────────────────────────────┐
│  7G Smart City - Live Dashboard        [Crypto: MockPQC] │
├───────────────────────────────────┬──────────────────────┤
│                                   │  SLICE BANDWIDTH     │
│       AVERAGE LATENCY (ms)        │  (bar per slice)     │
│       last 60 samples             ├──────────────────────┤
│                                   │  counters            │
└───────────────────────────────────┴──────────────────────┘
"""

from collections import deque
from typing import Optional

import pyqtgraph as pg
import qtawesome as qta
from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtGui import QIcon
from PyQt6.QtWidgets import (
    QHBoxLayout, QLabel, QMainWindow, QVBoxLayout, QWidget
)

from ..config import (
    BANDWIDTH_BAR_COLOR,
    DASHBOARD_REFRESH_RATE,
    LATENCY_HISTORY,
    LATENCY_PLOT_COLOR,
    WINDOW_HEIGHT,
    WINDOW_TITLE,
    WINDOW_WIDTH,
)
from ..metrics.aggregator import MetricsAggregator


class CityDashboard(QMainWindow):
    """
    Main window showing latency, slice bandwidths and packet counters.

    Parameters
    ----------
    metrics : MetricsAggregator
        Metrics to poll; never written by the dashboard
    crypto_name : str, optional
        Transform name shown in the header
    refresh_ms : int
        Poll period in milliseconds (0 disables the timer)
    """

    def __init__(self, metrics: MetricsAggregator, crypto_name: Optional[str] = None,
                 refresh_ms: int = DASHBOARD_REFRESH_RATE):
        super().__init__()
        self.metrics = metrics
        self.samples = 0
        self.latency_history = deque(maxlen=LATENCY_HISTORY)
        self.time_history = deque(maxlen=LATENCY_HISTORY)
        self.bars: Optional[pg.BarGraphItem] = None

        self.setWindowTitle(WINDOW_TITLE)
        self.resize(WINDOW_WIDTH, WINDOW_HEIGHT)
        self.setWindowIcon(QIcon(qta.icon('mdi.radio-tower').pixmap(32, 32)))
        self.setStyleSheet("""
            QMainWindow { background-color: #1E1E2E; }
            QWidget { color: #E0E0E0; }
        """)

        central = QWidget()
        root = QVBoxLayout(central)

        header = QHBoxLayout()
        title = QLabel("  7G Smart City – Live Dashboard")
        title.setStyleSheet("color: #00E5FF; font-weight: bold; font-size: 14px;")
        header.addWidget(title)
        header.addStretch()
        self.crypto_label = QLabel(f"Crypto: {crypto_name}" if crypto_name else "")
        self.crypto_label.setStyleSheet("color: #888; font-size: 11px;")
        header.addWidget(self.crypto_label)
        root.addLayout(header)

        body = QHBoxLayout()

        # Average latency line chart
        self.latency_plot = pg.PlotWidget(title="Average Latency")
        self.latency_plot.setLabel('bottom', 'Time (s)')
        self.latency_plot.setLabel('left', 'Avg Latency (ms)')
        self.latency_curve = self.latency_plot.plot([], [], pen=pg.mkPen(LATENCY_PLOT_COLOR, width=2))
        body.addWidget(self.latency_plot, stretch=3)

        right = QVBoxLayout()
        self.bandwidth_plot = pg.PlotWidget(title="Slice Bandwidth (bps)")
        self.bandwidth_plot.setMouseEnabled(x=False, y=False)
        right.addWidget(self.bandwidth_plot)

        self.counters = QLabel("Loading metrics...")
        self.counters.setWordWrap(True)
        self.counters.setAlignment(Qt.AlignmentFlag.AlignLeft)
        self.counters.setStyleSheet("color: #A2C2E0; font-family: 'Consolas', monospace;")
        right.addWidget(self.counters)
        body.addLayout(right, stretch=2)

        root.addLayout(body)
        self.setCentralWidget(central)

        self.timer = QTimer(self)
        self.timer.timeout.connect(self.refresh)
        if refresh_ms > 0:
            self.timer.start(refresh_ms)

    def refresh(self) -> None:
        """Poll one snapshot and redraw every panel."""
        snap = self.metrics.snapshot()
        latency = snap.average_latency_ms

        self.time_history.append(self.samples)
        self.latency_history.append(latency)
        self.samples += 1
        self.latency_curve.setData(list(self.time_history), list(self.latency_history))

        slice_ids = sorted(snap.slice_bandwidths)
        if self.bars is not None:
            self.bandwidth_plot.removeItem(self.bars)
            self.bars = None
        if slice_ids:
            self._draw_bars(snap.slice_bandwidths, slice_ids)

        self.counters.setText(
            f"Packets sent={snap.packets_sent} recv={snap.packets_received} "
            f"drop={snap.packets_dropped} | bytes sent={snap.bytes_sent} "
            f"recv={snap.bytes_received} | avg latency={latency:.2f} ms"
        )

    def _draw_bars(self, bandwidths, slice_ids) -> None:
        self.bars = pg.BarGraphItem(
            x=list(range(len(slice_ids))),
            height=[bandwidths[sid] for sid in slice_ids],
            width=0.6,
            brush=BANDWIDTH_BAR_COLOR,
        )
        self.bandwidth_plot.addItem(self.bars)
        self.bandwidth_plot.getAxis('bottom').setTicks([list(enumerate(slice_ids))])

    def closeEvent(self, event):
        self.timer.stop()
        super().closeEvent(event)


"""
Adaptive Slice Bandwidth Controller

Bounded proportional heuristic run once per control tick:

    needs_more = avg_latency > slice.target_latency  or  drops > 0

    needs_more : bw' = min(bw + max(floor_step, bw / 8), bw + max_step)
    otherwise  : bw' = max(min_bandwidth, bw * decay)

Increases are bounded by ``max_step`` and decays by ``min_bandwidth``,
so one tick can neither explode nor starve a slice.

Signal window
-------------
By default the controller reads cumulative averages and drops since the
simulation started. A single early drop therefore keeps every later tick
in the "needs more" branch. ``windowed=True`` instead uses the deltas
observed since the previous tick.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import (
    CONTROL_DECAY,
    CONTROL_FLOOR_STEP_BPS,
    CONTROL_INTERVAL_S,
    CONTROL_MAX_STEP_BPS,
    CONTROL_MIN_BANDWIDTH_BPS,
)
from ..metrics.aggregator import MetricsAggregator
from ..network.scheduler import Scheduler, Timer
from ..network.slices import Slice

logger = logging.getLogger(__name__)


@dataclass
class ControllerConfig:
    """Tuning knobs for the bandwidth controller."""
    interval_s: float = CONTROL_INTERVAL_S
    floor_step_bps: int = CONTROL_FLOOR_STEP_BPS
    max_step_bps: int = CONTROL_MAX_STEP_BPS
    min_bandwidth_bps: int = CONTROL_MIN_BANDWIDTH_BPS
    decay: float = CONTROL_DECAY
    windowed: bool = False

    def __post_init__(self):
        if self.interval_s <= 0:
            raise ValueError("interval_s must be positive")
        if self.floor_step_bps <= 0 or self.max_step_bps < self.floor_step_bps:
            raise ValueError("need 0 < floor_step_bps <= max_step_bps")
        if self.min_bandwidth_bps <= 0:
            raise ValueError("min_bandwidth_bps must be positive")
        if not 0.0 < self.decay < 1.0:
            raise ValueError("decay must be in (0, 1)")


@dataclass(frozen=True)
class ControlSignal:
    """Inputs of one control tick."""
    avg_latency_ms: float
    drops: int


class BandwidthController:
    """
    Periodic feedback loop over the slice bandwidths.

    The controller is the only writer of ``Slice.bandwidth_bps``.

    Parameters
    ----------
    slices : iterable of Slice
        Slices under control
    metrics : MetricsAggregator
        Source of latency and drop signals
    config : ControllerConfig, optional
        Tuning knobs
    scheduler : Scheduler, optional
        Shared scheduler; a private one is created (and owned) if omitted
    """

    def __init__(
        self,
        slices: Iterable[Slice],
        metrics: MetricsAggregator,
        config: Optional[ControllerConfig] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.slices: List[Slice] = list(slices)
        self.metrics = metrics
        self.config = config or ControllerConfig()
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or Scheduler(name="controller")
        self.tick_count = 0

        self._timer: Optional[Timer] = None
        self._active = False
        self._tick_lock = threading.Lock()
        # (latency_sum, latency_count, drops) at the previous tick, windowed mode only
        self._last: Tuple[float, int, int] = (0.0, 0, 0)

    def read_signal(self) -> ControlSignal:
        """Latency/drop signal for this tick, cumulative or windowed."""
        lat_sum = self.metrics.latency_sum_ms.value
        lat_count = self.metrics.latency_count.value
        drops = self.metrics.packets_dropped.value

        if not self.config.windowed:
            avg = lat_sum / lat_count if lat_count else 0.0
            return ControlSignal(avg, drops)

        prev_sum, prev_count, prev_drops = self._last
        self._last = (lat_sum, lat_count, drops)
        window_count = lat_count - prev_count
        avg = (lat_sum - prev_sum) / window_count if window_count else 0.0
        return ControlSignal(avg, drops - prev_drops)

    def next_bandwidth(self, slice_: Slice, signal: ControlSignal) -> int:
        """
        Bandwidth for ``slice_`` after one tick, without applying it.

        Decay is floored at ``min_bandwidth_bps``, so a slice configured
        below that floor is raised to it on its first healthy tick.
        """
        cfg = self.config
        bw = slice_.bandwidth_bps
        if signal.avg_latency_ms > slice_.target_latency_ms or signal.drops > 0:
            return min(bw + max(cfg.floor_step_bps, bw // 8), bw + cfg.max_step_bps)
        return max(cfg.min_bandwidth_bps, int(bw * cfg.decay))

    def tick(self) -> Dict[str, int]:
        """
        Run one evaluate-and-adjust cycle.

        Returns
        -------
        dict
            ``slice_id -> new bandwidth`` for every slice that changed
        """
        with self._tick_lock:
            signal = self.read_signal()
            changes: Dict[str, int] = {}
            for slice_ in self.slices:
                new_bw = self.next_bandwidth(slice_, signal)
                if new_bw != slice_.bandwidth_bps:
                    slice_.bandwidth_bps = new_bw
                    changes[slice_.slice_id] = new_bw
                    logger.info("[Controller] %s bw -> %d bps (avgLat=%.2f drops=%d)",
                                slice_.slice_id, new_bw, signal.avg_latency_ms, signal.drops)
            self.tick_count += 1
            return changes

    def _scheduled_tick(self) -> None:
        if self._active:
            self.tick()

    def start(self) -> None:
        if self._timer is not None:
            return
        self._active = True
        self._timer = self.scheduler.call_every(self.config.interval_s, self._scheduled_tick)
        logger.info("Controller started (interval=%.1fs, windowed=%s)",
                    self.config.interval_s, self.config.windowed)

    def close(self) -> None:
        """Stop future ticks. A tick already in progress runs to completion."""
        self._active = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._owns_scheduler:
            self.scheduler.shutdown()

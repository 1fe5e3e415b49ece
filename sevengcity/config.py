# config.py
"""
Simulator Configuration and Constants

Centralized configuration for the 7G Smart City simulator.
All timing values and tuning knobs shared across modules live here.

Sections
--------
- Token Buckets: Replenishment tick rate
- Nodes: Inbox poll interval
- Controller: Bandwidth adaptation defaults
- Metrics: Exporter endpoint
- Dashboard: Refresh rate and chart history

Usage
-----
>>> from sevengcity.config import BUCKET_TICKS_PER_SECOND
>>> per_tick = bandwidth_bps // 8 // BUCKET_TICKS_PER_SECOND
"""

# =============================================================================
# TOKEN BUCKETS
# =============================================================================
BUCKET_TICKS_PER_SECOND = 20        # 50 ms replenishment tick
SCHEDULER_THREAD_NAME = "sim-scheduler"

# =============================================================================
# NODES
# =============================================================================
NODE_POLL_INTERVAL_S = 0.1          # Bounded inbox wait, bounds shutdown latency
PREVIEW_BYTES = 40                  # Bytes shown by the default message handler

# =============================================================================
# CONTROLLER
# =============================================================================
CONTROL_INTERVAL_S = 2.0
CONTROL_FLOOR_STEP_BPS = 150_000    # Minimum increase per tick
CONTROL_MAX_STEP_BPS = 6_000_000    # Maximum increase per tick
CONTROL_MIN_BANDWIDTH_BPS = 100_000 # Decay never goes below this
CONTROL_DECAY = 0.96

# =============================================================================
# METRICS EXPORTER
# =============================================================================
METRICS_PORT = 9400
METRICS_ADDR = "0.0.0.0"
METRICS_PREFIX = "seven_g"

# =============================================================================
# DASHBOARD (milliseconds / samples)
# =============================================================================
DASHBOARD_REFRESH_RATE = 1000
LATENCY_HISTORY = 60
WINDOW_TITLE = "7G Smart City Dashboard"
WINDOW_WIDTH = 1100
WINDOW_HEIGHT = 600

# Chart colors
LATENCY_PLOT_COLOR = '#FF6F91'
BANDWIDTH_BAR_COLOR = '#6A82FB'

"""
Per-Slice Token Bucket

Byte-budget limiter bound 1:1 to a slice. The bucket starts full and is
topped up on a fixed tick by the slice's current bandwidth, so the
controller's adjustments take effect on the next tick only.

Invariant: 0 <= tokens <= capacity, under any mix of concurrent
consumers and the periodic replenishment writer.
"""

import threading
from typing import Optional

from ..config import BUCKET_TICKS_PER_SECOND
from .scheduler import Scheduler, Timer
from .slices import Slice


class TokenBucket:
    """
    Token bucket shaping one slice.

    Parameters
    ----------
    slice_ : Slice
        Slice whose ``bandwidth_bps`` drives replenishment
    ticks_per_second : int
        Replenishment ticks per second (default: 20, i.e. 50 ms)
    """

    def __init__(self, slice_: Slice, ticks_per_second: int = BUCKET_TICKS_PER_SECOND):
        if ticks_per_second <= 0:
            raise ValueError(f"ticks_per_second must be positive: {ticks_per_second}")
        self.slice = slice_
        self.capacity = slice_.bucket_capacity_bytes
        self.ticks_per_second = ticks_per_second
        self._tokens = self.capacity
        self._lock = threading.Lock()
        self._timer: Optional[Timer] = None

    @property
    def tokens(self) -> int:
        return self._tokens

    @property
    def tick_interval_s(self) -> float:
        return 1.0 / self.ticks_per_second

    def refill_per_tick(self) -> int:
        """Bytes added per tick at the slice's current bandwidth."""
        return max(1, self.slice.bandwidth_bps // 8 // self.ticks_per_second)

    def try_consume(self, n: int) -> bool:
        """
        Take ``n`` bytes from the bucket if they are all available.

        No partial consumption: on failure the bucket is left untouched.

        Returns
        -------
        bool
            True if the bytes were admitted
        """
        if n < 0:
            raise ValueError(f"cannot consume a negative amount: {n}")
        with self._lock:
            if self._tokens < n:
                return False
            self._tokens -= n
            return True

    def replenish(self) -> int:
        """Add one tick's worth of tokens, clamped to capacity. Returns the new level."""
        added = self.refill_per_tick()
        with self._lock:
            self._tokens = min(self.capacity, self._tokens + added)
            return self._tokens

    def start(self, scheduler: Scheduler) -> None:
        """Register periodic replenishment on the shared scheduler."""
        if self._timer is None:
            self._timer = scheduler.call_every(self.tick_interval_s, self.replenish)

    def shutdown(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

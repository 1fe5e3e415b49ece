"""
Shared Cooperative Scheduler

One daemon thread drives every timed activity of the simulation:
token bucket replenishment, delayed channel deliveries, controller
ticks and traffic patterns. Timers are kept in a heap ordered by due
time on the monotonic clock.

Strategy:
---------
1. Callers register one-shot (``call_later``) or fixed-rate
   (``call_every``) timers and get a cancellable ``Timer`` back
2. The worker sleeps on a condition until the earliest timer is due
3. Due callbacks run on the worker thread, outside the lock
4. A failing callback is logged and never stops the worker
"""

import heapq
import itertools
import logging
import threading
import time
from typing import Callable, List, Optional

from ..config import SCHEDULER_THREAD_NAME

logger = logging.getLogger(__name__)


class Timer:
    """Handle to a scheduled callback."""

    __slots__ = ("due", "seq", "callback", "interval", "cancelled")

    def __init__(self, due: float, seq: int, callback: Callable[[], None],
                 interval: Optional[float] = None):
        self.due = due
        self.seq = seq
        self.callback = callback
        self.interval = interval
        self.cancelled = False

    def __lt__(self, other: "Timer") -> bool:
        return (self.due, self.seq) < (other.due, other.seq)

    def cancel(self) -> None:
        """Prevent any future firing of this timer."""
        self.cancelled = True

    @property
    def periodic(self) -> bool:
        return self.interval is not None


class Scheduler:
    """
    Single-threaded timer wheel shared by channel, buckets and controller.

    The worker thread is started lazily by the first registration, or
    explicitly with ``start()``.

    Parameters
    ----------
    name : str
        Name given to the worker thread
    """

    def __init__(self, name: str = SCHEDULER_THREAD_NAME):
        self.name = name
        self._heap: List[Timer] = []
        self._cond = threading.Condition()
        self._seq = itertools.count()
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._cond:
            if self._running or self._stopped:
                return
            self._running = True
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Timer:
        """
        Run ``callback`` once after ``delay_s`` seconds.

        Returns
        -------
        Timer
            Handle that can cancel the pending call
        """
        return self._schedule(max(0.0, delay_s), callback, None)

    def call_every(self, interval_s: float, callback: Callable[[], None],
                   initial_delay_s: Optional[float] = None) -> Timer:
        """
        Run ``callback`` at a fixed rate of one call per ``interval_s``.

        The first call happens after ``initial_delay_s`` (defaults to
        one interval).
        """
        if interval_s <= 0:
            raise ValueError(f"interval must be positive: {interval_s}")
        first = interval_s if initial_delay_s is None else max(0.0, initial_delay_s)
        return self._schedule(first, callback, interval_s)

    def pending(self) -> int:
        """Number of live timers still queued."""
        with self._cond:
            return sum(1 for t in self._heap if not t.cancelled)

    def shutdown(self, wait: bool = True, timeout: float = 1.0) -> None:
        """Stop the worker and abandon every pending timer."""
        with self._cond:
            self._stopped = True
            self._running = False
            for timer in self._heap:
                timer.cancel()
            self._heap.clear()
            self._cond.notify_all()
            thread = self._thread
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _schedule(self, delay_s: float, callback: Callable[[], None],
                  interval: Optional[float]) -> Timer:
        timer = Timer(time.monotonic() + delay_s, next(self._seq), callback, interval)
        with self._cond:
            if self._stopped:
                timer.cancel()
                return timer
            self.start()  # re-enters the condition, its lock is an RLock
            heapq.heappush(self._heap, timer)
            self._cond.notify()
        return timer

    def _run(self) -> None:
        while True:
            with self._cond:
                timer = self._next_due()
                if timer is None:
                    return
            try:
                timer.callback()
            except Exception:
                logger.exception("Scheduled callback %r failed", timer.callback)

    def _next_due(self) -> Optional[Timer]:
        # Called with the condition held. Returns None once shut down.
        while self._running:
            while self._heap and self._heap[0].cancelled:
                heapq.heappop(self._heap)
            if not self._heap:
                self._cond.wait()
                continue
            now = time.monotonic()
            head = self._heap[0]
            if head.due > now:
                self._cond.wait(head.due - now)
                continue
            heapq.heappop(self._heap)
            if head.periodic:
                head.due += head.interval
                heapq.heappush(self._heap, head)
            return head
        return None

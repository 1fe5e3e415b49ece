"""
Multi-Band Channel

Moves sealed messages between nodes over simulated physical bands.
Each transmit walks the admission pipeline below; anything that does
not make it to the scheduling step is a counted drop, never an error.

Admission pipeline:
-------------------
1. Channel closed       -> ignored silently (operator signal)
2. No band profile      -> drop
3. Stochastic loss draw -> drop
4. No slice bucket      -> drop
   Bucket exhausted     -> drop (congestion)
5. Delay = max(0, base + N(0, jitter)) + serialization delay
6. Delivery scheduled on the shared scheduler

Delivery order across sends is not preserved: randomized delay may
reorder messages, and there is no cross-slice or cross-band ordering.
"""

import logging
import threading
from enum import Enum
from typing import Dict, Optional, Protocol, Set

import numpy as np

from ..config import BUCKET_TICKS_PER_SECOND
from ..metrics.aggregator import MetricsAggregator
from .messages import SealedMessage
from .scheduler import Scheduler, Timer
from .slices import Band, BandProfile, Slice
from .token_bucket import TokenBucket

logger = logging.getLogger(__name__)


class Admission(Enum):
    """Outcome of a single transmit call."""
    SCHEDULED = "scheduled"
    CLOSED = "closed"
    NO_BAND = "no_band"
    LOST = "lost"
    NO_SLICE = "no_slice"
    CONGESTED = "congested"

    @property
    def dropped(self) -> bool:
        return self not in (Admission.SCHEDULED, Admission.CLOSED)


class Destination(Protocol):
    name: str

    def deliver(self, message: SealedMessage) -> None:
        ...


class Channel:
    """
    Multi-band channel with per-slice token-bucket shaping.

    ``transmit`` never blocks: it decides admission, computes the transit
    delay and hands the delivery to the scheduler.

    Parameters
    ----------
    metrics : MetricsAggregator
        Shared metrics; drops are counted here and slices registered
    scheduler : Scheduler, optional
        Shared scheduler. If omitted the channel owns a private one and
        shuts it down on close.
    rng : np.random.Generator, optional
        Source for loss and jitter draws
    seed : int, optional
        Seed used when ``rng`` is not given
    ticks_per_second : int
        Replenishment rate for buckets created by ``register_slice``
    """

    def __init__(
        self,
        metrics: MetricsAggregator,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        ticks_per_second: int = BUCKET_TICKS_PER_SECOND,
    ):
        self.metrics = metrics
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or Scheduler()
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.ticks_per_second = ticks_per_second

        self._bands: Dict[Band, BandProfile] = {}
        self._buckets: Dict[str, TokenBucket] = {}
        self._pending: Set[Timer] = set()
        self._lock = threading.Lock()
        self._rng_lock = threading.Lock()
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def config(self, band: Band, profile: BandProfile) -> None:
        """Register static parameters for a band."""
        self._bands[band] = profile

    def profile(self, band: Band) -> Optional[BandProfile]:
        return self._bands.get(band)

    def register_slice(self, slice_: Slice) -> TokenBucket:
        """
        Bind a fresh token bucket to ``slice_``. Idempotent.

        Returns
        -------
        TokenBucket
            The bucket bound to the slice id (existing one on re-register)
        """
        with self._lock:
            bucket = self._buckets.get(slice_.slice_id)
            if bucket is None:
                bucket = TokenBucket(slice_, self.ticks_per_second)
                self._buckets[slice_.slice_id] = bucket
                if self._open:
                    bucket.start(self.scheduler)
        self.metrics.register_slice(slice_)
        return bucket

    def bucket(self, slice_id: str) -> Optional[TokenBucket]:
        return self._buckets.get(slice_id)

    def transmit(self, band: Band, message: SealedMessage, destination: Destination) -> Admission:
        """
        Admit ``message`` onto ``band`` and schedule its delivery.

        Returns
        -------
        Admission
            What happened to the message; drops are already counted
        """
        if not self._open:
            return Admission.CLOSED

        profile = self._bands.get(band)
        if profile is None:
            return self._drop(Admission.NO_BAND, band, message)

        with self._rng_lock:
            lost = self.rng.random() < profile.loss_probability
        if lost:
            return self._drop(Admission.LOST, band, message)

        bucket = self._buckets.get(message.slice_id)
        if bucket is None:
            return self._drop(Admission.NO_SLICE, band, message)
        if not bucket.try_consume(len(message.ciphertext)):
            return self._drop(Admission.CONGESTED, band, message)

        delay_ms = self.transit_delay_ms(profile, len(message.ciphertext))
        self._schedule_delivery(delay_ms, message, destination)
        return Admission.SCHEDULED

    def transit_delay_ms(self, profile: BandProfile, nbytes: int) -> float:
        """Propagation (base + gaussian jitter, floored at 0) plus serialization delay."""
        with self._rng_lock:
            jitter = self.rng.normal(0.0, profile.jitter_ms) if profile.jitter_ms > 0 else 0.0
        propagation = max(0.0, profile.base_latency_ms + jitter)
        return propagation + profile.serialization_delay_ms(nbytes)

    def close(self) -> None:
        """Stop deliveries and replenishment. Pending deliveries are abandoned."""
        with self._lock:
            if not self._open:
                return
            self._open = False
            pending = list(self._pending)
            self._pending.clear()
            buckets = list(self._buckets.values())
        for timer in pending:
            timer.cancel()
        for bucket in buckets:
            bucket.shutdown()
        if self._owns_scheduler:
            self.scheduler.shutdown()
        logger.info("Channel closed (%d pending deliveries abandoned)", len(pending))

    def _drop(self, reason: Admission, band: Band, message: SealedMessage) -> Admission:
        self.metrics.on_drop()
        logger.debug("drop %s->%s slice=%s band=%s reason=%s",
                     message.source, message.destination, message.slice_id,
                     band.name, reason.value)
        return reason

    def _schedule_delivery(self, delay_ms: float, message: SealedMessage,
                           destination: Destination) -> None:
        timer: Optional[Timer] = None

        def fire():
            with self._lock:
                self._pending.discard(timer)
                if not self._open:
                    return
            destination.deliver(message)

        with self._lock:
            timer = self.scheduler.call_later(delay_ms / 1000.0, fire)
            self._pending.add(timer)

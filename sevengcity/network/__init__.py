"""
Network Module - Slices, Bands and the Multi-Band Channel

Features
--------
- Slice / Band / BandProfile data model with default city profiles
- Per-slice token bucket admission
- One shared cooperative scheduler for replenishment and delivery
- Stochastic loss, gaussian jitter and serialization delay

Usage
-----
>>> from sevengcity.network import Channel, Band, DEFAULT_BAND_PROFILES
>>> channel = Channel(metrics, scheduler)
>>> channel.config(Band.THZ, DEFAULT_BAND_PROFILES[Band.THZ])
"""

from .channel import Admission, Channel
from .messages import PlainMessage, SealedMessage
from .scheduler import Scheduler, Timer
from .slices import DEFAULT_BAND_PROFILES, Band, BandProfile, Slice, default_slices
from .token_bucket import TokenBucket

__all__ = [
    "Admission",
    "Band",
    "BandProfile",
    "Channel",
    "DEFAULT_BAND_PROFILES",
    "PlainMessage",
    "Scheduler",
    "SealedMessage",
    "Slice",
    "Timer",
    "TokenBucket",
    "default_slices",
]

"""
Message types traversing the simulated network.

A ``PlainMessage`` exists only between the payload producer and the
sender's transform. The ``SealedMessage`` it becomes is handed from the
sender to the channel and then to exactly one receiver inbox.
"""

import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class PlainMessage:
    source: str
    destination: str
    slice_id: str
    kind: str
    body: bytes


@dataclass(frozen=True)
class SealedMessage:
    source: str
    destination: str
    slice_id: str
    kind: str
    ciphertext: bytes
    nonce: Optional[bytes]
    plain_size: int
    created_at: float = field(default_factory=time.monotonic)  # monotonic seconds

    def age_ms(self, now: Optional[float] = None) -> float:
        """Milliseconds elapsed since the message was sealed."""
        if now is None:
            now = time.monotonic()
        return (now - self.created_at) * 1000.0

"""
Payload Generators

Synthesize plaintext byte buffers of an approximate requested size.
The core never interprets these bytes; they only need a realistic
shape and size for telemetry and hologram traffic.
"""

import base64
import json
import struct
import time
from datetime import datetime, timezone
from typing import Optional

import numpy as np

from ..config import PREVIEW_BYTES


def pad_bytes(src: bytes, size: int) -> bytes:
    """Extend ``src`` to ``size`` bytes with a cyclic A..W filler. Never truncates."""
    if size <= len(src):
        return bytes(src)
    filler = bytes(ord("A") + (i % 23) for i in range(len(src), size))
    return bytes(src) + filler


def telemetry_json(approx_bytes: int, rng: Optional[np.random.Generator] = None) -> bytes:
    """
    Vehicle-style telemetry record padded to ``approx_bytes``.

    Parameters
    ----------
    approx_bytes : int
        Target size; the record is never cut if it is already larger
    rng : np.random.Generator, optional
        Random source for position and speed
    """
    rng = rng or np.random.default_rng()
    record = {
        "type": "telemetry",
        "lat": round(float(rng.uniform(-90, 90)), 5),
        "lon": round(float(rng.uniform(-180, 180)), 5),
        "spd": int(rng.integers(0, 150)),
        "ts": datetime.now(timezone.utc).isoformat(),
        "status": "OK",
    }
    return pad_bytes(json.dumps(record, separators=(",", ":")).encode("utf-8"), approx_bytes)


def hologram_chunk(approx_bytes: int, rng: Optional[np.random.Generator] = None) -> bytes:
    """Hologram frame: ``HOLO:<b64 header>:`` followed by filler up to ``approx_bytes``."""
    rng = rng or np.random.default_rng()
    header = struct.pack(
        ">qii", time.monotonic_ns(), approx_bytes, int(rng.integers(-2**31, 2**31 - 1))
    ).ljust(64, b"\0")
    prefix = b"HOLO:" + base64.b64encode(header) + b":"
    return prefix + pad_bytes(b"", max(0, approx_bytes - len(prefix)))


def preview(data: bytes, limit: int = PREVIEW_BYTES) -> str:
    """Short printable description of a payload."""
    head = base64.b64encode(data[:limit]).decode("ascii")
    return f"bytes={len(data)} head(b64)={head}"


PAYLOADS = {
    "telemetry": telemetry_json,
    "holo": hologram_chunk,
}

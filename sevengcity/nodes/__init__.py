"""
Nodes Module - Actor Pipeline and Traffic

Usage
-----
>>> from sevengcity.nodes import Directory, Node
>>> directory = Directory()
>>> edge = Node("Edge-DC", directory, channel, transform, metrics)
>>> directory.register(edge)
>>> edge.start()
"""

from .node import Directory, Node, log_message
from .payloads import hologram_chunk, pad_bytes, preview, telemetry_json
from .traffic import TrafficGenerator, TrafficPattern

__all__ = [
    "Directory",
    "Node",
    "TrafficGenerator",
    "TrafficPattern",
    "hologram_chunk",
    "log_message",
    "pad_bytes",
    "preview",
    "telemetry_json",
]

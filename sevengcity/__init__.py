"""
7G Smart City - Multi-Band Slice Simulator

Production modules:
- network: slices, bands, token buckets, shared scheduler, multi-band channel
- crypto: confidentiality transforms (stream mask, AES-GCM)
- metrics: concurrent counters, snapshot, Prometheus exporter
- nodes: actor nodes, directory, payload and traffic generators
- control: adaptive slice bandwidth controller
- ui: PyQt6 live dashboard
"""

__version__ = "1.1.0"

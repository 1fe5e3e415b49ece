"""
Control Module - Adaptive Slice Bandwidth

Usage
-----
>>> from sevengcity.control import BandwidthController, ControllerConfig
>>> controller = BandwidthController(slices, metrics, ControllerConfig(windowed=True))
>>> controller.tick()
{'slice-safety': 2880000}
"""

from .controller import BandwidthController, ControllerConfig, ControlSignal

__all__ = ["BandwidthController", "ControlSignal", "ControllerConfig"]

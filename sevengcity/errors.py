"""
Simulation error taxonomy.

Only two failures are ever raised by the core:

- ``UnknownDestination`` : send-time directory miss, fails that call only
- ``TransformFailure``   : seal/open problem, isolated to one message

Admission drops (congestion, stochastic loss, missing band) are modeled
outcomes counted in metrics, not exceptions.
"""


class SimulationError(Exception):
    """Base class for simulator errors."""


class UnknownDestination(SimulationError, LookupError):
    """Raised when a send names a node that is not in the directory."""

    def __init__(self, name: str):
        super().__init__(f"Unknown destination: {name}")
        self.name = name


class TransformFailure(SimulationError):
    """Raised when a confidentiality transform cannot seal or open a message."""

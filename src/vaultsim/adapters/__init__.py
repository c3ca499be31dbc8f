"""Position adapters: the interface to the driven vault system and its implementations."""

from .base import PositionAdapter
from .simulated import SimulatedVaultAdapter

__all__ = [
    "PositionAdapter",
    "SimulatedVaultAdapter",
]

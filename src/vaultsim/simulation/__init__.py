"""Scenario driver and runner."""

from .driver import CompoundingDriver, CycleRecord, DriverState, ScenarioResult
from .runner import SimulationRunner, run_scenario

__all__ = [
    "CompoundingDriver",
    "CycleRecord",
    "DriverState",
    "ScenarioResult",
    "SimulationRunner",
    "run_scenario",
]

"""Scenario comparison tools."""

from .scenarios import (
    SCENARIO_LIBRARY,
    Scenario,
    ScenarioComparison,
    ScenarioRunner,
    format_comparison_table,
)

__all__ = [
    "Scenario",
    "ScenarioComparison",
    "ScenarioRunner",
    "SCENARIO_LIBRARY",
    "format_comparison_table",
]

"""Predefined scenario library for compounding comparisons."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..config.loader import apply_overrides
from ..config.schema import Config
from ..simulation.driver import ScenarioResult
from ..simulation.runner import SimulationRunner


@dataclass
class Scenario:
    """A named scenario with configuration overrides."""
    name: str
    description: str
    category: str  # "base", "yield", "timing", "stress_test", "pairing"
    overrides: Dict[str, Any]  # Config path -> value


@dataclass
class ScenarioComparison:
    """Result of comparing multiple scenarios."""
    scenarios: Dict[str, Scenario]
    results: Dict[str, ScenarioResult]
    summary: Dict[str, Dict[str, Any]]  # scenario_name -> metrics summary


# ============================================================================
# PREDEFINED SCENARIOS
# ============================================================================

SCENARIO_LIBRARY = {
    "high_reward_share": Scenario(
        name="High Reward Share",
        description="60% of primary profit is routed to the secondary reward pool",
        category="yield",
        overrides={
            "market.reward_fraction": "0.6",
        }
    ),

    "no_reward_share": Scenario(
        name="No Reward Share",
        description="All profit compounds in the primary vault; the pool never pays out",
        category="stress_test",
        overrides={
            "market.reward_fraction": "0",
        }
    ),

    "flat_market": Scenario(
        name="Flat Market",
        description="Neither strategy earns anything; harvests are no-ops",
        category="stress_test",
        overrides={
            "market.primary_yield_per_block": "0",
            "market.secondary_yield_per_block": "0",
        }
    ),

    "losing_strategy": Scenario(
        name="Losing Strategy",
        description="Primary strategy loses value every block",
        category="stress_test",
        overrides={
            "market.primary_yield_per_block": "-0.000002",
        }
    ),

    "fast_harvest": Scenario(
        name="Fast Harvest",
        description="Harvest every 600 blocks (12 cycles/day) for 60 cycles",
        category="timing",
        overrides={
            "scenario.blocks_per_cycle": 600,
            "scenario.cycle_count": 60,
        }
    ),

    "long_horizon": Scenario(
        name="Long Horizon",
        description="Two harvests a day for 30 days",
        category="timing",
        overrides={
            "scenario.cycle_count": 60,
        }
    ),

    "primary_only_harvest": Scenario(
        name="Primary-only Harvest",
        description="The secondary vault is never harvested during the run",
        category="timing",
        overrides={
            "scenario.compounding_targets": ["primary"],
        }
    ),

    "last_cycle_pricing": Scenario(
        name="Last-cycle Pricing",
        description="Value final balances at the last cycle's share prices instead of withdrawal-time prices",
        category="pairing",
        overrides={
            "scenario.final_price_pairing": "last_cycle",
        }
    ),
}


class ScenarioRunner:
    """Run and compare predefined scenarios against a base config."""

    def __init__(self, base_config: Config):
        """Initialize with base configuration."""
        self.base_config = base_config

    def get_all_scenarios(self) -> Dict[str, Scenario]:
        """Get all available scenarios."""
        return SCENARIO_LIBRARY.copy()

    def get_scenarios_by_category(self, category: str) -> Dict[str, Scenario]:
        """Get scenarios filtered by category."""
        return {
            name: scenario
            for name, scenario in SCENARIO_LIBRARY.items()
            if scenario.category == category
        }

    def apply_scenario(self, scenario: Scenario) -> Config:
        """
        Apply scenario overrides to the base config.

        The overridden config is validated again, so an override that breaks
        a constraint raises pydantic's ValidationError.
        """
        data = self.base_config.model_dump(mode="json")
        return Config.from_dict(apply_overrides(data, scenario.overrides))

    def run_scenario(self, scenario_name: str) -> ScenarioResult:
        """
        Run a single scenario against a fresh simulated system.

        Raises:
            ValueError: If the scenario name is unknown
        """
        if scenario_name not in SCENARIO_LIBRARY:
            raise ValueError(f"Unknown scenario: {scenario_name}")

        config = self.apply_scenario(SCENARIO_LIBRARY[scenario_name])
        return SimulationRunner(config).run()

    def compare_scenarios(
        self,
        scenario_names: List[str],
        include_base: bool = True,
    ) -> ScenarioComparison:
        """
        Run and compare multiple scenarios.

        Args:
            scenario_names: Scenario names to compare (unknown names are skipped)
            include_base: Whether to include the unmodified base config

        Returns:
            ScenarioComparison result
        """
        scenarios = {}
        results = {}
        summary = {}

        if include_base:
            scenarios["base"] = Scenario(
                name="Base Case",
                description="Configuration without modifications",
                category="base",
                overrides={}
            )
            results["base"] = SimulationRunner(self.base_config).run()
            summary["base"] = self._extract_summary(results["base"])

        for name in scenario_names:
            if name not in SCENARIO_LIBRARY:
                continue
            scenarios[name] = SCENARIO_LIBRARY[name]
            results[name] = self.run_scenario(name)
            summary[name] = self._extract_summary(results[name])

        return ScenarioComparison(scenarios=scenarios, results=results, summary=summary)

    def run_stress_tests(self) -> ScenarioComparison:
        """Run all stress test scenarios."""
        return self.compare_scenarios(list(self.get_scenarios_by_category("stress_test")))

    def _extract_summary(self, result: ScenarioResult) -> Dict[str, Any]:
        """Extract key metrics summary from a scenario result."""
        metrics = result.final_metrics()
        return {
            'cycles': metrics['cycles'],
            'baseline_value': metrics['baseline_value'],
            'final_value': metrics['final_value'],
            'overall_apr': metrics['overall_apr'],
            'overall_apy': metrics['overall_apy'],
            'loss_cycles': metrics['loss_cycles'],
            'passed': metrics.get('passed', False),
            'violations': metrics.get('violations', []),
        }


def format_comparison_table(comparison: ScenarioComparison, width: Optional[int] = 14) -> str:
    """
    Format scenario comparison as a text table.

    Args:
        comparison: ScenarioComparison result
        width: Column width

    Returns:
        Formatted table string
    """
    lines = []
    headers = ["Scenario", "Cycles", "Final value", "APR", "APY", "Verified"]
    lines.append(" | ".join(f"{h:>{width}}" for h in headers))
    lines.append("-" * ((width + 3) * len(headers) - 3))

    for name, summary in comparison.summary.items():
        scenario = comparison.scenarios.get(name)
        display_name = scenario.name if scenario else name

        row = [
            f"{display_name[:width]:>{width}}",
            f"{summary['cycles']:>{width}}",
            f"{float(summary['final_value']):>{width},.2f}",
            f"{float(summary['overall_apr']) * 100:>{width - 1}.2f}%",
            f"{float(summary['overall_apy']) * 100:>{width - 1}.2f}%",
            f"{'yes' if summary['passed'] else 'NO':>{width}}",
        ]
        lines.append(" | ".join(row))

    return "\n".join(lines)

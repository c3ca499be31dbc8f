"""Simulation runner - drive a scenario to completion and verify it."""

import logging
from typing import Optional

from ..adapters.base import PositionAdapter
from ..adapters.simulated import SimulatedVaultAdapter
from ..config.schema import Config
from ..validation.invariants import InvariantVerifier
from .driver import CompoundingDriver, ScenarioResult

logger = logging.getLogger(__name__)


class SimulationRunner:
    """Run the compounding driver and the invariant verifier for one config."""

    def __init__(self, config: Config, adapter: Optional[PositionAdapter] = None):
        """
        Initialize simulation runner.

        Args:
            config: Scenario configuration
            adapter: Driven system; defaults to a fresh SimulatedVaultAdapter
        """
        self.config = config
        self.adapter = adapter if adapter is not None else SimulatedVaultAdapter.from_config(config)

    def run(self) -> ScenarioResult:
        """
        Run the scenario.

        Returns:
            ScenarioResult with the verification attached

        Raises:
            ScenarioAborted: If an adapter action failed mid-run
            FixedPointError: If a return could not be computed
        """
        logger.info(
            "Running %d cycles of %d blocks for %s (config %s)",
            self.config.scenario.cycle_count,
            self.config.scenario.blocks_per_cycle,
            self.config.scenario.holder,
            self.config.compute_hash(),
        )
        driver = CompoundingDriver(self.adapter, self.config)
        result = driver.run()

        verifier = InvariantVerifier(result.unit_prices)
        result.verification = verifier.verify(result.baseline, result.final)
        return result


def run_scenario(config: Config, adapter: Optional[PositionAdapter] = None) -> ScenarioResult:
    """Run and verify one scenario."""
    return SimulationRunner(config, adapter).run()

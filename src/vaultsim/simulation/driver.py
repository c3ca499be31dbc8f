"""Compounding cycle driver - snapshot, harvest, snapshot, measure, advance.

State machine (no state may be skipped or re-entered):

    INITIALIZING -> RUNNING(0..cycle_count-1) -> DRAINING -> FINALIZING -> DONE

Cycles run strictly in sequence on one thread: each cycle's snapshots depend
on the state the previous harvest left behind, and within a cycle the
targets are harvested in their configured order.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..adapters.base import PositionAdapter
from ..config.schema import Config
from ..engine.fixed_point import from_fixed
from ..engine.returns import ReturnMetric, compute_return
from ..engine.snapshots import (
    PHASE_AFTER,
    PHASE_BASELINE,
    PHASE_BEFORE,
    PHASE_FINAL,
    PositionSnapshot,
    SnapshotSeries,
)
from ..engine.valuation import UnitPriceTable, ValuedPosition, valuate
from ..errors import CompoundingFailed, DrainingFailed, DriverStateError, ScenarioAborted

logger = logging.getLogger(__name__)


class DriverState(Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    DRAINING = "draining"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass(frozen=True)
class CycleRecord:
    """Telemetry of one harvest cycle."""
    cycle_index: int
    before: PositionSnapshot
    after: PositionSnapshot
    before_value: ValuedPosition
    after_value: ValuedPosition
    metric: ReturnMetric


@dataclass
class ScenarioResult:
    """Complete output of a driven scenario."""
    config: Config
    unit_prices: UnitPriceTable
    baseline: PositionSnapshot
    final: PositionSnapshot
    cycles: List[CycleRecord]
    cumulative: ReturnMetric
    snapshots: Tuple[PositionSnapshot, ...]
    verification: Optional[Any] = None  # VerificationResult once verified

    @property
    def passed(self) -> bool:
        return self.verification is not None and self.verification.passed

    def final_metrics(self) -> Dict[str, Any]:
        """Summary of the run in human units."""
        decimals = self.unit_prices.decimals
        metrics = {
            'cycles': len(self.cycles),
            'baseline_value': from_fixed(self.cumulative.old_value, decimals),
            'final_value': from_fixed(self.cumulative.new_value, decimals),
            'overall_growth': self.cumulative.growth_ratio,
            'overall_apr': self.cumulative.apr,
            'overall_apy': self.cumulative.apy,
            'loss_cycles': sum(1 for c in self.cycles if c.metric.is_loss),
            'final_primary_asset': from_fixed(self.final.primary_asset_balance, decimals),
            'final_secondary_shares': from_fixed(self.final.secondary_holder_balance, decimals),
        }
        if self.verification is not None:
            metrics['passed'] = self.verification.passed
            metrics['violations'] = self.verification.violation_names()
        return metrics


class CompoundingDriver:
    """Drive a PositionAdapter through a compounding scenario."""

    def __init__(self, adapter: PositionAdapter, config: Config):
        """
        Initialize driver.

        Args:
            adapter: Interface to the driven vault system
            config: Scenario configuration
        """
        self.adapter = adapter
        self.config = config
        self.scenario = config.scenario
        self.holder = config.scenario.holder
        self.unit_prices = config.unit_price_table()
        self.cycles_per_year = config.cycles_per_year

        self.state = DriverState.INITIALIZING
        self.series = SnapshotSeries()
        self.cycles: List[CycleRecord] = []
        self.baseline: Optional[PositionSnapshot] = None
        self.final: Optional[PositionSnapshot] = None
        self.cumulative: Optional[ReturnMetric] = None
        self._sequence = 0

    # --- state machine ---------------------------------------------------

    def _require(self, expected: DriverState, action: str) -> None:
        if self.state is not expected:
            raise DriverStateError(
                f"cannot {action} while {self.state.value} (requires {expected.value})"
            )

    @property
    def cycles_completed(self) -> int:
        return len(self.cycles)

    def _take_snapshot(self, cycle_index: int, phase: str) -> PositionSnapshot:
        snapshot = self.adapter.snapshot(self.holder, cycle_index, phase, self._sequence)
        self.series.append(snapshot)
        self._sequence += 1
        return snapshot

    def initialize(self) -> PositionSnapshot:
        """Record the baseline, then optionally enter the position."""
        self._require(DriverState.INITIALIZING, "initialize")
        self.baseline = self._take_snapshot(0, PHASE_BASELINE)
        logger.info(
            "Baseline for %s: underlying=%s primary_shares=%s",
            self.holder,
            from_fixed(self.baseline.primary_asset_balance, self.config.decimals),
            from_fixed(self.baseline.primary_share_balance, self.config.decimals),
        )

        if self.scenario.enter_position:
            try:
                self.adapter.enter_position(self.holder)
            except Exception as exc:
                raise ScenarioAborted("enter_position", exc) from exc

        self.state = DriverState.RUNNING
        return self.baseline

    def trigger_compounding(self, target_id: str) -> None:
        """Harvest one target. Refused outside RUNNING, fatal on failure."""
        self._require(DriverState.RUNNING, f"trigger compounding on {target_id!r}")
        try:
            self.adapter.trigger_compounding(target_id)
        except Exception as exc:
            logger.error("Compounding %s failed: %s", target_id, exc)
            raise CompoundingFailed(target_id, exc) from exc

    def run_cycle(self) -> CycleRecord:
        """Run the next cycle and advance the chain by ``blocks_per_cycle``."""
        self._require(DriverState.RUNNING, "run a cycle")
        cycle_index = self.cycles_completed
        if cycle_index >= self.scenario.cycle_count:
            raise DriverStateError(
                f"all {self.scenario.cycle_count} cycles already ran; drain next"
            )

        before = self._take_snapshot(cycle_index, PHASE_BEFORE)
        for target_id in self.scenario.compounding_targets:
            self.trigger_compounding(target_id)
        after = self._take_snapshot(cycle_index, PHASE_AFTER)

        before_value = valuate(before, self.unit_prices)
        after_value = valuate(after, self.unit_prices)
        metric = compute_return(
            before_value.total_value,
            after_value.total_value,
            cycles_elapsed=1,
            cycles_per_year=self.cycles_per_year,
            compounding_periods=self.scenario.compounding_periods,
        )
        record = CycleRecord(
            cycle_index=cycle_index,
            before=before,
            after=after,
            before_value=before_value,
            after_value=after_value,
            metric=metric,
        )
        self.cycles.append(record)
        self._log_cycle(record)

        try:
            self.adapter.advance_time(self.scenario.blocks_per_cycle)
        except Exception as exc:
            raise ScenarioAborted("advance_time", exc) from exc
        return record

    def _log_cycle(self, record: CycleRecord) -> None:
        decimals = self.config.decimals
        metric = record.metric
        logger.info(
            "cycle %d: value %s -> %s, growth %s, instant APR %.6f%%, instant APY %.6f%%",
            record.cycle_index,
            from_fixed(metric.old_value, decimals),
            from_fixed(metric.new_value, decimals),
            metric.growth_ratio,
            metric.apr_percent,
            metric.apy_percent,
        )
        logger.debug(
            "cycle %d: secondary shares in pool %s, share prices %s / %s",
            record.cycle_index,
            record.after.secondary_share_balance,
            record.after.primary_share_price,
            record.after.secondary_share_price,
        )
        if metric.is_loss:
            logger.warning("cycle %d lost value (APR %.6f%%)", record.cycle_index, metric.apr_percent)

    def drain(self) -> None:
        """Withdraw the primary position, let rewards vest, exit the reward pool."""
        self._require(DriverState.RUNNING, "drain")
        if self.cycles_completed < self.scenario.cycle_count:
            raise DriverStateError(
                f"only {self.cycles_completed} of {self.scenario.cycle_count} cycles ran"
            )
        # From here on trigger_compounding is refused
        self.state = DriverState.DRAINING

        steps = (
            ("withdraw_all", lambda: self.adapter.withdraw_all(self.holder)),
            ("advance_clock", lambda: self.adapter.advance_clock(self.scenario.settle_seconds)),
            ("exit_reward_pool", lambda: self.adapter.exit_reward_pool(self.holder)),
        )
        for operation, step in steps:
            try:
                step()
            except Exception as exc:
                logger.error("Draining step %s failed: %s", operation, exc)
                raise DrainingFailed(operation, exc) from exc

        self.state = DriverState.FINALIZING

    def finalize(self) -> ScenarioResult:
        """Snapshot settled balances and compute the cumulative return."""
        self._require(DriverState.FINALIZING, "finalize")
        settled = self._take_snapshot(self.scenario.cycle_count, PHASE_FINAL)
        self.final = self._pair_final_prices(settled)

        baseline_value = valuate(self.baseline, self.unit_prices)
        final_value = valuate(self.final, self.unit_prices)
        self.cumulative = compute_return(
            baseline_value.total_value,
            final_value.total_value,
            cycles_elapsed=self.scenario.cycle_count,
            cycles_per_year=self.cycles_per_year,
            compounding_periods=self.scenario.compounding_periods,
        )
        logger.info(
            "Overall APR: %.6f%%, overall APY: %.6f%% over %d cycles",
            self.cumulative.apr_percent,
            self.cumulative.apy_percent,
            self.scenario.cycle_count,
        )

        self.state = DriverState.DONE
        return self.result()

    def _pair_final_prices(self, settled: PositionSnapshot) -> PositionSnapshot:
        if self.scenario.final_price_pairing == "withdrawal" or not self.cycles:
            return settled
        last_after = self.cycles[-1].after
        return settled.with_prices(last_after.primary_share_price, last_after.secondary_share_price)

    def result(self) -> ScenarioResult:
        self._require(DriverState.DONE, "read the result")
        return ScenarioResult(
            config=self.config,
            unit_prices=self.unit_prices,
            baseline=self.baseline,
            final=self.final,
            cycles=list(self.cycles),
            cumulative=self.cumulative,
            snapshots=self.series.as_tuple(),
        )

    def run(self) -> ScenarioResult:
        """Run every phase to DONE."""
        self.initialize()
        for _ in range(self.scenario.cycle_count):
            self.run_cycle()
        self.drain()
        return self.finalize()

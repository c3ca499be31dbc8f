"""End-of-run invariant checks on the baseline and final snapshots."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from ..engine.snapshots import PositionSnapshot
from ..engine.valuation import UnitPriceTable, ValuedPosition, valuate
from ..errors import VerificationFailed

logger = logging.getLogger(__name__)

PRIMARY_PRINCIPAL_PRESERVED = "primary_principal_preserved"
SECONDARY_REWARDS_ACCRUED = "secondary_rewards_accrued"
TOTAL_VALUE_NON_DECREASING = "total_value_non_decreasing"


@dataclass(frozen=True)
class InvariantViolation:
    """A failed invariant with its bound and the observed value."""
    name: str
    expected: str  # Human-readable bound, e.g. ">= 1000000000000000000000000"
    actual: Decimal
    message: str = ""

    def describe(self) -> str:
        text = f"{self.name}: expected {self.expected}, got {self.actual}"
        if self.message:
            text += f" ({self.message})"
        return text


@dataclass
class VerificationResult:
    """Outcome of verifying a finished run."""
    baseline_value: ValuedPosition
    final_value: ValuedPosition
    violations: List[InvariantViolation] = field(default_factory=list)
    checked: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.violations

    def violation_names(self) -> List[str]:
        return [v.name for v in self.violations]

    def raise_for_violations(self) -> None:
        """
        Raises:
            VerificationFailed: If any invariant was violated
        """
        if self.violations:
            raise VerificationFailed(self.violations)


class InvariantVerifier:
    """Check that a depositor ends the run no worse off than they started."""

    def __init__(self, unit_prices: UnitPriceTable):
        """Initialize with the run's fixed unit prices."""
        self.unit_prices = unit_prices

    def check_primary_principal(
        self, baseline: PositionSnapshot, final: PositionSnapshot
    ) -> List[InvariantViolation]:
        """Raw primary asset balance must not shrink (yield ignored)."""
        if final.primary_asset_balance >= baseline.primary_asset_balance:
            return []
        return [InvariantViolation(
            name=PRIMARY_PRINCIPAL_PRESERVED,
            expected=f">= {baseline.primary_asset_balance}",
            actual=final.primary_asset_balance,
            message=f"lost {baseline.primary_asset_balance - final.primary_asset_balance} base units",
        )]

    def check_secondary_rewards(
        self, baseline: PositionSnapshot, final: PositionSnapshot
    ) -> List[InvariantViolation]:
        """Claimed secondary balance must strictly grow."""
        if final.secondary_holder_balance > baseline.secondary_holder_balance:
            return []
        return [InvariantViolation(
            name=SECONDARY_REWARDS_ACCRUED,
            expected=f"> {baseline.secondary_holder_balance}",
            actual=final.secondary_holder_balance,
            message="no reward shares reached the holder",
        )]

    def check_total_value(
        self, baseline_value: ValuedPosition, final_value: ValuedPosition
    ) -> List[InvariantViolation]:
        """Aggregate value in the common unit must not decrease (exact comparison)."""
        if final_value.total_value >= baseline_value.total_value:
            return []
        return [InvariantViolation(
            name=TOTAL_VALUE_NON_DECREASING,
            expected=f">= {baseline_value.total_value}",
            actual=final_value.total_value,
            message=f"value fell by {baseline_value.total_value - final_value.total_value}",
        )]

    def verify(self, baseline: PositionSnapshot, final: PositionSnapshot) -> VerificationResult:
        """
        Run every invariant; violations are collected, never short-circuited.

        Args:
            baseline: Snapshot taken before the first cycle
            final: Snapshot of settled balances after draining

        Returns:
            VerificationResult
        """
        baseline_value = valuate(baseline, self.unit_prices)
        final_value = valuate(final, self.unit_prices)

        result = VerificationResult(baseline_value=baseline_value, final_value=final_value)
        result.violations.extend(self.check_primary_principal(baseline, final))
        result.checked.append(PRIMARY_PRINCIPAL_PRESERVED)
        result.violations.extend(self.check_secondary_rewards(baseline, final))
        result.checked.append(SECONDARY_REWARDS_ACCRUED)
        result.violations.extend(self.check_total_value(baseline_value, final_value))
        result.checked.append(TOTAL_VALUE_NON_DECREASING)

        for violation in result.violations:
            logger.error("Invariant violated - %s", violation.describe())
        if result.passed:
            logger.info("All %d invariants hold", len(result.checked))
        return result


def verify(
    baseline: PositionSnapshot,
    final: PositionSnapshot,
    unit_prices: UnitPriceTable,
) -> VerificationResult:
    """Verify a finished run. See ``InvariantVerifier.verify``."""
    return InvariantVerifier(unit_prices).verify(baseline, final)

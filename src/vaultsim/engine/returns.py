"""Return metrics - growth ratio, simple annualized return (APR) and daily-compounded APY.

Key Concepts:
- growth = new_value / old_value over `cycles_elapsed` cycles
- APR = (growth - 1) * cycles_per_year / cycles_elapsed
- APY = (1 + APR / periods) ^ periods - 1, periods = 365 (daily compounding)
"""

from dataclasses import dataclass
from decimal import Decimal, localcontext

from ..errors import FixedPointError
from .fixed_point import FIXED_POINT_CONTEXT, ONE, ZERO, Number, div, to_decimal

DAYS_PER_YEAR = 365
DEFAULT_COMPOUNDING_PERIODS = 365


@dataclass(frozen=True)
class ReturnMetric:
    """Return over one measurement window."""
    old_value: Decimal
    new_value: Decimal
    cycles_elapsed: int
    growth_ratio: Decimal
    apr: Decimal  # Fraction, 0.05 = 5%
    apy: Decimal  # Fraction, compounded over `compounding_periods`

    @property
    def apr_percent(self) -> Decimal:
        return self.apr * 100

    @property
    def apy_percent(self) -> Decimal:
        return self.apy * 100

    @property
    def is_loss(self) -> bool:
        return self.new_value < self.old_value


def cycles_per_year(
    blocks_per_cycle: int,
    blocks_per_day: int,
    days_per_year: int = DAYS_PER_YEAR,
) -> Decimal:
    """
    Number of cycles in a year given block timing.

    Args:
        blocks_per_cycle: Blocks advanced between harvests
        blocks_per_day: Chain blocks produced per day
        days_per_year: Days in the annualization year

    Returns:
        Cycles per year (may be fractional)
    """
    if blocks_per_cycle <= 0:
        raise FixedPointError(f"blocks_per_cycle must be positive, got {blocks_per_cycle}")
    return div(to_decimal(blocks_per_day) * days_per_year, blocks_per_cycle)


def compute_return(
    old_value: Number,
    new_value: Number,
    cycles_elapsed: int,
    cycles_per_year: Number,
    compounding_periods: int = DEFAULT_COMPOUNDING_PERIODS,
) -> ReturnMetric:
    """
    Compute growth, APR and APY between two valuations.

    Args:
        old_value: Value at the start of the window (must be non-zero)
        new_value: Value at the end of the window
        cycles_elapsed: Cycles between the two valuations (must be positive)
        cycles_per_year: Cycles in one year, used to annualize
        compounding_periods: Compounding periods per year for APY

    Returns:
        ReturnMetric; losses give negative APR and APY

    Raises:
        FixedPointError: If old_value is zero or cycles_elapsed is not positive
    """
    old = to_decimal(old_value)
    new = to_decimal(new_value)
    if old == ZERO:
        raise FixedPointError("cannot compute growth from a zero starting value")
    if cycles_elapsed <= 0:
        raise FixedPointError(f"cycles_elapsed must be positive, got {cycles_elapsed}")
    if compounding_periods <= 0:
        raise FixedPointError(f"compounding_periods must be positive, got {compounding_periods}")

    growth_ratio = div(new, old)
    annualization = div(cycles_per_year, cycles_elapsed)

    with localcontext(FIXED_POINT_CONTEXT):
        apr = (growth_ratio - ONE) * annualization
        period_rate = apr / compounding_periods
        apy = (ONE + period_rate) ** compounding_periods - ONE

    return ReturnMetric(
        old_value=old,
        new_value=new,
        cycles_elapsed=cycles_elapsed,
        growth_ratio=growth_ratio,
        apr=apr,
        apy=apy,
    )

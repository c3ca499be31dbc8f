"""Position snapshots and the append-only snapshot series."""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterator, List, Optional, Tuple

from ..errors import SnapshotOrderError
from .fixed_point import add

PHASE_BASELINE = "baseline"
PHASE_BEFORE = "before"
PHASE_AFTER = "after"
PHASE_FINAL = "final"

PHASES = (PHASE_BASELINE, PHASE_BEFORE, PHASE_AFTER, PHASE_FINAL)


@dataclass(frozen=True)
class PositionSnapshot:
    """Holder position read from the driven system at one cycle boundary.

    All quantities are raw fixed-point integers:
    - primary_share_balance: primary vault shares owned by the holder (staked or not)
    - primary_share_price: primary price per full share, scaled by 1e18
    - secondary_share_balance: secondary shares the reward pool holds for the holder
    - secondary_share_price: secondary price per full share, scaled by 1e18
    - primary_asset_balance: primary underlying sitting in the holder's wallet
    - secondary_holder_balance: secondary shares sitting in the holder's wallet
    """
    sequence: int
    cycle_index: int
    phase: str
    primary_share_balance: Decimal
    primary_share_price: Decimal
    secondary_share_balance: Decimal
    secondary_share_price: Decimal
    primary_asset_balance: Decimal = Decimal(0)
    secondary_holder_balance: Decimal = Decimal(0)

    def __post_init__(self):
        if self.phase not in PHASES:
            raise ValueError(f"unknown snapshot phase: {self.phase!r}")

    @property
    def secondary_total_shares(self) -> Decimal:
        """Secondary shares owned by the holder wherever they sit."""
        return add(self.secondary_share_balance, self.secondary_holder_balance)

    def with_prices(self, primary_share_price: Decimal, secondary_share_price: Decimal) -> "PositionSnapshot":
        """Copy with different share prices (balances unchanged)."""
        return replace(
            self,
            primary_share_price=primary_share_price,
            secondary_share_price=secondary_share_price,
        )


class SnapshotSeries:
    """Append-only, strictly ordered sequence of snapshots."""

    def __init__(self):
        self._snapshots: List[PositionSnapshot] = []

    def append(self, snapshot: PositionSnapshot) -> None:
        """
        Append a snapshot.

        Raises:
            SnapshotOrderError: If its sequence does not follow the last one
        """
        last = self.last
        if last is not None:
            if snapshot.sequence <= last.sequence:
                raise SnapshotOrderError(
                    f"snapshot sequence {snapshot.sequence} does not follow {last.sequence}"
                )
            if snapshot.cycle_index < last.cycle_index:
                raise SnapshotOrderError(
                    f"snapshot cycle {snapshot.cycle_index} precedes cycle {last.cycle_index}"
                )
        self._snapshots.append(snapshot)

    @property
    def first(self) -> Optional[PositionSnapshot]:
        return self._snapshots[0] if self._snapshots else None

    @property
    def last(self) -> Optional[PositionSnapshot]:
        return self._snapshots[-1] if self._snapshots else None

    def as_tuple(self) -> Tuple[PositionSnapshot, ...]:
        return tuple(self._snapshots)

    def __len__(self) -> int:
        return len(self._snapshots)

    def __iter__(self) -> Iterator[PositionSnapshot]:
        return iter(tuple(self._snapshots))

    def __getitem__(self, index: int) -> PositionSnapshot:
        return self._snapshots[index]

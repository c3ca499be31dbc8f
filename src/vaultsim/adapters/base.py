"""Position adapter - the only seam between the scenario core and the driven system.

Reads return raw fixed-point Decimals; actions block until the driven system
has applied them.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from ..engine.snapshots import PositionSnapshot


class PositionAdapter(ABC):
    """Query/action interface over a primary vault, a secondary vault and a reward pool."""

    # --- reads -----------------------------------------------------------

    @abstractmethod
    def primary_share_balance(self, holder: str) -> Decimal:
        """Primary vault shares owned by ``holder`` (including shares staked in the pool)."""

    @abstractmethod
    def primary_share_price(self) -> Decimal:
        """Primary price per full share, 1e18-scaled."""

    @abstractmethod
    def secondary_share_balance(self, holder: str) -> Decimal:
        """Secondary shares held by the reward pool on behalf of ``holder``."""

    @abstractmethod
    def secondary_share_price(self) -> Decimal:
        """Secondary price per full share, 1e18-scaled."""

    @abstractmethod
    def primary_asset_balance(self, holder: str) -> Decimal:
        """Primary underlying in ``holder``'s wallet."""

    @abstractmethod
    def secondary_holder_balance(self, holder: str) -> Decimal:
        """Secondary shares in ``holder``'s wallet (claimed rewards)."""

    # --- actions ---------------------------------------------------------

    @abstractmethod
    def trigger_compounding(self, target_id: str) -> None:
        """Harvest ``target_id``. A no-op when nothing has accrued."""

    @abstractmethod
    def advance_time(self, period_count: int) -> None:
        """Advance the chain by ``period_count`` blocks."""

    @abstractmethod
    def advance_clock(self, seconds: int) -> None:
        """Advance wall-clock time by ``seconds`` (reward vesting)."""

    @abstractmethod
    def enter_position(self, holder: str) -> None:
        """Deposit all of ``holder``'s primary asset and stake the shares in the pool."""

    @abstractmethod
    def withdraw_all(self, holder: str) -> None:
        """Start the full withdrawal of the primary position."""

    @abstractmethod
    def exit_reward_pool(self, holder: str) -> None:
        """Exit the reward pool: unstake and claim all secondary rewards."""

    # --- helpers ---------------------------------------------------------

    def snapshot(self, holder: str, cycle_index: int, phase: str, sequence: int) -> PositionSnapshot:
        """Read the holder's position. Reads happen in a fixed order."""
        return PositionSnapshot(
            sequence=sequence,
            cycle_index=cycle_index,
            phase=phase,
            primary_share_balance=self.primary_share_balance(holder),
            primary_share_price=self.primary_share_price(),
            secondary_share_balance=self.secondary_share_balance(holder),
            secondary_share_price=self.secondary_share_price(),
            primary_asset_balance=self.primary_asset_balance(holder),
            secondary_holder_balance=self.secondary_holder_balance(holder),
        )

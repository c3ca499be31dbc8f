"""Deterministic in-memory vault system implementing PositionAdapter.

Models the layout the scenario drives on chain:
- primary vault: holder deposits the primary asset, strategy profit accrues per block
- secondary (HODL) vault: receives a share of primary profit as its own asset
- reward pool: holder stakes primary shares, receives secondary vault shares

Profit accrues as *pending* while blocks advance and only moves share prices
when the vault is harvested, so harvest order within a cycle matters: the
primary harvest mints secondary shares at the secondary price of that moment.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Mapping, Optional

from ..config.schema import Config, Market
from ..engine.fixed_point import (
    WAD,
    ZERO,
    Number,
    add,
    from_fixed,
    mul,
    mul_div,
    sub,
    to_decimal,
    to_fixed,
    truncate,
)
from ..engine.valuation import PRIMARY, SECONDARY
from .base import PositionAdapter

logger = logging.getLogger(__name__)

SECONDS_PER_BLOCK = 12


@dataclass
class VaultBook:
    """Share accounting of one vault (raw fixed-point amounts)."""
    total_assets: Decimal = ZERO
    total_shares: Decimal = ZERO
    pending_profit: Decimal = ZERO

    def price_per_full_share(self) -> Decimal:
        """Assets per 1e18 shares; 1e18 for an empty vault."""
        if self.total_shares == ZERO:
            return WAD
        return mul_div(self.total_assets, WAD, self.total_shares)

    def shares_for(self, assets: Decimal) -> Decimal:
        if self.total_shares == ZERO or self.total_assets == ZERO:
            return assets
        return mul_div(assets, self.total_shares, self.total_assets)

    def assets_for(self, shares: Decimal) -> Decimal:
        if self.total_shares == ZERO:
            return ZERO
        return mul_div(shares, self.total_assets, self.total_shares)

    def mint(self, assets: Decimal) -> Decimal:
        shares = self.shares_for(assets)
        self.total_assets = add(self.total_assets, assets)
        self.total_shares = add(self.total_shares, shares)
        return shares

    def burn(self, shares: Decimal) -> Decimal:
        assets = self.assets_for(shares)
        self.total_assets = sub(self.total_assets, assets)
        self.total_shares = sub(self.total_shares, shares)
        return assets

    def accrue(self, rate_per_block: Decimal, blocks: int) -> None:
        self.pending_profit = add(
            self.pending_profit,
            truncate(mul(self.total_assets, mul(rate_per_block, blocks))),
        )

    def realize(self) -> Decimal:
        """Move pending profit into assets; losses floor assets at zero."""
        profit = self.pending_profit
        self.pending_profit = ZERO
        self.total_assets = max(ZERO, add(self.total_assets, profit))
        return profit


@dataclass
class HolderAccount:
    """Balances of one holder across wallet, vault and pool."""
    underlying: Decimal = ZERO
    primary_shares: Decimal = ZERO  # Unstaked, in wallet
    staked_shares: Decimal = ZERO  # Staked in the reward pool
    pool_rewards: Decimal = ZERO  # Secondary shares owed by the pool
    secondary_shares: Decimal = ZERO  # Claimed secondary shares in wallet


class SimulatedVaultAdapter(PositionAdapter):
    """In-memory primary vault + secondary vault + reward pool."""

    def __init__(
        self,
        market: Market,
        holders: Mapping[str, Number],
        decimals: int = 18,
    ):
        """
        Initialize the simulated system.

        Args:
            market: Yield and reward routing parameters
            holders: Initial primary-asset wallet balance per holder (tokens)
            decimals: Token decimal scale
        """
        self.market = market
        self.decimals = decimals

        self.primary = VaultBook()
        seed = to_fixed(market.secondary_seed_liquidity, decimals)
        self.secondary = VaultBook(total_assets=seed, total_shares=seed)

        self.accounts: Dict[str, HolderAccount] = {
            holder: HolderAccount(underlying=to_fixed(amount, decimals))
            for holder, amount in holders.items()
        }
        self.undistributed_rewards = ZERO
        self.block_number = 0
        self.timestamp = 0
        self.drained = False
        self.harvests: Dict[str, int] = {PRIMARY: 0, SECONDARY: 0}

    @classmethod
    def from_config(cls, config: Config) -> "SimulatedVaultAdapter":
        """Build a system funded with the configured holder balance."""
        return cls(
            market=config.market,
            holders={config.scenario.holder: config.market.initial_underlying},
            decimals=config.decimals,
        )

    def _account(self, holder: str) -> HolderAccount:
        if holder not in self.accounts:
            self.accounts[holder] = HolderAccount()
        return self.accounts[holder]

    @property
    def total_staked(self) -> Decimal:
        total = ZERO
        for account in self.accounts.values():
            total = add(total, account.staked_shares)
        return total

    # --- reads -----------------------------------------------------------

    def primary_share_balance(self, holder: str) -> Decimal:
        account = self._account(holder)
        return add(account.primary_shares, account.staked_shares)

    def primary_share_price(self) -> Decimal:
        return self.primary.price_per_full_share()

    def secondary_share_balance(self, holder: str) -> Decimal:
        return self._account(holder).pool_rewards

    def secondary_share_price(self) -> Decimal:
        return self.secondary.price_per_full_share()

    def primary_asset_balance(self, holder: str) -> Decimal:
        return self._account(holder).underlying

    def secondary_holder_balance(self, holder: str) -> Decimal:
        return self._account(holder).secondary_shares

    # --- actions ---------------------------------------------------------

    def trigger_compounding(self, target_id: str) -> None:
        if target_id == PRIMARY:
            self._harvest_primary()
        elif target_id == SECONDARY:
            profit = self.secondary.realize()
            logger.debug("secondary harvest realized %s", profit)
        else:
            raise ValueError(f"unknown compounding target: {target_id!r}")
        self.harvests[target_id] += 1

    def _harvest_primary(self) -> None:
        if self.drained:
            raise RuntimeError("primary vault was withdrawn; nothing left to harvest")

        profit = self.primary.pending_profit
        if profit <= ZERO:
            # Losses hit the share price in full, nothing is routed to rewards
            self.primary.realize()
            return

        reward_cut = truncate(mul(profit, self.market.reward_fraction))
        self.primary.pending_profit = sub(profit, reward_cut)
        self.primary.realize()
        if reward_cut == ZERO:
            return

        secondary_assets = truncate(mul(reward_cut, self.market.reward_conversion_rate))
        minted = self.secondary.mint(secondary_assets)
        self._distribute(minted)
        logger.debug(
            "primary harvest: profit=%s reward_cut=%s minted_secondary=%s",
            profit, reward_cut, minted,
        )

    def _distribute(self, minted: Decimal) -> None:
        """Credit minted secondary shares to stakers pro rata; dust stays in the pool."""
        total_staked = self.total_staked
        if total_staked == ZERO:
            self.undistributed_rewards = add(self.undistributed_rewards, minted)
            return
        distributed = ZERO
        for account in self.accounts.values():
            if account.staked_shares == ZERO:
                continue
            share = mul_div(minted, account.staked_shares, total_staked)
            account.pool_rewards = add(account.pool_rewards, share)
            distributed = add(distributed, share)
        self.undistributed_rewards = add(self.undistributed_rewards, sub(minted, distributed))

    def advance_time(self, period_count: int) -> None:
        if period_count < 0:
            raise ValueError(f"cannot advance by a negative block count: {period_count}")
        self.block_number += period_count
        self.timestamp += period_count * SECONDS_PER_BLOCK
        self.primary.accrue(to_decimal(self.market.primary_yield_per_block), period_count)
        self.secondary.accrue(to_decimal(self.market.secondary_yield_per_block), period_count)

    def advance_clock(self, seconds: int) -> None:
        if seconds < 0:
            raise ValueError(f"cannot advance by negative seconds: {seconds}")
        self.timestamp += seconds

    def enter_position(self, holder: str) -> None:
        account = self._account(holder)
        amount = account.underlying
        if amount == ZERO:
            return
        shares = self.primary.mint(amount)
        account.underlying = ZERO
        account.staked_shares = add(account.staked_shares, shares)
        logger.debug("%s deposited %s for %s shares", holder, amount, shares)

    def withdraw_all(self, holder: str) -> None:
        """
        Stop the primary strategy and redeem the holder's wallet shares.

        Staked shares stay in the reward pool until ``exit_reward_pool``.
        """
        self.drained = True
        account = self._account(holder)
        self._redeem(holder, account.primary_shares)
        account.primary_shares = ZERO

    def exit_reward_pool(self, holder: str) -> None:
        """
        Unstake, redeem the unstaked shares and claim pool rewards.

        Rewards are credited at harvest time and vest immediately, so the
        settle period before exit only moves the clock.
        """
        account = self._account(holder)
        self._redeem(holder, account.staked_shares)
        account.staked_shares = ZERO
        account.secondary_shares = add(account.secondary_shares, account.pool_rewards)
        account.pool_rewards = ZERO

    def _redeem(self, holder: str, shares: Decimal) -> None:
        if shares == ZERO:
            return
        account = self._account(holder)
        assets = self.primary.burn(shares)
        account.underlying = add(account.underlying, assets)
        logger.debug("%s redeemed %s shares for %s", holder, shares, assets)

    def state_summary(self, holder: Optional[str] = None) -> Dict[str, Decimal]:
        """Human-readable view of the system (for logs and debugging)."""
        summary = {
            "block_number": Decimal(self.block_number),
            "primary_total_assets": from_fixed(self.primary.total_assets, self.decimals),
            "primary_price_per_share": from_fixed(self.primary.price_per_full_share()),
            "secondary_total_assets": from_fixed(self.secondary.total_assets, self.decimals),
            "secondary_price_per_share": from_fixed(self.secondary.price_per_full_share()),
        }
        if holder is not None:
            account = self._account(holder)
            summary["holder_underlying"] = from_fixed(account.underlying, self.decimals)
            summary["holder_pool_rewards"] = from_fixed(account.pool_rewards, self.decimals)
        return summary

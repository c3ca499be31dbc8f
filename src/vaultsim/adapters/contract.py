"""PositionAdapter over deployed contracts, driven through titanoboa.

Expects contract handles exposing the Harvest-style vault interface:

- vault / hodl_vault: ``balanceOf``, ``getPricePerFullShare``, ``deposit``,
  ``withdraw``, ``withdrawAll``, ``approve``
- pot_pool: ``balanceOf``, ``totalSupply``, ``stake``, ``exit``
- controller: ``doHardWork(vault_address)``
- underlying: ERC20 ``balanceOf``, ``approve``

Calls pass ``sender=`` the way boa contract handles accept it. The holder's
primary shares are staked in the pot pool, so their redemption completes in
``exit_reward_pool`` after the pool returns them.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from ..engine.fixed_point import ZERO, add, mul_div
from ..engine.valuation import PRIMARY, SECONDARY
from .base import PositionAdapter

logger = logging.getLogger(__name__)


def _read(value: Any) -> Decimal:
    return Decimal(int(value))


class ContractVaultAdapter(PositionAdapter):
    """Adapter over a vault, a HODL vault, a pot pool and the controller."""

    def __init__(
        self,
        underlying,
        vault,
        hodl_vault,
        pot_pool,
        controller,
        governance: str,
        env=None,
        targets: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize adapter.

        Args:
            underlying: Primary asset ERC20 handle
            vault: Primary vault handle
            hodl_vault: Secondary (HODL) vault handle
            pot_pool: Reward pool handle staking primary shares
            controller: Controller handle used for doHardWork
            governance: Address allowed to harvest and withdrawAll
            env: Object with ``time_travel``; defaults to ``boa.env``
            targets: Compounding target id -> vault address
        """
        if env is None:
            import boa
            env = boa.env

        self.underlying = underlying
        self.vault = vault
        self.hodl_vault = hodl_vault
        self.pot_pool = pot_pool
        self.controller = controller
        self.governance = governance
        self.env = env
        self.targets = targets or {
            PRIMARY: vault.address,
            SECONDARY: hodl_vault.address,
        }

    # --- reads -----------------------------------------------------------

    def primary_share_balance(self, holder: str) -> Decimal:
        return add(_read(self.vault.balanceOf(holder)), _read(self.pot_pool.balanceOf(holder)))

    def primary_share_price(self) -> Decimal:
        return _read(self.vault.getPricePerFullShare())

    def secondary_share_balance(self, holder: str) -> Decimal:
        total_staked = _read(self.pot_pool.totalSupply())
        if total_staked == ZERO:
            return ZERO
        pool_balance = _read(self.hodl_vault.balanceOf(self.pot_pool.address))
        staked = _read(self.pot_pool.balanceOf(holder))
        return mul_div(pool_balance, staked, total_staked)

    def secondary_share_price(self) -> Decimal:
        return _read(self.hodl_vault.getPricePerFullShare())

    def primary_asset_balance(self, holder: str) -> Decimal:
        return _read(self.underlying.balanceOf(holder))

    def secondary_holder_balance(self, holder: str) -> Decimal:
        return _read(self.hodl_vault.balanceOf(holder))

    # --- actions ---------------------------------------------------------

    def trigger_compounding(self, target_id: str) -> None:
        try:
            vault_address = self.targets[target_id]
        except KeyError:
            raise ValueError(f"unknown compounding target: {target_id!r}") from None
        self.controller.doHardWork(vault_address, sender=self.governance)

    def advance_time(self, period_count: int) -> None:
        self.env.time_travel(blocks=period_count)

    def advance_clock(self, seconds: int) -> None:
        self.env.time_travel(seconds=seconds)

    def enter_position(self, holder: str) -> None:
        amount = int(self.underlying.balanceOf(holder))
        if amount == 0:
            return
        self.underlying.approve(self.vault.address, amount, sender=holder)
        self.vault.deposit(amount, sender=holder)
        shares = int(self.vault.balanceOf(holder))
        self.vault.approve(self.pot_pool.address, shares, sender=holder)
        self.pot_pool.stake(shares, sender=holder)
        logger.info("%s deposited %d and staked %d shares", holder, amount, shares)

    def withdraw_all(self, holder: str) -> None:
        # Pull funds back from the strategy so no harvest runs on later withdrawals
        self.vault.withdrawAll(sender=self.governance)
        self._redeem_wallet_shares(holder)

    def exit_reward_pool(self, holder: str) -> None:
        self.pot_pool.exit(sender=holder)
        self._redeem_wallet_shares(holder)

    def _redeem_wallet_shares(self, holder: str) -> None:
        shares = int(self.vault.balanceOf(holder))
        if shares:
            self.vault.withdraw(shares, sender=holder)
            logger.info("%s redeemed %d primary shares", holder, shares)

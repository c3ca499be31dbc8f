"""Tests for the in-memory vault system."""

import pytest
import sys
import os
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from vaultsim.adapters import SimulatedVaultAdapter
from vaultsim.adapters.simulated import VaultBook
from vaultsim.config.schema import Market
from vaultsim.engine.fixed_point import WAD, ZERO, to_fixed


def make_adapter(**market_overrides):
    fields = dict(initial_underlying=Decimal("1000000"))
    fields.update(market_overrides)
    market = Market(**fields)
    return SimulatedVaultAdapter(market, holders={"farmer": market.initial_underlying})


def entered(**market_overrides):
    adapter = make_adapter(**market_overrides)
    adapter.enter_position("farmer")
    return adapter


class TestVaultBook:
    """Share accounting."""

    def test_empty_vault_prices_at_one(self):
        assert VaultBook().price_per_full_share() == WAD

    def test_mint_and_burn_round_trip_at_constant_price(self):
        book = VaultBook()
        shares = book.mint(to_fixed("100"))
        assert shares == to_fixed("100")
        assert book.burn(shares) == to_fixed("100")
        assert book.total_assets == ZERO

    def test_profit_moves_price_only_when_realized(self):
        book = VaultBook()
        book.mint(to_fixed("100"))
        book.accrue(Decimal("0.001"), 10)
        assert book.price_per_full_share() == WAD
        assert book.realize() == to_fixed("1")
        assert book.price_per_full_share() == to_fixed("1.01")

    def test_loss_floors_assets_at_zero(self):
        book = VaultBook(total_assets=to_fixed("1"), total_shares=to_fixed("1"))
        book.pending_profit = to_fixed("-5")
        book.realize()
        assert book.total_assets == ZERO


class TestPositionEntry:
    """Deposit and stake."""

    def test_enter_moves_wallet_into_pool(self):
        adapter = make_adapter()
        assert adapter.primary_asset_balance("farmer") == to_fixed("1000000")
        adapter.enter_position("farmer")

        assert adapter.primary_asset_balance("farmer") == ZERO
        assert adapter.primary_share_balance("farmer") == to_fixed("1000000")
        assert adapter.total_staked == to_fixed("1000000")

    def test_unknown_holder_has_empty_position(self):
        adapter = make_adapter()
        assert adapter.primary_share_balance("nobody") == ZERO
        adapter.enter_position("nobody")
        assert adapter.total_staked == ZERO


class TestCompounding:
    """Harvest behaviour of both targets."""

    def test_harvest_without_accrual_is_a_no_op(self):
        adapter = entered()
        primary_before = adapter.primary_share_price()
        secondary_before = adapter.secondary_share_price()

        adapter.trigger_compounding("primary")
        adapter.trigger_compounding("secondary")

        assert adapter.primary_share_price() == primary_before
        assert adapter.secondary_share_price() == secondary_before
        assert adapter.secondary_share_balance("farmer") == ZERO

    def test_repeated_harvest_never_lowers_prices(self):
        adapter = entered()
        adapter.advance_time(3600)
        adapter.trigger_compounding("primary")
        adapter.trigger_compounding("secondary")
        prices = (adapter.primary_share_price(), adapter.secondary_share_price())

        adapter.trigger_compounding("primary")
        adapter.trigger_compounding("secondary")
        assert (adapter.primary_share_price(), adapter.secondary_share_price()) == prices

    def test_primary_harvest_raises_price_and_pays_rewards(self):
        adapter = entered()
        adapter.advance_time(3600)
        adapter.trigger_compounding("primary")

        # 1,000,000 * 0.0000015 * 3600 = 5400 profit, 30% routed to rewards
        assert adapter.primary_share_price() == to_fixed("1.00378")
        assert adapter.secondary_share_balance("farmer") == to_fixed("18306")
        assert adapter.harvests == {"primary": 1, "secondary": 0}

    def test_secondary_profit_waits_for_its_harvest(self):
        adapter = entered()
        adapter.advance_time(3600)
        adapter.trigger_compounding("primary")
        assert adapter.secondary_share_price() == WAD

        adapter.trigger_compounding("secondary")
        assert adapter.secondary_share_price() > WAD

    def test_losing_strategy_realizes_loss(self):
        adapter = entered(primary_yield_per_block=Decimal("-0.000001"))
        adapter.advance_time(1000)
        adapter.trigger_compounding("primary")

        assert adapter.primary_share_price() == to_fixed("0.999")
        assert adapter.secondary_share_balance("farmer") == ZERO

    def test_rewards_without_stakers_stay_in_pool(self):
        adapter = make_adapter()
        adapter.primary.mint(to_fixed("1000"))
        adapter.advance_time(1000)
        adapter.trigger_compounding("primary")
        assert adapter.undistributed_rewards > ZERO

    def test_unknown_target(self):
        with pytest.raises(ValueError):
            entered().trigger_compounding("tertiary")

    def test_primary_harvest_refused_after_withdrawal(self):
        adapter = entered()
        adapter.withdraw_all("farmer")
        with pytest.raises(RuntimeError):
            adapter.trigger_compounding("primary")


class TestTimeAndDraining:
    """Block/clock advance, withdrawal and pool exit."""

    def test_advance_time_moves_blocks_and_clock(self):
        adapter = make_adapter()
        adapter.advance_time(3600)
        assert adapter.block_number == 3600
        assert adapter.timestamp == 3600 * 12

    def test_advance_clock_only_moves_clock(self):
        adapter = make_adapter()
        adapter.advance_clock(86400)
        assert adapter.block_number == 0
        assert adapter.timestamp == 86400

    def test_negative_advance_rejected(self):
        with pytest.raises(ValueError):
            make_adapter().advance_time(-1)
        with pytest.raises(ValueError):
            make_adapter().advance_clock(-1)

    def test_withdraw_and_exit_settle_into_wallet(self):
        adapter = entered()
        adapter.advance_time(3600)
        adapter.trigger_compounding("primary")
        rewards = adapter.secondary_share_balance("farmer")

        adapter.withdraw_all("farmer")
        adapter.exit_reward_pool("farmer")
        assert adapter.primary_share_balance("farmer") == ZERO
        assert adapter.primary_asset_balance("farmer") > to_fixed("1000000")
        assert adapter.secondary_share_balance("farmer") == ZERO
        assert adapter.secondary_holder_balance("farmer") == rewards

    def test_staked_shares_stay_in_pool_until_exit(self):
        adapter = entered()
        adapter.advance_time(3600)
        adapter.trigger_compounding("primary")
        staked = adapter.primary_share_balance("farmer")
        rewards = adapter.secondary_share_balance("farmer")

        adapter.withdraw_all("farmer")
        assert adapter.primary_share_balance("farmer") == staked
        assert adapter.primary_asset_balance("farmer") == ZERO
        assert adapter.secondary_share_balance("farmer") == rewards

        adapter.exit_reward_pool("farmer")
        assert adapter.primary_share_balance("farmer") == ZERO
        assert adapter.primary.total_shares == ZERO

    def test_state_summary(self):
        adapter = entered()
        summary = adapter.state_summary("farmer")
        assert summary["primary_total_assets"] == Decimal("1000000")
        assert summary["primary_price_per_share"] == 1
        assert summary["holder_underlying"] == 0

"""Shared fixtures: config factories and a scripted position adapter."""

import sys
import os
from decimal import Decimal

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from vaultsim.adapters.base import PositionAdapter
from vaultsim.config.schema import Config
from vaultsim.engine.fixed_point import WAD, ZERO, add, mul_div, to_fixed


BASE_SCENARIO = {
    'cycle_count': 10,
    'blocks_per_cycle': 3600,
    'holder': 'farmer',
}

BASE_PRICES = {'primary': '2.85', 'secondary': '0.2507'}


def build_config(**scenario_overrides) -> Config:
    """Config with the reference prices and scenario keys overridden."""
    scenario = dict(BASE_SCENARIO)
    scenario.update(scenario_overrides)
    return Config.from_dict({'scenario': scenario, 'unit_prices': dict(BASE_PRICES)})


class ScriptedAdapter(PositionAdapter):
    """
    Single-holder adapter that replays a script instead of modelling yield.

    The k-th primary harvest sets the primary share price to
    ``primary_prices[k]`` and the pool's secondary balance for the holder to
    ``pool_rewards[k]`` (the last entry repeats). Secondary harvests walk
    ``secondary_prices`` the same way. ``failures`` maps an action name, or
    ``"action:argument"``, to the exception it raises.
    """

    def __init__(
        self,
        primary_prices,
        pool_rewards,
        secondary_prices=None,
        principal="1000000",
        settle_secondary_price=None,
        failures=None,
    ):
        self.primary_prices = [to_fixed(p) for p in primary_prices]
        self.pool_reward_schedule = [to_fixed(r) for r in pool_rewards]
        self.secondary_prices = [to_fixed(p) for p in (secondary_prices or [])]
        self.settle_secondary_price = (
            to_fixed(settle_secondary_price) if settle_secondary_price is not None else None
        )
        self.failures = dict(failures or {})
        self.calls = []

        self.underlying = to_fixed(principal)
        self.staked = ZERO
        self.pool_rewards = ZERO
        self.wallet_secondary = ZERO
        self.primary_price = WAD
        self.secondary_price = WAD
        self.primary_harvests = 0
        self.secondary_harvests = 0
        self.blocks = 0
        self.seconds = 0

    def _act(self, name, argument=None):
        self.calls.append((name, argument))
        for key in (f"{name}:{argument}", name):
            if key in self.failures:
                raise self.failures[key]

    @staticmethod
    def _step(schedule, index):
        return schedule[min(index, len(schedule) - 1)]

    # reads

    def primary_share_balance(self, holder):
        return self.staked

    def primary_share_price(self):
        return self.primary_price

    def secondary_share_balance(self, holder):
        return self.pool_rewards

    def secondary_share_price(self):
        return self.secondary_price

    def primary_asset_balance(self, holder):
        return self.underlying

    def secondary_holder_balance(self, holder):
        return self.wallet_secondary

    # actions

    def trigger_compounding(self, target_id):
        self._act("trigger_compounding", target_id)
        if target_id == "primary":
            self.primary_price = self._step(self.primary_prices, self.primary_harvests)
            self.pool_rewards = self._step(self.pool_reward_schedule, self.primary_harvests)
            self.primary_harvests += 1
        elif target_id == "secondary":
            if self.secondary_prices:
                self.secondary_price = self._step(self.secondary_prices, self.secondary_harvests)
            self.secondary_harvests += 1
        else:
            raise ValueError(f"unknown target {target_id!r}")

    def advance_time(self, period_count):
        self._act("advance_time", period_count)
        self.blocks += period_count

    def advance_clock(self, seconds):
        self._act("advance_clock", seconds)
        self.seconds += seconds
        if self.settle_secondary_price is not None:
            self.secondary_price = self.settle_secondary_price

    def enter_position(self, holder):
        self._act("enter_position", holder)
        self.staked = mul_div(self.underlying, WAD, self.primary_price)
        self.underlying = ZERO

    def withdraw_all(self, holder):
        self._act("withdraw_all", holder)
        self.underlying = add(self.underlying, mul_div(self.staked, self.primary_price, WAD))
        self.staked = ZERO

    def exit_reward_pool(self, holder):
        self._act("exit_reward_pool", holder)
        self.wallet_secondary = add(self.wallet_secondary, self.pool_rewards)
        self.pool_rewards = ZERO

    def action_names(self):
        return [name for name, _ in self.calls]


def reference_price_path(cycles=10, start=Decimal("1.0"), end=Decimal("1.05")):
    """Share prices after each harvest, linear from ``start`` to ``end``."""
    step = (end - start) / cycles
    return [start + step * (i + 1) for i in range(cycles)]


def reference_reward_path(cycles=10, total=Decimal("500")):
    """Pool balance after each harvest, linear from 0 to ``total``."""
    step = total / cycles
    return [step * (i + 1) for i in range(cycles)]


@pytest.fixture
def make_config():
    """Factory fixture: ``make_config(cycle_count=3, ...)``."""
    return build_config


@pytest.fixture
def make_adapter():
    """Factory fixture for ScriptedAdapter."""
    return ScriptedAdapter


@pytest.fixture
def reference_config():
    """Ten cycles of 3600 blocks at 2.85 / 0.2507."""
    return build_config()


@pytest.fixture
def reference_adapter():
    """Share price 1.0 -> 1.05 and pool rewards 0 -> 500 over ten harvests."""
    return ScriptedAdapter(
        primary_prices=reference_price_path(),
        pool_rewards=reference_reward_path(),
    )

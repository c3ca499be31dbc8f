"""Valuation engine - mixed primary/secondary position -> one common unit.

Value formula (all terms truncated back to the token scale):

    primary_value   = shares * share_price * unit_price / 1e36
                    + wallet_underlying * unit_price / 1e18
    secondary_value = (pool_shares + wallet_shares) * share_price * unit_price / 1e36

With empty wallets this is exactly the pool/vault-only formula; counting the
wallet keeps a position's value continuous across deposit and withdrawal.
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Mapping

from .fixed_point import (
    DEFAULT_DECIMALS,
    Number,
    add,
    div,
    mul,
    mul_div,
    scale_for,
    to_decimal,
    to_fixed,
    truncate,
)
from .snapshots import PositionSnapshot

PRIMARY = "primary"
SECONDARY = "secondary"

# Share prices are always 1e18-scaled (getPricePerFullShare convention)
SHARE_PRICE_DECIMALS = 18


class UnitPriceTable:
    """Read-only asset -> unit price table, prices stored scaled to the token decimals."""

    def __init__(self, prices: Mapping[str, Number], decimals: int = DEFAULT_DECIMALS):
        """
        Initialize price table.

        Args:
            prices: Human-readable prices keyed by asset id (e.g. {"primary": "2.85"})
            decimals: Token decimal scale the prices are stored in
        """
        missing = {PRIMARY, SECONDARY} - set(prices)
        if missing:
            raise ValueError(f"unit price table is missing: {sorted(missing)}")
        scaled: Dict[str, Decimal] = {}
        for asset, price in prices.items():
            value = to_decimal(price)
            if value < 0:
                raise ValueError(f"unit price for {asset!r} must be non-negative, got {value}")
            scaled[asset] = to_fixed(value, decimals)
        self._prices = MappingProxyType(scaled)
        self.decimals = decimals

    @property
    def scale(self) -> Decimal:
        return scale_for(self.decimals)

    def price_of(self, asset: str) -> Decimal:
        """Scaled unit price of an asset."""
        try:
            return self._prices[asset]
        except KeyError:
            raise KeyError(f"no unit price for asset {asset!r}") from None

    @property
    def prices(self) -> Mapping[str, Decimal]:
        return self._prices

    def __eq__(self, other):
        if not isinstance(other, UnitPriceTable):
            return NotImplemented
        return dict(self._prices) == dict(other._prices) and self.decimals == other.decimals

    def __repr__(self):
        return f"UnitPriceTable({dict(self._prices)!r}, decimals={self.decimals})"


@dataclass(frozen=True)
class ValuedPosition:
    """A snapshot expressed in the common valuation unit (token-scaled)."""
    primary_value: Decimal
    secondary_value: Decimal

    @property
    def total_value(self) -> Decimal:
        return add(self.primary_value, self.secondary_value)


def _share_value(shares: Decimal, share_price: Decimal, unit_price: Decimal, scale: Decimal) -> Decimal:
    # shares (1e18) * share price (1e18) * unit price (1e18) -> one 1e18 result
    share_scale = scale_for(SHARE_PRICE_DECIMALS)
    return mul_div(mul(shares, share_price), unit_price, share_scale * scale)


def valuate(snapshot: PositionSnapshot, unit_prices: UnitPriceTable) -> ValuedPosition:
    """
    Value a snapshot in the common unit.

    Args:
        snapshot: Position snapshot
        unit_prices: Fixed unit prices for the run

    Returns:
        ValuedPosition; zero balances value at zero
    """
    scale = unit_prices.scale
    primary_price = unit_prices.price_of(PRIMARY)
    secondary_price = unit_prices.price_of(SECONDARY)

    primary_value = _share_value(
        snapshot.primary_share_balance, snapshot.primary_share_price, primary_price, scale
    )
    if snapshot.primary_asset_balance:
        primary_value = add(primary_value, mul_div(snapshot.primary_asset_balance, primary_price, scale))

    secondary_value = _share_value(
        snapshot.secondary_total_shares, snapshot.secondary_share_price, secondary_price, scale
    )

    return ValuedPosition(primary_value=primary_value, secondary_value=secondary_value)


def scale_snapshot(snapshot: PositionSnapshot, k: Number) -> PositionSnapshot:
    """Copy of ``snapshot`` with every balance multiplied by ``k`` (prices unchanged)."""
    factor = to_decimal(k)
    return replace(
        snapshot,
        primary_share_balance=truncate(mul(snapshot.primary_share_balance, factor)),
        secondary_share_balance=truncate(mul(snapshot.secondary_share_balance, factor)),
        primary_asset_balance=truncate(mul(snapshot.primary_asset_balance, factor)),
        secondary_holder_balance=truncate(mul(snapshot.secondary_holder_balance, factor)),
    )


def value_in_units(value: Decimal, unit_prices: UnitPriceTable) -> Decimal:
    """Scaled value -> human-readable common units."""
    return div(value, unit_prices.scale)

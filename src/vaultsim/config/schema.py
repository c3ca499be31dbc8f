"""Pydantic schema for scenario configuration validation."""

import hashlib
import json
from decimal import Decimal
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from ..engine.returns import cycles_per_year
from ..engine.valuation import PRIMARY, SECONDARY, UnitPriceTable

THIRTY_DAYS_SECONDS = 86400 * 30


class Scenario(BaseModel):
    """Compounding scenario parameters."""
    cycle_count: int = Field(gt=0, description="Number of compounding cycles to run")
    blocks_per_cycle: int = Field(gt=0, description="Blocks advanced after each cycle")
    holder: str = Field(min_length=1, description="Account whose position is tracked")
    blocks_per_day: int = Field(
        gt=0, default=7200,
        description="Chain blocks per day, used to annualize per-cycle returns"
    )
    compounding_periods: int = Field(
        gt=0, default=365,
        description="Compounding periods per year for APY (365 = daily)"
    )
    compounding_targets: List[str] = Field(
        default_factory=lambda: [PRIMARY, SECONDARY],
        min_length=1,
        description="Harvest targets, triggered in this order every cycle"
    )
    settle_seconds: int = Field(
        ge=0, default=THIRTY_DAYS_SECONDS,
        description="Clock advance between withdrawal and reward-pool exit"
    )
    enter_position: bool = Field(
        default=True,
        description="Deposit and stake the holder's primary asset after the baseline snapshot"
    )
    final_price_pairing: Literal["withdrawal", "last_cycle"] = Field(
        default="withdrawal",
        description="Share prices paired with the final balances: read at withdrawal, or last cycle's"
    )

    @field_validator("compounding_targets")
    @classmethod
    def validate_unique_targets(cls, v):
        """A target may only be harvested once per cycle."""
        if len(set(v)) != len(v):
            raise ValueError(f"compounding_targets contains duplicates: {v}")
        return v


class Market(BaseModel):
    """Parameters of the in-memory vault model (SimulatedVaultAdapter)."""
    initial_underlying: Decimal = Field(gt=0, description="Holder's primary asset before the run (tokens)")
    primary_yield_per_block: Decimal = Field(
        default=Decimal("0.0000015"),
        description="Primary strategy profit per block, fraction of vault assets (may be negative)"
    )
    secondary_yield_per_block: Decimal = Field(
        default=Decimal("0.0000005"),
        description="Secondary vault profit per block, fraction of vault assets"
    )
    reward_fraction: Decimal = Field(
        ge=0, le=1, default=Decimal("0.3"),
        description="Share of realized primary profit routed to the reward pool"
    )
    reward_conversion_rate: Decimal = Field(
        gt=0, default=Decimal("11.3"),
        description="Secondary tokens bought per primary token of routed profit"
    )
    secondary_seed_liquidity: Decimal = Field(
        ge=0, default=Decimal("1000000"),
        description="Secondary vault assets (and shares) owned by other depositors"
    )


class Config(BaseModel):
    """Complete configuration for a compounding scenario."""
    scenario: Scenario
    unit_prices: Dict[str, Decimal]
    decimals: int = Field(ge=0, le=36, default=18, description="Token decimal scale")
    market: Market = Field(default_factory=lambda: Market(initial_underlying=Decimal("1000000")))

    @field_validator("unit_prices")
    @classmethod
    def validate_unit_prices(cls, v):
        """Both assets need a positive price."""
        for asset in (PRIMARY, SECONDARY):
            if asset not in v:
                raise ValueError(f"unit_prices must define {asset!r}")
        for asset, price in v.items():
            if price <= 0:
                raise ValueError(f"unit price for {asset!r} must be positive, got {price}")
        return v

    @model_validator(mode="after")
    def validate_targets_against_prices(self):
        """Every harvest target must be a priced asset."""
        unknown = [t for t in self.scenario.compounding_targets if t not in self.unit_prices]
        if unknown:
            raise ValueError(f"compounding targets without a unit price: {unknown}")
        return self

    @property
    def cycles_per_year(self) -> Decimal:
        """Cycles per 365-day year implied by block timing."""
        return cycles_per_year(self.scenario.blocks_per_cycle, self.scenario.blocks_per_day)

    def unit_price_table(self) -> UnitPriceTable:
        """Immutable unit price table for a run."""
        return UnitPriceTable(self.unit_prices, decimals=self.decimals)

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump(mode="json")
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()

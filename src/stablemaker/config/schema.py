"""Pydantic schema for configuration and governance parameters."""

import hashlib
import json
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def _check_fee_rate(name: str, v: Optional[Decimal]) -> Optional[Decimal]:
    """Fee rates must lie in [0, 1); a rate of 1 would make the fee algebra divide by zero."""
    if v is None:
        return v
    if v < 0 or v >= 1:
        raise ValueError(f"{name} must be in [0, 1), got {v}")
    return v


class ChainSettings(BaseModel):
    """Denominations and module accounts of the host chain."""
    stable_denom: str = Field(default="uusw", min_length=1, description="Stable unit denom")
    native_denom: str = Field(default="amage", min_length=1, description="Native token denom")
    stable_target_price: Decimal = Field(
        default=Decimal("1"), gt=0,
        description="Target USD price of one base unit of the stable coin"
    )
    module_name: str = Field(default="maker", min_length=1, description="Module account holding reserves")
    fee_collector_module: str = Field(default="oracle", min_length=1, description="Module account receiving fees")

    @model_validator(mode="after")
    def validate_distinct(self):
        """Stable and native denoms, and the two module accounts, must differ."""
        if self.stable_denom == self.native_denom:
            raise ValueError("stable_denom and native_denom must differ")
        if self.module_name == self.fee_collector_module:
            raise ValueError("module_name and fee_collector_module must differ")
        return self


class MakerParams(BaseModel):
    """Global maker parameters."""
    backing_ratio: Decimal = Field(
        default=Decimal("1"), ge=0,
        description="Fraction of minted value covered by reserve assets"
    )
    backing_ratio_last_block: int = Field(default=0, ge=0, description="Block of last ratio adjustment")
    mint_price_bias: Decimal = Field(default=Decimal("0"), ge=0, description="Mint circuit breaker bias")
    burn_price_bias: Decimal = Field(default=Decimal("0"), ge=0, lt=1, description="Burn circuit breaker bias")
    reback_bonus: Decimal = Field(default=Decimal("0"), ge=0, description="Bonus when selling backing")
    liquidation_commission_fee: Decimal = Field(
        default=Decimal("0"), ge=0, le=1,
        description="Share of the liquidation fee kept by the protocol"
    )
    blocks_per_year: int = Field(default=6_311_520, gt=0, description="Blocks per year for APR accrual")


class BackingRiskParams(BaseModel):
    """Per-denom risk parameters of a reserve asset."""
    backing_denom: str = Field(min_length=1)
    enabled: bool = True
    max_backing: Optional[int] = Field(default=None, ge=0, description="Ceiling of pool backing")
    max_war_mint: Optional[int] = Field(default=None, ge=0, description="Ceiling of stable minted by pool")
    mint_fee: Optional[Decimal] = None
    burn_fee: Optional[Decimal] = None
    buyback_fee: Optional[Decimal] = None
    reback_fee: Optional[Decimal] = None

    @field_validator("mint_fee", "burn_fee", "buyback_fee", "reback_fee")
    @classmethod
    def validate_fee(cls, v, info):
        return _check_fee_rate(info.field_name, v)


class CollateralRiskParams(BaseModel):
    """Per-denom risk parameters of a collateral asset."""
    collateral_denom: str = Field(min_length=1)
    enabled: bool = True
    max_collateral: Optional[int] = Field(default=None, ge=0, description="Ceiling of pool collateral")
    max_war_mint: Optional[int] = Field(default=None, ge=0, description="Ceiling of pool debt")
    liquidation_threshold: Decimal = Field(gt=0, le=1)
    loan_to_value: Decimal = Field(ge=0, le=1, description="Max LTV with full catalytic deposit")
    basic_loan_to_value: Decimal = Field(ge=0, le=1, description="LTV without catalytic deposit")
    catalytic_mage_ratio: Decimal = Field(ge=0, description="Catalytic ratio cap")
    interest_fee: Decimal = Field(default=Decimal("0"), ge=0, description="Annual interest rate")
    mint_fee: Optional[Decimal] = None
    liquidation_fee: Decimal = Field(default=Decimal("0"))

    @field_validator("mint_fee", "liquidation_fee")
    @classmethod
    def validate_fee(cls, v, info):
        return _check_fee_rate(info.field_name, v)

    @model_validator(mode="after")
    def validate_ltv_order(self):
        """basic LTV <= max LTV <= liquidation threshold."""
        if self.basic_loan_to_value > self.loan_to_value:
            raise ValueError(
                f"basic_loan_to_value ({self.basic_loan_to_value}) must not exceed "
                f"loan_to_value ({self.loan_to_value})"
            )
        if self.loan_to_value > self.liquidation_threshold:
            raise ValueError(
                f"loan_to_value ({self.loan_to_value}) must not exceed "
                f"liquidation_threshold ({self.liquidation_threshold})"
            )
        return self


class Config(BaseModel):
    """Complete maker configuration."""
    chain: ChainSettings = Field(default_factory=ChainSettings)
    params: MakerParams = Field(default_factory=MakerParams)
    backing: List[BackingRiskParams] = Field(default_factory=list)
    collateral: List[CollateralRiskParams] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_denoms(self):
        """Risk param denoms are unique and distinct from the stable/native denoms."""
        reserved = {self.chain.stable_denom, self.chain.native_denom}
        for label, denoms in (
            ("backing", [p.backing_denom for p in self.backing]),
            ("collateral", [p.collateral_denom for p in self.collateral]),
        ):
            if len(set(denoms)) != len(denoms):
                raise ValueError(f"duplicate {label} denom in {denoms}")
            clash = reserved.intersection(denoms)
            if clash:
                raise ValueError(f"{label} denom {sorted(clash)} clashes with stable/native denom")
        return self

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
        return self.model_dump(mode="json")

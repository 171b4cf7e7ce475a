"""Smoke tests for core stablemaker modules.

These tests verify basic functionality without deep validation.
Run these first to catch obvious breakage.
"""

import pytest
import sys
import os
from decimal import Decimal

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from pydantic import ValidationError

from stablemaker.config.loader import config_from_dict, load_config
from stablemaker.config.schema import BackingRiskParams, ChainSettings, CollateralRiskParams, Config
from stablemaker.store.memory import MemoryLedger, MemoryParamStore, StaticPriceOracle
from stablemaker.service.msg_server import MakerService


class TestConfigLoading:
    """Smoke tests for configuration loading."""

    def test_load_default_config(self):
        """Config loads without errors."""
        config = load_config()
        assert config is not None
        assert isinstance(config, Config)

    def test_default_denoms(self):
        """Default chain settings name the stable and native denoms."""
        config = load_config()
        assert config.chain.stable_denom == "uusw"
        assert config.chain.native_denom == "amage"
        assert config.chain.fee_collector_module == "oracle"

    def test_rates_load_as_exact_decimals(self):
        """Quoted rates become Decimals, not floats."""
        config = load_config()
        assert config.params.reback_bonus == Decimal("0.0075")
        assert isinstance(config.backing[0].mint_fee, Decimal)

    def test_config_hash_is_deterministic(self):
        """Same config produces same hash."""
        config1 = load_config()
        config2 = load_config()
        assert config1.compute_hash() == config2.compute_hash()

    def test_config_hash_changes_with_params(self):
        """Changing a parameter changes the hash."""
        data = load_config().to_dict()
        before = config_from_dict(data).compute_hash()
        data["params"]["backing_ratio"] = "0.9"
        assert config_from_dict(data).compute_hash() != before


class TestConfigValidation:
    """Invalid parameters are rejected at load time."""

    def test_fee_rate_of_one_rejected(self):
        """A fee rate must stay below 1."""
        with pytest.raises(ValidationError):
            BackingRiskParams(backing_denom="uusdc", burn_fee=Decimal("1"))

    def test_negative_fee_rejected(self):
        """Fee rates cannot be negative."""
        with pytest.raises(ValidationError):
            BackingRiskParams(backing_denom="uusdc", mint_fee=Decimal("-0.01"))

    def test_ltv_order_enforced(self):
        """basic LTV must not exceed max LTV."""
        with pytest.raises(ValidationError):
            CollateralRiskParams(
                collateral_denom="uatom",
                liquidation_threshold=Decimal("0.9"),
                loan_to_value=Decimal("0.5"),
                basic_loan_to_value=Decimal("0.6"),
                catalytic_mage_ratio=Decimal("0.1"),
            )

    def test_same_stable_and_native_denom_rejected(self):
        """Stable and native denoms must differ."""
        with pytest.raises(ValidationError):
            ChainSettings(stable_denom="x", native_denom="x")

    def test_duplicate_backing_denom_rejected(self):
        """A backing denom can only be registered once."""
        with pytest.raises(ValidationError):
            Config.from_dict({"backing": [{"backing_denom": "uusdc"}, {"backing_denom": "uusdc"}]})

    def test_backing_denom_cannot_be_native(self):
        """Backing denom may not clash with the native denom."""
        with pytest.raises(ValidationError):
            Config.from_dict({"backing": [{"backing_denom": "amage"}]})


class TestServiceWiring:
    """The service builds from the default config."""

    def test_from_default_config(self):
        """Registering the default config creates pools and totals."""
        config = load_config()
        store = MemoryParamStore()
        oracle = StaticPriceOracle({"uusw": "1", "uusdc": "1", "amage": "2", "uatom": "10"})
        service = MakerService.from_config(config, store, MemoryLedger(), oracle)

        assert store.get_pool_backing("uusdc") is not None
        assert store.get_pool_collateral("uatom") is not None
        assert store.get_total_backing().war_minted.amount == 0
        assert store.get_total_collateral().war_debt.amount == 0
        assert service.chain.module_name == "maker"

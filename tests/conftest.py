"""Shared fixtures: a maker wired to in-memory store, ledger and oracle."""

import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from stablemaker.config.schema import Config
from stablemaker.service.msg_server import MakerService
from stablemaker.service.queries import MakerQuerier
from stablemaker.store.memory import MemoryLedger, MemoryParamStore, StaticPriceOracle

# USD per base unit
DEFAULT_PRICES = {
    "uusw": "1",
    "uusdc": "1",
    "amage": "2",
    "uatom": "10",
}


@pytest.fixture
def make_config():
    """Build a Config with one backing coin (uusdc) and one collateral coin (uatom), no fees."""
    def _make(backing_ratio="1", params=None, backing=None, collateral=None) -> Config:
        base_params = {"backing_ratio": backing_ratio}
        base_params.update(params or {})
        backing_entry = {"backing_denom": "uusdc"}
        backing_entry.update(backing or {})
        collateral_entry = {
            "collateral_denom": "uatom",
            "liquidation_threshold": "0.9",
            "loan_to_value": "0.8",
            "basic_loan_to_value": "0.5",
            "catalytic_mage_ratio": "0.1",
            "interest_fee": "0",
            "liquidation_fee": "0.1",
        }
        collateral_entry.update(collateral or {})
        return Config.from_dict({
            "params": base_params,
            "backing": [backing_entry],
            "collateral": [collateral_entry],
        })
    return _make


@pytest.fixture
def make_service(make_config):
    """Build a MakerService on fresh in-memory collaborators."""
    def _make(config=None, prices=None, **kwargs) -> MakerService:
        if config is None:
            config = make_config()
        all_prices = dict(DEFAULT_PRICES)
        all_prices.update(prices or {})
        oracle = StaticPriceOracle(all_prices)
        return MakerService.from_config(config, MemoryParamStore(), MemoryLedger(), oracle, **kwargs)
    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def querier(service):
    return MakerQuerier(service)


def set_backing_ratio(service: MakerService, ratio: str) -> None:
    params = service.store.get_params()
    service.store.set_params(params.model_copy(update={"backing_ratio": Decimal(ratio)}))


@pytest.fixture
def set_ratio():
    return set_backing_ratio

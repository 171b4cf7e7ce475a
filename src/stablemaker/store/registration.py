"""Register backing and collateral coins in a parameter store.

This is what a governance registration does: store the risk parameters and,
for a new denom, create its zeroed pool record (and the totals on first use).
"""

import logging

from ..config.schema import BackingRiskParams, ChainSettings, CollateralRiskParams, Config
from ..engine.interfaces import ParamStore
from ..engine.state import (
    new_pool_backing,
    new_pool_collateral,
    new_total_backing,
    new_total_collateral,
)

logger = logging.getLogger(__name__)


def register_backing_coin(store: ParamStore, chain: ChainSettings, params: BackingRiskParams) -> None:
    denom = params.backing_denom
    store.set_backing_risk_params(params)
    if store.get_pool_backing(denom) is None:
        store.set_pool_backing(new_pool_backing(denom, chain.stable_denom, chain.native_denom))
        logger.info("registered backing coin %s", denom)
    if store.get_total_backing() is None:
        store.set_total_backing(new_total_backing(chain.stable_denom, chain.native_denom))


def register_collateral_coin(store: ParamStore, chain: ChainSettings, params: CollateralRiskParams) -> None:
    denom = params.collateral_denom
    store.set_collateral_risk_params(params)
    if store.get_pool_collateral(denom) is None:
        store.set_pool_collateral(new_pool_collateral(denom, chain.stable_denom, chain.native_denom))
        logger.info("registered collateral coin %s", denom)
    if store.get_total_collateral() is None:
        store.set_total_collateral(new_total_collateral(chain.stable_denom, chain.native_denom))


def apply_config(store: ParamStore, config: Config) -> None:
    """Load global params and register every coin listed in the config."""
    store.set_params(config.params)
    # totals exist even before the first coin is registered
    if store.get_total_backing() is None:
        store.set_total_backing(new_total_backing(config.chain.stable_denom, config.chain.native_denom))
    if store.get_total_collateral() is None:
        store.set_total_collateral(new_total_collateral(config.chain.stable_denom, config.chain.native_denom))
    for backing in config.backing:
        register_backing_coin(store, config.chain, backing)
    for collateral in config.collateral:
        register_collateral_coin(store, config.chain, collateral)

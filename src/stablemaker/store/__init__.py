"""In-memory collaborators and coin registration."""

from .memory import MemoryLedger, MemoryParamStore, StaticPriceOracle
from .registration import apply_config, register_backing_coin, register_collateral_coin

__all__ = [
    "MemoryLedger",
    "MemoryParamStore",
    "StaticPriceOracle",
    "apply_config",
    "register_backing_coin",
    "register_collateral_coin",
]

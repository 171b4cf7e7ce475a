"""Configuration schema and loading."""

from .loader import config_from_dict, load_config
from .schema import BackingRiskParams, ChainSettings, CollateralRiskParams, Config, MakerParams

__all__ = [
    "BackingRiskParams",
    "ChainSettings",
    "CollateralRiskParams",
    "Config",
    "MakerParams",
    "config_from_dict",
    "load_config",
]

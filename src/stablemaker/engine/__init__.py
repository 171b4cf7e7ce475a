"""Pricing, fee and solvency calculations."""

from .backing import BackingEngine, split_by_backing_ratio
from .coins import Coin, SignedCoin
from .collateral import CollateralEngine, available_loan_to_value, settle_interest_fee
from .events import Event, EventLog
from .fees import check_burn_price_upper_bound, check_mint_price_lower_bound, compute_fee

__all__ = [
    "BackingEngine",
    "Coin",
    "CollateralEngine",
    "Event",
    "EventLog",
    "SignedCoin",
    "available_loan_to_value",
    "check_burn_price_upper_bound",
    "check_mint_price_lower_bound",
    "compute_fee",
    "settle_interest_fee",
    "split_by_backing_ratio",
]

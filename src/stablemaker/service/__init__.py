"""Transaction handlers and queries."""

from .messages import (
    MsgBurnByCollateral,
    MsgBurnBySwap,
    MsgBuyBacking,
    MsgDepositCollateral,
    MsgLiquidateCollateral,
    MsgMintByCollateral,
    MsgMintBySwap,
    MsgRedeemCollateral,
    MsgSellBacking,
)
from .msg_server import BackingRatioAdjuster, MakerService, get_sender_receiver
from .queries import BackingRatioInfo, MakerQuerier

__all__ = [
    "BackingRatioAdjuster",
    "BackingRatioInfo",
    "MakerQuerier",
    "MakerService",
    "MsgBurnByCollateral",
    "MsgBurnBySwap",
    "MsgBuyBacking",
    "MsgDepositCollateral",
    "MsgLiquidateCollateral",
    "MsgMintByCollateral",
    "MsgMintBySwap",
    "MsgRedeemCollateral",
    "MsgSellBacking",
    "get_sender_receiver",
]

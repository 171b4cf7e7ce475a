"""Request and response types of the maker service.

``to`` is optional everywhere; an empty receiver means the sender.
"""

from dataclasses import dataclass

from ..engine.coins import Coin


@dataclass
class MsgMintBySwap:
    sender: str
    backing_in_max: Coin
    mage_in_max: Coin
    mint_out_min: Coin
    full_backing: bool = False
    to: str = ""


@dataclass
class MsgMintBySwapResponse:
    backing_in: Coin
    mage_in: Coin
    mint_out: Coin
    mint_fee: Coin


@dataclass
class MsgBurnBySwap:
    sender: str
    burn_in: Coin
    backing_out_min: Coin
    mage_out_min: Coin
    to: str = ""


@dataclass
class MsgBurnBySwapResponse:
    burn_fee: Coin
    backing_out: Coin
    mage_out: Coin


@dataclass
class MsgBuyBacking:
    sender: str
    mage_in: Coin
    backing_out_min: Coin
    to: str = ""


@dataclass
class MsgBuyBackingResponse:
    backing_out: Coin
    buyback_fee: Coin


@dataclass
class MsgSellBacking:
    sender: str
    backing_in: Coin
    mage_out_min: Coin
    to: str = ""


@dataclass
class MsgSellBackingResponse:
    mage_out: Coin
    reback_fee: Coin


@dataclass
class MsgMintByCollateral:
    sender: str
    collateral_denom: str
    mint_out: Coin
    to: str = ""


@dataclass
class MsgMintByCollateralResponse:
    mint_fee: Coin


@dataclass
class MsgBurnByCollateral:
    sender: str
    collateral_denom: str
    repay_in_max: Coin


@dataclass
class MsgBurnByCollateralResponse:
    repay_in: Coin
    repay_interest: Coin


@dataclass
class MsgDepositCollateral:
    sender: str
    collateral_in: Coin
    mage_in: Coin
    to: str = ""


@dataclass
class MsgDepositCollateralResponse:
    pass


@dataclass
class MsgRedeemCollateral:
    sender: str
    collateral_out: Coin
    mage_out: Coin
    to: str = ""


@dataclass
class MsgRedeemCollateralResponse:
    pass


@dataclass
class MsgLiquidateCollateral:
    sender: str
    debtor: str
    collateral: Coin
    repay_in_max: Coin
    to: str = ""


@dataclass
class MsgLiquidateCollateralResponse:
    repay_in: Coin
    collateral_out: Coin

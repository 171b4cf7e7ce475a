"""Fee computation and stable-price circuit breakers."""

import logging
from decimal import Decimal
from typing import Optional

from ..config.schema import ChainSettings, MakerParams
from . import fixed
from .coins import Coin
from .errors import StablePriceTooHighError, StablePriceTooLowError
from .interfaces import PriceOracle

logger = logging.getLogger(__name__)


def compute_fee(coin: Coin, rate: Optional[Decimal]) -> Coin:
    """
    Compute a proportional fee on a coin.

    The fee keeps the coin's denom and is rounded half-up to a whole amount.
    A missing rate means no fee.
    """
    amount = 0
    if rate is not None:
        amount = fixed.round_int(fixed.mul(coin.amount, rate))
    return Coin(coin.denom, amount)


def mint_price_lower_bound(chain: ChainSettings, params: MakerParams) -> Decimal:
    return fixed.mul(chain.stable_target_price, fixed.add(fixed.ONE, params.mint_price_bias))


def burn_price_upper_bound(chain: ChainSettings, params: MakerParams) -> Decimal:
    return fixed.mul(chain.stable_target_price, fixed.sub(fixed.ONE, params.burn_price_bias))


def check_mint_price_lower_bound(oracle: PriceOracle, chain: ChainSettings, params: MakerParams) -> None:
    """Minting is only allowed while the stable coin trades at or above target × (1 + bias)."""
    price = oracle.get_exchange_rate(chain.stable_denom)
    bound = mint_price_lower_bound(chain, params)
    if price < bound:
        logger.debug("mint rejected: %s price %s below %s", chain.stable_denom, price, bound)
        raise StablePriceTooLowError(
            f"{chain.stable_denom} price too low", actual=price, expected=bound
        )


def check_burn_price_upper_bound(oracle: PriceOracle, chain: ChainSettings, params: MakerParams) -> None:
    """Burning is only allowed while the stable coin trades at or below target × (1 - bias)."""
    price = oracle.get_exchange_rate(chain.stable_denom)
    bound = burn_price_upper_bound(chain, params)
    if price > bound:
        logger.debug("burn rejected: %s price %s above %s", chain.stable_denom, price, bound)
        raise StablePriceTooHighError(
            f"{chain.stable_denom} price too high", actual=price, expected=bound
        )

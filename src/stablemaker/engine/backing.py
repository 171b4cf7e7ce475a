"""Backing/swap engine: mint and burn the stable coin against reserve assets.

Minting and burning mix two legs according to the global backing ratio ``r``:

- ``r >= 1`` (or the caller forces full backing): the reserve asset covers the
  whole value and no native token moves.
- ``r == 0``: the native token covers the whole value (fully algorithmic).
- otherwise the reserve covers ``r`` of the USD value and the native token
  covers ``1 - r``.

Buying and selling backing lets callers trade native token against surplus
reserve (excess backing) or top the reserve up when it is in deficit.

Every calculation reads records from the store as copies and never writes;
persisting the outcome is the orchestrator's job.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

from ..config.schema import BackingRiskParams, ChainSettings, MakerParams
from . import fixed
from .coins import Coin
from .errors import (
    BackingCeilingError,
    BackingCoinDisabledError,
    BackingCoinInsufficientError,
    BackingCoinNotFoundError,
    InvalidDenomError,
    InvalidRiskParamsError,
    NativeCoinInsufficientError,
    StableCeilingError,
)
from .fees import check_burn_price_upper_bound, check_mint_price_lower_bound, compute_fee
from .interfaces import Ledger, ParamStore, PriceOracle
from .state import PoolBacking, TotalBacking

logger = logging.getLogger(__name__)


@dataclass
class MintBySwapInResult:
    backing_in: Coin
    mage_in: Coin
    mint_fee: Coin


@dataclass
class MintBySwapOutResult:
    backing_in: Coin
    mage_in: Coin
    mint_out: Coin
    mint_fee: Coin

    @property
    def mint_total(self) -> Coin:
        return self.mint_out.add(self.mint_fee)


@dataclass
class BurnBySwapInResult:
    burn_in: Coin
    backing_out: Coin
    mage_out: Coin
    burn_fee: Coin


@dataclass
class BurnBySwapOutResult:
    backing_out: Coin
    mage_out: Coin
    burn_fee: Coin


@dataclass
class BuyBackingInResult:
    mage_in: Coin
    buyback_fee: Coin


@dataclass
class BuyBackingOutResult:
    backing_out: Coin
    buyback_fee: Coin


@dataclass
class SellBackingInResult:
    backing_in: Coin
    reback_fee: Coin


@dataclass
class SellBackingOutResult:
    mage_out: Coin
    reback_fee: Coin


def split_by_backing_ratio(
    value_usd: Decimal,
    backing_ratio: Decimal,
    full_backing: bool,
    backing_price: Decimal,
    mage_price: Decimal,
    round_up: bool,
) -> Tuple[int, int]:
    """
    Split a USD value into (backing amount, native amount).

    With ``round_up`` each leg is rounded up so the module never receives less
    than it is owed; otherwise each leg is truncated so it never pays out more.
    """
    if round_up:
        def to_amount(usd: Decimal, price: Decimal) -> int:
            return fixed.round_int(fixed.quo_round_up(usd, price))
    else:
        def to_amount(usd: Decimal, price: Decimal) -> int:
            return fixed.truncate_int(fixed.quo_truncate(usd, price))

    if backing_ratio >= fixed.ONE or full_backing:
        return to_amount(value_usd, backing_price), 0
    if backing_ratio.is_zero():
        return 0, to_amount(value_usd, mage_price)
    backing_amount = to_amount(fixed.mul(value_usd, backing_ratio), backing_price)
    mage_amount = to_amount(fixed.mul(value_usd, fixed.sub(fixed.ONE, backing_ratio)), mage_price)
    return backing_amount, mage_amount


class BackingEngine:
    """Pure calculations for swap minting/burning and backing trades."""

    def __init__(
        self,
        store: ParamStore,
        oracle: PriceOracle,
        ledger: Ledger,
        chain: ChainSettings,
    ):
        """
        Initialize backing engine.

        Args:
            store: Parameter store holding risk params and backing records
            oracle: Price oracle (USD per base unit)
            ledger: Ledger used to read module balances
            chain: Denominations and module accounts
        """
        self.store = store
        self.oracle = oracle
        self.ledger = ledger
        self.chain = chain

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_available_backing_params(self, denom: str) -> BackingRiskParams:
        params = self.store.get_backing_risk_params(denom)
        if params is None:
            raise BackingCoinNotFoundError(f"backing coin denomination not found: {denom}")
        if not params.enabled:
            raise BackingCoinDisabledError(f"backing coin disabled: {denom}")
        return params

    def get_backing(self, denom: str) -> Tuple[TotalBacking, PoolBacking]:
        total = self.store.get_total_backing()
        if total is None:
            raise BackingCoinNotFoundError(f"backing coin denomination not found: {denom}")
        pool = self.store.get_pool_backing(denom)
        if pool is None:
            raise BackingCoinNotFoundError(f"backing coin denomination not found: {denom}")
        return total, pool

    def module_balance(self, denom: str) -> Coin:
        return self.ledger.get_balance(self.ledger.module_address(self.chain.module_name), denom)

    def pool_backing_balance(self, pool: PoolBacking) -> Coin:
        """Reserve that can actually be paid out: the smaller of record and module balance."""
        held = self.module_balance(pool.denom)
        return Coin(pool.denom, min(pool.backing.amount, held.amount))

    def _prices(self, backing_denom: str) -> Tuple[Decimal, Decimal]:
        backing_price = self.oracle.get_exchange_rate(backing_denom)
        mage_price = self.oracle.get_exchange_rate(self.chain.native_denom)
        return backing_price, mage_price

    def _require_denom(self, coin: Coin, denom: str):
        if coin.denom != denom:
            raise InvalidDenomError(f"expected {denom}, got {coin.denom}")

    @staticmethod
    def _check_war_ceiling(pool: PoolBacking, params: BackingRiskParams):
        if params.max_war_mint is not None and pool.war_minted.amount > params.max_war_mint:
            raise StableCeilingError(
                "stable coin over ceiling", actual=pool.war_minted.amount, expected=params.max_war_mint
            )

    @staticmethod
    def _check_backing_ceiling(pool: PoolBacking, params: BackingRiskParams):
        if params.max_backing is not None and pool.backing.amount > params.max_backing:
            raise BackingCeilingError(
                "backing over ceiling", actual=pool.backing.amount, expected=params.max_backing
            )

    def _check_pool_can_pay(self, pool: PoolBacking, backing_out: Coin):
        available = self.pool_backing_balance(pool)
        if available.is_lt(backing_out):
            raise BackingCoinInsufficientError(
                "backing coin out exceeds pool balance", actual=str(backing_out), expected=str(available)
            )

    # ------------------------------------------------------------------
    # Backing value
    # ------------------------------------------------------------------

    def total_backing_in_usd(self) -> int:
        """USD value of all reserve pools, truncated."""
        total = fixed.ZERO
        for pool in self.store.get_all_pool_backing():
            price = self.oracle.get_exchange_rate(pool.denom)
            total = fixed.add(total, fixed.mul(pool.backing.amount, price))
        return fixed.truncate_int(total)

    def get_excess_backing_value(self, params: Optional[MakerParams] = None) -> int:
        """
        Reserve value above what the backing ratio requires.

        Required value is ``total minted × backing ratio`` rounded up and
        floored at zero. The result may be negative (deficit).
        """
        if params is None:
            params = self.store.get_params()
        total = self.store.get_total_backing()
        if total is None:
            raise BackingCoinNotFoundError("total backing not found")

        required = fixed.ceil_int(fixed.mul(total.war_minted.amount, params.backing_ratio))
        if required < 0:
            required = 0

        return self.total_backing_in_usd() - required

    # ------------------------------------------------------------------
    # Mint by swap
    # ------------------------------------------------------------------

    def calculate_mint_by_swap_in(
        self,
        mint_out: Coin,
        backing_denom: str,
        full_backing: bool = False,
    ) -> MintBySwapInResult:
        """Given the stable amount wanted, compute the reserve and native amounts to pay."""
        params = self.store.get_params()
        check_mint_price_lower_bound(self.oracle, self.chain, params)
        self._require_denom(mint_out, self.chain.stable_denom)

        risk = self.get_available_backing_params(backing_denom)
        backing_price, mage_price = self._prices(backing_denom)

        mint_fee = compute_fee(mint_out, risk.mint_fee)
        mint_total = mint_out.add(mint_fee)
        mint_total_usd = fixed.mul(mint_total.amount, self.chain.stable_target_price)

        _, pool = self.get_backing(backing_denom)
        pool.war_minted = pool.war_minted.add(mint_total)
        self._check_war_ceiling(pool, risk)

        backing_amount, mage_amount = split_by_backing_ratio(
            mint_total_usd, params.backing_ratio, full_backing, backing_price, mage_price, round_up=True
        )
        backing_in = Coin(backing_denom, backing_amount)
        mage_in = Coin(self.chain.native_denom, mage_amount)

        pool.backing = pool.backing.add(backing_in)
        self._check_backing_ceiling(pool, risk)

        return MintBySwapInResult(backing_in=backing_in, mage_in=mage_in, mint_fee=mint_fee)

    def calculate_mint_by_swap_out(
        self,
        backing_in_max: Coin,
        mage_in_max: Coin,
        full_backing: bool = False,
    ) -> MintBySwapOutResult:
        """Given the most the caller will pay in each asset, compute the largest mint."""
        backing_denom = backing_in_max.denom
        params = self.store.get_params()
        check_mint_price_lower_bound(self.oracle, self.chain, params)
        self._require_denom(mage_in_max, self.chain.native_denom)

        risk = self.get_available_backing_params(backing_denom)
        backing_price, mage_price = self._prices(backing_denom)
        ratio = params.backing_ratio

        backing_max_usd = fixed.mul(backing_price, backing_in_max.amount)
        mage_max_usd = fixed.mul(mage_price, mage_in_max.amount)

        backing_amount = 0
        mage_amount = 0
        if ratio >= fixed.ONE or full_backing:
            mint_total_usd = backing_max_usd
            backing_amount = backing_in_max.amount
        elif ratio.is_zero():
            mint_total_usd = mage_max_usd
            mage_amount = mage_in_max.amount
        else:
            # total value each cap alone would allow; the smaller one binds
            max_by_backing = fixed.quo(backing_max_usd, ratio)
            max_by_mage = fixed.quo(mage_max_usd, fixed.sub(fixed.ONE, ratio))
            if max_by_backing <= max_by_mage:
                mint_total_usd = max_by_backing
                backing_amount = backing_in_max.amount
                mage_amount = fixed.round_int(fixed.quo_round_up(
                    fixed.mul(mint_total_usd, fixed.sub(fixed.ONE, ratio)), mage_price
                ))
                mage_amount = min(mage_amount, mage_in_max.amount)
            else:
                mint_total_usd = max_by_mage
                mage_amount = mage_in_max.amount
                backing_amount = fixed.round_int(fixed.quo_round_up(
                    fixed.mul(mint_total_usd, ratio), backing_price
                ))
                backing_amount = min(backing_amount, backing_in_max.amount)

        backing_in = Coin(backing_denom, backing_amount)
        mage_in = Coin(self.chain.native_denom, mage_amount)
        mint_total = Coin(
            self.chain.stable_denom,
            fixed.truncate_int(fixed.quo(mint_total_usd, self.chain.stable_target_price)),
        )

        _, pool = self.get_backing(backing_denom)
        pool.war_minted = pool.war_minted.add(mint_total)
        self._check_war_ceiling(pool, risk)

        pool.backing = pool.backing.add(backing_in)
        self._check_backing_ceiling(pool, risk)

        mint_fee = compute_fee(mint_total, risk.mint_fee)
        mint_out = mint_total.sub(mint_fee)
        return MintBySwapOutResult(
            backing_in=backing_in, mage_in=mage_in, mint_out=mint_out, mint_fee=mint_fee
        )

    # ------------------------------------------------------------------
    # Burn by swap
    # ------------------------------------------------------------------

    def calculate_burn_by_swap_in(self, backing_out_max: Coin, mage_out_max: Coin) -> BurnBySwapInResult:
        """Given the most the caller wants back in each asset, compute the stable to burn."""
        backing_denom = backing_out_max.denom
        params = self.store.get_params()
        check_burn_price_upper_bound(self.oracle, self.chain, params)
        self._require_denom(mage_out_max, self.chain.native_denom)

        risk = self.get_available_backing_params(backing_denom)
        backing_price, mage_price = self._prices(backing_denom)
        ratio = params.backing_ratio

        backing_max_usd = fixed.mul(backing_price, backing_out_max.amount)
        mage_max_usd = fixed.mul(mage_price, mage_out_max.amount)

        backing_amount = 0
        mage_amount = 0
        if ratio >= fixed.ONE:
            burn_actual_usd = backing_max_usd
            backing_amount = backing_out_max.amount
        elif ratio.is_zero():
            burn_actual_usd = mage_max_usd
            mage_amount = mage_out_max.amount
        else:
            burn_by_backing = fixed.quo(backing_max_usd, ratio)
            burn_by_mage = fixed.quo(mage_max_usd, fixed.sub(fixed.ONE, ratio))
            if burn_by_backing <= burn_by_mage:
                burn_actual_usd = burn_by_backing
                backing_amount = backing_out_max.amount
                mage_amount = fixed.round_int(fixed.quo_round_up(
                    fixed.mul(burn_actual_usd, fixed.sub(fixed.ONE, ratio)), mage_price
                ))
                mage_amount = min(mage_amount, mage_out_max.amount)
            else:
                burn_actual_usd = burn_by_mage
                mage_amount = mage_out_max.amount
                backing_amount = fixed.round_int(fixed.quo_round_up(
                    fixed.mul(burn_actual_usd, ratio), backing_price
                ))
                backing_amount = min(backing_amount, backing_out_max.amount)

        backing_out = Coin(backing_denom, backing_amount)
        mage_out = Coin(self.chain.native_denom, mage_amount)

        held = self.module_balance(backing_denom)
        if held.is_lt(backing_out):
            raise BackingCoinInsufficientError(
                "backing coin out exceeds module balance", actual=str(backing_out), expected=str(held)
            )

        burn_fee_rate = risk.burn_fee if risk.burn_fee is not None else fixed.ZERO
        if burn_fee_rate >= fixed.ONE:
            raise InvalidRiskParamsError(f"burn fee rate must be below 1 for {backing_denom}")

        # fee is charged on the stable coin paid in: burn_in × (1 - rate) = burned value
        burn_in_value = fixed.quo(
            fixed.quo(burn_actual_usd, self.chain.stable_target_price),
            fixed.sub(fixed.ONE, burn_fee_rate),
        )
        burn_fee_value = fixed.mul(burn_in_value, burn_fee_rate)

        return BurnBySwapInResult(
            burn_in=Coin(self.chain.stable_denom, fixed.round_int(burn_in_value)),
            backing_out=backing_out,
            mage_out=mage_out,
            burn_fee=Coin(self.chain.stable_denom, fixed.round_int(burn_fee_value)),
        )

    def calculate_burn_by_swap_out(self, burn_in: Coin, backing_denom: str) -> BurnBySwapOutResult:
        """Given the stable paid in, compute the reserve and native amounts paid out."""
        params = self.store.get_params()
        check_burn_price_upper_bound(self.oracle, self.chain, params)
        self._require_denom(burn_in, self.chain.stable_denom)

        risk = self.get_available_backing_params(backing_denom)
        backing_price, mage_price = self._prices(backing_denom)

        burn_fee = compute_fee(burn_in, risk.burn_fee)
        burn_actual = burn_in.sub(burn_fee)
        burn_actual_usd = fixed.mul(burn_actual.amount, self.chain.stable_target_price)

        backing_amount, mage_amount = split_by_backing_ratio(
            burn_actual_usd, params.backing_ratio, False, backing_price, mage_price, round_up=False
        )
        backing_out = Coin(backing_denom, backing_amount)
        mage_out = Coin(self.chain.native_denom, mage_amount)

        _, pool = self.get_backing(backing_denom)
        self._check_pool_can_pay(pool, backing_out)

        return BurnBySwapOutResult(backing_out=backing_out, mage_out=mage_out, burn_fee=burn_fee)

    # ------------------------------------------------------------------
    # Buy backing (native in, surplus reserve out)
    # ------------------------------------------------------------------

    def calculate_buy_backing_in(self, backing_out: Coin) -> BuyBackingInResult:
        """Given the reserve wanted, compute the native token to pay."""
        backing_denom = backing_out.denom
        risk = self.get_available_backing_params(backing_denom)
        backing_price, mage_price = self._prices(backing_denom)
        excess = self.get_excess_backing_value()

        fee_rate = risk.buyback_fee if risk.buyback_fee is not None else fixed.ZERO
        backing_out_total = Coin(
            backing_denom,
            fixed.truncate_int(fixed.quo(backing_out.amount, fixed.sub(fixed.ONE, fee_rate))),
        )
        mage_in_value = fixed.mul(backing_out_total.amount, backing_price)
        if mage_in_value > fixed.dec(excess):
            raise BackingCoinInsufficientError(
                "requested backing exceeds excess backing value", actual=mage_in_value, expected=excess
            )

        _, pool = self.get_backing(backing_denom)
        self._check_pool_can_pay(pool, backing_out_total)

        return BuyBackingInResult(
            mage_in=Coin(self.chain.native_denom, fixed.round_int(fixed.quo(mage_in_value, mage_price))),
            buyback_fee=Coin(backing_denom, fixed.round_int(fixed.mul(backing_out_total.amount, fee_rate))),
        )

    def calculate_buy_backing_out(self, mage_in: Coin, backing_denom: str) -> BuyBackingOutResult:
        """Given the native token paid, compute the reserve received."""
        self._require_denom(mage_in, self.chain.native_denom)
        risk = self.get_available_backing_params(backing_denom)
        backing_price, mage_price = self._prices(backing_denom)
        excess = self.get_excess_backing_value()

        mage_in_value = fixed.mul(mage_in.amount, mage_price)
        if mage_in_value > fixed.dec(excess):
            raise BackingCoinInsufficientError(
                "requested backing exceeds excess backing value", actual=mage_in_value, expected=excess
            )

        backing_out_total = Coin(
            backing_denom, fixed.truncate_int(fixed.quo(mage_in_value, backing_price))
        )

        _, pool = self.get_backing(backing_denom)
        self._check_pool_can_pay(pool, backing_out_total)

        buyback_fee = compute_fee(backing_out_total, risk.buyback_fee)
        return BuyBackingOutResult(
            backing_out=backing_out_total.sub(buyback_fee),
            buyback_fee=buyback_fee,
        )

    # ------------------------------------------------------------------
    # Sell backing (reserve in, native minted with bonus)
    # ------------------------------------------------------------------

    def _available_mage_mint(self, params: MakerParams, mage_price: Decimal) -> Decimal:
        missing_value = -self.get_excess_backing_value(params)
        return fixed.quo(missing_value, mage_price)

    def calculate_sell_backing_in(self, mage_out: Coin, backing_denom: str) -> SellBackingInResult:
        """Given the native token wanted, compute the reserve to deposit."""
        self._require_denom(mage_out, self.chain.native_denom)
        params = self.store.get_params()
        risk = self.get_available_backing_params(backing_denom)
        backing_price, mage_price = self._prices(backing_denom)
        _, pool = self.get_backing(backing_denom)

        available_mage_mint = self._available_mage_mint(params, mage_price)

        fee_rate = risk.reback_fee if risk.reback_fee is not None else fixed.ZERO
        net_rate = fixed.sub(fixed.add(fixed.ONE, params.reback_bonus), fee_rate)
        if net_rate <= fixed.ZERO:
            raise InvalidRiskParamsError(f"reback fee leaves nothing to mint for {backing_denom}")

        # out = mint × (1 + bonus - fee)
        mage_mint = fixed.quo(mage_out.amount, net_rate)

        backing_in = Coin(
            backing_denom,
            fixed.round_int(fixed.quo(fixed.mul(mage_mint, mage_price), backing_price)),
        )
        reback_fee = Coin(self.chain.native_denom, fixed.round_int(fixed.mul(mage_mint, fee_rate)))

        pool.backing = pool.backing.add(backing_in)
        self._check_backing_ceiling(pool, risk)
        if mage_mint > available_mage_mint:
            raise NativeCoinInsufficientError(
                "native mint exceeds backing deficit", actual=mage_mint, expected=available_mage_mint
            )

        return SellBackingInResult(backing_in=backing_in, reback_fee=reback_fee)

    def calculate_sell_backing_out(self, backing_in: Coin) -> SellBackingOutResult:
        """Given the reserve deposited, compute the native token received."""
        backing_denom = backing_in.denom
        params = self.store.get_params()
        risk = self.get_available_backing_params(backing_denom)
        backing_price, mage_price = self._prices(backing_denom)
        _, pool = self.get_backing(backing_denom)

        pool.backing = pool.backing.add(backing_in)
        self._check_backing_ceiling(pool, risk)

        available_mage_mint = self._available_mage_mint(params, mage_price)

        mage_mint = Coin(
            self.chain.native_denom,
            fixed.truncate_int(fixed.quo(fixed.mul(backing_in.amount, backing_price), mage_price)),
        )
        bonus = compute_fee(mage_mint, params.reback_bonus)
        reback_fee = compute_fee(mage_mint, risk.reback_fee)

        if fixed.dec(mage_mint.amount) > available_mage_mint:
            raise NativeCoinInsufficientError(
                "native mint exceeds backing deficit", actual=mage_mint.amount, expected=available_mage_mint
            )

        return SellBackingOutResult(
            mage_out=mage_mint.add(bonus).sub(reback_fee),
            reback_fee=reback_fee,
        )

"""Collateralized debt engine.

Accounts deposit collateral (optionally with native token as a "catalyst"),
mint stable coin as debt against it, accrue interest per block, repay, redeem,
and can be liquidated once their debt value reaches the liquidation threshold.

The usable loan-to-value rises linearly from ``basic_loan_to_value`` to
``loan_to_value`` as the co-deposited native value approaches
``catalytic_mage_ratio`` of the collateral value::

    catalytic = min(native_usd / collateral_usd, catalytic_mage_ratio)
    ltv = basic + catalytic × (max - basic) / catalytic_mage_ratio
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Tuple

from ..config.schema import ChainSettings, CollateralRiskParams
from . import fixed
from .coins import Coin
from .errors import (
    AccountNoCollateralError,
    AccountNoDebtError,
    CollateralCeilingError,
    CollateralCoinDisabledError,
    CollateralCoinInsufficientError,
    CollateralCoinNotFoundError,
    InsufficientCollateralError,
    InvalidDenomError,
    NotUndercollateralizedError,
    OverSlippageError,
    StableCeilingError,
)
from .fees import compute_fee
from .interfaces import ParamStore, PriceOracle
from .state import (
    AccountCollateral,
    PoolCollateral,
    TotalCollateral,
    new_account_collateral,
)

logger = logging.getLogger(__name__)


@dataclass
class CollateralRecords:
    """Updated copies of the three records a collateral operation touches."""
    total: TotalCollateral
    pool: PoolCollateral
    account: AccountCollateral


@dataclass
class MintByCollateralResult:
    mint_fee: Coin
    records: CollateralRecords


@dataclass
class BurnByCollateralResult:
    repay_in: Coin
    repay_interest: Coin
    records: CollateralRecords

    @property
    def burn(self) -> Coin:
        """Principal part of the repayment, destroyed on repay."""
        return self.repay_in.sub(self.repay_interest)


@dataclass
class LiquidationResult:
    repay_in: Coin
    repay_debt: Coin
    repay_interest: Coin
    refund: Coin
    collateral_out: Coin
    commission_fee: Coin
    records: CollateralRecords

    @property
    def burn(self) -> Coin:
        return self.repay_debt.sub(self.repay_interest)


def settle_interest_fee(
    account: AccountCollateral,
    pool: PoolCollateral,
    total: TotalCollateral,
    apr: Decimal,
    block_height: int,
    blocks_per_year: int,
) -> int:
    """
    Accrue interest on the principal debt since the last settlement.

    Updates the given records in place and returns the interest accrued.
    A second call at the same height accrues nothing.
    """
    period = block_height - account.last_settlement_block
    if period <= 0:
        return 0

    principal = account.war_debt.amount - account.last_interest.amount
    interest = fixed.round_int(
        fixed.quo(fixed.mul(fixed.mul(principal, apr), period), blocks_per_year)
    )

    account.last_interest = account.last_interest.add_amount(interest)
    account.war_debt = account.war_debt.add_amount(interest)
    pool.war_debt = pool.war_debt.add_amount(interest)
    total.war_debt = total.war_debt.add_amount(interest)
    account.last_settlement_block = block_height
    return interest


def available_loan_to_value(
    collateral_usd: Decimal,
    mage_usd: Decimal,
    params: CollateralRiskParams,
) -> Decimal:
    """LTV unlocked by the co-deposited native token; ``collateral_usd`` must be positive."""
    if params.catalytic_mage_ratio <= fixed.ZERO:
        return fixed.dec(params.basic_loan_to_value)
    catalytic = fixed.min_dec(fixed.quo(mage_usd, collateral_usd), fixed.dec(params.catalytic_mage_ratio))
    boost = fixed.quo(
        fixed.mul(catalytic, fixed.sub(params.loan_to_value, params.basic_loan_to_value)),
        params.catalytic_mage_ratio,
    )
    return fixed.add(params.basic_loan_to_value, boost)


class CollateralEngine:
    """Pure calculations for collateralized debt positions."""

    def __init__(self, store: ParamStore, oracle: PriceOracle, chain: ChainSettings):
        self.store = store
        self.oracle = oracle
        self.chain = chain

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_available_collateral_params(self, denom: str) -> CollateralRiskParams:
        params = self.store.get_collateral_risk_params(denom)
        if params is None:
            raise CollateralCoinNotFoundError(f"collateral coin denomination not found: {denom}")
        if not params.enabled:
            raise CollateralCoinDisabledError(f"collateral coin disabled: {denom}")
        return params

    def get_collateral(
        self,
        account: str,
        denom: str,
        block_height: int,
        allow_new_account: bool = False,
    ) -> CollateralRecords:
        """Load total, pool and account records; optionally start a fresh account record."""
        total = self.store.get_total_collateral()
        if total is None:
            raise CollateralCoinNotFoundError(f"collateral coin denomination not found: {denom}")
        pool = self.store.get_pool_collateral(denom)
        if pool is None:
            raise CollateralCoinNotFoundError(f"collateral coin denomination not found: {denom}")
        acc = self.store.get_account_collateral(account, denom)
        if acc is None:
            if not allow_new_account:
                raise AccountNoCollateralError(f"account has no collateral: {denom}")
            acc = new_account_collateral(
                account, denom, self.chain.stable_denom, self.chain.native_denom, block_height
            )
        return CollateralRecords(total=total, pool=pool, account=acc)

    def _settle(self, records: CollateralRecords, risk: CollateralRiskParams, block_height: int) -> int:
        params = self.store.get_params()
        interest = settle_interest_fee(
            records.account, records.pool, records.total,
            risk.interest_fee, block_height, params.blocks_per_year,
        )
        if interest:
            logger.debug(
                "settled %d%s interest for %s/%s at block %d",
                interest, self.chain.stable_denom, records.account.account,
                records.account.denom, block_height,
            )
        return interest

    def _require_denom(self, coin: Coin, denom: str):
        if coin.denom != denom:
            raise InvalidDenomError(f"expected {denom}, got {coin.denom}")

    # ------------------------------------------------------------------
    # Loan to value
    # ------------------------------------------------------------------

    def max_loan_to_value_for_account(
        self,
        account: AccountCollateral,
        params: CollateralRiskParams,
    ) -> Tuple[Decimal, Decimal]:
        """
        Return (available LTV, max debt in USD) for a position.

        Both are zero when the collateral is worthless.
        """
        collateral_price = self.oracle.get_exchange_rate(account.denom)
        mage_price = self.oracle.get_exchange_rate(self.chain.native_denom)

        collateral_usd = fixed.mul(account.collateral.amount, collateral_price)
        mage_usd = fixed.mul(account.mage_collateralized.amount, mage_price)
        if collateral_usd <= fixed.ZERO:
            return fixed.ZERO, fixed.ZERO

        ltv = available_loan_to_value(collateral_usd, mage_usd, params)
        return ltv, fixed.mul(collateral_usd, ltv)

    def debt_value_usd(self, account: AccountCollateral) -> Decimal:
        return fixed.mul(account.war_debt.amount, self.chain.stable_target_price)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def calculate_mint_by_collateral(
        self,
        account: str,
        collateral_denom: str,
        mint_out: Coin,
        block_height: int,
    ) -> MintByCollateralResult:
        """Mint stable coin as new debt against an existing position."""
        self._require_denom(mint_out, self.chain.stable_denom)
        risk = self.get_available_collateral_params(collateral_denom)

        collateral_price = self.oracle.get_exchange_rate(collateral_denom)
        mage_price = self.oracle.get_exchange_rate(self.chain.native_denom)

        records = self.get_collateral(account, collateral_denom, block_height)
        self._settle(records, risk, block_height)
        acc, pool, total = records.account, records.pool, records.total

        mint_fee = compute_fee(mint_out, risk.mint_fee)
        mint_total = mint_out.add(mint_fee)

        acc.war_debt = acc.war_debt.add(mint_total)
        pool.war_debt = pool.war_debt.add(mint_total)
        total.war_debt = total.war_debt.add(mint_total)

        if risk.max_war_mint is not None and pool.war_debt.amount > risk.max_war_mint:
            raise StableCeilingError(
                "collateral pool debt over ceiling", actual=pool.war_debt.amount, expected=risk.max_war_mint
            )

        collateral_usd = fixed.mul(acc.collateral.amount, collateral_price)
        mage_usd = fixed.mul(acc.mage_collateralized.amount, mage_price)
        if collateral_usd <= fixed.ZERO:
            raise InsufficientCollateralError(f"account has no collateral value: {collateral_denom}")

        ltv = available_loan_to_value(collateral_usd, mage_usd, risk)
        debt_max = fixed.truncate_int(
            fixed.quo(fixed.mul(collateral_usd, ltv), self.chain.stable_target_price)
        )
        if debt_max < acc.war_debt.amount:
            raise InsufficientCollateralError(
                f"account collateral insufficient: {collateral_denom}",
                actual=acc.war_debt.amount, expected=debt_max,
            )

        return MintByCollateralResult(mint_fee=mint_fee, records=records)

    def calculate_deposit_collateral(
        self,
        account: str,
        collateral_in: Coin,
        mage_in: Coin,
        block_height: int,
    ) -> CollateralRecords:
        """Add collateral and co-deposited native token, creating the position if needed."""
        self._require_denom(mage_in, self.chain.native_denom)
        denom = collateral_in.denom
        risk = self.get_available_collateral_params(denom)

        records = self.get_collateral(account, denom, block_height, allow_new_account=True)
        self._settle(records, risk, block_height)
        acc, pool, total = records.account, records.pool, records.total

        acc.collateral = acc.collateral.add(collateral_in)
        pool.collateral = pool.collateral.add(collateral_in)
        acc.mage_collateralized = acc.mage_collateralized.add(mage_in)
        pool.mage_collateralized = pool.mage_collateralized.add(mage_in)
        total.mage_collateralized = total.mage_collateralized.add(mage_in)

        if risk.max_collateral is not None and pool.collateral.amount > risk.max_collateral:
            raise CollateralCeilingError(
                "collateral over ceiling", actual=pool.collateral.amount, expected=risk.max_collateral
            )
        return records

    def calculate_redeem_collateral(
        self,
        account: str,
        collateral_out: Coin,
        mage_out: Coin,
        block_height: int,
    ) -> CollateralRecords:
        """Withdraw collateral and native token as long as the remaining debt stays covered."""
        self._require_denom(mage_out, self.chain.native_denom)
        denom = collateral_out.denom
        risk = self.get_available_collateral_params(denom)

        records = self.get_collateral(account, denom, block_height)
        self._settle(records, risk, block_height)
        acc, pool, total = records.account, records.pool, records.total

        if acc.collateral.is_lt(collateral_out):
            raise CollateralCoinInsufficientError(
                "redeem exceeds deposited collateral", actual=str(collateral_out), expected=str(acc.collateral)
            )
        if acc.mage_collateralized.is_lt(mage_out):
            raise CollateralCoinInsufficientError(
                "redeem exceeds co-deposited native token",
                actual=str(mage_out), expected=str(acc.mage_collateralized),
            )

        acc.collateral = acc.collateral.sub(collateral_out)
        pool.collateral = pool.collateral.sub(collateral_out)
        acc.mage_collateralized = acc.mage_collateralized.sub(mage_out)
        pool.mage_collateralized = pool.mage_collateralized.sub(mage_out)
        total.mage_collateralized = total.mage_collateralized.sub(mage_out)

        _, max_debt_usd = self.max_loan_to_value_for_account(acc, risk)
        debt_usd = self.debt_value_usd(acc)
        if debt_usd > max_debt_usd:
            raise InsufficientCollateralError(
                f"account collateral insufficient: {denom}", actual=debt_usd, expected=max_debt_usd
            )
        return records

    def calculate_burn_by_collateral(
        self,
        account: str,
        collateral_denom: str,
        repay_in_max: Coin,
        block_height: int,
    ) -> BurnByCollateralResult:
        """Repay debt, interest first, up to ``repay_in_max``."""
        self._require_denom(repay_in_max, self.chain.stable_denom)
        risk = self.get_available_collateral_params(collateral_denom)

        records = self.get_collateral(account, collateral_denom, block_height)
        self._settle(records, risk, block_height)
        acc, pool, total = records.account, records.pool, records.total

        if not acc.war_debt.is_positive():
            raise AccountNoDebtError(f"account has no debt for {collateral_denom} collateral")

        repay_in = Coin(repay_in_max.denom, min(acc.war_debt.amount, repay_in_max.amount))
        repay_interest = Coin(repay_in_max.denom, min(acc.last_interest.amount, repay_in.amount))

        acc.last_interest = acc.last_interest.sub(repay_interest)
        acc.war_debt = acc.war_debt.sub(repay_in)
        pool.war_debt = pool.war_debt.sub(repay_in)
        total.war_debt = total.war_debt.sub(repay_in)

        return BurnByCollateralResult(repay_in=repay_in, repay_interest=repay_interest, records=records)

    def calculate_liquidation(
        self,
        debtor: str,
        collateral: Coin,
        repay_in_max: Coin,
        block_height: int,
    ) -> LiquidationResult:
        """
        Seize collateral from an undercollateralized position.

        The liquidator pays ``repay_in`` stable coin, priced on the collateral
        net of the liquidation fee, and receives the collateral minus the
        protocol commission. Debt is repaid interest first; anything paid
        beyond the outstanding debt is refunded to the debtor.
        """
        self._require_denom(repay_in_max, self.chain.stable_denom)
        denom = collateral.denom
        risk = self.get_available_collateral_params(denom)
        params = self.store.get_params()

        records = self.get_collateral(debtor, denom, block_height)
        self._settle(records, risk, block_height)
        acc, pool, total = records.account, records.pool, records.total

        collateral_price = self.oracle.get_exchange_rate(denom)

        liquidation_value = fixed.mul(
            fixed.mul(acc.collateral.amount, collateral_price), risk.liquidation_threshold
        )
        debt_usd = self.debt_value_usd(acc)
        if debt_usd < liquidation_value:
            raise NotUndercollateralizedError(
                f"position is not undercollateralized: {debtor}/{denom}",
                actual=debt_usd, expected=liquidation_value,
            )

        if acc.collateral.is_lt(collateral):
            raise CollateralCoinInsufficientError(
                "liquidation exceeds deposited collateral", actual=str(collateral), expected=str(acc.collateral)
            )

        liquidation_fee = fixed.mul(collateral.amount, risk.liquidation_fee)
        commission_fee = Coin(
            denom, fixed.truncate_int(fixed.mul(liquidation_fee, params.liquidation_commission_fee))
        )
        collateral_out = collateral.sub(commission_fee)
        repay_in = Coin(
            self.chain.stable_denom,
            fixed.truncate_int(fixed.quo(
                fixed.mul(fixed.sub(collateral.amount, liquidation_fee), collateral_price),
                self.chain.stable_target_price,
            )),
        )

        if repay_in_max.is_lt(repay_in):
            raise OverSlippageError("liquidation repay over maximum", actual=str(repay_in), expected=str(repay_in_max))

        repay_debt = Coin(self.chain.stable_denom, min(acc.war_debt.amount, repay_in.amount))
        refund = repay_in.sub(repay_debt)
        repay_interest = Coin(self.chain.stable_denom, min(acc.last_interest.amount, repay_debt.amount))

        acc.last_interest = acc.last_interest.sub(repay_interest)
        acc.war_debt = acc.war_debt.sub(repay_debt)
        pool.war_debt = pool.war_debt.sub(repay_debt)
        total.war_debt = total.war_debt.sub(repay_debt)
        acc.collateral = acc.collateral.sub(collateral)
        pool.collateral = pool.collateral.sub(collateral)

        return LiquidationResult(
            repay_in=repay_in,
            repay_debt=repay_debt,
            repay_interest=repay_interest,
            refund=refund,
            collateral_out=collateral_out,
            commission_fee=commission_fee,
            records=records,
        )

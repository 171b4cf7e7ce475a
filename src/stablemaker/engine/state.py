"""Pool, total and account records.

Balance fields are :class:`Coin` and can never go negative; the net counters
``war_minted`` and ``mage_burned`` are :class:`SignedCoin`. Records are plain
values: the store hands out copies, calculations work on those copies, and the
orchestrator writes them back once a transaction is accepted.
"""

from dataclasses import dataclass, replace
from typing import Optional

from .coins import Coin, SignedCoin


@dataclass
class PoolBacking:
    """Reserve held for one backing denom and the net flows it has seen."""
    backing: Coin
    war_minted: SignedCoin
    mage_burned: SignedCoin

    @property
    def denom(self) -> str:
        return self.backing.denom

    def copy(self) -> "PoolBacking":
        return replace(self)


@dataclass
class TotalBacking:
    """Aggregate of every backing pool.

    ``backing_value`` is derived from oracle prices when queried and is not
    authoritative state.
    """
    war_minted: SignedCoin
    mage_burned: SignedCoin
    backing_value: int = 0

    def copy(self) -> "TotalBacking":
        return replace(self)


@dataclass
class AccountCollateral:
    """Collateral position of one account in one collateral denom.

    ``war_debt`` includes accrued interest; ``last_interest`` is the unpaid
    interest part of it.
    """
    account: str
    collateral: Coin
    war_debt: Coin
    mage_collateralized: Coin
    last_interest: Coin
    last_settlement_block: int = 0

    @property
    def denom(self) -> str:
        return self.collateral.denom

    @property
    def principal_debt(self) -> Coin:
        return self.war_debt.sub(self.last_interest)

    def copy(self) -> "AccountCollateral":
        return replace(self)

    def is_empty(self) -> bool:
        return (
            self.collateral.is_zero()
            and self.war_debt.is_zero()
            and self.mage_collateralized.is_zero()
        )


@dataclass
class PoolCollateral:
    """Aggregate of every account position in one collateral denom."""
    collateral: Coin
    war_debt: Coin
    mage_collateralized: Coin

    @property
    def denom(self) -> str:
        return self.collateral.denom

    def copy(self) -> "PoolCollateral":
        return replace(self)


@dataclass
class TotalCollateral:
    """Debt and co-deposited native token across all collateral denoms."""
    war_debt: Coin
    mage_collateralized: Coin

    def copy(self) -> "TotalCollateral":
        return replace(self)


def new_pool_backing(denom: str, stable_denom: str, native_denom: str) -> PoolBacking:
    return PoolBacking(
        backing=Coin(denom, 0),
        war_minted=SignedCoin(stable_denom, 0),
        mage_burned=SignedCoin(native_denom, 0),
    )


def new_total_backing(stable_denom: str, native_denom: str) -> TotalBacking:
    return TotalBacking(
        war_minted=SignedCoin(stable_denom, 0),
        mage_burned=SignedCoin(native_denom, 0),
    )


def new_pool_collateral(denom: str, stable_denom: str, native_denom: str) -> PoolCollateral:
    return PoolCollateral(
        collateral=Coin(denom, 0),
        war_debt=Coin(stable_denom, 0),
        mage_collateralized=Coin(native_denom, 0),
    )


def new_total_collateral(stable_denom: str, native_denom: str) -> TotalCollateral:
    return TotalCollateral(
        war_debt=Coin(stable_denom, 0),
        mage_collateralized=Coin(native_denom, 0),
    )


def new_account_collateral(
    account: str,
    denom: str,
    stable_denom: str,
    native_denom: str,
    block_height: Optional[int] = 0,
) -> AccountCollateral:
    return AccountCollateral(
        account=account,
        collateral=Coin(denom, 0),
        war_debt=Coin(stable_denom, 0),
        mage_collateralized=Coin(native_denom, 0),
        last_interest=Coin(stable_denom, 0),
        last_settlement_block=block_height or 0,
    )

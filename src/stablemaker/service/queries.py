"""Read-only queries and estimates.

Estimates run the same calculations as the transaction handlers; calculations
never write to the store or ledger, so nothing here has side effects.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List

from ..config.schema import BackingRiskParams, CollateralRiskParams, MakerParams
from ..engine.backing import (
    BurnBySwapInResult,
    BurnBySwapOutResult,
    BuyBackingInResult,
    BuyBackingOutResult,
    MintBySwapInResult,
    MintBySwapOutResult,
    SellBackingInResult,
    SellBackingOutResult,
)
from ..engine.coins import Coin
from ..engine.errors import BackingCoinNotFoundError, CollateralCoinNotFoundError
from ..engine.state import (
    AccountCollateral,
    PoolBacking,
    PoolCollateral,
    TotalBacking,
    TotalCollateral,
    new_account_collateral,
)
from .msg_server import MakerService


@dataclass
class BackingRatioInfo:
    backing_ratio: Decimal
    last_update_block: int


class MakerQuerier:
    """Queries against a :class:`MakerService`'s store and engines."""

    def __init__(self, service: MakerService):
        self.service = service
        self.store = service.store
        self.chain = service.chain

    # -- params -----------------------------------------------------------

    def params(self) -> MakerParams:
        return self.store.get_params()

    def backing_ratio(self) -> BackingRatioInfo:
        params = self.store.get_params()
        return BackingRatioInfo(params.backing_ratio, params.backing_ratio_last_block)

    def all_backing_risk_params(self) -> List[BackingRiskParams]:
        return self.store.get_all_backing_risk_params()

    def all_collateral_risk_params(self) -> List[CollateralRiskParams]:
        return self.store.get_all_collateral_risk_params()

    # -- pools ------------------------------------------------------------

    def all_backing_pools(self) -> List[PoolBacking]:
        return self.store.get_all_pool_backing()

    def all_collateral_pools(self) -> List[PoolCollateral]:
        return self.store.get_all_pool_collateral()

    def backing_pool(self, denom: str) -> PoolBacking:
        pool = self.store.get_pool_backing(denom)
        if pool is None:
            raise BackingCoinNotFoundError(f"backing pool with backing denom '{denom}'")
        return pool

    def collateral_pool(self, denom: str) -> PoolCollateral:
        pool = self.store.get_pool_collateral(denom)
        if pool is None:
            raise CollateralCoinNotFoundError(f"collateral pool with collateral denom '{denom}'")
        return pool

    def total_backing(self) -> TotalBacking:
        """Total backing with ``backing_value`` filled in from current prices."""
        total = self.store.get_total_backing()
        if total is None:
            raise BackingCoinNotFoundError("total backing not found")
        total.backing_value = self.service.backing.total_backing_in_usd()
        return total

    def total_collateral(self) -> TotalCollateral:
        total = self.store.get_total_collateral()
        if total is None:
            raise CollateralCoinNotFoundError("total collateral not found")
        return total

    def excess_backing_value(self) -> int:
        return self.service.backing.get_excess_backing_value()

    def collateral_of_account(self, account: str, denom: str) -> AccountCollateral:
        """Stored position, or an empty one if the denom is registered but unused by the account."""
        record = self.store.get_account_collateral(account, denom)
        if record is not None:
            return record
        if self.store.get_collateral_risk_params(denom) is None:
            raise CollateralCoinNotFoundError(f"collateral coin denomination not found: {denom}")
        return new_account_collateral(
            account, denom, self.chain.stable_denom, self.chain.native_denom,
            self.service.block_height,
        )

    # -- estimates --------------------------------------------------------

    def estimate_mint_by_swap_in(
        self, mint_out: Coin, backing_denom: str, full_backing: bool = False
    ) -> MintBySwapInResult:
        return self.service.backing.calculate_mint_by_swap_in(mint_out, backing_denom, full_backing)

    def estimate_mint_by_swap_out(
        self, backing_in_max: Coin, mage_in_max: Coin, full_backing: bool = False
    ) -> MintBySwapOutResult:
        return self.service.backing.calculate_mint_by_swap_out(backing_in_max, mage_in_max, full_backing)

    def estimate_burn_by_swap_in(self, backing_out_max: Coin, mage_out_max: Coin) -> BurnBySwapInResult:
        return self.service.backing.calculate_burn_by_swap_in(backing_out_max, mage_out_max)

    def estimate_burn_by_swap_out(self, burn_in: Coin, backing_denom: str) -> BurnBySwapOutResult:
        return self.service.backing.calculate_burn_by_swap_out(burn_in, backing_denom)

    def estimate_buy_backing_in(self, backing_out: Coin) -> BuyBackingInResult:
        return self.service.backing.calculate_buy_backing_in(backing_out)

    def estimate_buy_backing_out(self, mage_in: Coin, backing_denom: str) -> BuyBackingOutResult:
        return self.service.backing.calculate_buy_backing_out(mage_in, backing_denom)

    def estimate_sell_backing_in(self, mage_out: Coin, backing_denom: str) -> SellBackingInResult:
        return self.service.backing.calculate_sell_backing_in(mage_out, backing_denom)

    def estimate_sell_backing_out(self, backing_in: Coin) -> SellBackingOutResult:
        return self.service.backing.calculate_sell_backing_out(backing_in)

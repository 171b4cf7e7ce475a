"""Collaborator interfaces consumed by the engine.

The engine never talks to storage, a bank module or a price feed directly;
it receives objects satisfying these protocols.
"""

from decimal import Decimal
from typing import Any, List, Optional, Protocol, Sequence

from ..config.schema import BackingRiskParams, CollateralRiskParams, MakerParams
from .coins import Coin
from .state import AccountCollateral, PoolBacking, PoolCollateral, TotalBacking, TotalCollateral


class PriceOracle(Protocol):
    """USD price per base unit of a denom."""

    def get_exchange_rate(self, denom: str) -> Decimal:
        """Return the price or raise PriceUnavailableError."""
        ...


class Transactional(Protocol):
    """State holder that can be rolled back to an earlier snapshot."""

    def snapshot(self) -> Any:
        ...

    def restore(self, token: Any) -> None:
        ...


class Ledger(Transactional, Protocol):
    """Balances, supply, and module accounts."""

    def module_address(self, name: str) -> str:
        ...

    def get_balance(self, address: str, denom: str) -> Coin:
        ...

    def send_from_account_to_module(self, sender: str, module: str, coins: Sequence[Coin]) -> None:
        ...

    def send_from_module_to_account(self, module: str, recipient: str, coins: Sequence[Coin]) -> None:
        ...

    def send_from_module_to_module(self, sender_module: str, recipient_module: str, coins: Sequence[Coin]) -> None:
        ...

    def mint_coins(self, module: str, coins: Sequence[Coin]) -> None:
        ...

    def burn_coins(self, module: str, coins: Sequence[Coin]) -> None:
        ...


class ParamStore(Transactional, Protocol):
    """Governance parameters and maker records.

    Getters return copies; mutating a returned record has no effect until it
    is passed back to the matching setter.
    """

    def get_params(self) -> MakerParams:
        ...

    def set_params(self, params: MakerParams) -> None:
        ...

    def get_backing_risk_params(self, denom: str) -> Optional[BackingRiskParams]:
        ...

    def get_all_backing_risk_params(self) -> List[BackingRiskParams]:
        ...

    def set_backing_risk_params(self, params: BackingRiskParams) -> None:
        ...

    def get_collateral_risk_params(self, denom: str) -> Optional[CollateralRiskParams]:
        ...

    def get_all_collateral_risk_params(self) -> List[CollateralRiskParams]:
        ...

    def set_collateral_risk_params(self, params: CollateralRiskParams) -> None:
        ...

    def get_pool_backing(self, denom: str) -> Optional[PoolBacking]:
        ...

    def get_all_pool_backing(self) -> List[PoolBacking]:
        ...

    def set_pool_backing(self, pool: PoolBacking) -> None:
        ...

    def get_total_backing(self) -> Optional[TotalBacking]:
        ...

    def set_total_backing(self, total: TotalBacking) -> None:
        ...

    def get_pool_collateral(self, denom: str) -> Optional[PoolCollateral]:
        ...

    def get_all_pool_collateral(self) -> List[PoolCollateral]:
        ...

    def set_pool_collateral(self, pool: PoolCollateral) -> None:
        ...

    def get_total_collateral(self) -> Optional[TotalCollateral]:
        ...

    def set_total_collateral(self, total: TotalCollateral) -> None:
        ...

    def get_account_collateral(self, account: str, denom: str) -> Optional[AccountCollateral]:
        ...

    def get_all_account_collateral(self) -> List[AccountCollateral]:
        ...

    def set_account_collateral(self, account: str, record: AccountCollateral) -> None:
        ...

"""In-memory parameter store, ledger and price oracle.

These back local runs and tests. Each supports ``snapshot()`` / ``restore()``
so a failed transaction can be rolled back in full.
"""

import copy
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from ..config.schema import BackingRiskParams, CollateralRiskParams, MakerParams
from ..engine import fixed
from ..engine.coins import Coin
from ..engine.errors import InsufficientFundsError, InvalidAddressError, LedgerError, PriceUnavailableError
from ..engine.state import AccountCollateral, PoolBacking, PoolCollateral, TotalBacking, TotalCollateral

logger = logging.getLogger(__name__)

MODULE_PREFIX = "module/"


class StaticPriceOracle:
    """Oracle serving prices that are set explicitly."""

    def __init__(self, prices: Optional[Dict[str, Decimal]] = None):
        self._prices: Dict[str, Decimal] = {}
        for denom, price in (prices or {}).items():
            self.set_price(denom, price)

    def set_price(self, denom: str, price) -> None:
        price = fixed.dec(price)
        if price <= 0:
            raise ValueError(f"price must be positive, got {price} for {denom}")
        self._prices[denom] = price

    def remove_price(self, denom: str) -> None:
        self._prices.pop(denom, None)

    def get_exchange_rate(self, denom: str) -> Decimal:
        try:
            return self._prices[denom]
        except KeyError:
            raise PriceUnavailableError(f"no exchange rate for {denom}") from None


class MemoryLedger:
    """Balances and supply keyed by address and denom."""

    def __init__(self):
        self._balances: Dict[Tuple[str, str], int] = {}
        self._supply: Dict[str, int] = {}

    # -- snapshots --------------------------------------------------------

    def snapshot(self):
        return dict(self._balances), dict(self._supply)

    def restore(self, token) -> None:
        balances, supply = token
        self._balances = dict(balances)
        self._supply = dict(supply)

    # -- reads ------------------------------------------------------------

    def module_address(self, name: str) -> str:
        return MODULE_PREFIX + name

    def get_balance(self, address: str, denom: str) -> Coin:
        return Coin(denom, self._balances.get((address, denom), 0))

    def get_supply(self, denom: str) -> Coin:
        return Coin(denom, self._supply.get(denom, 0))

    def balances_of(self, address: str) -> Dict[str, int]:
        return {d: amt for (a, d), amt in self._balances.items() if a == address and amt}

    # -- writes -----------------------------------------------------------

    def fund(self, address: str, coins: Sequence[Coin]) -> None:
        """Credit an account out of thin air, counting it toward supply (test setup)."""
        for coin in coins:
            self._credit(address, coin)
            self._supply[coin.denom] = self._supply.get(coin.denom, 0) + coin.amount

    def _credit(self, address: str, coin: Coin) -> None:
        key = (address, coin.denom)
        self._balances[key] = self._balances.get(key, 0) + coin.amount

    def _debit(self, address: str, coin: Coin) -> None:
        key = (address, coin.denom)
        held = self._balances.get(key, 0)
        if held < coin.amount:
            raise InsufficientFundsError(
                f"{address} cannot spend {coin}", actual=held, expected=coin.amount
            )
        self._balances[key] = held - coin.amount

    def _transfer(self, sender: str, recipient: str, coins: Sequence[Coin]) -> None:
        if not sender or not recipient:
            raise InvalidAddressError("empty address in transfer")
        coins = [c for c in coins if c.amount]
        # debit everything first so a failure leaves no partial transfer
        for i, coin in enumerate(coins):
            try:
                self._debit(sender, coin)
            except InsufficientFundsError:
                for done in coins[:i]:
                    self._credit(sender, done)
                raise
        for coin in coins:
            self._credit(recipient, coin)

    def send_from_account_to_module(self, sender: str, module: str, coins: Sequence[Coin]) -> None:
        self._transfer(sender, self.module_address(module), coins)

    def send_from_module_to_account(self, module: str, recipient: str, coins: Sequence[Coin]) -> None:
        if recipient.startswith(MODULE_PREFIX):
            raise LedgerError(f"{recipient} is a module account")
        self._transfer(self.module_address(module), recipient, coins)

    def send_from_module_to_module(self, sender_module: str, recipient_module: str, coins: Sequence[Coin]) -> None:
        self._transfer(self.module_address(sender_module), self.module_address(recipient_module), coins)

    def mint_coins(self, module: str, coins: Sequence[Coin]) -> None:
        for coin in coins:
            if not coin.amount:
                continue
            self._credit(self.module_address(module), coin)
            self._supply[coin.denom] = self._supply.get(coin.denom, 0) + coin.amount

    def burn_coins(self, module: str, coins: Sequence[Coin]) -> None:
        address = self.module_address(module)
        coins = [c for c in coins if c.amount]
        for coin in coins:
            if self._balances.get((address, coin.denom), 0) < coin.amount:
                raise InsufficientFundsError(
                    f"{module} cannot burn {coin}",
                    actual=self._balances.get((address, coin.denom), 0), expected=coin.amount,
                )
        for coin in coins:
            self._debit(address, coin)
            self._supply[coin.denom] -= coin.amount


class MemoryParamStore:
    """Dictionary-backed parameter store; records go in and out as copies."""

    def __init__(self, params: Optional[MakerParams] = None):
        self._params = params or MakerParams()
        self._backing_params: Dict[str, BackingRiskParams] = {}
        self._collateral_params: Dict[str, CollateralRiskParams] = {}
        self._pool_backing: Dict[str, PoolBacking] = {}
        self._total_backing: Optional[TotalBacking] = None
        self._pool_collateral: Dict[str, PoolCollateral] = {}
        self._total_collateral: Optional[TotalCollateral] = None
        self._accounts: Dict[Tuple[str, str], AccountCollateral] = {}

    def snapshot(self):
        return copy.deepcopy(self.__dict__)

    def restore(self, token) -> None:
        self.__dict__.update(copy.deepcopy(token))

    # params

    def get_params(self) -> MakerParams:
        return self._params.model_copy(deep=True)

    def set_params(self, params: MakerParams) -> None:
        self._params = params.model_copy(deep=True)

    def get_backing_risk_params(self, denom: str) -> Optional[BackingRiskParams]:
        params = self._backing_params.get(denom)
        return params.model_copy(deep=True) if params else None

    def get_all_backing_risk_params(self) -> List[BackingRiskParams]:
        return [self._backing_params[d].model_copy(deep=True) for d in sorted(self._backing_params)]

    def set_backing_risk_params(self, params: BackingRiskParams) -> None:
        self._backing_params[params.backing_denom] = params.model_copy(deep=True)

    def get_collateral_risk_params(self, denom: str) -> Optional[CollateralRiskParams]:
        params = self._collateral_params.get(denom)
        return params.model_copy(deep=True) if params else None

    def get_all_collateral_risk_params(self) -> List[CollateralRiskParams]:
        return [self._collateral_params[d].model_copy(deep=True) for d in sorted(self._collateral_params)]

    def set_collateral_risk_params(self, params: CollateralRiskParams) -> None:
        self._collateral_params[params.collateral_denom] = params.model_copy(deep=True)

    # backing records

    def get_pool_backing(self, denom: str) -> Optional[PoolBacking]:
        pool = self._pool_backing.get(denom)
        return pool.copy() if pool else None

    def get_all_pool_backing(self) -> List[PoolBacking]:
        return [self._pool_backing[d].copy() for d in sorted(self._pool_backing)]

    def set_pool_backing(self, pool: PoolBacking) -> None:
        self._pool_backing[pool.denom] = pool.copy()

    def get_total_backing(self) -> Optional[TotalBacking]:
        return self._total_backing.copy() if self._total_backing else None

    def set_total_backing(self, total: TotalBacking) -> None:
        self._total_backing = total.copy()

    # collateral records

    def get_pool_collateral(self, denom: str) -> Optional[PoolCollateral]:
        pool = self._pool_collateral.get(denom)
        return pool.copy() if pool else None

    def get_all_pool_collateral(self) -> List[PoolCollateral]:
        return [self._pool_collateral[d].copy() for d in sorted(self._pool_collateral)]

    def set_pool_collateral(self, pool: PoolCollateral) -> None:
        self._pool_collateral[pool.denom] = pool.copy()

    def get_total_collateral(self) -> Optional[TotalCollateral]:
        return self._total_collateral.copy() if self._total_collateral else None

    def set_total_collateral(self, total: TotalCollateral) -> None:
        self._total_collateral = total.copy()

    def get_account_collateral(self, account: str, denom: str) -> Optional[AccountCollateral]:
        record = self._accounts.get((account, denom))
        return record.copy() if record else None

    def get_all_account_collateral(self) -> List[AccountCollateral]:
        return [self._accounts[k].copy() for k in sorted(self._accounts)]

    def set_account_collateral(self, account: str, record: AccountCollateral) -> None:
        if record.account != account:
            raise ValueError(f"record belongs to {record.account}, not {account}")
        self._accounts[(account, record.denom)] = record.copy()

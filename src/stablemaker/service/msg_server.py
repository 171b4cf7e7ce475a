"""Transaction orchestration for the maker.

Each handler resolves addresses, runs the matching calculation, enforces the
caller's bounds, writes the updated records back, moves coins on the ledger,
and records a domain event. Store writes and ledger movements happen inside a
transaction: if anything raises, both are restored and the error reaches the
caller unchanged.
"""

import logging
from contextlib import contextmanager
from typing import Callable, List, Optional, Tuple

from ..config.schema import ChainSettings, Config
from ..engine.backing import BackingEngine
from ..engine.coins import Coin, coins_str
from ..engine.collateral import CollateralEngine, CollateralRecords
from ..engine.errors import InvalidAddressError, OverSlippageError
from ..engine.events import (
    EVENT_BURN_BY_COLLATERAL,
    EVENT_BURN_BY_SWAP,
    EVENT_BUY_BACKING,
    EVENT_DEPOSIT_COLLATERAL,
    EVENT_LIQUIDATE_COLLATERAL,
    EVENT_MINT_BY_COLLATERAL,
    EVENT_MINT_BY_SWAP,
    EVENT_REDEEM_COLLATERAL,
    EVENT_SELL_BACKING,
    Event,
    EventLog,
)
from ..engine.interfaces import Ledger, ParamStore, PriceOracle
from ..store.registration import apply_config
from .messages import (
    MsgBurnByCollateral,
    MsgBurnByCollateralResponse,
    MsgBurnBySwap,
    MsgBurnBySwapResponse,
    MsgBuyBacking,
    MsgBuyBackingResponse,
    MsgDepositCollateral,
    MsgDepositCollateralResponse,
    MsgLiquidateCollateral,
    MsgLiquidateCollateralResponse,
    MsgMintByCollateral,
    MsgMintByCollateralResponse,
    MsgMintBySwap,
    MsgMintBySwapResponse,
    MsgRedeemCollateral,
    MsgRedeemCollateralResponse,
    MsgSellBacking,
    MsgSellBackingResponse,
)

logger = logging.getLogger(__name__)

# called once per block with the store and height; owns backing ratio updates
BackingRatioAdjuster = Callable[[ParamStore, int], None]


def get_sender_receiver(sender: str, to: str = "") -> Tuple[str, str]:
    """Validate the sender and default the receiver to it."""
    if not sender or not sender.strip():
        raise InvalidAddressError("sender address is empty")
    receiver = sender
    if to:
        if not to.strip():
            raise InvalidAddressError("receiver address is blank")
        receiver = to
    return sender, receiver


class MakerService:
    """Mutating entry points of the maker."""

    def __init__(
        self,
        store: ParamStore,
        ledger: Ledger,
        oracle: PriceOracle,
        chain: Optional[ChainSettings] = None,
        backing_ratio_adjuster: Optional[BackingRatioAdjuster] = None,
        event_log: Optional[EventLog] = None,
    ):
        """
        Initialize maker service.

        Args:
            store: Parameter store with registered coins
            ledger: Ledger for balances, minting and burning
            oracle: Price oracle
            chain: Denominations and module accounts (defaults if omitted)
            backing_ratio_adjuster: Per-block backing ratio process, if any
            event_log: Destination of committed events
        """
        self.store = store
        self.ledger = ledger
        self.oracle = oracle
        self.chain = chain or ChainSettings()
        self.backing_ratio_adjuster = backing_ratio_adjuster
        self.events = event_log if event_log is not None else EventLog()
        self.block_height = 0

        self.backing = BackingEngine(store, oracle, ledger, self.chain)
        self.collateral = CollateralEngine(store, oracle, self.chain)

        self._pending: List[Event] = []

    @classmethod
    def from_config(
        cls,
        config: Config,
        store: ParamStore,
        ledger: Ledger,
        oracle: PriceOracle,
        **kwargs,
    ) -> "MakerService":
        """Register the configured coins in ``store`` and build a service on top."""
        apply_config(store, config)
        return cls(store, ledger, oracle, chain=config.chain, **kwargs)

    # ------------------------------------------------------------------
    # Block lifecycle
    # ------------------------------------------------------------------

    def begin_block(self, height: int) -> None:
        if height < self.block_height:
            raise ValueError(f"block height went backwards: {height} < {self.block_height}")
        self.block_height = height

    def end_block(self) -> None:
        """Hand control to the backing ratio process, if one is installed."""
        if self.backing_ratio_adjuster is None:
            return
        before = self.store.get_params().backing_ratio
        self.backing_ratio_adjuster(self.store, self.block_height)
        after = self.store.get_params().backing_ratio
        if after != before:
            logger.info("backing ratio %s -> %s at block %d", before, after, self.block_height)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @property
    def module(self) -> str:
        return self.chain.module_name

    @property
    def fee_collector(self) -> str:
        return self.chain.fee_collector_module

    @contextmanager
    def _transaction(self, name: str):
        store_token = self.store.snapshot()
        ledger_token = self.ledger.snapshot()
        self._pending = []
        try:
            yield
        except Exception as exc:
            self.store.restore(store_token)
            self.ledger.restore(ledger_token)
            self._pending = []
            logger.warning("%s rolled back at block %d: %s", name, self.block_height, exc)
            raise
        self.events.extend(self._pending)
        self._pending = []
        logger.info("%s committed at block %d", name, self.block_height)

    def _emit(self, event_type: str, sender: str, coin_in=(), coin_out=(), fee=(), **attributes) -> None:
        self._pending.append(Event(
            block_height=self.block_height,
            event_type=event_type,
            sender=sender,
            coin_in=coins_str(*coin_in),
            coin_out=coins_str(*coin_out),
            fee=coins_str(*fee),
            attributes={k: str(v) for k, v in attributes.items()},
        ))

    def _collect_fee(self, fee: Coin) -> None:
        if fee.is_positive():
            self.ledger.send_from_module_to_module(self.module, self.fee_collector, [fee])

    def _persist_collateral(self, account: str, records: CollateralRecords) -> None:
        self.store.set_account_collateral(account, records.account)
        self.store.set_pool_collateral(records.pool)
        self.store.set_total_collateral(records.total)

    @staticmethod
    def _check_min_out(label: str, actual: Coin, minimum: Coin) -> None:
        if actual.is_lt(minimum):
            raise OverSlippageError(f"{label} below minimum", actual=str(actual), expected=str(minimum))

    # ------------------------------------------------------------------
    # Backing / swap
    # ------------------------------------------------------------------

    def mint_by_swap(self, msg: MsgMintBySwap) -> MsgMintBySwapResponse:
        sender, receiver = get_sender_receiver(msg.sender, msg.to)
        backing_denom = msg.backing_in_max.denom

        with self._transaction(EVENT_MINT_BY_SWAP):
            result = self.backing.calculate_mint_by_swap_out(
                msg.backing_in_max, msg.mage_in_max, msg.full_backing
            )
            mint_total = result.mint_total
            self._check_min_out("mint out", result.mint_out, msg.mint_out_min)

            total, pool = self.backing.get_backing(backing_denom)
            pool.war_minted = pool.war_minted.add(mint_total)
            pool.backing = pool.backing.add(result.backing_in)
            pool.mage_burned = pool.mage_burned.add(result.mage_in)
            total.war_minted = total.war_minted.add(mint_total)
            total.mage_burned = total.mage_burned.add(result.mage_in)
            self.store.set_pool_backing(pool)
            self.store.set_total_backing(total)

            self.ledger.send_from_account_to_module(sender, self.module, [result.backing_in, result.mage_in])
            if result.mage_in.is_positive():
                self.ledger.burn_coins(self.module, [result.mage_in])
            self.ledger.mint_coins(self.module, [mint_total])
            self.ledger.send_from_module_to_account(self.module, receiver, [result.mint_out])
            self._collect_fee(result.mint_fee)

            self._emit(
                EVENT_MINT_BY_SWAP, sender,
                coin_in=(result.backing_in, result.mage_in),
                coin_out=(result.mint_out,),
                fee=(result.mint_fee,),
            )

        return MsgMintBySwapResponse(
            backing_in=result.backing_in,
            mage_in=result.mage_in,
            mint_out=result.mint_out,
            mint_fee=result.mint_fee,
        )

    def burn_by_swap(self, msg: MsgBurnBySwap) -> MsgBurnBySwapResponse:
        sender, receiver = get_sender_receiver(msg.sender, msg.to)
        backing_denom = msg.backing_out_min.denom

        with self._transaction(EVENT_BURN_BY_SWAP):
            result = self.backing.calculate_burn_by_swap_out(msg.burn_in, backing_denom)
            burn_actual = msg.burn_in.sub(result.burn_fee)
            self._check_min_out("backing out", result.backing_out, msg.backing_out_min)
            self._check_min_out("native out", result.mage_out, msg.mage_out_min)

            total, pool = self.backing.get_backing(backing_denom)
            pool.backing = pool.backing.sub(result.backing_out)
            # net counters: negative means native minted / stable burned
            pool.mage_burned = pool.mage_burned.sub(result.mage_out)
            total.mage_burned = total.mage_burned.sub(result.mage_out)
            pool.war_minted = pool.war_minted.sub(burn_actual)
            total.war_minted = total.war_minted.sub(burn_actual)
            self.store.set_pool_backing(pool)
            self.store.set_total_backing(total)

            self.ledger.send_from_account_to_module(sender, self.module, [msg.burn_in])
            self.ledger.burn_coins(self.module, [burn_actual])
            self._collect_fee(result.burn_fee)
            self.ledger.mint_coins(self.module, [result.mage_out])
            self.ledger.send_from_module_to_account(
                self.module, receiver, [result.backing_out, result.mage_out]
            )

            self._emit(
                EVENT_BURN_BY_SWAP, sender,
                coin_in=(msg.burn_in,),
                coin_out=(result.backing_out, result.mage_out),
                fee=(result.burn_fee,),
            )

        return MsgBurnBySwapResponse(
            burn_fee=result.burn_fee,
            backing_out=result.backing_out,
            mage_out=result.mage_out,
        )

    def buy_backing(self, msg: MsgBuyBacking) -> MsgBuyBackingResponse:
        sender, receiver = get_sender_receiver(msg.sender, msg.to)
        backing_denom = msg.backing_out_min.denom

        with self._transaction(EVENT_BUY_BACKING):
            result = self.backing.calculate_buy_backing_out(msg.mage_in, backing_denom)
            self._check_min_out("backing out", result.backing_out, msg.backing_out_min)

            total, pool = self.backing.get_backing(backing_denom)
            pool.backing = pool.backing.sub(result.backing_out).sub(result.buyback_fee)
            pool.mage_burned = pool.mage_burned.add(msg.mage_in)
            total.mage_burned = total.mage_burned.add(msg.mage_in)
            self.store.set_pool_backing(pool)
            self.store.set_total_backing(total)

            self.ledger.send_from_account_to_module(sender, self.module, [msg.mage_in])
            self.ledger.burn_coins(self.module, [msg.mage_in])
            self.ledger.send_from_module_to_account(self.module, receiver, [result.backing_out])
            self._collect_fee(result.buyback_fee)

            self._emit(
                EVENT_BUY_BACKING, sender,
                coin_in=(msg.mage_in,),
                coin_out=(result.backing_out,),
                fee=(result.buyback_fee,),
            )

        return MsgBuyBackingResponse(backing_out=result.backing_out, buyback_fee=result.buyback_fee)

    def sell_backing(self, msg: MsgSellBacking) -> MsgSellBackingResponse:
        sender, receiver = get_sender_receiver(msg.sender, msg.to)
        backing_denom = msg.backing_in.denom

        with self._transaction(EVENT_SELL_BACKING):
            result = self.backing.calculate_sell_backing_out(msg.backing_in)
            mage_mint = result.mage_out.add(result.reback_fee)
            self._check_min_out("native out", result.mage_out, msg.mage_out_min)

            total, pool = self.backing.get_backing(backing_denom)
            pool.backing = pool.backing.add(msg.backing_in)
            pool.mage_burned = pool.mage_burned.sub(mage_mint)
            total.mage_burned = total.mage_burned.sub(mage_mint)
            self.store.set_pool_backing(pool)
            self.store.set_total_backing(total)

            self.ledger.send_from_account_to_module(sender, self.module, [msg.backing_in])
            self.ledger.mint_coins(self.module, [mage_mint])
            self.ledger.send_from_module_to_account(self.module, receiver, [result.mage_out])
            self._collect_fee(result.reback_fee)

            self._emit(
                EVENT_SELL_BACKING, sender,
                coin_in=(msg.backing_in,),
                coin_out=(result.mage_out,),
                fee=(result.reback_fee,),
            )

        return MsgSellBackingResponse(mage_out=result.mage_out, reback_fee=result.reback_fee)

    # ------------------------------------------------------------------
    # Collateral
    # ------------------------------------------------------------------

    def mint_by_collateral(self, msg: MsgMintByCollateral) -> MsgMintByCollateralResponse:
        sender, receiver = get_sender_receiver(msg.sender, msg.to)

        with self._transaction(EVENT_MINT_BY_COLLATERAL):
            result = self.collateral.calculate_mint_by_collateral(
                sender, msg.collateral_denom, msg.mint_out, self.block_height
            )
            mint_total = msg.mint_out.add(result.mint_fee)
            self._persist_collateral(sender, result.records)

            self.ledger.mint_coins(self.module, [mint_total])
            self.ledger.send_from_module_to_account(self.module, receiver, [msg.mint_out])
            self._collect_fee(result.mint_fee)

            self._emit(
                EVENT_MINT_BY_COLLATERAL, sender,
                coin_out=(msg.mint_out,),
                fee=(result.mint_fee,),
                collateral_denom=msg.collateral_denom,
            )

        return MsgMintByCollateralResponse(mint_fee=result.mint_fee)

    def burn_by_collateral(self, msg: MsgBurnByCollateral) -> MsgBurnByCollateralResponse:
        sender, _ = get_sender_receiver(msg.sender)

        with self._transaction(EVENT_BURN_BY_COLLATERAL):
            result = self.collateral.calculate_burn_by_collateral(
                sender, msg.collateral_denom, msg.repay_in_max, self.block_height
            )
            self._persist_collateral(sender, result.records)

            self.ledger.send_from_account_to_module(sender, self.module, [result.repay_in])
            if result.burn.is_positive():
                self.ledger.burn_coins(self.module, [result.burn])
            self._collect_fee(result.repay_interest)

            self._emit(
                EVENT_BURN_BY_COLLATERAL, sender,
                coin_in=(result.repay_in,),
                fee=(result.repay_interest,),
                collateral_denom=msg.collateral_denom,
            )

        return MsgBurnByCollateralResponse(repay_in=result.repay_in, repay_interest=result.repay_interest)

    def deposit_collateral(self, msg: MsgDepositCollateral) -> MsgDepositCollateralResponse:
        sender, receiver = get_sender_receiver(msg.sender, msg.to)

        with self._transaction(EVENT_DEPOSIT_COLLATERAL):
            records = self.collateral.calculate_deposit_collateral(
                receiver, msg.collateral_in, msg.mage_in, self.block_height
            )
            self._persist_collateral(receiver, records)

            self.ledger.send_from_account_to_module(sender, self.module, [msg.collateral_in, msg.mage_in])

            self._emit(
                EVENT_DEPOSIT_COLLATERAL, sender,
                coin_in=(msg.collateral_in, msg.mage_in),
                receiver=receiver,
            )

        return MsgDepositCollateralResponse()

    def redeem_collateral(self, msg: MsgRedeemCollateral) -> MsgRedeemCollateralResponse:
        sender, receiver = get_sender_receiver(msg.sender, msg.to)

        with self._transaction(EVENT_REDEEM_COLLATERAL):
            records = self.collateral.calculate_redeem_collateral(
                sender, msg.collateral_out, msg.mage_out, self.block_height
            )
            self._persist_collateral(sender, records)

            self.ledger.send_from_module_to_account(
                self.module, receiver, [msg.collateral_out, msg.mage_out]
            )

            self._emit(
                EVENT_REDEEM_COLLATERAL, sender,
                coin_out=(msg.collateral_out, msg.mage_out),
                receiver=receiver,
            )

        return MsgRedeemCollateralResponse()

    def liquidate_collateral(self, msg: MsgLiquidateCollateral) -> MsgLiquidateCollateralResponse:
        sender, receiver = get_sender_receiver(msg.sender, msg.to)
        if not msg.debtor or not msg.debtor.strip():
            raise InvalidAddressError("debtor address is empty")
        debtor = msg.debtor

        with self._transaction(EVENT_LIQUIDATE_COLLATERAL):
            result = self.collateral.calculate_liquidation(
                debtor, msg.collateral, msg.repay_in_max, self.block_height
            )
            self._persist_collateral(debtor, result.records)

            self.ledger.send_from_account_to_module(sender, self.module, [result.repay_in])
            if result.burn.is_positive():
                self.ledger.burn_coins(self.module, [result.burn])
            self._collect_fee(result.repay_interest)
            if result.refund.is_positive():
                self.ledger.send_from_module_to_account(self.module, debtor, [result.refund])
            self.ledger.send_from_module_to_account(self.module, receiver, [result.collateral_out])
            self._collect_fee(result.commission_fee)

            self._emit(
                EVENT_LIQUIDATE_COLLATERAL, sender,
                coin_in=(result.repay_in,),
                coin_out=(result.collateral_out,),
                fee=(result.commission_fee,),
                debtor=debtor,
            )

        return MsgLiquidateCollateralResponse(repay_in=result.repay_in, collateral_out=result.collateral_out)

"""Tests for transaction handlers: ledger movements, rollback and events."""

import pytest
import sys
import os
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from stablemaker.engine.coins import Coin
from stablemaker.engine.errors import (
    BackingCoinInsufficientError,
    InsufficientFundsError,
    InvalidAddressError,
    OverSlippageError,
    StablePriceTooLowError,
)
from stablemaker.engine.events import EVENT_BUY_BACKING, EVENT_MINT_BY_SWAP, EventLog
from stablemaker.service.messages import (
    MsgBurnBySwap,
    MsgBuyBacking,
    MsgMintBySwap,
    MsgSellBacking,
)
from stablemaker.service.msg_server import get_sender_receiver


def mint_msg(backing: int, mage: int = 0, minimum: int = 0, **kwargs) -> MsgMintBySwap:
    return MsgMintBySwap(
        sender="alice",
        backing_in_max=Coin("uusdc", backing),
        mage_in_max=Coin("amage", mage),
        mint_out_min=Coin("uusw", minimum),
        **kwargs,
    )


class TestAddresses:
    """Tests for sender/receiver resolution."""

    def test_receiver_defaults_to_sender(self):
        """An empty ``to`` means the sender."""
        assert get_sender_receiver("alice") == ("alice", "alice")

    def test_explicit_receiver(self):
        """A given receiver is used as is."""
        assert get_sender_receiver("alice", "bob") == ("alice", "bob")

    def test_empty_sender_rejected(self):
        """Handlers refuse an empty sender."""
        with pytest.raises(InvalidAddressError):
            get_sender_receiver("")


class TestMintBySwapHandler:
    """Tests for the mint-by-swap handler."""

    def test_ledger_movements(self, make_service, make_config):
        """Reserve goes to the module, stable to the sender, fee to the collector."""
        service = make_service(make_config(backing={"mint_fee": "0.005"}))
        service.ledger.fund("alice", [Coin("uusdc", 1000)])

        response = service.mint_by_swap(mint_msg(1000))

        assert response.mint_out == Coin("uusw", 995)
        assert response.mint_fee == Coin("uusw", 5)
        assert service.ledger.get_balance("alice", "uusw").amount == 995
        assert service.ledger.get_balance("alice", "uusdc").amount == 0
        assert service.ledger.get_balance("module/maker", "uusdc").amount == 1000
        assert service.ledger.get_balance("module/oracle", "uusw").amount == 5
        assert service.ledger.get_supply("uusw").amount == 1000

        pool = service.store.get_pool_backing("uusdc")
        assert pool.backing.amount == 1000
        assert pool.war_minted.amount == 1000
        assert service.store.get_total_backing().war_minted.amount == 1000

    def test_fractional_mint_burns_native(self, make_service, make_config):
        """At ratio 0.5 the native leg is burned."""
        service = make_service(make_config(backing_ratio="0.5"))
        service.ledger.fund("alice", [Coin("uusdc", 50), Coin("amage", 1000)])

        response = service.mint_by_swap(mint_msg(50, mage=1000))

        assert response.mage_in == Coin("amage", 25)
        assert service.ledger.get_supply("amage").amount == 975
        assert service.ledger.get_balance("alice", "amage").amount == 975
        assert service.store.get_pool_backing("uusdc").mage_burned.amount == 25
        assert service.store.get_total_backing().mage_burned.amount == 25

    def test_receiver(self, service):
        """Minted stable goes to ``to`` when given."""
        service.ledger.fund("alice", [Coin("uusdc", 100)])
        service.mint_by_swap(mint_msg(100, to="bob"))
        assert service.ledger.get_balance("bob", "uusw").amount == 100
        assert service.ledger.get_balance("alice", "uusw").amount == 0

    def test_slippage_rolls_back(self, service):
        """Below-minimum output leaves no trace."""
        service.ledger.fund("alice", [Coin("uusdc", 100)])
        pool_before = service.store.get_pool_backing("uusdc")
        balances_before = service.ledger.balances_of("alice")

        with pytest.raises(OverSlippageError):
            service.mint_by_swap(mint_msg(100, minimum=101))

        assert service.store.get_pool_backing("uusdc") == pool_before
        assert service.ledger.balances_of("alice") == balances_before
        assert service.ledger.get_supply("uusw").amount == 0
        assert len(service.events) == 0

    def test_insufficient_funds_rolls_back(self, service):
        """A failing ledger transfer restores the records already written."""
        service.ledger.fund("alice", [Coin("uusdc", 10)])
        with pytest.raises(InsufficientFundsError):
            service.mint_by_swap(mint_msg(100))
        assert service.store.get_pool_backing("uusdc").war_minted.amount == 0
        assert service.store.get_total_backing().war_minted.amount == 0

    def test_price_floor(self, make_service, make_config):
        """Minting stops when the stable trades under the mint bound."""
        service = make_service(
            make_config(params={"mint_price_bias": "0.01"}),
        )
        service.ledger.fund("alice", [Coin("uusdc", 100)])
        with pytest.raises(StablePriceTooLowError):
            service.mint_by_swap(mint_msg(100))

    def test_event_recorded(self, service):
        """A committed mint records one event."""
        service.ledger.fund("alice", [Coin("uusdc", 100)])
        service.begin_block(7)
        service.mint_by_swap(mint_msg(100))

        events = service.events.of_type(EVENT_MINT_BY_SWAP)
        assert len(events) == 1
        assert events[0].block_height == 7
        assert events[0].sender == "alice"
        assert events[0].coin_in == "100uusdc"
        assert events[0].coin_out == "100uusw"

    def test_shared_event_log(self, make_service):
        """Events go to the log passed in."""
        log = EventLog(maxlen=10)
        service = make_service(event_log=log)
        service.ledger.fund("alice", [Coin("uusdc", 100)])
        service.mint_by_swap(mint_msg(100))
        assert len(log) == 1


class TestBurnBySwapHandler:
    """Tests for the burn-by-swap handler."""

    def test_burn_returns_reserve(self, make_service, make_config):
        """Burning returns reserve and routes the fee."""
        service = make_service(make_config(backing={"burn_fee": "0.2"}))
        service.ledger.fund("alice", [Coin("uusdc", 1000)])
        service.mint_by_swap(mint_msg(1000))

        response = service.burn_by_swap(MsgBurnBySwap(
            sender="alice",
            burn_in=Coin("uusw", 500),
            backing_out_min=Coin("uusdc", 400),
            mage_out_min=Coin("amage", 0),
        ))

        assert response.backing_out == Coin("uusdc", 400)
        assert response.burn_fee == Coin("uusw", 100)
        assert service.ledger.get_balance("alice", "uusdc").amount == 400
        assert service.ledger.get_balance("module/oracle", "uusw").amount == 100
        assert service.ledger.get_supply("uusw").amount == 600

        pool = service.store.get_pool_backing("uusdc")
        assert pool.backing.amount == 600
        assert pool.war_minted.amount == 600

    def test_fractional_burn_mints_native(self, service, set_ratio):
        """At ratio 0.5 half the value is paid in newly minted native token."""
        service.ledger.fund("alice", [Coin("uusdc", 1000)])
        service.mint_by_swap(mint_msg(1000))
        set_ratio(service, "0.5")

        response = service.burn_by_swap(MsgBurnBySwap(
            sender="alice",
            burn_in=Coin("uusw", 100),
            backing_out_min=Coin("uusdc", 0),
            mage_out_min=Coin("amage", 0),
        ))

        assert response.mage_out == Coin("amage", 25)
        assert service.ledger.get_supply("amage").amount == 25
        assert service.store.get_pool_backing("uusdc").mage_burned.amount == -25

    def test_burn_slippage(self, service):
        """Native below minimum aborts the burn."""
        service.ledger.fund("alice", [Coin("uusdc", 1000)])
        service.mint_by_swap(mint_msg(1000))
        with pytest.raises(OverSlippageError):
            service.burn_by_swap(MsgBurnBySwap(
                sender="alice",
                burn_in=Coin("uusw", 100),
                backing_out_min=Coin("uusdc", 0),
                mage_out_min=Coin("amage", 1),
            ))
        assert service.ledger.get_balance("alice", "uusw").amount == 1000


class TestBackingTradeHandlers:
    """Tests for buy and sell backing handlers."""

    def test_buy_backing(self, service, set_ratio):
        """Native paid in is burned and surplus reserve is paid out."""
        service.ledger.fund("alice", [Coin("uusdc", 1000), Coin("amage", 100)])
        service.mint_by_swap(mint_msg(1000))
        set_ratio(service, "0.5")

        response = service.buy_backing(MsgBuyBacking(
            sender="alice", mage_in=Coin("amage", 100), backing_out_min=Coin("uusdc", 200)
        ))

        assert response.backing_out == Coin("uusdc", 200)
        assert service.ledger.get_balance("alice", "uusdc").amount == 200
        assert service.ledger.get_supply("amage").amount == 0
        pool = service.store.get_pool_backing("uusdc")
        assert pool.backing.amount == 800
        assert pool.mage_burned.amount == 100

    def test_failed_buy_moves_nothing(self, service):
        """No excess means no ledger movement and no event."""
        service.ledger.fund("alice", [Coin("uusdc", 1000), Coin("amage", 100)])
        service.mint_by_swap(mint_msg(1000))
        before = service.ledger.balances_of("alice")

        with pytest.raises(BackingCoinInsufficientError):
            service.buy_backing(MsgBuyBacking(
                sender="alice", mage_in=Coin("amage", 10), backing_out_min=Coin("uusdc", 0)
            ))

        assert service.ledger.balances_of("alice") == before
        assert service.events.of_type(EVENT_BUY_BACKING) == []

    def test_sell_backing(self, service):
        """Reserve paid in during a deficit mints native token."""
        service.ledger.fund("alice", [Coin("uusdc", 1100)])
        service.mint_by_swap(mint_msg(1000))
        service.oracle.set_price("uusdc", "0.5")

        response = service.sell_backing(MsgSellBacking(
            sender="alice", backing_in=Coin("uusdc", 100), mage_out_min=Coin("amage", 25)
        ))

        assert response.mage_out == Coin("amage", 25)
        assert service.ledger.get_balance("alice", "amage").amount == 25
        assert service.ledger.get_supply("amage").amount == 25
        pool = service.store.get_pool_backing("uusdc")
        assert pool.backing.amount == 1100
        assert pool.mage_burned.amount == -25


class TestBlockLifecycle:
    """Tests for begin_block / end_block."""

    def test_height_cannot_go_backwards(self, service):
        """begin_block rejects a lower height."""
        service.begin_block(10)
        with pytest.raises(ValueError):
            service.begin_block(9)

    def test_end_block_without_adjuster(self, service):
        """Without an adjuster the ratio never changes."""
        service.begin_block(1)
        service.end_block()
        assert service.store.get_params().backing_ratio == Decimal("1")

    def test_end_block_runs_adjuster(self, make_service):
        """The installed adjuster sees the store and the height."""
        seen = []

        def adjuster(store, height):
            seen.append(height)
            params = store.get_params()
            store.set_params(params.model_copy(update={
                "backing_ratio": Decimal("0.9"),
                "backing_ratio_last_block": height,
            }))

        service = make_service(backing_ratio_adjuster=adjuster)
        service.begin_block(42)
        service.end_block()

        assert seen == [42]
        params = service.store.get_params()
        assert params.backing_ratio == Decimal("0.9")
        assert params.backing_ratio_last_block == 42

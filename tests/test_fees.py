"""Tests for fixed-point helpers, fee computation and price circuit breakers."""

import pytest
import sys
import os
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from stablemaker.config.schema import ChainSettings, MakerParams
from stablemaker.engine import fixed
from stablemaker.engine.coins import Coin, SignedCoin, coins_str
from stablemaker.engine.errors import MakerError, StablePriceTooHighError, StablePriceTooLowError
from stablemaker.engine.fees import (
    burn_price_upper_bound,
    check_burn_price_upper_bound,
    check_mint_price_lower_bound,
    compute_fee,
    mint_price_lower_bound,
)
from stablemaker.store.memory import StaticPriceOracle


class TestFixedPoint:
    """Tests for 18-place decimal arithmetic."""

    def test_floats_rejected(self):
        """Floats never enter fixed-point math."""
        with pytest.raises(TypeError):
            fixed.dec(0.1)

    def test_quotient_rounding_modes(self):
        """Round-up and truncating division differ in the last place."""
        up = fixed.quo_round_up(1, 3)
        down = fixed.quo_truncate(1, 3)
        assert up - down == fixed.QUANTUM
        assert str(down) == "0.333333333333333333"

    def test_round_int_half_up(self):
        """Halves round away from zero."""
        assert fixed.round_int(Decimal("2.5")) == 3
        assert fixed.round_int(Decimal("2.4999")) == 2

    def test_truncate_and_ceil(self):
        """Truncation drops the fraction, ceiling raises it."""
        assert fixed.truncate_int(Decimal("2.9")) == 2
        assert fixed.ceil_int(Decimal("2.1")) == 3
        assert fixed.ceil_int(Decimal("2")) == 2

    def test_256_bit_amounts(self):
        """The largest 256-bit amount keeps all 18 fractional places."""
        amount = 2 ** 256 - 1
        assert fixed.truncate_int(fixed.dec(amount)) == amount
        assert fixed.truncate_int(fixed.mul(amount, 1)) == amount

    def test_global_context_untouched(self):
        """Helpers do not leak their precision into the caller's context."""
        from decimal import getcontext
        prec = getcontext().prec
        fixed.mul(Decimal("1.5"), 3)
        assert getcontext().prec == prec


class TestCoins:
    """Tests for coin primitives."""

    def test_negative_coin_rejected(self):
        """Coins cannot go below zero."""
        with pytest.raises(ValueError):
            Coin("uusw", 5).sub(Coin("uusw", 6))

    def test_denom_mismatch_rejected(self):
        """Adding different denoms fails."""
        with pytest.raises(ValueError):
            Coin("uusw", 5).add(Coin("amage", 1))

    def test_signed_counter_can_go_negative(self):
        """Net counters track net burns as negative values."""
        counter = SignedCoin("amage", 10).sub(Coin("amage", 25))
        assert counter.amount == -15

    def test_coins_str_skips_zero(self):
        """Rendering drops zero coins and sorts by denom."""
        assert coins_str(Coin("uusdc", 5), Coin("amage", 0), Coin("uatom", 2)) == "2uatom,5uusdc"


class TestComputeFee:
    """Tests for proportional fees."""

    def test_fee_rounds_half_up(self):
        """0.5 of a unit rounds to 1."""
        fee = compute_fee(Coin("uusw", 100), Decimal("0.005"))
        assert fee == Coin("uusw", 1)

    def test_fee_exact(self):
        """Whole fees are exact."""
        assert compute_fee(Coin("uusw", 1000), Decimal("0.005")).amount == 5

    def test_missing_rate_is_free(self):
        """No rate configured means no fee."""
        assert compute_fee(Coin("uusw", 1000), None) == Coin("uusw", 0)

    def test_fee_keeps_denom(self):
        """Fee is charged in the coin's own denom."""
        assert compute_fee(Coin("uusdc", 400), Decimal("0.01")).denom == "uusdc"


class TestPriceBounds:
    """Tests for mint and burn circuit breakers."""

    def setup_method(self):
        self.chain = ChainSettings()
        self.params = MakerParams(mint_price_bias=Decimal("0.01"), burn_price_bias=Decimal("0.01"))

    def test_bounds(self):
        """Bounds are the target price shifted by the biases."""
        assert mint_price_lower_bound(self.chain, self.params) == Decimal("1.01")
        assert burn_price_upper_bound(self.chain, self.params) == Decimal("0.99")

    def test_mint_rejected_below_bound(self):
        """Minting at target price fails when the mint bias is positive."""
        oracle = StaticPriceOracle({"uusw": "1"})
        with pytest.raises(StablePriceTooLowError) as exc:
            check_mint_price_lower_bound(oracle, self.chain, self.params)
        assert exc.value.expected == Decimal("1.01")

    def test_mint_allowed_at_bound(self):
        """The bound itself is allowed."""
        oracle = StaticPriceOracle({"uusw": "1.01"})
        check_mint_price_lower_bound(oracle, self.chain, self.params)

    def test_burn_rejected_above_bound(self):
        """Burning at target price fails when the burn bias is positive."""
        oracle = StaticPriceOracle({"uusw": "1"})
        with pytest.raises(StablePriceTooHighError):
            check_burn_price_upper_bound(oracle, self.chain, self.params)

    def test_burn_allowed_below_bound(self):
        """Burning is allowed under the bound."""
        oracle = StaticPriceOracle({"uusw": "0.98"})
        check_burn_price_upper_bound(oracle, self.chain, self.params)

    def test_errors_share_base_class(self):
        """Bound violations are maker errors."""
        assert issubclass(StablePriceTooLowError, MakerError)

"""Coin primitives: non-negative balances and signed net counters."""

from dataclasses import dataclass
from decimal import Decimal

from .fixed import dec


@dataclass(frozen=True)
class Coin:
    """A non-negative integer amount of a single denomination."""
    denom: str
    amount: int = 0

    def __post_init__(self):
        if not self.denom:
            raise ValueError("coin denom must not be empty")
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise TypeError(f"coin amount must be int, got {type(self.amount).__name__}")
        if self.amount < 0:
            raise ValueError(f"negative coin amount: {self.amount}{self.denom}")

    def _check_denom(self, other: "Coin"):
        if other.denom != self.denom:
            raise ValueError(f"denom mismatch: {self.denom} vs {other.denom}")

    def add(self, other: "Coin") -> "Coin":
        self._check_denom(other)
        return Coin(self.denom, self.amount + other.amount)

    def sub(self, other: "Coin") -> "Coin":
        """Subtract; raises ValueError if the result would be negative."""
        self._check_denom(other)
        return Coin(self.denom, self.amount - other.amount)

    def add_amount(self, amount: int) -> "Coin":
        return Coin(self.denom, self.amount + amount)

    def sub_amount(self, amount: int) -> "Coin":
        return Coin(self.denom, self.amount - amount)

    def is_lt(self, other: "Coin") -> bool:
        self._check_denom(other)
        return self.amount < other.amount

    def is_positive(self) -> bool:
        return self.amount > 0

    def is_zero(self) -> bool:
        return self.amount == 0

    def to_dec(self) -> Decimal:
        return dec(self.amount)

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


@dataclass(frozen=True)
class SignedCoin:
    """Signed net counter of a denomination.

    Used for ``war_minted`` and ``mage_burned``: a negative value means the pool
    has net-burned stable units or net-minted native tokens.
    """
    denom: str
    amount: int = 0

    def __post_init__(self):
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise TypeError(f"counter amount must be int, got {type(self.amount).__name__}")

    def add_amount(self, amount: int) -> "SignedCoin":
        return SignedCoin(self.denom, self.amount + amount)

    def sub_amount(self, amount: int) -> "SignedCoin":
        return SignedCoin(self.denom, self.amount - amount)

    def add(self, coin: Coin) -> "SignedCoin":
        if coin.denom != self.denom:
            raise ValueError(f"denom mismatch: {self.denom} vs {coin.denom}")
        return self.add_amount(coin.amount)

    def sub(self, coin: Coin) -> "SignedCoin":
        if coin.denom != self.denom:
            raise ValueError(f"denom mismatch: {self.denom} vs {coin.denom}")
        return self.sub_amount(coin.amount)

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


def coins_str(*coins: Coin) -> str:
    """Render non-zero coins sorted by denom, comma separated."""
    return ",".join(str(c) for c in sorted(coins, key=lambda c: c.denom) if c.amount)

"""Error taxonomy for the maker engine.

All errors derive from :class:`MakerError`. Calculations raise them, the
orchestrator lets them propagate after rolling state back, and callers receive
them unchanged.
"""

from typing import Any, Optional


class MakerError(ValueError):
    """Base class for every engine failure."""

    default_message = "maker error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        actual: Any = None,
        expected: Any = None,
    ):
        self.actual = actual
        self.expected = expected
        text = message or self.default_message
        if actual is not None or expected is not None:
            text = f"{text} (actual={actual}, expected={expected})"
        super().__init__(text)


# Configuration errors

class ConfigurationError(MakerError):
    default_message = "configuration error"


class BackingCoinNotFoundError(ConfigurationError):
    default_message = "backing coin not found"


class BackingCoinDisabledError(ConfigurationError):
    default_message = "backing coin disabled"


class CollateralCoinNotFoundError(ConfigurationError):
    default_message = "collateral coin not found"


class CollateralCoinDisabledError(ConfigurationError):
    default_message = "collateral coin disabled"


class InvalidRiskParamsError(ConfigurationError):
    default_message = "invalid risk parameters"


class AccountNoCollateralError(ConfigurationError):
    default_message = "account has no collateral"


class InvalidAddressError(ConfigurationError):
    default_message = "invalid address"


class InvalidDenomError(ConfigurationError):
    default_message = "invalid denom"


# Oracle errors

class OracleError(MakerError):
    default_message = "oracle error"


class PriceUnavailableError(OracleError):
    default_message = "price unavailable"


# Bound violations

class BoundViolation(MakerError):
    default_message = "bound violation"


class StablePriceTooLowError(BoundViolation):
    default_message = "stable coin price too low"


class StablePriceTooHighError(BoundViolation):
    default_message = "stable coin price too high"


class OverSlippageError(BoundViolation):
    default_message = "over slippage"


class StableCeilingError(BoundViolation):
    default_message = "stable coin mint over ceiling"


class BackingCeilingError(BoundViolation):
    default_message = "backing over ceiling"


class CollateralCeilingError(BoundViolation):
    default_message = "collateral over ceiling"


class BackingCoinInsufficientError(BoundViolation):
    default_message = "backing coin insufficient"


class NativeCoinInsufficientError(BoundViolation):
    default_message = "native coin insufficient"


class CollateralCoinInsufficientError(BoundViolation):
    default_message = "collateral coin insufficient"


class InsufficientCollateralError(BoundViolation):
    default_message = "account collateral insufficient"


# Solvency errors

class SolvencyError(MakerError):
    default_message = "solvency error"


class AccountNoDebtError(SolvencyError):
    default_message = "account has no debt"


class NotUndercollateralizedError(SolvencyError):
    default_message = "position is not undercollateralized"


# Ledger errors

class LedgerError(MakerError):
    default_message = "ledger error"


class InsufficientFundsError(LedgerError):
    default_message = "insufficient funds"

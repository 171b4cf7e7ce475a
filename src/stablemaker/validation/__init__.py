"""Validation and sanity checks for maker state."""

from .sanity_checks import SanityChecker, ValidationWarning, validate_maker_state

__all__ = [
    "SanityChecker",
    "ValidationWarning",
    "validate_maker_state"
]

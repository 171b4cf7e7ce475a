"""Dual-mechanism stablecoin core: reserve-backed swaps and collateralized debt."""

__version__ = "0.1.0"

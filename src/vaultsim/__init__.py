"""Compounding vault simulation and invariant verification."""

__version__ = "0.3.0"

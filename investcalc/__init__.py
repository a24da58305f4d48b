"""Compound-interest investment projections with CSV schedule export."""

__version__ = "0.1.0"

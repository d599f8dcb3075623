"""Inventory service: products, stock adjustments and low-stock reporting."""

__version__ = "1.0.0"

"""Retail support and demand forecasting dashboard."""

__version__ = "1.0.0"

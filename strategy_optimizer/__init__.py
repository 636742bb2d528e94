"""Phased parameter optimizer for trading strategy backtests."""

__version__ = "0.1.0"

"""
Technical Analysis & Signal Engine

Normalizes price history, computes indicators and levels, votes a market
signal, estimates a price band and keeps one active analysis per symbol.
"""

__version__ = "0.1.0"

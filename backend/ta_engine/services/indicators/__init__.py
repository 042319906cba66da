"""
Indicator Engine Service

CONTRACT:
    Input:  PriceSeries (normalized OHLCV history)
    Output: IndicatorSnapshot, SupportResistance

RESPONSIBILITIES:
    - Clean raw bars into an ordered, deduplicated series
    - Calculate RSI, Stochastic, MACD, SMA/EMA, Bollinger, Fibonacci, Ichimoku
    - Detect swing and round-number support/resistance levels

PURE PYTHON - No LLM involvement.
Uses NumPy for calculations.
All math is deterministic and reproducible.
"""

from ta_engine.services.indicators.normalizer import clean_bars, normalize_series
from ta_engine.services.indicators.service import IndicatorService, get_indicator_service
from ta_engine.services.indicators.levels import detect_levels

__all__ = [
    "clean_bars",
    "normalize_series",
    "IndicatorService",
    "get_indicator_service",
    "detect_levels",
]

"""
Technical Analysis Schema Contracts

This module defines the data contracts between engine components.
"""

from ta_engine.schemas.market import (
    Granularity,
    RawBar,
    Quote,
    PricePoint,
    PriceSeries,
)
from ta_engine.schemas.indicators import (
    MarketSignal,
    LevelKind,
    RSIReading,
    StochasticReading,
    MACDReading,
    MovingAverages,
    BollingerBands,
    FibonacciLevels,
    IchimokuCloud,
    IndicatorReading,
    IndicatorSnapshot,
    Level,
    SupportResistance,
    SignalSummary,
)
from ta_engine.schemas.analysis import (
    AnalysisRequest,
    NarrativeSource,
    PriceTargets,
    NarrativeContext,
    Narrative,
    TechnicalAnalysisBundle,
)

__all__ = [
    # Market
    "Granularity",
    "RawBar",
    "Quote",
    "PricePoint",
    "PriceSeries",
    # Indicators
    "MarketSignal",
    "LevelKind",
    "RSIReading",
    "StochasticReading",
    "MACDReading",
    "MovingAverages",
    "BollingerBands",
    "FibonacciLevels",
    "IchimokuCloud",
    "IndicatorReading",
    "IndicatorSnapshot",
    "Level",
    "SupportResistance",
    "SignalSummary",
    # Analysis
    "AnalysisRequest",
    "NarrativeSource",
    "PriceTargets",
    "NarrativeContext",
    "Narrative",
    "TechnicalAnalysisBundle",
]

"""
CONTRACT 2: Indicator Engine

Input: PriceSeries
Output: IndicatorSnapshot, SupportResistance, SignalSummary

Each indicator kind has its own reading type. The snapshot holds at most one
reading per kind; an absent reading means the series could not support it.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

from ta_engine.schemas.market import Percent, Price


# =============================================================================
# ENUMS
# =============================================================================


class MarketSignal(str, Enum):
    """
    Oscillator zone, also used for the aggregate signal.

    As an aggregate, OVERSOLD is the buy signal and OVERBOUGHT the sell signal.
    """

    OVERBOUGHT = "OVERBOUGHT"
    OVERSOLD = "OVERSOLD"
    NEUTRAL = "NEUTRAL"


class LevelKind(str, Enum):
    SUPPORT = "support"
    RESISTANCE = "resistance"
    PSYCHOLOGICAL = "psychological"


# =============================================================================
# READINGS
# =============================================================================


class RSIReading(BaseModel):
    kind: Literal["rsi"] = "rsi"
    rsi: Percent = Field(..., ge=0, le=100)
    signal: MarketSignal


class StochasticReading(BaseModel):
    kind: Literal["stochastic"] = "stochastic"
    k: Percent = Field(..., ge=0, le=100)
    d: Percent = Field(..., ge=0, le=100)
    signal: MarketSignal


class MACDReading(BaseModel):
    kind: Literal["macd"] = "macd"
    macd: Price
    signal: Price
    histogram: Price


class MovingAverages(BaseModel):
    kind: Literal["moving_averages"] = "moving_averages"
    sma20: Price
    sma50: Price
    sma200: Price
    ema12: Price
    ema26: Price


class BollingerBands(BaseModel):
    kind: Literal["bollinger"] = "bollinger"
    upper: Price
    middle: Price
    lower: Price
    width: Price = Field(..., ge=0, description="upper - lower")


class FibonacciLevels(BaseModel):
    """Retracements measured from the period high down to the period low."""

    kind: Literal["fibonacci"] = "fibonacci"
    high: Price
    low: Price
    fib236: Price
    fib382: Price
    fib500: Price
    fib618: Price
    fib786: Price


class IchimokuCloud(BaseModel):
    kind: Literal["ichimoku"] = "ichimoku"
    tenkan_sen: Price
    kijun_sen: Price
    senkou_span_a: Price
    senkou_span_b: Price
    chikou_span: Price

    @property
    def cloud_top(self) -> float:
        return max(self.senkou_span_a, self.senkou_span_b)

    @property
    def cloud_bottom(self) -> float:
        return min(self.senkou_span_a, self.senkou_span_b)


IndicatorReading = Annotated[
    Union[
        RSIReading,
        StochasticReading,
        MACDReading,
        MovingAverages,
        BollingerBands,
        FibonacciLevels,
        IchimokuCloud,
    ],
    Field(discriminator="kind"),
]


class IndicatorSnapshot(BaseModel):
    """Latest reading of every indicator the series could support."""

    rsi: Optional[RSIReading] = None
    stochastic: Optional[StochasticReading] = None
    macd: Optional[MACDReading] = None
    moving_averages: Optional[MovingAverages] = None
    bollinger: Optional[BollingerBands] = None
    fibonacci: Optional[FibonacciLevels] = None
    ichimoku: Optional[IchimokuCloud] = None

    def readings(self) -> list[IndicatorReading]:
        """Present readings, in a fixed order."""
        candidates = [
            self.rsi,
            self.stochastic,
            self.macd,
            self.moving_averages,
            self.bollinger,
            self.fibonacci,
            self.ichimoku,
        ]
        return [r for r in candidates if r is not None]


# =============================================================================
# SUPPORT / RESISTANCE
# =============================================================================


class Level(BaseModel):
    """Price level corroborated by historical touches (or roundness)."""

    price: Price
    strength: int = Field(..., ge=1, le=5)
    kind: LevelKind
    touches: int = Field(..., ge=0)


class SupportResistance(BaseModel):
    """Three ranked level lists, strongest first."""

    support: list[Level] = Field(default_factory=list)
    resistance: list[Level] = Field(default_factory=list)
    psychological: list[Level] = Field(default_factory=list)

    @property
    def strongest_support(self) -> Optional[Level]:
        return max(self.support, key=lambda lvl: lvl.strength, default=None)

    @property
    def strongest_resistance(self) -> Optional[Level]:
        return max(self.resistance, key=lambda lvl: lvl.strength, default=None)


# =============================================================================
# AGGREGATE SIGNAL
# =============================================================================


class SignalSummary(BaseModel):
    """Vote tally behind the aggregate signal."""

    signal: MarketSignal = MarketSignal.NEUTRAL
    buy_votes: int = Field(default=0, ge=0)
    sell_votes: int = Field(default=0, ge=0)
    reasons: list[str] = Field(default_factory=list)

"""
Indicator Engine Service Implementation

Builds the latest reading of every indicator from a PriceSeries.
NO LLM INVOLVEMENT - Pure Python/NumPy calculations.
"""

import logging
from typing import Optional

from ta_engine.schemas.market import Granularity, PriceSeries
from ta_engine.schemas.indicators import (
    BollingerBands,
    FibonacciLevels,
    IchimokuCloud,
    IndicatorSnapshot,
    MACDReading,
    MarketSignal,
    MovingAverages,
    RSIReading,
    StochasticReading,
)
from ta_engine.services.indicators.calculations import (
    bollinger_bands,
    fibonacci_retracement,
    ichimoku,
    last_value,
    latest_ema,
    macd,
    rsi,
    stochastic,
    trailing_mean,
)

logger = logging.getLogger(__name__)

DEFAULT_FIBONACCI_PERIODS = {
    Granularity.DAILY: 252,
    Granularity.WEEKLY: 52,
    Granularity.MONTHLY: 12,
}


def classify_oscillator(value: float, upper: float, lower: float) -> MarketSignal:
    if value >= upper:
        return MarketSignal.OVERBOUGHT
    if value <= lower:
        return MarketSignal.OVERSOLD
    return MarketSignal.NEUTRAL


class IndicatorService:
    """
    Indicator Engine.

    Stateless apart from its periods; every method returns the reading at the
    latest bar, or None when the series cannot support the indicator.
    """

    def __init__(
        self,
        rsi_period: int = 14,
        stoch_k_period: int = 14,
        stoch_d_period: int = 3,
        bollinger_period: int = 20,
        bollinger_std: float = 2.0,
        fibonacci_periods: Optional[dict] = None,
    ):
        self.rsi_period = rsi_period
        self.stoch_k_period = stoch_k_period
        self.stoch_d_period = stoch_d_period
        self.bollinger_period = bollinger_period
        self.bollinger_std = bollinger_std
        self.fibonacci_periods = {
            Granularity(k): v
            for k, v in (fibonacci_periods or DEFAULT_FIBONACCI_PERIODS).items()
        }

    @property
    def name(self) -> str:
        return "IndicatorService"

    def calculate(self, series: PriceSeries) -> IndicatorSnapshot:
        """Calculate all indicators for a single series."""
        snapshot = IndicatorSnapshot(
            rsi=self.calculate_rsi(series),
            stochastic=self.calculate_stochastic(series),
            macd=self.calculate_macd(series),
            moving_averages=self.calculate_moving_averages(series),
            bollinger=self.calculate_bollinger(series),
            fibonacci=self.calculate_fibonacci(series),
            ichimoku=self.calculate_ichimoku(series),
        )
        missing = 7 - len(snapshot.readings())
        if missing:
            logger.debug(
                f"{series.symbol}: {missing} indicators unavailable for {len(series)} bars"
            )
        return snapshot

    def calculate_rsi(self, series: PriceSeries) -> Optional[RSIReading]:
        value = last_value(rsi(series.closes, self.rsi_period))
        if value is None:
            return None
        return RSIReading(rsi=value, signal=classify_oscillator(value, 70, 30))

    def calculate_stochastic(self, series: PriceSeries) -> Optional[StochasticReading]:
        k_arr, d_arr = stochastic(
            series.highs,
            series.lows,
            series.closes,
            self.stoch_k_period,
            self.stoch_d_period,
        )
        k_val = last_value(k_arr)
        d_val = last_value(d_arr)
        if k_val is None or d_val is None:
            return None

        if k_val >= 80 and d_val >= 80:
            signal = MarketSignal.OVERBOUGHT
        elif k_val <= 20 and d_val <= 20:
            signal = MarketSignal.OVERSOLD
        else:
            signal = MarketSignal.NEUTRAL

        return StochasticReading(k=k_val, d=d_val, signal=signal)

    def calculate_macd(self, series: PriceSeries) -> Optional[MACDReading]:
        macd_line, signal_line, histogram = macd(series.closes, 12, 26, 9)
        macd_val = last_value(macd_line)
        signal_val = last_value(signal_line)
        if macd_val is None or signal_val is None:
            return None
        return MACDReading(
            macd=macd_val, signal=signal_val, histogram=last_value(histogram)
        )

    def calculate_moving_averages(self, series: PriceSeries) -> Optional[MovingAverages]:
        closes = series.closes
        if len(closes) == 0:
            return None
        return MovingAverages(
            sma20=trailing_mean(closes, 20),
            sma50=trailing_mean(closes, 50),
            sma200=trailing_mean(closes, 200),
            ema12=latest_ema(closes, 12),
            ema26=latest_ema(closes, 26),
        )

    def calculate_bollinger(self, series: PriceSeries) -> Optional[BollingerBands]:
        upper, middle, lower, width = bollinger_bands(
            series.closes, self.bollinger_period, self.bollinger_std
        )
        middle_val = last_value(middle)
        if middle_val is None:
            return None
        return BollingerBands(
            upper=last_value(upper),
            middle=middle_val,
            lower=last_value(lower),
            width=last_value(width),
        )

    def calculate_fibonacci(self, series: PriceSeries) -> Optional[FibonacciLevels]:
        period = self.fibonacci_periods.get(series.granularity, 12)
        levels = fibonacci_retracement(series.highs, series.lows, period)
        if levels is None:
            return None
        return FibonacciLevels(**levels)

    def calculate_ichimoku(self, series: PriceSeries) -> Optional[IchimokuCloud]:
        cloud = ichimoku(series.highs, series.lows, series.closes)
        if cloud is None:
            return None
        return IchimokuCloud(**cloud)


# Singleton instance
_service_instance: Optional[IndicatorService] = None


def get_indicator_service() -> IndicatorService:
    """Get or create indicator service instance."""
    global _service_instance
    if _service_instance is None:
        from ta_engine.core.config import settings

        _service_instance = IndicatorService(fibonacci_periods=settings.fibonacci_periods)
    return _service_instance

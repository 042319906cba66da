"""
Technical Indicator Calculations

Pure Python/NumPy implementations of technical indicators.
NO LLM INVOLVEMENT - All math is deterministic.
"""

import numpy as np
from typing import Optional

FIBONACCI_RATIOS = (0.236, 0.382, 0.5, 0.618, 0.786)


# =============================================================================
# MOVING AVERAGES
# =============================================================================


def sma(data: np.ndarray, period: int) -> np.ndarray:
    """Simple Moving Average."""
    if len(data) < period:
        return np.full(len(data), np.nan)

    result = np.full(len(data), np.nan)
    for i in range(period - 1, len(data)):
        result[i] = np.mean(data[i - period + 1 : i + 1])
    return result


def ema(data: np.ndarray, period: int) -> np.ndarray:
    """Exponential Moving Average."""
    if len(data) < period:
        return np.full(len(data), np.nan)

    result = np.full(len(data), np.nan)
    multiplier = 2 / (period + 1)

    # Start with SMA
    result[period - 1] = np.mean(data[:period])

    for i in range(period, len(data)):
        result[i] = (data[i] - result[i - 1]) * multiplier + result[i - 1]

    return result


def trailing_mean(data: np.ndarray, period: int) -> Optional[float]:
    """Mean of the last `period` values, or of all of them when fewer exist."""
    if len(data) == 0:
        return None
    return float(np.mean(data[-period:]))


def latest_ema(data: np.ndarray, period: int) -> Optional[float]:
    """Latest EMA value; falls back to the plain mean on short series."""
    if len(data) == 0:
        return None
    if len(data) < period:
        return float(np.mean(data))
    return get_last_valid(ema(data, period))


# =============================================================================
# MOMENTUM INDICATORS
# =============================================================================


def rsi(closes: np.ndarray, period: int = 14) -> np.ndarray:
    """Relative Strength Index (Wilder smoothing)."""
    if len(closes) < period + 1:
        return np.full(len(closes), np.nan)

    deltas = np.diff(closes)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = np.mean(gains[:period])
    avg_loss = np.mean(losses[:period])

    result = np.full(len(closes), np.nan)
    result[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result[i + 1] = _rsi_value(avg_gain, avg_loss)

    return result


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def stochastic(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    k_period: int = 14,
    d_period: int = 3,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Stochastic Oscillator.

    Windows with zero high-low range yield NaN.

    Returns: (k, d)
    """
    if len(closes) < k_period:
        return np.full(len(closes), np.nan), np.full(len(closes), np.nan)

    k = np.full(len(closes), np.nan)

    for i in range(k_period - 1, len(closes)):
        highest_high = np.max(highs[i - k_period + 1 : i + 1])
        lowest_low = np.min(lows[i - k_period + 1 : i + 1])

        if highest_high > lowest_low:
            k[i] = ((closes[i] - lowest_low) / (highest_high - lowest_low)) * 100

    d = sma(k, d_period)

    return k, d


def macd(
    closes: np.ndarray,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    MACD (Moving Average Convergence Divergence).

    The MACD line starts where the slow EMA starts; the signal line is the
    EMA of the valid part of the MACD line.

    Returns: (macd_line, signal_line, histogram)
    """
    fast_ema = ema(closes, fast_period)
    slow_ema = ema(closes, slow_period)

    macd_line = fast_ema - slow_ema

    signal_line = np.full(len(closes), np.nan)
    start = slow_period - 1
    if len(closes) > start:
        signal_line[start:] = ema(macd_line[start:], signal_period)

    histogram = macd_line - signal_line

    return macd_line, signal_line, histogram


# =============================================================================
# VOLATILITY INDICATORS
# =============================================================================


def bollinger_bands(
    closes: np.ndarray, period: int = 20, std_dev: float = 2.0
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Bollinger Bands (population standard deviation).

    Returns: (upper, middle, lower, width)
    """
    middle = sma(closes, period)

    std = np.full(len(closes), np.nan)
    for i in range(period - 1, len(closes)):
        std[i] = np.std(closes[i - period + 1 : i + 1])

    upper = middle + (std_dev * std)
    lower = middle - (std_dev * std)

    return upper, middle, lower, upper - lower


# =============================================================================
# RETRACEMENTS / CLOUD
# =============================================================================


def fibonacci_retracement(
    highs: np.ndarray, lows: np.ndarray, period: int = 12
) -> Optional[dict]:
    """
    Fibonacci retracement levels over the trailing `period` bars.

    Returns None with fewer than 2 bars or a zero range.
    """
    if len(highs) < 2:
        return None

    high = float(np.max(highs[-period:]))
    low = float(np.min(lows[-period:]))
    span = high - low
    if span <= 0:
        return None

    levels = {"high": high, "low": low}
    for ratio in FIBONACCI_RATIOS:
        key = f"fib{int(round(ratio * 1000))}"
        levels[key] = high - span * ratio
    return levels


def midpoint(highs: np.ndarray, lows: np.ndarray, period: int) -> Optional[float]:
    """Midpoint of the highest high and lowest low over the trailing window."""
    if len(highs) < period:
        return None
    return float((np.max(highs[-period:]) + np.min(lows[-period:])) / 2)


def ichimoku(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    tenkan_period: int = 9,
    kijun_period: int = 26,
    senkou_b_period: int = 52,
) -> Optional[dict]:
    """
    Ichimoku Cloud components at the latest bar.

    Requires `senkou_b_period` bars; returns None below that.
    """
    if len(closes) < senkou_b_period:
        return None

    tenkan = midpoint(highs, lows, tenkan_period)
    kijun = midpoint(highs, lows, kijun_period)

    return {
        "tenkan_sen": tenkan,
        "kijun_sen": kijun,
        "senkou_span_a": (tenkan + kijun) / 2,
        "senkou_span_b": midpoint(highs, lows, senkou_b_period),
        "chikou_span": float(closes[-1]),
    }


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_last_valid(arr: np.ndarray) -> Optional[float]:
    """Get last non-NaN value from array."""
    valid = arr[~np.isnan(arr)]
    return float(valid[-1]) if len(valid) > 0 else None


def last_value(arr: np.ndarray) -> Optional[float]:
    """Value at the latest index, or None when it is NaN or missing."""
    if len(arr) == 0 or np.isnan(arr[-1]):
        return None
    return float(arr[-1])

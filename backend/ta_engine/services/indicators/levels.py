"""
Support/Resistance Detection

Combines clustered swing highs/lows with psychological (round-number) levels.
Every call starts from scratch; stored levels are never mutated.
"""

import math
from typing import Optional

import numpy as np

from ta_engine.schemas.market import PriceSeries
from ta_engine.schemas.indicators import Level, LevelKind, SupportResistance

PSYCHOLOGICAL_MULTIPLIERS = (0.5, 1, 1.5, 2, 2.5, 5, 10, 15, 20, 25, 50, 75, 100)
MAX_LEVELS = 5


def find_swing_points(
    highs: np.ndarray, lows: np.ndarray, radius: int = 2
) -> tuple[list[float], list[float]]:
    """
    Local maxima of highs and minima of lows within +/- `radius` bars.

    Returns: (swing_highs, swing_lows)
    """
    swing_highs = []
    swing_lows = []

    for i in range(radius, len(highs) - radius):
        window_highs = highs[i - radius : i + radius + 1]
        window_lows = lows[i - radius : i + radius + 1]
        if highs[i] == np.max(window_highs) and highs[i] > np.min(window_highs):
            swing_highs.append(float(highs[i]))
        if lows[i] == np.min(window_lows) and lows[i] < np.max(window_lows):
            swing_lows.append(float(lows[i]))

    return swing_highs, swing_lows


def cluster_prices(prices: list[float], tolerance: float) -> list[float]:
    """Merge prices lying within `tolerance` (relative) of a running cluster mean."""
    clusters: list[list[float]] = []
    for price in sorted(prices):
        if clusters:
            center = float(np.mean(clusters[-1]))
            if abs(price - center) / center <= tolerance:
                clusters[-1].append(price)
                continue
        clusters.append([price])
    return [float(np.mean(c)) for c in clusters]


def count_touches(
    level: float, highs: np.ndarray, lows: np.ndarray, tolerance: float
) -> int:
    """Bars whose high or low came within `tolerance` of the level."""
    band = level * tolerance
    near_high = np.abs(highs - level) <= band
    near_low = np.abs(lows - level) <= band
    return int(np.sum(near_high | near_low))


def _rank(levels: list[Level], current_price: float) -> list[Level]:
    ranked = sorted(
        levels, key=lambda lvl: (-lvl.strength, abs(lvl.price - current_price))
    )
    return ranked[:MAX_LEVELS]


def detect_support_resistance(
    series: PriceSeries,
    current_price: float,
    lookback: int = 20,
    tolerance: float = 0.015,
    min_touches: int = 2,
    max_distance: float = 0.5,
    swing_radius: int = 2,
) -> tuple[list[Level], list[Level]]:
    """
    Clustered swing levels over the trailing `lookback` bars.

    Levels above the current price are resistance, the rest support.

    Returns: (support, resistance)
    """
    highs = series.highs[-lookback:]
    lows = series.lows[-lookback:]
    if len(highs) < 2 * swing_radius + 1 or current_price <= 0:
        return [], []

    swing_highs, swing_lows = find_swing_points(highs, lows, swing_radius)

    support = []
    resistance = []
    for price in cluster_prices(swing_highs + swing_lows, tolerance):
        if abs(price - current_price) / current_price > max_distance:
            continue
        touches = count_touches(price, highs, lows, tolerance)
        if touches < min_touches:
            continue

        kind = LevelKind.RESISTANCE if price > current_price else LevelKind.SUPPORT
        level = Level(
            price=price, strength=min(MAX_LEVELS, touches), kind=kind, touches=touches
        )
        (resistance if kind == LevelKind.RESISTANCE else support).append(level)

    return _rank(support, current_price), _rank(resistance, current_price)


def _is_multiple(value: float, base: float) -> bool:
    return math.isclose(value % base, 0.0, abs_tol=1e-9)


def detect_psychological_levels(
    current_price: float, price_range: float = 0.3
) -> list[Level]:
    """
    Round-number levels within `price_range` of the current price.

    Strength grows with roundness and proximity; touches are always 0.
    """
    if current_price <= 0:
        return []

    magnitude = 10 ** math.floor(math.log10(current_price))
    levels = []

    for multiplier in PSYCHOLOGICAL_MULTIPLIERS:
        price = magnitude * multiplier
        distance = abs(price - current_price) / current_price
        if distance > price_range:
            continue

        strength = 3
        if _is_multiple(multiplier, 1):
            strength += 1
        if _is_multiple(multiplier, 5):
            strength += 1
        if _is_multiple(multiplier, 10):
            strength += 1
        if distance < 0.05:
            strength += 1
        if distance < 0.02:
            strength += 1

        levels.append(
            Level(
                price=round(price, 2),
                strength=min(MAX_LEVELS, strength),
                kind=LevelKind.PSYCHOLOGICAL,
                touches=0,
            )
        )

    return _rank(levels, current_price)


def detect_levels(
    series: PriceSeries,
    current_price: Optional[float] = None,
    lookback: int = 20,
    tolerance: float = 0.015,
) -> SupportResistance:
    """Support, resistance and psychological levels around the current price."""
    if current_price is None:
        current_price = series.last_close or 0.0

    support, resistance = detect_support_resistance(
        series, current_price, lookback=lookback, tolerance=tolerance
    )

    return SupportResistance(
        support=support,
        resistance=resistance,
        psychological=detect_psychological_levels(current_price),
    )

"""
PriceSeries Normalizer

Turns raw upstream bars into a clean PriceSeries:
- drops bars without a usable close
- synthesizes missing open/high/low from close (monthly aggregates)
- keeps the latest bar per calendar period
- sorts ascending
"""

import logging
import math
from datetime import date, datetime
from typing import Iterable, Optional

from ta_engine.schemas.market import Granularity, PricePoint, PriceSeries, RawBar
from ta_engine.services.base import InsufficientDataError

logger = logging.getLogger(__name__)

# Longest lookback of any indicator (Ichimoku senkou span B needs 52).
DEFAULT_MIN_BARS = 50


def _usable(value: Optional[float]) -> bool:
    return value is not None and not math.isnan(value) and value > 0


def _period_key(day: date, granularity: Granularity) -> tuple:
    if granularity == Granularity.MONTHLY:
        return (day.year, day.month)
    if granularity == Granularity.WEEKLY:
        iso = day.isocalendar()
        return (iso[0], iso[1])
    return (day.year, day.month, day.day)


def _sort_key(bar_date) -> datetime:
    if isinstance(bar_date, datetime):
        return bar_date.replace(tzinfo=None)
    return datetime(bar_date.year, bar_date.month, bar_date.day)


def _to_point(bar: RawBar) -> Optional[PricePoint]:
    """Clean a single bar, or None when it has no usable close."""
    close = bar.close
    if not _usable(close):
        return None

    open_ = bar.open if _usable(bar.open) else close
    high = bar.high if _usable(bar.high) else close
    low = bar.low if _usable(bar.low) else close

    volume = bar.volume
    if volume is None or math.isnan(volume) or volume < 0:
        volume = 0.0

    day = bar.date.date() if isinstance(bar.date, datetime) else bar.date
    return PricePoint(
        date=day,
        open=open_,
        high=max(high, open_, close),
        low=min(low, open_, close),
        close=close,
        volume=volume,
    )


def clean_bars(
    raw_bars: Iterable[RawBar],
    granularity: Granularity = Granularity.MONTHLY,
) -> list[PricePoint]:
    """
    Clean and deduplicate bars without enforcing a minimum length.

    When several bars share a calendar period, the chronologically latest
    one wins (later input order breaks exact timestamp ties).
    """
    latest: dict[tuple, tuple[datetime, PricePoint]] = {}
    dropped = 0

    for bar in raw_bars:
        point = _to_point(bar)
        if point is None:
            dropped += 1
            logger.debug(f"Dropping bar {bar.date}: unusable close {bar.close!r}")
            continue

        key = _period_key(point.date, granularity)
        stamp = _sort_key(bar.date)
        current = latest.get(key)
        if current is None or stamp >= current[0]:
            latest[key] = (stamp, point)

    if dropped:
        logger.info(f"Dropped {dropped} bars without a valid close")

    return [point for _, point in sorted(latest.values(), key=lambda item: item[0])]


def normalize_series(
    symbol: str,
    raw_bars: Iterable[RawBar],
    granularity: Granularity = Granularity.MONTHLY,
    min_bars: int = DEFAULT_MIN_BARS,
) -> PriceSeries:
    """
    Build a PriceSeries from raw bars.

    Raises:
        InsufficientDataError: fewer than `min_bars` bars survive cleaning
    """
    points = clean_bars(raw_bars, granularity)

    if len(points) < min_bars:
        raise InsufficientDataError(
            "Normalizer",
            f"{symbol}: {len(points)} usable bars, need {min_bars}",
            {"symbol": symbol, "bars": len(points), "required": min_bars},
        )

    return PriceSeries(symbol=symbol, granularity=granularity, points=tuple(points))

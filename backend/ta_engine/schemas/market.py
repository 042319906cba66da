"""
CONTRACT 1: Price Data

Input: RawBar (whatever the price store hands over)
Output: PriceSeries

Raw bars are cleaned by the normalizer into immutable PricePoints.
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Optional, Union

import numpy as np
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    SerializationInfo,
    model_validator,
)


# =============================================================================
# DISPLAY ROUNDING
# =============================================================================

# Values are kept at full precision in memory and rounded when serialized.
# Dumping with context={FULL_PRECISION: True} skips the rounding (storage).
FULL_PRECISION = "full_precision"


def _rounder(digits: int):
    def serialize(value: float, info: SerializationInfo) -> float:
        if info.context and info.context.get(FULL_PRECISION):
            return value
        return round(value, digits)

    return serialize


Price = Annotated[float, PlainSerializer(_rounder(4), return_type=float)]
Percent = Annotated[float, PlainSerializer(_rounder(2), return_type=float)]


# =============================================================================
# ENUMS
# =============================================================================


class Granularity(str, Enum):
    DAILY = "1d"
    WEEKLY = "1wk"
    MONTHLY = "1mo"


# =============================================================================
# INPUT: RawBar
# =============================================================================


class RawBar(BaseModel):
    """
    Single bar as stored upstream.

    Monthly aggregates frequently carry open/high/low = 0 with a valid close,
    and any field may be missing.
    """

    date: Union[datetime, date]
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    close: Optional[float] = None
    volume: Optional[float] = None


class Quote(BaseModel):
    """Latest price for an instrument."""

    price: float = Field(..., gt=0)
    as_of: datetime
    source: str = "unknown"


# =============================================================================
# OUTPUT: PriceSeries
# =============================================================================


class PricePoint(BaseModel):
    """Single cleaned OHLCV observation."""

    model_config = ConfigDict(frozen=True)

    date: date
    open: float
    high: float
    low: float
    close: float = Field(..., gt=0)
    volume: float = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_ranges(self) -> "PricePoint":
        if not (self.low <= self.open <= self.high):
            raise ValueError(f"open {self.open} outside [{self.low}, {self.high}]")
        if not (self.low <= self.close <= self.high):
            raise ValueError(f"close {self.close} outside [{self.low}, {self.high}]")
        return self


class PriceSeries(BaseModel):
    """
    Ordered, deduplicated price history for one instrument.

    Points are strictly ascending by date with at most one point per
    calendar period of the series granularity.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    granularity: Granularity = Granularity.MONTHLY
    points: tuple[PricePoint, ...] = ()

    @model_validator(mode="after")
    def _check_order(self) -> "PriceSeries":
        for prev, cur in zip(self.points, self.points[1:]):
            if cur.date <= prev.date:
                raise ValueError(f"points not strictly ascending at {cur.date}")
        return self

    def __len__(self) -> int:
        return len(self.points)

    @property
    def highs(self) -> np.ndarray:
        return np.array([p.high for p in self.points], dtype=float)

    @property
    def lows(self) -> np.ndarray:
        return np.array([p.low for p in self.points], dtype=float)

    @property
    def closes(self) -> np.ndarray:
        return np.array([p.close for p in self.points], dtype=float)

    @property
    def last_close(self) -> Optional[float]:
        return self.points[-1].close if self.points else None


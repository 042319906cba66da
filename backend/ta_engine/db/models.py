"""
SQLAlchemy models for the analysis engine database.

Uses SQLite for local persistence of:
- Historical bars (daily/weekly/monthly)
- Daily quotes (latest price per day)
- Technical analysis bundles (one active per symbol, the rest history)

Timestamps are stored as naive UTC.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Float,
    Integer,
    Date,
    DateTime,
    Boolean,
    Text,
    Index,
    JSON,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """Naive UTC now, matching the stored column format."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_naive_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class HistoricalPrice(Base):
    """
    OHLCV bars per symbol and interval.
    Monthly rows often carry open/high/low = 0; the normalizer repairs them.
    """
    __tablename__ = "historical_prices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String(20), nullable=False)
    date = Column(Date, nullable=False)
    interval = Column(String(5), nullable=False, default="1mo")  # 1d, 1wk, 1mo

    open = Column(Float, nullable=True)
    high = Column(Float, nullable=True)
    low = Column(Float, nullable=True)
    close = Column(Float, nullable=True)
    volume = Column(Float, nullable=True)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("symbol", "date", "interval", name="uq_historical_symbol_date_interval"),
        Index("ix_historical_symbol_interval_date", "symbol", "interval", "date"),
    )


class DailyQuote(Base):
    """
    End-of-day (or latest intraday) price for a symbol.
    The newest row is the current quote.
    """
    __tablename__ = "daily_quotes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String(20), nullable=False)
    price = Column(Float, nullable=False)
    as_of = Column(DateTime, nullable=False)
    source = Column(String(20), default="unknown")

    __table_args__ = (
        Index("ix_daily_quotes_symbol_as_of", "symbol", "as_of"),
    )


class TechnicalAnalysisRecord(Base):
    """
    Stored technical analysis bundle.

    Summary columns are for querying; the full bundle lives in `payload`.
    At most one row per symbol has is_active = true.
    """
    __tablename__ = "technical_analyses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    symbol = Column(String(20), nullable=False, index=True)
    granularity = Column(String(5), nullable=False, default="1mo")

    # Summary
    signal = Column(String(20), nullable=False)  # OVERBOUGHT, OVERSOLD, NEUTRAL
    current_price = Column(Float, nullable=False)
    min_price = Column(Float, nullable=False)
    max_price = Column(Float, nullable=False)
    fair_entry_price = Column(Float, nullable=False)
    confidence = Column(Float, nullable=False)
    analysis = Column(Text, nullable=True)
    bars_used = Column(Integer, nullable=False, default=0)

    # Full bundle (indicators, levels, signal, targets)
    payload = Column(JSON, nullable=False)

    calculated_at = Column(DateTime, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index(
            "uq_technical_analyses_active_symbol",
            "symbol",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

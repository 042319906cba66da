"""
Database connection and session management.

Uses SQLite with aiosqlite for async support.
"""

import os
import logging
from datetime import datetime
from typing import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ta_engine.db.models import (
    Base,
    DailyQuote,
    HistoricalPrice,
    TechnicalAnalysisRecord,
    to_naive_utc,
)
from ta_engine.core.config import settings
from ta_engine.schemas.market import Granularity, Quote, RawBar

logger = logging.getLogger(__name__)

# Database path - create data directory if needed
DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "data")

# SQLite database URL
SQLITE_PATH = settings.sqlite_path or os.path.join(DATA_DIR, "ta_engine.db")
DATABASE_URL = f"sqlite+aiosqlite:///{SQLITE_PATH}"

# Create async engine
# Note: SQLite requires check_same_thread=False for async
engine = create_async_engine(
    DATABASE_URL,
    echo=False,  # Set to True for SQL debugging
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_db() -> None:
    """
    Initialize the database - create all tables.
    Called before the first analysis run.
    """
    try:
        os.makedirs(os.path.dirname(SQLITE_PATH) or ".", exist_ok=True)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Database initialized at: {SQLITE_PATH}")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
    logger.info("Database connections closed")


# CRUD helper functions

def _as_date(value):
    return value.date() if isinstance(value, datetime) else value


async def upsert_historical_prices(
    session: AsyncSession,
    symbol: str,
    bars: Iterable[RawBar],
    interval: Granularity = Granularity.MONTHLY,
) -> int:
    """
    Insert or update bars keyed by (symbol, date, interval).
    Re-running with the same bars leaves the table unchanged.
    """
    rows = [
        {
            "symbol": symbol.upper(),
            "date": _as_date(bar.date),
            "interval": interval.value,
            "open": bar.open,
            "high": bar.high,
            "low": bar.low,
            "close": bar.close,
            "volume": bar.volume,
        }
        for bar in bars
    ]
    if not rows:
        return 0

    stmt = sqlite_insert(HistoricalPrice).values(rows)
    stmt = stmt.on_conflict_do_update(
        index_elements=["symbol", "date", "interval"],
        set_={
            "open": stmt.excluded.open,
            "high": stmt.excluded.high,
            "low": stmt.excluded.low,
            "close": stmt.excluded.close,
            "volume": stmt.excluded.volume,
        },
    )
    await session.execute(stmt)
    await session.flush()
    return len(rows)


async def add_daily_quote(session: AsyncSession, symbol: str, quote: Quote) -> DailyQuote:
    """Store a quote as the newest daily price."""
    row = DailyQuote(
        symbol=symbol.upper(),
        price=quote.price,
        as_of=to_naive_utc(quote.as_of),
        source=quote.source,
    )
    session.add(row)
    await session.flush()
    return row


async def get_analysis_history(
    session: AsyncSession, symbol: str, limit: int = 20
) -> Sequence[TechnicalAnalysisRecord]:
    """Stored analyses for a symbol, newest first, active and inactive."""
    result = await session.execute(
        select(TechnicalAnalysisRecord)
        .where(TechnicalAnalysisRecord.symbol == symbol.upper())
        .order_by(TechnicalAnalysisRecord.calculated_at.desc())
        .limit(limit)
    )
    return result.scalars().all()

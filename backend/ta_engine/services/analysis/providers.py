"""
Price collaborators backed by SQLite and the Redis price cache.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ta_engine.db.models import DailyQuote, HistoricalPrice, from_naive_utc
from ta_engine.schemas.market import Granularity, Quote, RawBar
from ta_engine.services.base import CircuitBreaker, PersistenceError, ServiceError
from ta_engine.services.cache.redis_client import PriceCache
from ta_engine.services.collaborators import CurrentQuoteProvider, PriceHistoryProvider

logger = logging.getLogger(__name__)


class SqlPriceHistoryProvider(PriceHistoryProvider):
    """Bars from the historical_prices table, unsorted."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_bars(
        self, symbol: str, granularity: Granularity = Granularity.MONTHLY
    ) -> list[RawBar]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(HistoricalPrice).where(
                        HistoricalPrice.symbol == symbol.upper(),
                        HistoricalPrice.interval == granularity.value,
                    )
                )
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read history for {symbol}: {e}")
            raise PersistenceError("PriceHistory", f"Could not read history for {symbol}") from e

        return [
            RawBar(
                date=row.date,
                open=row.open,
                high=row.high,
                low=row.low,
                close=row.close,
                volume=row.volume,
            )
            for row in rows
        ]


class SqlQuoteProvider(CurrentQuoteProvider):
    """Most recent daily_quotes row for the symbol."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_latest_price(self, symbol: str) -> Optional[Quote]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(DailyQuote)
                    .where(DailyQuote.symbol == symbol.upper())
                    .order_by(DailyQuote.as_of.desc())
                    .limit(1)
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read quote for {symbol}: {e}")
            raise PersistenceError("QuoteProvider", f"Could not read quote for {symbol}") from e

        if row is None or not row.price or row.price <= 0:
            return None
        return Quote(price=row.price, as_of=from_naive_utc(row.as_of), source=row.source or "db")


class CachedQuoteProvider(CurrentQuoteProvider):
    """
    Price cache in front of another quote provider.

    Upstream failures trip a per-instance circuit breaker. A failed or
    short-circuited upstream raises PersistenceError; only a quote the
    upstream does not have comes back as None.
    """

    def __init__(
        self,
        upstream: CurrentQuoteProvider,
        cache: Optional[PriceCache] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.upstream = upstream
        self.cache = cache or PriceCache()
        self.breaker = breaker or CircuitBreaker()

    async def get_latest_price(self, symbol: str) -> Optional[Quote]:
        cached = await self.cache.get_quote(symbol)
        if cached is not None:
            logger.debug(f"Quote cache hit for {symbol}: {cached.price}")
            return cached

        if not self.breaker.allow():
            logger.warning(f"Quote upstream circuit open, no price for {symbol}")
            raise PersistenceError(
                "QuoteProvider", f"Quote source unavailable for {symbol}", {"circuit": "open"}
            )

        try:
            quote = await self.upstream.get_latest_price(symbol)
        except ServiceError:
            self.breaker.record_failure()
            raise
        except Exception as e:
            self.breaker.record_failure()
            logger.error(f"Quote upstream failed for {symbol}: {e}")
            raise PersistenceError(
                "QuoteProvider", f"Could not read quote for {symbol}"
            ) from e

        self.breaker.record_success()
        if quote is not None:
            await self.cache.set_quote(symbol, quote)
        return quote

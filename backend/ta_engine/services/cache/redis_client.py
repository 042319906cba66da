"""
Redis cache client for last traded prices.

Keeps the latest quote per symbol so repeated analyses do not hit the
price store. Falls back to a per-instance in-memory dict when Redis is down.
"""

import json
import logging
import time
from typing import Callable, Dict, Optional, Tuple

import redis.asyncio as redis

from ta_engine.core.config import settings
from ta_engine.schemas.market import Quote

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_pool: Optional[redis.Redis] = None


async def init_redis() -> Optional[redis.Redis]:
    """
    Initialize Redis connection pool.
    Returns None when Redis is unreachable.
    """
    global _redis_pool

    if _redis_pool is not None:
        return _redis_pool

    try:
        _redis_pool = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        await _redis_pool.ping()
        logger.info(f"Redis connected: {settings.redis_url}")
        return _redis_pool
    except Exception as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory fallback.")
        _redis_pool = None
        return None


async def close_redis() -> None:
    """Close Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.aclose()
        _redis_pool = None
        logger.info("Redis connection closed")


class PriceCache:
    """
    Redis-based cache for the latest price of each symbol.

    Keys (both expire after `quote_ttl` seconds):
    - ltp:{symbol} → float (Last Traded Price)
    - quote:{symbol} → JSON {price, as_of, source}
    """

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        quote_ttl: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._redis = redis_client
        self.quote_ttl = quote_ttl
        self._clock = clock
        # key -> (value, expires_at on self._clock)
        self._memory_cache: Dict[str, Tuple[str, float]] = {}

    @property
    def redis(self) -> Optional[redis.Redis]:
        return self._redis or _redis_pool

    def _memory_get(self, key: str) -> Optional[str]:
        entry = self._memory_cache.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._memory_cache[key]
            return None
        return value

    def _memory_set(self, key: str, value: str):
        self._memory_cache[key] = (value, self._clock() + self.quote_ttl)

    async def _get(self, key: str) -> Optional[str]:
        if self.redis:
            try:
                return await self.redis.get(key)
            except Exception as e:
                logger.debug(f"Redis get {key} failed: {e}")
        return self._memory_get(key)

    async def _set(self, key: str, value: str) -> None:
        if self.redis:
            try:
                await self.redis.set(key, value, ex=self.quote_ttl)
                return
            except Exception as e:
                logger.debug(f"Redis set {key} failed: {e}")
        self._memory_set(key, value)

    # ============ LTP (Last Traded Price) ============

    async def set_ltp(self, symbol: str, price: float) -> bool:
        """Store the last traded price for a symbol."""
        await self._set(f"ltp:{symbol.upper()}", str(price))
        return True

    async def get_ltp(self, symbol: str) -> Optional[float]:
        """
        Get the last traded price for a symbol.
        Returns None if not cached or expired.
        """
        value = await self._get(f"ltp:{symbol.upper()}")
        return float(value) if value else None

    # ============ Full Quote ============

    async def set_quote(self, symbol: str, quote: Quote) -> bool:
        """Store a quote and refresh the LTP key alongside it."""
        await self.set_ltp(symbol, quote.price)
        await self._set(f"quote:{symbol.upper()}", quote.model_dump_json())
        return True

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        """
        Get the cached quote for a symbol.

        Only full quotes are returned; a bare LTP has no as_of and is never
        passed off as a current quote.
        """
        value = await self._get(f"quote:{symbol.upper()}")
        if value:
            return Quote(**json.loads(value))
        return None


# Singleton instance
_price_cache: Optional[PriceCache] = None


def get_price_cache() -> PriceCache:
    """Get the price cache singleton."""
    global _price_cache
    if _price_cache is None:
        _price_cache = PriceCache()
    return _price_cache

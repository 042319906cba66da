"""
Cache module for the analysis engine.

Provides Redis caching for last traded prices.
"""

from ta_engine.services.cache.redis_client import (
    PriceCache,
    get_price_cache,
    init_redis,
    close_redis,
)

__all__ = [
    "PriceCache",
    "get_price_cache",
    "init_redis",
    "close_redis",
]

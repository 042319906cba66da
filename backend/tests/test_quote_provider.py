from datetime import datetime, timezone

import pytest

from ta_engine.schemas.market import Quote
from ta_engine.services.analysis.providers import CachedQuoteProvider
from ta_engine.services.base import CircuitBreaker, PersistenceError
from ta_engine.services.cache.redis_client import PriceCache
from ta_engine.services.collaborators import CurrentQuoteProvider


class CountingQuotes(CurrentQuoteProvider):
    def __init__(self, price=None, error=None):
        self.price = price
        self.error = error
        self.calls = 0

    async def get_latest_price(self, symbol):
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.price is None:
            return None
        return Quote(price=self.price, as_of=datetime(2025, 1, 2, tzinfo=timezone.utc))


class Ticker:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def memory_cache(ttl=60, clock=None):
    # no Redis pool is initialized under test
    if clock is None:
        return PriceCache(quote_ttl=ttl)
    return PriceCache(quote_ttl=ttl, clock=clock)


async def test_memory_cache_round_trip():
    cache = memory_cache()
    quote = Quote(price=101.5, as_of=datetime(2025, 1, 2, tzinfo=timezone.utc), source="db")

    await cache.set_quote("abc", quote)

    assert await cache.get_quote("ABC") == quote
    assert await cache.get_ltp("ABC") == 101.5


async def test_memory_caches_are_per_instance():
    first = memory_cache()
    await first.set_ltp("ABC", 10.0)

    assert await memory_cache().get_ltp("ABC") is None


async def test_bare_ltp_is_not_a_quote():
    cache = memory_cache()
    await cache.set_ltp("ABC", 42.0)

    assert await cache.get_quote("ABC") is None


async def test_memory_entries_expire():
    ticker = Ticker()
    cache = memory_cache(ttl=60, clock=ticker)
    await cache.set_quote("ABC", Quote(price=10.0, as_of=datetime(2025, 1, 2, tzinfo=timezone.utc)))

    ticker.now = 59.0
    assert (await cache.get_quote("ABC")).price == 10.0

    ticker.now = 60.0
    assert await cache.get_quote("ABC") is None
    assert await cache.get_ltp("ABC") is None


async def test_expired_quote_is_refetched_from_upstream():
    ticker = Ticker()
    upstream = CountingQuotes(price=99.0)
    provider = CachedQuoteProvider(upstream, memory_cache(ttl=60, clock=ticker))

    assert (await provider.get_latest_price("ABC")).price == 99.0

    upstream.price = 50.0
    ticker.now = 61.0
    quote = await provider.get_latest_price("ABC")

    assert quote.price == 50.0
    assert quote.as_of == datetime(2025, 1, 2, tzinfo=timezone.utc)
    assert upstream.calls == 2


async def test_upstream_quote_is_cached():
    upstream = CountingQuotes(price=99.0)
    provider = CachedQuoteProvider(upstream, memory_cache())

    first = await provider.get_latest_price("ABC")
    second = await provider.get_latest_price("ABC")

    assert first.price == second.price == 99.0
    assert upstream.calls == 1


async def test_missing_upstream_quote_is_not_cached():
    upstream = CountingQuotes(price=None)
    provider = CachedQuoteProvider(upstream, memory_cache())

    assert await provider.get_latest_price("ABC") is None
    assert await provider.get_latest_price("ABC") is None
    assert upstream.calls == 2


async def test_upstream_persistence_error_propagates():
    upstream = CountingQuotes(error=PersistenceError("QuoteProvider", "db down"))
    breaker = CircuitBreaker(failure_threshold=3, reset_seconds=300)
    provider = CachedQuoteProvider(upstream, memory_cache(), breaker)

    with pytest.raises(PersistenceError):
        await provider.get_latest_price("ABC")

    assert breaker.failures == 1


async def test_breaker_stops_calling_failing_upstream():
    upstream = CountingQuotes(error=ConnectionError("db down"))
    breaker = CircuitBreaker(failure_threshold=2, reset_seconds=300)
    provider = CachedQuoteProvider(upstream, memory_cache(), breaker)

    for _ in range(4):
        with pytest.raises(PersistenceError):
            await provider.get_latest_price("ABC")

    assert upstream.calls == 2
    assert breaker.is_open

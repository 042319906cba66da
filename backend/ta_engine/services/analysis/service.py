"""
Technical Analysis Service Implementation

Compute-or-reuse lifecycle for per-symbol analysis bundles:
fresh active bundle → returned as is; otherwise history → normalize →
indicators → levels → signal → targets → activate.

A failed run never touches the previously active bundle.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ta_engine.schemas.market import Granularity, PriceSeries
from ta_engine.schemas.analysis import AnalysisRequest, TechnicalAnalysisBundle
from ta_engine.services.base import CircuitBreaker, NoPriceAvailableError, PersistenceError
from ta_engine.services.collaborators import (
    BundleStore,
    CurrentQuoteProvider,
    NarrativeAnnotator,
    PriceHistoryProvider,
)
from ta_engine.services.analysis.interface import TechnicalAnalysisServiceInterface
from ta_engine.services.indicators.levels import detect_levels
from ta_engine.services.indicators.normalizer import DEFAULT_MIN_BARS, normalize_series
from ta_engine.services.indicators.service import IndicatorService
from ta_engine.services.signals.aggregator import aggregate_signal
from ta_engine.services.signals.targets import PriceTargetEstimator

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TechnicalAnalysisService(TechnicalAnalysisServiceInterface):
    """
    Analysis lifecycle manager.

    All collaborators are injected; nothing here holds state across calls
    besides the collaborators themselves.
    """

    def __init__(
        self,
        history_provider: PriceHistoryProvider,
        quote_provider: CurrentQuoteProvider,
        store: BundleStore,
        annotator: Optional[NarrativeAnnotator] = None,
        indicator_service: Optional[IndicatorService] = None,
        now_fn: Callable[[], datetime] = utc_now,
        granularity: Granularity = Granularity.MONTHLY,
        min_bars: int = DEFAULT_MIN_BARS,
        cache_days: int = 30,
        lookback: int = 20,
        tolerance: float = 0.015,
        fallback_to_last_close: bool = True,
        missing_penalty: float = 0.7,
        failure_penalty: float = 0.8,
        narrative_timeout: Optional[float] = None,
    ):
        self.history_provider = history_provider
        self.quote_provider = quote_provider
        self.store = store
        self.indicator_service = indicator_service or IndicatorService()
        self.estimator = PriceTargetEstimator(
            annotator=annotator,
            missing_penalty=missing_penalty,
            failure_penalty=failure_penalty,
            timeout_seconds=narrative_timeout,
        )
        self.now_fn = now_fn
        self.granularity = granularity
        self.min_bars = min_bars
        self.cache_ttl = timedelta(days=cache_days)
        self.lookback = lookback
        self.tolerance = tolerance
        self.fallback_to_last_close = fallback_to_last_close

    async def execute(self, input_data: AnalysisRequest) -> TechnicalAnalysisBundle:
        return await self.get_or_compute(input_data.symbol, input_data.force_recalculate)

    async def get_or_compute(
        self, symbol: str, force_recalculate: bool = False
    ) -> TechnicalAnalysisBundle:
        symbol = symbol.strip().upper()
        active = await self.store.find_active(symbol)
        now = self.now_fn()

        if active is not None and not force_recalculate and active.is_fresh(now):
            logger.info(f"Using cached analysis for {symbol} (expires {active.expires_at})")
            return active

        reason = "forced" if force_recalculate else ("stale" if active else "missing")
        logger.info(f"Recomputing analysis for {symbol} ({reason})")

        bundle = await self._compute(symbol, now)
        await self.store.deactivate_and_activate(
            symbol, active.id if active is not None else None, bundle
        )
        return bundle

    async def _compute(self, symbol: str, now: datetime) -> TechnicalAnalysisBundle:
        raw_bars = await self.history_provider.get_bars(symbol, self.granularity)
        series = normalize_series(symbol, raw_bars, self.granularity, self.min_bars)

        current_price = await self._current_price(symbol, series)

        indicators = self.indicator_service.calculate(series)
        levels = detect_levels(
            series, current_price, lookback=self.lookback, tolerance=self.tolerance
        )
        signal = aggregate_signal(indicators, current_price)
        targets = await self.estimator.estimate(
            symbol, self.granularity, current_price, indicators, levels, signal
        )

        return TechnicalAnalysisBundle(
            symbol=symbol,
            granularity=self.granularity,
            indicators=indicators,
            levels=levels,
            signal=signal,
            targets=targets,
            current_price=current_price,
            bars_used=len(series),
            calculated_at=now,
            expires_at=now + self.cache_ttl,
        )

    async def _current_price(self, symbol: str, series: PriceSeries) -> float:
        quote = await self.quote_provider.get_latest_price(symbol)
        if quote is not None and quote.price > 0:
            return quote.price

        if self.fallback_to_last_close and series.last_close:
            logger.warning(
                f"No current quote for {symbol}, using last close {series.last_close}"
            )
            return series.last_close

        raise NoPriceAvailableError(
            self.name, f"No current price for {symbol}", {"symbol": symbol}
        )

    async def health_check(self) -> bool:
        """Healthy when the bundle store can be read."""
        try:
            await self.store.find_active("HEALTHCHECK")
            return True
        except PersistenceError as e:
            logger.error(f"Health check failed: {e}")
            return False


# Singleton instance
_service_instance: Optional[TechnicalAnalysisService] = None


def get_technical_analysis_service() -> TechnicalAnalysisService:
    """Get or create the SQLite/Redis-backed analysis service."""
    global _service_instance
    if _service_instance is None:
        from ta_engine.core.config import settings
        from ta_engine.db.bundle_store import SqlBundleStore
        from ta_engine.db.database import AsyncSessionLocal
        from ta_engine.services.analysis.providers import (
            CachedQuoteProvider,
            SqlPriceHistoryProvider,
            SqlQuoteProvider,
        )
        from ta_engine.services.cache.redis_client import get_price_cache
        from ta_engine.services.indicators.service import get_indicator_service
        from ta_engine.services.llm.client import get_llm_client
        from ta_engine.services.llm.narrative import LLMNarrativeAnnotator

        def breaker() -> CircuitBreaker:
            return CircuitBreaker(
                failure_threshold=settings.breaker_failure_threshold,
                reset_seconds=settings.breaker_reset_seconds,
            )

        llm_client = get_llm_client()
        annotator = (
            LLMNarrativeAnnotator(llm_client, breaker()) if llm_client.is_configured else None
        )

        _service_instance = TechnicalAnalysisService(
            history_provider=SqlPriceHistoryProvider(AsyncSessionLocal),
            quote_provider=CachedQuoteProvider(
                SqlQuoteProvider(AsyncSessionLocal), get_price_cache(), breaker()
            ),
            store=SqlBundleStore(AsyncSessionLocal),
            annotator=annotator,
            indicator_service=get_indicator_service(),
            granularity=Granularity(settings.analysis_granularity),
            min_bars=settings.analysis_min_bars,
            cache_days=settings.analysis_cache_days,
            lookback=settings.support_resistance_lookback,
            tolerance=settings.level_tolerance,
            fallback_to_last_close=settings.quote_fallback_to_last_close,
            missing_penalty=settings.narrative_missing_penalty,
            failure_penalty=settings.narrative_failure_penalty,
            narrative_timeout=settings.llm_timeout_seconds,
        )
    return _service_instance


async def get_or_compute_technical_analysis(
    symbol: str, force_recalculate: bool = False
) -> TechnicalAnalysisBundle:
    """Entry point: cached or freshly computed analysis for one symbol."""
    service = get_technical_analysis_service()
    return await service.get_or_compute(symbol, force_recalculate)

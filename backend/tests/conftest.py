from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ta_engine.db.models import Base
from ta_engine.schemas.analysis import (
    Narrative,
    NarrativeContext,
    PriceTargets,
    TechnicalAnalysisBundle,
)
from ta_engine.schemas.indicators import (
    IndicatorSnapshot,
    Level,
    LevelKind,
    MarketSignal,
    RSIReading,
    SignalSummary,
    SupportResistance,
)
from ta_engine.schemas.market import Granularity, PriceSeries, Quote, RawBar
from ta_engine.services.base import PersistenceError
from ta_engine.services.collaborators import (
    BundleStore,
    CurrentQuoteProvider,
    NarrativeAnnotator,
    PriceHistoryProvider,
)
from ta_engine.services.indicators.normalizer import normalize_series


def month_start(index: int, start: date = date(2019, 1, 1)) -> date:
    year = start.year + (start.month - 1 + index) // 12
    month = (start.month - 1 + index) % 12 + 1
    return date(year, month, 1)


def make_bars(closes, spread: float = 0.01) -> list[RawBar]:
    """Monthly bars with high/low `spread` around each close."""
    return [
        RawBar(
            date=month_start(i),
            open=c,
            high=c * (1 + spread),
            low=c * (1 - spread),
            close=c,
            volume=1000,
        )
        for i, c in enumerate(closes)
    ]


def make_series(closes, spread: float = 0.01, symbol: str = "TEST") -> PriceSeries:
    return normalize_series(symbol, make_bars(closes, spread), Granularity.MONTHLY, min_bars=1)


def scenario_closes() -> list[float]:
    """40 bars sliding 100 → 70, then 10 (+3, -1.5) swings ending at 85."""
    closes = [100 - 30 * i / 39 for i in range(40)]
    price = 70.0
    for _ in range(10):
        price += 3
        closes.append(price)
        price -= 1.5
        closes.append(price)
    return closes


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================


class FakeHistory(PriceHistoryProvider):
    def __init__(self, bars: list[RawBar]):
        self.bars = bars
        self.calls = 0

    async def get_bars(self, symbol, granularity=Granularity.MONTHLY):
        self.calls += 1
        return list(self.bars)


class FakeQuotes(CurrentQuoteProvider):
    def __init__(self, price: Optional[float] = None):
        self.price = price

    async def get_latest_price(self, symbol):
        if self.price is None:
            return None
        return Quote(price=self.price, as_of=datetime.now(timezone.utc), source="fake")


class FakeAnnotator(NarrativeAnnotator):
    def __init__(self, text: str = "Looks fine.", hint: Optional[float] = None, error=None):
        self.text = text
        self.hint = hint
        self.error = error
        self.contexts: list[NarrativeContext] = []

    async def explain(self, context):
        self.contexts.append(context)
        if self.error is not None:
            raise self.error
        return Narrative(text=self.text, confidence_hint=self.hint)


class MemoryStore(BundleStore):
    """Bundles keyed by id; fails activation on demand."""

    def __init__(self):
        self.bundles: dict[str, TechnicalAnalysisBundle] = {}
        self.fail_activation = False
        self.activations = 0

    async def find_active(self, symbol):
        for bundle in self.bundles.values():
            if bundle.symbol == symbol and bundle.is_active:
                return bundle
        return None

    async def deactivate_and_activate(self, symbol, old_bundle_id, new_bundle):
        if self.fail_activation:
            raise PersistenceError("MemoryStore", "activation failed")
        for bundle_id, bundle in list(self.bundles.items()):
            if bundle.symbol == symbol and bundle.is_active:
                self.bundles[bundle_id] = bundle.model_copy(update={"is_active": False})
        self.bundles[new_bundle.id] = new_bundle.model_copy(update={"is_active": True})
        self.activations += 1

    def history(self, symbol):
        return [b for b in self.bundles.values() if b.symbol == symbol]


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


def make_bundle(
    symbol: str = "ABC",
    now: Optional[datetime] = None,
    price: float = 100.0,
    days: int = 30,
) -> TechnicalAnalysisBundle:
    now = now or datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
    return TechnicalAnalysisBundle(
        symbol=symbol,
        indicators=IndicatorSnapshot(rsi=RSIReading(rsi=45.5, signal=MarketSignal.NEUTRAL)),
        levels=SupportResistance(
            support=[Level(price=90.0, strength=2, kind=LevelKind.SUPPORT, touches=2)]
        ),
        signal=SignalSummary(),
        targets=PriceTargets(
            min_price=price * 0.88,
            max_price=price * 1.12,
            fair_entry_price=price,
            confidence=35.0,
            analysis="Indicators are mixed.",
        ),
        current_price=price,
        bars_used=60,
        calculated_at=now,
        expires_at=now + timedelta(days=days),
    )

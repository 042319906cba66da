import pytest

from ta_engine.schemas.indicators import MarketSignal
from ta_engine.services.indicators.service import IndicatorService, classify_oscillator

from conftest import make_series, scenario_closes


def test_classify_oscillator_boundaries():
    assert classify_oscillator(70, 70, 30) == MarketSignal.OVERBOUGHT
    assert classify_oscillator(30, 70, 30) == MarketSignal.OVERSOLD
    assert classify_oscillator(50, 70, 30) == MarketSignal.NEUTRAL


def test_full_history_has_every_reading():
    series = make_series([50 + (i % 7) * 2 + i * 0.5 for i in range(60)])

    snapshot = IndicatorService().calculate(series)

    assert len(snapshot.readings()) == 7
    assert [r.kind for r in snapshot.readings()] == [
        "rsi",
        "stochastic",
        "macd",
        "moving_averages",
        "bollinger",
        "fibonacci",
        "ichimoku",
    ]


def test_short_history_leaves_ichimoku_absent():
    series = make_series([50 + i for i in range(30)])

    snapshot = IndicatorService().calculate(series)

    assert snapshot.ichimoku is None
    assert snapshot.moving_averages is not None
    assert snapshot.moving_averages.sma200 == pytest.approx(sum(50 + i for i in range(30)) / 30)


def test_flat_series_drops_range_based_readings():
    series = make_series([100.0] * 60, spread=0)

    snapshot = IndicatorService().calculate(series)

    assert snapshot.stochastic is None
    assert snapshot.fibonacci is None
    assert snapshot.bollinger.width == 0
    assert snapshot.rsi.rsi == 100.0


def test_falling_series_is_oversold():
    closes = scenario_closes()[:40]

    rsi = IndicatorService().calculate_rsi(make_series(closes))

    assert rsi.rsi == 0.0
    assert rsi.signal == MarketSignal.OVERSOLD


def test_recovery_series_is_neutral():
    rsi = IndicatorService().calculate_rsi(make_series(scenario_closes()))

    assert 30 < rsi.rsi < 70
    assert rsi.signal == MarketSignal.NEUTRAL


def test_monthly_fibonacci_uses_last_twelve_bars():
    series = make_series([float(i) for i in range(1, 61)], spread=0)

    fib = IndicatorService().calculate_fibonacci(series)

    assert fib.high == 60.0
    assert fib.low == 49.0


def test_fibonacci_period_follows_granularity_setting():
    series = make_series([float(i) for i in range(1, 61)], spread=0)

    fib = IndicatorService(fibonacci_periods={"1mo": 24}).calculate_fibonacci(series)

    assert fib.low == 37.0


def test_calculation_is_deterministic():
    series = make_series(scenario_closes())
    service = IndicatorService()

    assert service.calculate(series) == service.calculate(series)

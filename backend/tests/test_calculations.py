import numpy as np
import pytest

from ta_engine.services.indicators import calculations as calc


def test_sma_and_ema_warmup_is_nan():
    data = np.arange(1, 11, dtype=float)

    sma = calc.sma(data, 5)
    ema = calc.ema(data, 5)

    assert np.isnan(sma[:4]).all()
    assert sma[4] == 3.0
    assert ema[4] == 3.0
    assert sma[-1] == 8.0


def test_trailing_mean_uses_available_points():
    data = np.array([2.0, 4.0, 6.0])

    assert calc.trailing_mean(data, 200) == 4.0
    assert calc.trailing_mean(data, 2) == 5.0
    assert calc.trailing_mean(np.array([]), 5) is None


def test_latest_ema_short_series_falls_back_to_mean():
    assert calc.latest_ema(np.array([1.0, 2.0, 3.0]), 12) == 2.0


def test_rsi_all_gains_is_100():
    closes = np.arange(1, 31, dtype=float)

    assert calc.rsi(closes)[-1] == 100.0


def test_rsi_all_losses_is_0():
    closes = np.arange(30, 0, -1, dtype=float)

    assert calc.rsi(closes)[-1] == 0.0


def test_rsi_needs_period_plus_one_points():
    assert np.isnan(calc.rsi(np.arange(14, dtype=float), 14)).all()


def test_stochastic_zero_range_window_is_nan():
    flat = np.full(20, 50.0)

    k, d = calc.stochastic(flat, flat, flat)

    assert np.isnan(k[-1])
    assert np.isnan(d[-1])


def test_stochastic_close_at_high_is_100():
    closes = np.arange(1, 21, dtype=float)

    k, _ = calc.stochastic(closes, closes - 0.5, closes)

    assert k[-1] == pytest.approx(100.0)


def test_macd_histogram_flips_on_reversal():
    falling = [100 - 0.015 * i**2 for i in range(40)]
    rising = [falling[-1] + 2 * (i + 1) for i in range(20)]
    closes = np.array(falling + rising)

    macd_line, signal_line, hist = calc.macd(closes)

    assert hist[39] < 0
    assert hist[-1] > 0

    flip = next(i for i in range(40, len(closes)) if hist[i] > 0)
    assert macd_line[flip] > signal_line[flip]
    assert macd_line[flip - 1] <= signal_line[flip - 1]


def test_macd_signal_starts_after_warmup():
    closes = np.linspace(10, 20, 40)

    _, signal_line, _ = calc.macd(closes)

    assert np.isnan(signal_line[32])
    assert not np.isnan(signal_line[33])


def test_bollinger_width_is_band_distance():
    closes = np.array([10.0, 12.0] * 15)

    upper, middle, lower, width = calc.bollinger_bands(closes, 20, 2.0)

    assert middle[-1] == pytest.approx(11.0)
    assert upper[-1] == pytest.approx(13.0)
    assert lower[-1] == pytest.approx(9.0)
    assert width[-1] == pytest.approx(4.0)


def test_fibonacci_levels():
    highs = np.array([100.0, 120.0, 110.0])
    lows = np.array([90.0, 95.0, 80.0])

    levels = calc.fibonacci_retracement(highs, lows, 12)

    assert levels["high"] == 120.0
    assert levels["low"] == 80.0
    assert levels["fib500"] == pytest.approx(100.0)
    assert levels["fib618"] == pytest.approx(95.28)
    assert levels["fib236"] == pytest.approx(110.56)


def test_fibonacci_flat_range_is_none():
    flat = np.full(5, 10.0)

    assert calc.fibonacci_retracement(flat, flat) is None


def test_ichimoku_needs_52_bars():
    closes = np.linspace(10, 20, 51)

    assert calc.ichimoku(closes, closes, closes) is None


def test_ichimoku_components():
    closes = np.arange(1, 61, dtype=float)

    cloud = calc.ichimoku(closes + 1, closes - 1, closes)

    # highs 2..61, lows 0..59
    assert cloud["tenkan_sen"] == pytest.approx((61 + 51) / 2)
    assert cloud["kijun_sen"] == pytest.approx((61 + 34) / 2)
    assert cloud["senkou_span_b"] == pytest.approx((61 + 8) / 2)
    assert cloud["senkou_span_a"] == pytest.approx((cloud["tenkan_sen"] + cloud["kijun_sen"]) / 2)
    assert cloud["chikou_span"] == 60.0

from datetime import date, datetime

import pytest

from ta_engine.schemas.market import Granularity, RawBar
from ta_engine.services.base import InsufficientDataError
from ta_engine.services.indicators.normalizer import clean_bars, normalize_series

from conftest import make_bars


def test_monthly_zero_fields_are_synthesized_from_close():
    bars = [RawBar(date=date(2024, 1, 31), open=0, high=0, low=0, close=50.0, volume=None)]

    point = clean_bars(bars)[0]

    assert point.open == 50.0
    assert point.high == 50.0
    assert point.low == 50.0
    assert point.volume == 0


def test_high_low_widened_to_cover_open_and_close():
    bars = [RawBar(date=date(2024, 1, 1), open=105, high=100, low=99, close=98)]

    point = clean_bars(bars)[0]

    assert point.high == 105
    assert point.low == 98


def test_bars_without_usable_close_are_dropped():
    bars = [
        RawBar(date=date(2024, 1, 1), close=10),
        RawBar(date=date(2024, 2, 1), close=None),
        RawBar(date=date(2024, 3, 1), close=0),
        RawBar(date=date(2024, 4, 1), close=float("nan")),
        RawBar(date=date(2024, 5, 1), close=-3),
    ]

    points = clean_bars(bars)

    assert [p.date for p in points] == [date(2024, 1, 1)]


def test_latest_bar_per_month_wins_and_output_is_sorted():
    bars = [
        RawBar(date=date(2024, 3, 1), close=30),
        RawBar(date=date(2024, 1, 31), close=12),
        RawBar(date=date(2024, 1, 2), close=11),
        RawBar(date=datetime(2024, 2, 15, 16, 0), close=20),
    ]

    points = clean_bars(bars, Granularity.MONTHLY)

    assert [p.close for p in points] == [12, 20, 30]
    assert all(a.date < b.date for a, b in zip(points, points[1:]))


def test_exact_duplicate_keeps_later_input():
    bars = [
        RawBar(date=date(2024, 1, 1), close=10),
        RawBar(date=date(2024, 1, 1), close=11),
    ]

    assert [p.close for p in clean_bars(bars)] == [11]


def test_weekly_dedup_uses_iso_weeks():
    bars = [
        RawBar(date=date(2024, 1, 1), close=10),  # Monday, ISO week 1
        RawBar(date=date(2024, 1, 5), close=11),  # Friday, same week
        RawBar(date=date(2024, 1, 8), close=12),  # next week
    ]

    points = clean_bars(bars, Granularity.WEEKLY)

    assert [p.close for p in points] == [11, 12]


def test_normalize_is_idempotent():
    series = normalize_series("ABC", make_bars([10 + i for i in range(60)]))
    again = normalize_series(
        "ABC",
        [RawBar(**p.model_dump()) for p in series.points],
    )

    assert again.points == series.points


def test_insufficient_bars_raises():
    with pytest.raises(InsufficientDataError) as exc:
        normalize_series("ABC", make_bars([10.0] * 49))

    assert exc.value.details["bars"] == 49
    assert exc.value.details["required"] == 50


def test_fifty_bars_is_enough():
    series = normalize_series("ABC", make_bars([10.0 + i for i in range(50)]))

    assert len(series) == 50
    assert series.last_close == 59.0

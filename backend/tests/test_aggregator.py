from ta_engine.schemas.indicators import (
    BollingerBands,
    IndicatorSnapshot,
    MACDReading,
    MarketSignal,
    RSIReading,
    StochasticReading,
)
from ta_engine.services.signals.aggregator import aggregate_signal

RSI_LOW = RSIReading(rsi=25, signal=MarketSignal.OVERSOLD)
RSI_HIGH = RSIReading(rsi=75, signal=MarketSignal.OVERBOUGHT)
RSI_MID = RSIReading(rsi=50, signal=MarketSignal.NEUTRAL)
STOCH_LOW = StochasticReading(k=10, d=15, signal=MarketSignal.OVERSOLD)
STOCH_HIGH = StochasticReading(k=90, d=85, signal=MarketSignal.OVERBOUGHT)
STOCH_MID = StochasticReading(k=50, d=50, signal=MarketSignal.NEUTRAL)
MACD_UP = MACDReading(macd=1.0, signal=0.5, histogram=0.5)
MACD_DOWN = MACDReading(macd=-1.0, signal=-0.5, histogram=-0.5)
BANDS = BollingerBands(upper=110, middle=100, lower=90, width=20)


def test_two_buy_votes_is_oversold():
    snapshot = IndicatorSnapshot(rsi=RSI_LOW, stochastic=STOCH_LOW)

    summary = aggregate_signal(snapshot, current_price=100)

    assert summary.signal == MarketSignal.OVERSOLD
    assert summary.buy_votes == 2
    assert summary.sell_votes == 0
    assert summary.reasons == ["RSI oversold", "Stochastic oversold"]


def test_sell_votes_from_macd_and_bands():
    snapshot = IndicatorSnapshot(
        rsi=RSI_MID, stochastic=STOCH_MID, macd=MACD_DOWN, bollinger=BANDS
    )

    summary = aggregate_signal(snapshot, current_price=115)

    assert summary.signal == MarketSignal.OVERBOUGHT
    assert summary.sell_votes == 2


def test_single_vote_is_neutral():
    snapshot = IndicatorSnapshot(rsi=RSI_LOW, stochastic=STOCH_MID, bollinger=BANDS)

    assert aggregate_signal(snapshot, current_price=100).signal == MarketSignal.NEUTRAL


def test_tie_is_neutral():
    snapshot = IndicatorSnapshot(
        rsi=RSI_LOW, stochastic=STOCH_LOW, macd=MACD_DOWN, bollinger=BANDS
    )

    summary = aggregate_signal(snapshot, current_price=115)

    assert summary.buy_votes == 2
    assert summary.sell_votes == 2
    assert summary.signal == MarketSignal.NEUTRAL


def test_buy_majority_wins():
    snapshot = IndicatorSnapshot(
        rsi=RSI_LOW, stochastic=STOCH_LOW, macd=MACD_UP, bollinger=BANDS
    )

    summary = aggregate_signal(snapshot, current_price=115)

    assert summary.buy_votes == 3
    assert summary.sell_votes == 1
    assert summary.signal == MarketSignal.OVERSOLD


def test_missing_oscillator_is_neutral():
    snapshot = IndicatorSnapshot(rsi=RSI_HIGH, macd=MACD_DOWN, bollinger=BANDS)

    summary = aggregate_signal(snapshot, current_price=120)

    assert summary.signal == MarketSignal.NEUTRAL
    assert summary.buy_votes == 0
    assert summary.sell_votes == 0


def test_overbought_oscillators():
    snapshot = IndicatorSnapshot(rsi=RSI_HIGH, stochastic=STOCH_HIGH)

    assert aggregate_signal(snapshot, current_price=100).signal == MarketSignal.OVERBOUGHT

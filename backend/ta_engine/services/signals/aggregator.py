"""
Signal Aggregator

Votes the latest indicator readings into one market signal:
OVERSOLD is the aggregate buy signal, OVERBOUGHT the aggregate sell signal.
"""

from ta_engine.schemas.indicators import (
    BollingerBands,
    IndicatorSnapshot,
    MACDReading,
    MarketSignal,
    RSIReading,
    SignalSummary,
    StochasticReading,
)

MIN_VOTES = 2


def _votes(reading, current_price: float) -> tuple[int, int, str]:
    """(buy, sell, reason) contributed by a single reading."""
    if isinstance(reading, (RSIReading, StochasticReading)):
        name = "RSI" if isinstance(reading, RSIReading) else "Stochastic"
        if reading.signal == MarketSignal.OVERSOLD:
            return 1, 0, f"{name} oversold"
        if reading.signal == MarketSignal.OVERBOUGHT:
            return 0, 1, f"{name} overbought"

    elif isinstance(reading, MACDReading):
        if reading.histogram > 0 and reading.macd > reading.signal:
            return 1, 0, "MACD above signal line"
        if reading.histogram < 0 and reading.macd < reading.signal:
            return 0, 1, "MACD below signal line"

    elif isinstance(reading, BollingerBands):
        if current_price < reading.lower:
            return 1, 0, "Price below lower Bollinger band"
        if current_price > reading.upper:
            return 0, 1, "Price above upper Bollinger band"

    return 0, 0, ""


def aggregate_signal(
    indicators: IndicatorSnapshot, current_price: float
) -> SignalSummary:
    """
    Combine RSI, Stochastic, MACD and Bollinger readings into one signal.

    Without both RSI and Stochastic the result is NEUTRAL.
    """
    if indicators.rsi is None or indicators.stochastic is None:
        return SignalSummary(reasons=["RSI and Stochastic required"])

    buy_votes = 0
    sell_votes = 0
    reasons = []
    for reading in indicators.readings():
        buy, sell, reason = _votes(reading, current_price)
        buy_votes += buy
        sell_votes += sell
        if reason:
            reasons.append(reason)

    if buy_votes >= MIN_VOTES and buy_votes > sell_votes:
        signal = MarketSignal.OVERSOLD
    elif sell_votes >= MIN_VOTES and sell_votes > buy_votes:
        signal = MarketSignal.OVERBOUGHT
    else:
        signal = MarketSignal.NEUTRAL

    return SignalSummary(
        signal=signal, buy_votes=buy_votes, sell_votes=sell_votes, reasons=reasons
    )

"""
Price-Target Estimator

Rule-based min/max/fair-entry band from the technical picture.

The narrative annotator, when present, only supplies explanation text and a
bounded confidence hint. It never changes the numeric band.
"""

import asyncio
import logging
from typing import Optional

from ta_engine.schemas.market import Granularity
from ta_engine.schemas.indicators import (
    IndicatorSnapshot,
    MarketSignal,
    SignalSummary,
    SupportResistance,
)
from ta_engine.schemas.analysis import NarrativeContext, NarrativeSource, PriceTargets
from ta_engine.services.collaborators import NarrativeAnnotator

logger = logging.getLogger(__name__)

UNAVAILABLE_SUFFIX = " (AI narrative unavailable)"


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def calculate_rule_based_targets(
    current_price: float,
    indicators: IndicatorSnapshot,
    levels: SupportResistance,
) -> PriceTargets:
    """
    Conservative band for monthly data.

    Each indicator nudges the fair entry by a few percent and the
    confidence by 5-15 points from a base of 50.
    """
    support = levels.strongest_support
    resistance = levels.strongest_resistance

    min_price = current_price * 0.88
    if support is not None:
        min_price = min(min_price, support.price * 0.97)

    max_price = current_price * 1.12
    if resistance is not None:
        max_price = max(max_price, resistance.price * 1.03)

    fair = current_price
    confidence = 50.0

    rsi = indicators.rsi
    if rsi is not None:
        if rsi.signal == MarketSignal.OVERSOLD:
            fair = current_price * 0.97
            confidence += 15
        elif rsi.signal == MarketSignal.OVERBOUGHT:
            fair = current_price * 1.03
            confidence -= 10

    macd = indicators.macd
    if macd is not None:
        if macd.histogram > 0:
            fair = min(fair, current_price * 0.99)
            confidence += 10
        else:
            fair = max(fair, current_price * 1.01)
            confidence -= 5

    bb = indicators.bollinger
    if bb is not None:
        if current_price < bb.lower:
            fair = min(fair, bb.lower * 1.01)
            confidence += 10
        elif current_price > bb.upper:
            fair = max(fair, bb.upper * 0.99)
            confidence -= 10

    ma = indicators.moving_averages
    if ma is not None and ma.sma50 > 0 and ma.sma200 > 0:
        if current_price < ma.sma50 < ma.sma200:
            fair = max(fair, ma.sma50 * 0.97)
            confidence -= 5
        elif current_price > ma.sma50 > ma.sma200:
            fair = min(fair, ma.sma50 * 1.03)
            confidence += 10

    fib = indicators.fibonacci
    if fib is not None:
        if fib.fib618 > 0 and current_price > fib.fib618:
            fair = min(fair, fib.fib618 * 1.02)
            confidence += 5
        if fib.fib382 > 0 and current_price < fib.fib382:
            fair = max(fair, fib.fib382 * 0.98)
            confidence += 10

    cloud = indicators.ichimoku
    if cloud is not None and cloud.senkou_span_a > 0 and cloud.senkou_span_b > 0:
        if current_price > cloud.cloud_top:
            fair = min(fair, cloud.cloud_top * 1.02)
            confidence += 10
        elif current_price < cloud.cloud_bottom:
            fair = max(fair, cloud.cloud_bottom * 0.98)
            confidence -= 5

        if cloud.kijun_sen > 0:
            if current_price > cloud.kijun_sen:
                fair = min(fair, cloud.kijun_sen * 1.01)
            else:
                fair = max(fair, cloud.kijun_sen * 0.99)

    return PriceTargets(
        min_price=min_price,
        max_price=max_price,
        fair_entry_price=_clamp(fair, min_price, max_price),
        confidence=_clamp(confidence, 0, 100),
    )


def template_explanation(
    current_price: float, signal: SignalSummary, targets: PriceTargets
) -> str:
    """Plain explanation built from the rule output alone."""
    if signal.signal == MarketSignal.OVERSOLD:
        stance = "Indicators lean towards a buying opportunity"
    elif signal.signal == MarketSignal.OVERBOUGHT:
        stance = "Indicators point to a stretched price; waiting for a pullback is safer"
    else:
        stance = "Indicators are mixed, with no clear directional edge"

    text = (
        f"{stance} ({signal.buy_votes} buy / {signal.sell_votes} sell votes). "
        f"Current price {current_price:.2f}; expected range "
        f"{targets.min_price:.2f} to {targets.max_price:.2f}, "
        f"fair entry around {targets.fair_entry_price:.2f}."
    )
    if signal.reasons:
        text += " Drivers: " + ", ".join(signal.reasons) + "."
    return text


class PriceTargetEstimator:
    """
    Price band from rules, explanation from the annotator when it works.

    Falls back to template text (with reduced confidence) if the annotator is
    missing or fails.
    """

    def __init__(
        self,
        annotator: Optional[NarrativeAnnotator] = None,
        missing_penalty: float = 0.7,
        failure_penalty: float = 0.8,
        hint_tolerance: float = 10.0,
        timeout_seconds: Optional[float] = None,
    ):
        self.annotator = annotator
        self.missing_penalty = missing_penalty
        self.failure_penalty = failure_penalty
        self.hint_tolerance = hint_tolerance
        self.timeout_seconds = timeout_seconds

    async def estimate(
        self,
        symbol: str,
        granularity: Granularity,
        current_price: float,
        indicators: IndicatorSnapshot,
        levels: SupportResistance,
        signal: SignalSummary,
    ) -> PriceTargets:
        targets = calculate_rule_based_targets(current_price, indicators, levels)
        fallback_text = template_explanation(current_price, signal, targets)

        if self.annotator is None:
            return targets.model_copy(
                update={
                    "confidence": targets.confidence * self.missing_penalty,
                    "analysis": fallback_text,
                }
            )

        context = NarrativeContext(
            symbol=symbol,
            granularity=granularity,
            current_price=current_price,
            indicators=indicators,
            levels=levels,
            signal=signal,
            targets=targets,
        )

        try:
            narrative = await asyncio.wait_for(
                self.annotator.explain(context), timeout=self.timeout_seconds
            )
        except Exception as e:
            logger.warning(f"Narrative for {symbol} failed: {e!r}, using template")
            return targets.model_copy(
                update={
                    "confidence": targets.confidence * self.failure_penalty,
                    "analysis": fallback_text + UNAVAILABLE_SUFFIX,
                }
            )

        confidence = targets.confidence
        if narrative.confidence_hint is not None:
            confidence = _clamp(
                narrative.confidence_hint,
                confidence - self.hint_tolerance,
                confidence + self.hint_tolerance,
            )

        return targets.model_copy(
            update={
                "confidence": _clamp(confidence, 0, 100),
                "analysis": narrative.text,
                "narrative_source": NarrativeSource.LLM,
            }
        )

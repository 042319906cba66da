"""
LLM Prompt Templates

Prompt for the analysis narrative.

CRITICAL RULES (enforced in the prompt):
- LLM does NO math - every number comes from the indicator engine
- LLM must not change the price band or propose new prices
- Always mention risks
- Never claim certainty or guarantee profits
"""

from ta_engine.schemas.analysis import NarrativeContext
from ta_engine.schemas.indicators import Level

# =============================================================================
# NARRATIVE PROMPTS
# =============================================================================

NARRATIVE_SYSTEM_PROMPT = """You are a technical analyst who explains pre-computed analyses in plain English for retail investors.

YOUR ROLE:
- Explain what the indicators say about the stock
- Explain why the price band and fair entry make sense
- Point out the main risks

CRITICAL RULES:
1. NEVER do math. All numbers are provided to you.
2. NEVER change, round differently, or replace the minimum, maximum or fair entry prices.
3. NEVER suggest new price levels that are not in the data.
4. ALWAYS mention at least one risk.
5. Use probabilistic language: "suggests", "may", "historically".
6. Keep it under 120 words.

OUTPUT FORMAT:
Respond with JSON only:
{"text": "<explanation>", "confidence": <number between 0 and 100>}

REMEMBER: This is analysis, not financial advice."""

NARRATIVE_USER_PROMPT_TEMPLATE = """Explain the {granularity} technical picture for {symbol}.

PRICE:
- Current: {current_price}
- Expected range: {min_price} to {max_price}
- Fair entry: {fair_entry_price}
- Rule-based confidence: {confidence}/100

OSCILLATORS:
- RSI (14): {rsi}
- Stochastic K/D: {stochastic}

TREND:
- MACD / Signal / Histogram: {macd}
- SMA 20 / 50 / 200: {sma}
- EMA 12 / 26: {ema}
- Ichimoku (tenkan / kijun / span A / span B): {ichimoku}

VOLATILITY:
- Bollinger upper / middle / lower: {bollinger}

LEVELS:
- Fibonacci 23.6 / 38.2 / 50 / 61.8 / 78.6: {fibonacci}
- Support: {support}
- Resistance: {resistance}
- Round numbers: {psychological}

AGGREGATE SIGNAL: {signal} ({buy_votes} buy votes, {sell_votes} sell votes)
DRIVERS: {reasons}
"""

NOT_AVAILABLE = "n/a"


def _fmt(*values: float) -> str:
    return " / ".join(f"{v:.2f}" for v in values)


def _levels(levels: list[Level]) -> str:
    if not levels:
        return "none"
    return ", ".join(f"{lvl.price:.2f} (strength {lvl.strength})" for lvl in levels)


def format_narrative_prompt(context: NarrativeContext) -> str:
    """Format the narrative prompt with the computed analysis."""
    ind = context.indicators
    targets = context.targets

    ma = ind.moving_averages
    fib = ind.fibonacci
    cloud = ind.ichimoku

    return NARRATIVE_USER_PROMPT_TEMPLATE.format(
        symbol=context.symbol,
        granularity={"1d": "daily", "1wk": "weekly", "1mo": "monthly"}[context.granularity.value],
        current_price=f"{context.current_price:.2f}",
        min_price=f"{targets.min_price:.2f}",
        max_price=f"{targets.max_price:.2f}",
        fair_entry_price=f"{targets.fair_entry_price:.2f}",
        confidence=f"{targets.confidence:.0f}",
        rsi=f"{ind.rsi.rsi:.2f} ({ind.rsi.signal.value})" if ind.rsi else NOT_AVAILABLE,
        stochastic=(
            f"{_fmt(ind.stochastic.k, ind.stochastic.d)} ({ind.stochastic.signal.value})"
            if ind.stochastic
            else NOT_AVAILABLE
        ),
        macd=_fmt(ind.macd.macd, ind.macd.signal, ind.macd.histogram) if ind.macd else NOT_AVAILABLE,
        sma=_fmt(ma.sma20, ma.sma50, ma.sma200) if ma else NOT_AVAILABLE,
        ema=_fmt(ma.ema12, ma.ema26) if ma else NOT_AVAILABLE,
        ichimoku=(
            _fmt(cloud.tenkan_sen, cloud.kijun_sen, cloud.senkou_span_a, cloud.senkou_span_b)
            if cloud
            else NOT_AVAILABLE
        ),
        bollinger=(
            _fmt(ind.bollinger.upper, ind.bollinger.middle, ind.bollinger.lower)
            if ind.bollinger
            else NOT_AVAILABLE
        ),
        fibonacci=(
            _fmt(fib.fib236, fib.fib382, fib.fib500, fib.fib618, fib.fib786)
            if fib
            else NOT_AVAILABLE
        ),
        support=_levels(context.levels.support),
        resistance=_levels(context.levels.resistance),
        psychological=_levels(context.levels.psychological),
        signal=context.signal.signal.value,
        buy_votes=context.signal.buy_votes,
        sell_votes=context.signal.sell_votes,
        reasons=", ".join(context.signal.reasons) or "none",
    )

"""
Signal & Target Service

CONTRACT:
    Input:  IndicatorSnapshot + SupportResistance + current price
    Output: SignalSummary, PriceTargets

CRITICAL RULES:
    - Price band comes from rules only
    - Narrative text may adjust confidence within a bounded range, never prices
"""

from ta_engine.services.signals.aggregator import aggregate_signal
from ta_engine.services.signals.targets import (
    PriceTargetEstimator,
    calculate_rule_based_targets,
)

__all__ = [
    "aggregate_signal",
    "PriceTargetEstimator",
    "calculate_rule_based_targets",
]

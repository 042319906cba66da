"""
LLM Narrative Service

CONTRACT:
    Input:  NarrativeContext (computed indicators, levels, signal, targets)
    Output: Narrative (text + optional confidence hint)

CRITICAL RULES:
    - LLM does NO math - all numbers come from the indicator engine
    - LLM never alters the price band
    - Confidence hint is bounded by the caller

FALLBACK BEHAVIOR:
    - Without API keys or on failure, the estimator uses template text
    - System remains functional without LLM API keys
"""

from ta_engine.services.llm.client import (
    LLMClient,
    LLMConfig,
    LLMProvider,
    get_llm_client,
)
from ta_engine.services.llm.narrative import LLMNarrativeAnnotator, parse_narrative

__all__ = [
    "LLMClient",
    "LLMConfig",
    "LLMProvider",
    "get_llm_client",
    "LLMNarrativeAnnotator",
    "parse_narrative",
]

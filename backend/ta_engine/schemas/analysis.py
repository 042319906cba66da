"""
CONTRACT 3: Technical Analysis Bundle

Input: AnalysisRequest
Output: TechnicalAnalysisBundle

The bundle is the unit of computation and persistence. Numbers in the
price-target band always come from the rule engine; narrative text is
annotation only.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from ta_engine.schemas.market import Granularity, Price
from ta_engine.schemas.indicators import (
    IndicatorSnapshot,
    SignalSummary,
    SupportResistance,
)


class NarrativeSource(str, Enum):
    LLM = "llm"
    RULES = "rules"


class AnalysisRequest(BaseModel):
    """Request for a (possibly cached) technical analysis."""

    symbol: str = Field(..., min_length=1, max_length=20)
    force_recalculate: bool = False


class PriceTargets(BaseModel):
    """Conservative price band with a fair entry inside it."""

    min_price: Price = Field(..., gt=0)
    max_price: Price = Field(..., gt=0)
    fair_entry_price: Price = Field(..., gt=0)
    confidence: float = Field(..., ge=0, le=100)
    analysis: Optional[str] = None
    narrative_source: NarrativeSource = NarrativeSource.RULES


class NarrativeContext(BaseModel):
    """Everything a narrative annotator may explain. Read-only for it."""

    symbol: str
    granularity: Granularity
    current_price: float
    indicators: IndicatorSnapshot
    levels: SupportResistance
    signal: SignalSummary
    targets: PriceTargets


class Narrative(BaseModel):
    """Annotator output."""

    text: str = Field(..., min_length=1)
    confidence_hint: Optional[float] = Field(default=None, ge=0, le=100)


class TechnicalAnalysisBundle(BaseModel):
    """
    Persisted snapshot of one full technical-analysis computation.

    At most one bundle per symbol is active; superseded bundles are kept
    inactive for history.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    symbol: str
    granularity: Granularity = Granularity.MONTHLY
    indicators: IndicatorSnapshot
    levels: SupportResistance
    signal: SignalSummary
    targets: PriceTargets
    current_price: Price = Field(..., gt=0)
    bars_used: int = Field(..., ge=0)
    calculated_at: datetime
    expires_at: datetime
    is_active: bool = True

    def is_fresh(self, now: datetime) -> bool:
        return self.is_active and self.expires_at > now

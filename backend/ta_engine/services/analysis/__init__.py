"""
Technical Analysis Service

CONTRACT:
    Input:  AnalysisRequest (symbol, force_recalculate)
    Output: TechnicalAnalysisBundle

RESPONSIBILITIES:
    - Reuse the active bundle while it is fresh (30 days by default)
    - Otherwise recompute the full analysis and activate it atomically
    - Leave the previous bundle active when anything fails
"""

from ta_engine.services.analysis.interface import TechnicalAnalysisServiceInterface
from ta_engine.services.analysis.service import (
    TechnicalAnalysisService,
    get_technical_analysis_service,
    get_or_compute_technical_analysis,
)

__all__ = [
    "TechnicalAnalysisServiceInterface",
    "TechnicalAnalysisService",
    "get_technical_analysis_service",
    "get_or_compute_technical_analysis",
]

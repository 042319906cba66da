"""
Technical Analysis Service Interface

Defines the contract for the compute-or-reuse lifecycle.
"""

from abc import abstractmethod

from ta_engine.services.base import BaseService
from ta_engine.schemas.analysis import AnalysisRequest, TechnicalAnalysisBundle


class TechnicalAnalysisServiceInterface(
    BaseService[AnalysisRequest, TechnicalAnalysisBundle]
):
    """
    Technical Analysis Lifecycle Contract.

    INPUT: AnalysisRequest
        - symbol, force_recalculate

    OUTPUT: TechnicalAnalysisBundle
        - cached when fresh, otherwise recomputed and activated

    RAISES: InsufficientDataError, NoPriceAvailableError, PersistenceError
    """

    @property
    def name(self) -> str:
        return "TechnicalAnalysisService"

    @abstractmethod
    async def get_or_compute(
        self, symbol: str, force_recalculate: bool = False
    ) -> TechnicalAnalysisBundle:
        """
        Return the fresh active bundle, or compute and activate a new one.

        Args:
            symbol: Instrument ticker
            force_recalculate: Ignore a fresh cached bundle
        """
        pass

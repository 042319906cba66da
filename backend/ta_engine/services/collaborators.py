"""
Collaborator Interfaces

Contracts for everything the analysis engine reads from or writes to.
Implementations live in services.analysis.providers, services.llm and
db.bundle_store; tests substitute fakes.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ta_engine.schemas.market import Granularity, Quote, RawBar
from ta_engine.schemas.analysis import (
    Narrative,
    NarrativeContext,
    TechnicalAnalysisBundle,
)


class PriceHistoryProvider(ABC):
    """Source of historical bars. Order is not guaranteed."""

    @abstractmethod
    async def get_bars(
        self, symbol: str, granularity: Granularity = Granularity.MONTHLY
    ) -> list[RawBar]:
        pass


class CurrentQuoteProvider(ABC):
    """Source of the latest traded price."""

    @abstractmethod
    async def get_latest_price(self, symbol: str) -> Optional[Quote]:
        pass


class NarrativeAnnotator(ABC):
    """
    Best-effort explanation of a computed analysis.

    May raise; never authoritative over numeric outputs.
    """

    @abstractmethod
    async def explain(self, context: NarrativeContext) -> Narrative:
        pass


class BundleStore(ABC):
    """Persistence for analysis bundles."""

    @abstractmethod
    async def find_active(self, symbol: str) -> Optional[TechnicalAnalysisBundle]:
        """Active bundle for the symbol, fresh or stale."""
        pass

    @abstractmethod
    async def deactivate_and_activate(
        self,
        symbol: str,
        old_bundle_id: Optional[str],
        new_bundle: TechnicalAnalysisBundle,
    ) -> None:
        """
        Atomically flag the previous active bundle inactive and store the new
        one as active.

        Raises:
            PersistenceError: nothing was changed
        """
        pass

"""
SQL-backed store for technical analysis bundles.

Activation (flag the old bundle inactive, insert the new one active) runs in
a single transaction. The partial unique index on active rows rejects a
concurrent activation; the loser retries once so the last writer wins.
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ta_engine.db.models import TechnicalAnalysisRecord, from_naive_utc, to_naive_utc
from ta_engine.schemas.analysis import TechnicalAnalysisBundle
from ta_engine.schemas.market import FULL_PRECISION
from ta_engine.services.base import PersistenceError
from ta_engine.services.collaborators import BundleStore

logger = logging.getLogger(__name__)

ACTIVATION_ATTEMPTS = 2


def bundle_to_record(bundle: TechnicalAnalysisBundle) -> TechnicalAnalysisRecord:
    """Map a bundle onto a row: summary columns plus the unrounded JSON payload."""
    return TechnicalAnalysisRecord(
        id=bundle.id,
        symbol=bundle.symbol,
        granularity=bundle.granularity.value,
        signal=bundle.signal.signal.value,
        current_price=bundle.current_price,
        min_price=bundle.targets.min_price,
        max_price=bundle.targets.max_price,
        fair_entry_price=bundle.targets.fair_entry_price,
        confidence=bundle.targets.confidence,
        analysis=bundle.targets.analysis,
        bars_used=bundle.bars_used,
        payload=bundle.model_dump(
            mode="json",
            include={"indicators", "levels", "signal", "targets"},
            context={FULL_PRECISION: True},
        ),
        calculated_at=to_naive_utc(bundle.calculated_at),
        expires_at=to_naive_utc(bundle.expires_at),
        is_active=bundle.is_active,
    )


def record_to_bundle(record: TechnicalAnalysisRecord) -> TechnicalAnalysisBundle:
    """Rebuild a bundle from its row. Timestamps come back as aware UTC."""
    return TechnicalAnalysisBundle(
        id=record.id,
        symbol=record.symbol,
        granularity=record.granularity,
        current_price=record.current_price,
        bars_used=record.bars_used,
        calculated_at=from_naive_utc(record.calculated_at),
        expires_at=from_naive_utc(record.expires_at),
        is_active=record.is_active,
        **record.payload,
    )


class SqlBundleStore(BundleStore):
    """BundleStore over the technical_analyses table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_active(self, symbol: str) -> Optional[TechnicalAnalysisBundle]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(TechnicalAnalysisRecord).where(
                        TechnicalAnalysisRecord.symbol == symbol,
                        TechnicalAnalysisRecord.is_active.is_(True),
                    )
                )
                record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load active analysis for {symbol}: {e}")
            raise PersistenceError(
                "BundleStore", f"Could not read active analysis for {symbol}"
            ) from e

        return record_to_bundle(record) if record is not None else None

    async def deactivate_and_activate(
        self,
        symbol: str,
        old_bundle_id: Optional[str],
        new_bundle: TechnicalAnalysisBundle,
    ) -> None:
        for attempt in range(1, ACTIVATION_ATTEMPTS + 1):
            try:
                await self._activate(symbol, new_bundle)
                logger.info(
                    f"Activated analysis {new_bundle.id} for {symbol} "
                    f"(replaced {old_bundle_id or 'none'})"
                )
                return
            except IntegrityError as e:
                if attempt < ACTIVATION_ATTEMPTS:
                    logger.warning(
                        f"Concurrent activation for {symbol}, retrying: {e.orig}"
                    )
                    continue
                logger.error(f"Activation for {symbol} failed after retry: {e}")
                raise PersistenceError(
                    "BundleStore",
                    f"Could not activate analysis for {symbol}",
                    {"bundle_id": new_bundle.id},
                ) from e
            except SQLAlchemyError as e:
                logger.error(f"Activation for {symbol} failed: {e}")
                raise PersistenceError(
                    "BundleStore",
                    f"Could not activate analysis for {symbol}",
                    {"bundle_id": new_bundle.id},
                ) from e

    async def _activate(self, symbol: str, new_bundle: TechnicalAnalysisBundle) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                # Every active row for the symbol, not only old_bundle_id, so a
                # concurrent writer's bundle is superseded too.
                await session.execute(
                    update(TechnicalAnalysisRecord)
                    .where(
                        TechnicalAnalysisRecord.symbol == symbol,
                        TechnicalAnalysisRecord.is_active.is_(True),
                    )
                    .values(is_active=False)
                )
                record = bundle_to_record(new_bundle)
                record.is_active = True
                session.add(record)

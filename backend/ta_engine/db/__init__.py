"""
Database module for the analysis engine.

Provides SQLite database connection, models and the bundle store.
"""

from ta_engine.db.database import (
    AsyncSessionLocal,
    close_db,
    init_db,
)
from ta_engine.db.models import Base, DailyQuote, HistoricalPrice, TechnicalAnalysisRecord
from ta_engine.db.bundle_store import SqlBundleStore

__all__ = [
    "AsyncSessionLocal",
    "close_db",
    "init_db",
    "Base",
    "DailyQuote",
    "HistoricalPrice",
    "TechnicalAnalysisRecord",
    "SqlBundleStore",
]

"""
Recompute technical analyses for the given symbols.

Run nightly (or by hand) with: python refresh_analyses.py RELIANCE TCS INFY
Every symbol is recalculated regardless of cache freshness.
"""
import asyncio
import logging
import os
import sys

# Set working directory and path
backend_dir = os.path.dirname(os.path.abspath(__file__))
os.chdir(backend_dir)
sys.path.insert(0, backend_dir)

# Load environment
from dotenv import load_dotenv
load_dotenv(os.path.join(backend_dir, ".env"))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("refresh_analyses")


async def refresh(symbols: list[str]) -> int:
    """Recompute each symbol; returns the number of failures."""
    from ta_engine.db.database import close_db, init_db
    from ta_engine.services.base import ServiceError
    from ta_engine.services.cache.redis_client import close_redis, init_redis
    from ta_engine.services.analysis.service import get_or_compute_technical_analysis

    await init_db()
    await init_redis()

    failures = 0
    try:
        for symbol in symbols:
            try:
                bundle = await get_or_compute_technical_analysis(symbol, force_recalculate=True)
            except ServiceError as e:
                failures += 1
                logger.error(f"{symbol}: {e}")
                continue

            targets = bundle.targets
            logger.info(
                f"{bundle.symbol}: {bundle.signal.signal.value} "
                f"range {targets.min_price:.2f}-{targets.max_price:.2f} "
                f"fair {targets.fair_entry_price:.2f} "
                f"confidence {targets.confidence:.0f}"
            )
    finally:
        await close_redis()
        await close_db()

    return failures


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python refresh_analyses.py SYMBOL [SYMBOL ...]")
        sys.exit(2)

    failed = asyncio.run(refresh(sys.argv[1:]))
    sys.exit(1 if failed else 0)

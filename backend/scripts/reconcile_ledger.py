"""
Check cached revenue counters against the transaction ledger.

Creator totals are compared with the sum of SALE net amounts; sales counts
and product revenue with the order items. The ledger is never modified.

Usage:
    python scripts/reconcile_ledger.py [--apply]

Options:
    --apply   Overwrite drifted counters with the ledger-backed values

Exit status is 1 when drift is found and --apply was not given.
"""

import asyncio
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.database import AsyncSessionLocal
from app.services.reconciliation import reconcile_cached_totals
import logging

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def main(apply: bool = False) -> int:
    async with AsyncSessionLocal() as db:
        drifts = await reconcile_cached_totals(db, apply=apply)

    if not drifts:
        logger.info("No drift detected")
        return 0

    for drift in drifts:
        logger.info(
            f"  {drift.entity} {drift.entity_id} {drift.field}: "
            f"cached={drift.cached} ledger={drift.expected}"
        )

    if apply:
        logger.info(f"\nRepaired {len(drifts)} counter(s)")
        return 0

    logger.error(f"\nDrift detected on {len(drifts)} counter(s); rerun with --apply to repair")
    return 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Detect and repair drift between cached revenue counters and the ledger"
    )
    parser.add_argument("--apply", action="store_true", help="Overwrite drifted counters")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(apply=args.apply)))

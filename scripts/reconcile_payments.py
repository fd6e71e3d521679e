"""
Create the missing Payment for every recorded Transaction.

Usage:
    python scripts/reconcile_payments.py [--reseller F2FA9D] [--limit 500]

Safe to re-run: transactions that already own a payment are skipped. Each run
is stored in the reconciliation_runs collection.
"""
import argparse
import asyncio
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from app.config.database import db_config, ensure_indexes
from app.services.payment_reconciler import reconcile_all


async def main(reseller_id=None, limit=None):
    await db_config.connect_db()
    try:
        await ensure_indexes()
        report = await reconcile_all(reseller_id=reseller_id, limit=limit, triggered_by="reconcile_script")
    finally:
        await db_config.close_db()

    print(f"Run {report['runId']}: processed={report['processed']} created={report['created']} "
          f"linked={report['linked']} skipped={report['skipped']} failed={report['failed']}")
    for error in report["errors"]:
        print(f"  ❌ transaction {error['transactionId']}: {error['error']}")
    return 1 if report["failed"] else 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Backfill payments for recorded transactions")
    parser.add_argument("--reseller", dest="reseller_id", help="only reconcile this resellerId")
    parser.add_argument("--limit", type=int, help="stop after this many transactions")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.reseller_id, args.limit)))

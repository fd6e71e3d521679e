"""
Payment Reconciler – guarantees each Transaction owns exactly one Payment.

Payments reference their transaction through `transactionId`, backed by a
unique (sparse) index. Payments created before that field existed are linked
by the legacy (resellerId, amount, commissionAmount) match, and a legacy
payment is claimed by at most one transaction.
"""
import asyncio
import logging
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, Optional, Tuple

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from app.config.database import db_config, Collections
from app.database.db_operations import db_ops
from app.utils.errors import AppError, NotFoundError
from app.utils.helpers import generate_payment_id, round_currency

logger = logging.getLogger(__name__)

CREATED = "created"
LINKED = "linked"
EXISTING = "existing"


class _KeyedLocks:
    """One asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                self._locks.pop(key, None)


_transaction_locks = _KeyedLocks()


async def reconcile(transaction: Dict) -> Dict:
    """Return the Payment for a transaction, creating it when missing."""
    payment, _ = await reconcile_with_outcome(transaction)
    return payment


async def reconcile_with_outcome(transaction: Dict) -> Tuple[Dict, str]:
    transaction_id = str(transaction["_id"])

    async with _transaction_locks.hold(transaction_id):
        existing = await db_ops.get_one(Collections.PAYMENTS, {"transactionId": transaction_id})
        if existing:
            return existing, EXISTING

        legacy = await _claim_legacy_payment(transaction, transaction_id)
        if legacy:
            logger.info("Linked legacy payment %s to transaction %s", legacy["paymentId"], transaction_id)
            return legacy, LINKED

        user = await db_ops.get_one(Collections.USERS, {"resellerId": transaction.get("resellerId")})
        if not user:
            raise NotFoundError(f"Reseller '{transaction.get('resellerId')}' not found")

        commission = await _resolve_commission(transaction, transaction_id)
        payment = _build_payment(transaction, transaction_id, commission)

        try:
            created = await db_ops.create(Collections.PAYMENTS, payment)
        except DuplicateKeyError:
            # Another process won the race for this transaction
            winner = await db_ops.get_one(Collections.PAYMENTS, {"transactionId": transaction_id})
            if winner is None:
                raise
            return winner, EXISTING

    logger.info(
        "Payment %s created for transaction %s (reseller %s, commission %.2f)",
        created["paymentId"], transaction_id, created["resellerId"], created["commissionAmount"],
    )
    return created, CREATED


async def _claim_legacy_payment(transaction: Dict, transaction_id: str) -> Optional[Dict]:
    return await db_ops.update_one_where(
        Collections.PAYMENTS,
        {
            "resellerId": transaction.get("resellerId"),
            "amount": round_currency(transaction.get("productPrice", 0)),
            "commissionAmount": round_currency(transaction.get("commissionAmount", 0)),
            "transactionId": {"$exists": False},
        },
        {"$set": {"transactionId": transaction_id}},
        sort=[("createdAt", ASCENDING)],
    )


async def _resolve_commission(transaction: Dict, transaction_id: str) -> Optional[Dict]:
    commission = await db_ops.get_one(Collections.COMMISSIONS, {"transactionId": transaction_id})
    if commission:
        return commission
    # Legacy commissions carry no transaction reference
    return await db_ops.update_one_where(
        Collections.COMMISSIONS,
        {
            "resellerId": transaction.get("resellerId"),
            "commissionAmount": round_currency(transaction.get("commissionAmount", 0)),
            "transactionId": {"$exists": False},
        },
        {"$set": {"transactionId": transaction_id}},
        sort=[("createdAt", ASCENDING)],
    )


def _build_payment(transaction: Dict, transaction_id: str, commission: Optional[Dict]) -> Dict:
    # Older transactions may lack productId; payments require one
    product_id = transaction.get("productId") or str(ObjectId())
    return {
        "paymentId": generate_payment_id(),
        "transactionId": transaction_id,
        "commissionId": str(commission["_id"]) if commission else None,
        "resellerId": transaction["resellerId"],
        "productId": str(product_id),
        "productName": transaction.get("productName"),
        "amount": round_currency(transaction.get("productPrice", 0)),
        "currency": transaction.get("currency") or "USD",
        "commissionAmount": round_currency(transaction.get("commissionAmount", 0)),
        "customerName": transaction.get("customerName"),
        "customerEmail": transaction.get("customerEmail"),
        "stripePaymentIntentId": transaction.get("processorReference") or f"beam_{transaction_id}",
        # "paid" = the customer charge is processor-confirmed, not the payout
        "status": "paid",
        "adminApproval": "pending",
        "commissionStatus": "pending",
        "payoutStatus": "not_started",
        "disbursementAttempts": 0,
        "lastDisbursementError": None,
        "metadata": {
            "source": transaction.get("source", "transaction"),
            "orderId": transaction.get("orderId"),
        },
    }


async def reconcile_all(reseller_id: Optional[str] = None, limit: Optional[int] = None,
                        triggered_by: str = "system") -> Dict:
    """
    Walk transactions and make sure each has its Payment. Safe to re-run:
    already-reconciled transactions are counted as skipped. The report is
    stored in reconciliation_runs.
    """
    report = {
        "runId": uuid.uuid4().hex,
        "triggeredBy": triggered_by,
        "startedAt": datetime.utcnow(),
        "finishedAt": None,
        "processed": 0,
        "created": 0,
        "linked": 0,
        "skipped": 0,
        "failed": 0,
        "errors": [],
    }

    query = {"resellerId": reseller_id} if reseller_id else {}
    cursor = db_config.get_collection(Collections.TRANSACTIONS).find(query).sort("createdAt", ASCENDING)
    if limit:
        cursor = cursor.limit(limit)

    async for transaction in cursor:
        report["processed"] += 1
        try:
            _, outcome = await reconcile_with_outcome(transaction)
        except AppError as e:
            report["failed"] += 1
            report["errors"].append({"transactionId": str(transaction["_id"]), "error": e.message})
            logger.warning("Reconciliation failed for transaction %s: %s", transaction["_id"], e.message)
            continue

        if outcome == CREATED:
            report["created"] += 1
        elif outcome == LINKED:
            report["linked"] += 1
        else:
            report["skipped"] += 1

    report["finishedAt"] = datetime.utcnow()
    await db_ops.create(Collections.RECONCILIATION_RUNS, dict(report))
    logger.info(
        "Reconciliation run %s: processed=%d created=%d linked=%d skipped=%d failed=%d",
        report["runId"], report["processed"], report["created"], report["linked"],
        report["skipped"], report["failed"],
    )
    return report

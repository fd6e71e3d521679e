"""
Fraud screening for referred purchases.

Each rule contributes to a score in [0, 1]; at or above FRAUD_THRESHOLD the
transaction is flagged and an alert is queued for admin review. Open alerts
block payout approval until reviewed.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from app.config.database import Collections
from app.config.settings import settings
from app.database.db_operations import db_ops
from app.utils.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

SELF_REFERRAL_WEIGHT = 0.5
VELOCITY_WEIGHT = 0.4
PRICE_MISMATCH_WEIGHT = 0.3

OPEN_STATUSES = ["flagged", "blocked"]


async def score_transaction(transaction: Dict, reseller: Dict, product: Dict) -> Tuple[float, List[str]]:
    score = 0.0
    factors = []

    customer_email = (transaction.get("customerEmail") or "").lower()
    if customer_email and customer_email == (reseller.get("email") or "").lower():
        score += SELF_REFERRAL_WEIGHT
        factors.append("self_referral")

    since = datetime.utcnow() - timedelta(hours=1)
    recent = await db_ops.count(Collections.TRANSACTIONS, {
        "resellerId": transaction["resellerId"],
        "customerEmail": customer_email,
        "createdAt": {"$gte": since},
    })
    if recent >= settings.FRAUD_MAX_PURCHASES_PER_HOUR:
        score += VELOCITY_WEIGHT
        factors.append("high_velocity")

    catalog_price = product.get("price")
    if catalog_price is not None and abs(float(transaction.get("productPrice", 0)) - float(catalog_price)) >= 0.01:
        score += PRICE_MISMATCH_WEIGHT
        factors.append("price_mismatch")

    return min(round(score, 2), 1.0), factors


async def screen_transaction(transaction: Dict, reseller: Dict, product: Dict) -> Optional[Dict]:
    """Score a freshly recorded transaction; returns the alert when one is raised."""
    score, factors = await score_transaction(transaction, reseller, product)
    if score < settings.FRAUD_THRESHOLD:
        return None

    transaction_id = str(transaction["_id"])
    alert = await db_ops.create(Collections.FRAUD_ALERTS, {
        "transactionId": transaction_id,
        "resellerId": transaction["resellerId"],
        "customerEmail": transaction.get("customerEmail"),
        "amount": transaction.get("productPrice", 0.0),
        "fraudScore": score,
        "riskFactors": factors,
        "status": "flagged",
        "reviewedBy": None,
        "reviewedAt": None,
        "reviewNotes": None,
    })
    await db_ops.update(Collections.TRANSACTIONS, transaction["_id"], {
        "isSuspicious": True,
        "fraudScore": score,
    })
    logger.warning(
        "Transaction %s flagged (score %.2f: %s) for reseller %s",
        transaction_id, score, ", ".join(factors), transaction["resellerId"],
    )
    return alert


async def has_open_alert(transaction_id: str) -> bool:
    return await db_ops.count(
        Collections.FRAUD_ALERTS,
        {"transactionId": transaction_id, "status": {"$in": OPEN_STATUSES}},
    ) > 0


async def review_fraud_alert(alert_id: str, action: str, admin_id: str, notes: Optional[str] = None) -> Dict:
    """
    approve: the sale is legitimate; the transaction flag is cleared.
    block: the reseller is deactivated and the alert stays open.
    """
    if action not in ("approve", "block"):
        raise ValidationError("action must be 'approve' or 'block'")

    alert = await db_ops.get_by_id(Collections.FRAUD_ALERTS, alert_id)
    if not alert:
        raise NotFoundError(f"Fraud alert '{alert_id}' not found")
    if alert.get("status") != "flagged":
        raise ConflictError(f"Fraud alert '{alert_id}' was already reviewed ({alert.get('status')})")

    reviewed = await db_ops.update_one_where(
        Collections.FRAUD_ALERTS,
        {"_id": alert["_id"], "status": "flagged"},
        {"$set": {
            "status": "approved" if action == "approve" else "blocked",
            "reviewedBy": admin_id,
            "reviewedAt": datetime.utcnow(),
            "reviewNotes": notes,
        }},
    )
    if not reviewed:
        raise ConflictError(f"Fraud alert '{alert_id}' was reviewed concurrently")

    if action == "approve":
        await db_ops.update(Collections.TRANSACTIONS, alert["transactionId"], {"isSuspicious": False})
    else:
        await db_ops.update_one_where(
            Collections.USERS,
            {"resellerId": alert["resellerId"]},
            {"$set": {"isActive": False}},
        )
        logger.warning("Reseller %s deactivated after fraud review by %s", alert["resellerId"], admin_id)

    logger.info("Fraud alert %s reviewed by %s: %s", alert_id, admin_id, action)
    return reviewed

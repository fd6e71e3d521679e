"""
Transaction Recorder – persists purchase events referred by resellers and the
commission ledger entry each one earns.

Deduplication of payable units is the reconciler's job; this layer only relies
on the store's unique index on orderId so a store order is recorded once.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

from pymongo.errors import DuplicateKeyError

from app.config.database import Collections
from app.config.settings import settings
from app.database.db_operations import db_ops
from app.services.commission_calculator import calculate_commission
from app.utils.errors import NotFoundError, DuplicateError, ValidationError

logger = logging.getLogger(__name__)

# Store order status → Transaction.paymentStatus
ORDER_STATUS_MAP = {
    "completed": "confirmed",
    "cancelled": "failed",
    "refunded": "refunded",
    "pending": "pending",
}

STATS_PERIODS = {"7d": 7, "30d": 30, "90d": 90}


async def get_active_reseller(reseller_id: str) -> Dict:
    reseller = await db_ops.get_one(Collections.USERS, {"resellerId": reseller_id, "isActive": {"$ne": False}})
    if not reseller:
        raise NotFoundError(f"Reseller '{reseller_id}' not found")
    return reseller


async def get_product(product_id: str) -> Dict:
    product = await db_ops.get_by_id(Collections.PRODUCTS, product_id)
    if not product:
        raise NotFoundError(f"Product '{product_id}' not found")
    return product


async def record_transaction(payload: Dict[str, Any]) -> Dict:
    """
    Create exactly one Transaction for a validated purchase payload.

    payload keys: resellerId, productId, customerName, customerEmail and
    optionally productPrice (defaults to the catalog price), orderId, currency,
    paymentMethod, paymentReference, purchaseDate, trackingData.
    """
    reseller_id = payload.get("resellerId")
    product_id = payload.get("productId")
    if not reseller_id or not product_id:
        raise ValidationError("resellerId and productId are required")
    if not payload.get("customerEmail") or not payload.get("customerName"):
        raise ValidationError("customer name and email are required")

    reseller = await get_active_reseller(reseller_id)
    product = await get_product(product_id)

    price = payload.get("productPrice")
    if price is None:
        price = product.get("price")
    rate = product.get("commission")
    commission_amount = calculate_commission(price, rate)

    tracking = payload.get("trackingData") or {}
    transaction = {
        "resellerId": reseller["resellerId"],
        "productId": str(product["_id"]),
        "productName": product.get("name", "Unknown Product"),
        "productPrice": float(price),
        "commissionPercentage": float(rate),
        "commissionAmount": commission_amount,
        "currency": payload.get("currency") or settings.DEFAULT_CURRENCY,
        "customerName": payload["customerName"],
        "customerEmail": payload["customerEmail"].lower(),
        "customerPhone": tracking.get("customerPhone"),
        "paymentMethod": payload.get("paymentMethod") or "beam_wallet",
        "processorReference": payload.get("paymentReference"),
        "paymentStatus": "pending",
        "commissionStatus": "pending",
        "purchaseDate": payload.get("purchaseDate") or datetime.utcnow(),
        "customerIp": tracking.get("ipAddress"),
        "customerDevice": tracking.get("userAgent"),
        "utmSource": tracking.get("utmSource", ""),
        "utmMedium": tracking.get("utmMedium", ""),
        "utmCampaign": tracking.get("utmCampaign", ""),
        "isSuspicious": False,
        "statusHistory": [],
    }
    if payload.get("orderId"):
        transaction["orderId"] = payload["orderId"]
        transaction["source"] = "external_store"

    try:
        created = await db_ops.create(Collections.TRANSACTIONS, transaction)
    except DuplicateKeyError:
        raise DuplicateError(f"Order '{payload.get('orderId')}' has already been recorded")

    logger.info(
        "Transaction %s recorded: reseller=%s product=%s price=%.2f commission=%.2f",
        created["_id"], created["resellerId"], created["productName"],
        created["productPrice"], commission_amount,
    )
    return created


async def get_transaction_by_order(order_id: str) -> Dict:
    transaction = await db_ops.get_one(Collections.TRANSACTIONS, {"orderId": order_id})
    if not transaction:
        raise NotFoundError(f"Order '{order_id}' not found")
    return transaction


async def record_commission(transaction: Dict) -> Dict:
    """Create (or return) the commission ledger entry owned by a transaction."""
    transaction_id = str(transaction["_id"])
    existing = await db_ops.get_one(Collections.COMMISSIONS, {"transactionId": transaction_id})
    if existing:
        return existing

    commission = {
        "resellerId": transaction["resellerId"],
        "transactionId": transaction_id,
        "productId": transaction.get("productId"),
        "productName": transaction.get("productName"),
        "saleAmount": transaction.get("productPrice"),
        "commissionAmount": transaction.get("commissionAmount", 0.0),
        "commissionRate": transaction.get("commissionPercentage"),
        "status": "pending",
        "saleDate": transaction.get("purchaseDate") or transaction.get("createdAt"),
        "paymentDate": None,
        "paymentReference": "",
        "rejectionReason": "",
    }
    try:
        return await db_ops.create(Collections.COMMISSIONS, commission)
    except DuplicateKeyError:
        # A concurrent delivery created it first
        return await db_ops.get_one(Collections.COMMISSIONS, {"transactionId": transaction_id})


async def update_order_status(order_id: str, status: str, reason: Optional[str] = None) -> Dict:
    """Reflect a store order status change on the transaction."""
    payment_status = ORDER_STATUS_MAP.get(status, "pending")
    transaction = await db_ops.update_one_where(
        Collections.TRANSACTIONS,
        {"orderId": order_id},
        {
            "$set": {"paymentStatus": payment_status},
            "$push": {"statusHistory": {
                "status": status,
                "reason": reason,
                "updatedAt": datetime.utcnow(),
            }},
        },
    )
    if not transaction:
        raise NotFoundError(f"Order '{order_id}' not found")
    logger.info("Order %s status → %s (transaction %s)", order_id, status, transaction["_id"])
    return transaction


async def get_purchase_stats(reseller_id: str, period: str = "30d") -> Dict:
    days = STATS_PERIODS.get(period, 30)
    start = datetime.utcnow() - timedelta(days=days)
    pipeline = [
        {"$match": {"resellerId": reseller_id, "createdAt": {"$gte": start}}},
        {"$group": {
            "_id": "$paymentStatus",
            "count": {"$sum": 1},
            "revenue": {"$sum": "$productPrice"},
            "commission": {"$sum": "$commissionAmount"},
        }},
    ]
    rows = await db_ops.aggregate(Collections.TRANSACTIONS, pipeline)

    total = sum(r["count"] for r in rows)
    revenue = sum(r["revenue"] for r in rows)
    by_status = {r["_id"]: r["count"] for r in rows}
    return {
        "period": period if period in STATS_PERIODS else "30d",
        "totalPurchases": total,
        "totalRevenue": round(revenue, 2),
        "totalCommission": round(sum(r["commission"] for r in rows), 2),
        "averageOrderValue": round(revenue / total, 2) if total else 0.0,
        "completedPurchases": by_status.get("confirmed", 0),
        "pendingPurchases": by_status.get("pending", 0),
    }


"""
Admin approval workflow – the only path that moves a Payment out of pending.

approve: claim → disburse → compare-and-set approved → credit reseller.
reject:  compare-and-set rejected; balances are never touched.

The payout claim (payoutLock) is taken while the payment is still pending, so
two concurrent approvals can never both reach the gateway.
"""
import logging
import uuid
from datetime import datetime
from typing import Dict, Optional

from app.config.database import Collections
from app.database.db_operations import db_ops
from app.services.fraud_screening import has_open_alert
from app.services.payment_gateway import PaymentGateway, RetryPolicy, disburse_with_retry
from app.utils.errors import ConflictError, GatewayError, NotFoundError

logger = logging.getLogger(__name__)

UNSETTLED_PAYOUT_STATUSES = ["unknown", "processing"]


async def get_payment(payment_id: str) -> Dict:
    payment = await db_ops.get_one(Collections.PAYMENTS, {"paymentId": payment_id})
    if not payment:
        raise NotFoundError(f"Payment '{payment_id}' not found")
    return payment


async def approve_payment(payment_id: str, gateway: PaymentGateway, admin_id: str,
                          notes: Optional[str] = None, policy: Optional[RetryPolicy] = None) -> Dict:
    payment = await get_payment(payment_id)
    if payment.get("adminApproval") != "pending":
        raise ConflictError(f"Payment '{payment_id}' is already {payment.get('adminApproval')}")

    user = await db_ops.get_one(Collections.USERS, {"resellerId": payment["resellerId"]})
    if not user:
        raise NotFoundError(f"Reseller '{payment['resellerId']}' not found")

    if payment.get("transactionId") and await has_open_alert(payment["transactionId"]):
        raise ConflictError(f"Payment '{payment_id}' has an unresolved fraud alert")

    lock = uuid.uuid4().hex
    claimed = await db_ops.update_one_where(
        Collections.PAYMENTS,
        {"paymentId": payment_id, "adminApproval": "pending", "payoutLock": None},
        {"$set": {"payoutLock": lock, "payoutStatus": "processing"}},
    )
    if not claimed:
        raise ConflictError(f"Payment '{payment_id}' is being processed or was already decided")

    try:
        result = await disburse_with_retry(gateway, claimed, policy)
    except GatewayError as e:
        await db_ops.update_one_where(
            Collections.PAYMENTS,
            {"paymentId": payment_id, "payoutLock": lock},
            {
                "$set": {"payoutStatus": "unknown" if e.outcome_unknown else "failed"},
                "$unset": {"payoutLock": ""},
            },
        )
        logger.error("Payout for %s failed, payment stays pending: %s", payment_id, e.message)
        raise

    now = datetime.utcnow()
    approved = await db_ops.update_one_where(
        Collections.PAYMENTS,
        {"paymentId": payment_id, "adminApproval": "pending", "payoutLock": lock},
        {
            "$set": {
                "adminApproval": "approved",
                "status": "disbursed",
                "commissionStatus": "paid",
                "payoutStatus": "completed",
                "payoutTransactionId": result.transaction_id,
                "payoutMode": result.mode,
                "approvedBy": admin_id,
                "approvedAt": now,
                "adminNotes": notes or "Approved by admin",
            },
            "$unset": {"payoutLock": ""},
        },
    )
    if not approved:
        # Only reachable if the claim was tampered with outside this workflow
        logger.critical("Payment %s disbursed (%s) but could not be marked approved",
                        payment_id, result.transaction_id)
        raise ConflictError(f"Payment '{payment_id}' changed state during payout")

    await db_ops.update_one_where(
        Collections.USERS,
        {"resellerId": payment["resellerId"]},
        {"$inc": {
            "balance": payment["commissionAmount"],
            "totalEarnings": payment["commissionAmount"],
            "totalSales": 1,
        }},
    )
    await _sync_commission(approved, {
        "status": "paid",
        "paymentDate": now,
        "paymentReference": result.transaction_id,
    })

    logger.info(
        "Payment %s approved by %s: %.2f paid to %s (%s, %s)",
        payment_id, admin_id, payment["commissionAmount"], payment["resellerId"],
        result.mode, result.transaction_id,
    )
    return approved


def payout_outcome_unknown(payment: Dict) -> bool:
    """Funds may have moved; only a retried approval or manual reconciliation may settle it."""
    return payment.get("payoutStatus") in UNSETTLED_PAYOUT_STATUSES


async def reject_payment(payment_id: str, admin_id: str, notes: Optional[str] = None) -> Dict:
    rejected = await db_ops.update_one_where(
        Collections.PAYMENTS,
        {
            "paymentId": payment_id,
            "adminApproval": "pending",
            "payoutLock": None,
            "payoutStatus": {"$nin": UNSETTLED_PAYOUT_STATUSES},
        },
        {"$set": {
            "adminApproval": "rejected",
            "status": "rejected",
            "rejectedBy": admin_id,
            "rejectedAt": datetime.utcnow(),
            "adminNotes": notes or "Rejected by admin",
        }},
    )
    if not rejected:
        payment = await get_payment(payment_id)
        raise ConflictError(
            f"Payment '{payment_id}' cannot be rejected (approval={payment.get('adminApproval')}, "
            f"payout={payment.get('payoutStatus')})"
        )

    await _sync_commission(rejected, {
        "status": "rejected",
        "rejectionReason": notes or "Rejected by admin",
    })
    logger.info("Payment %s rejected by %s", payment_id, admin_id)
    return rejected


async def _sync_commission(payment: Dict, fields: Dict):
    commission = None
    if payment.get("commissionId"):
        commission = await db_ops.update(Collections.COMMISSIONS, payment["commissionId"], fields)
    elif payment.get("transactionId"):
        commission = await db_ops.update_one_where(
            Collections.COMMISSIONS, {"transactionId": payment["transactionId"]}, {"$set": fields}
        )
    if not commission:
        logger.warning("No commission record linked to payment %s", payment["paymentId"])

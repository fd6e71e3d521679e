"""
Store webhooks – purchase ingestion and order status updates.
"""
import logging
from fastapi import APIRouter, Query

from app.models.transaction import StorePurchaseRequest, OrderStatusUpdate
from app.services import transaction_recorder, payment_reconciler, approval_workflow
from app.services.fraud_screening import screen_transaction
from app.utils.errors import DuplicateError
from app.utils.helpers import serialize_doc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

REVERSING_STATUSES = ("cancelled", "refunded")


def _purchase_response(transaction, commission, payment, duplicate=False, fraud_alert=None):
    return {
        "success": True,
        "duplicate": duplicate,
        "message": "Purchase already recorded" if duplicate else "Purchase recorded successfully",
        "transactionId": str(transaction["_id"]),
        "commissionId": str(commission["_id"]) if commission else None,
        "paymentId": payment["paymentId"],
        "commissionAmount": transaction["commissionAmount"],
        "flagged": fraud_alert is not None,
    }


async def _reverse_pending_payment(transaction, status, reason=None):
    """A cancelled or refunded order voids its payout while it is still pending."""
    payment = await payment_reconciler.reconcile(transaction)
    if payment.get("adminApproval") == "pending" and approval_workflow.payout_outcome_unknown(payment):
        logger.warning(
            "Order %s is %s but payout for payment %s is %s; left pending for manual reconciliation",
            transaction.get("orderId"), status, payment["paymentId"], payment.get("payoutStatus"),
        )
        return payment
    if payment.get("adminApproval") == "pending":
        return await approval_workflow.reject_payment(
            payment["paymentId"], admin_id="system", notes=reason or f"Order {status}"
        )
    if payment.get("adminApproval") == "approved":
        logger.warning(
            "Order %s is %s but payment %s was already paid out; manual follow-up required",
            transaction.get("orderId"), status, payment["paymentId"],
        )
    return payment


@router.post("/store-purchase")
async def store_purchase(purchase: StorePurchaseRequest):
    """
    Record a purchase referred by a reseller.

    Creates the Transaction, its Commission entry and its Payment. Redelivery of
    the same order returns the records created by the first delivery.
    """
    logger.info("Store purchase webhook: order=%s affiliate=%s", purchase.order_id, purchase.affiliate_id)

    payload = {
        "resellerId": purchase.affiliate_id,
        "productId": purchase.product_id,
        "productPrice": purchase.amount,
        "customerName": purchase.customer_name,
        "customerEmail": purchase.customer_email,
        "orderId": purchase.order_id,
        "currency": purchase.currency,
        "paymentMethod": purchase.payment_method,
        "paymentReference": purchase.payment_reference,
        "purchaseDate": purchase.purchase_date,
        "trackingData": purchase.tracking_data,
    }

    try:
        transaction = await transaction_recorder.record_transaction(payload)
    except DuplicateError:
        transaction = await transaction_recorder.get_transaction_by_order(purchase.order_id)
        commission = await transaction_recorder.record_commission(transaction)
        payment = await payment_reconciler.reconcile(transaction)
        logger.info("Duplicate delivery for order %s ignored", purchase.order_id)
        return _purchase_response(transaction, commission, payment, duplicate=True)

    commission = await transaction_recorder.record_commission(transaction)

    reseller = await transaction_recorder.get_active_reseller(transaction["resellerId"])
    product = await transaction_recorder.get_product(transaction["productId"])
    alert = await screen_transaction(transaction, reseller, product)

    payment = await payment_reconciler.reconcile(transaction)

    if purchase.order_status != "pending":
        transaction = await transaction_recorder.update_order_status(purchase.order_id, purchase.order_status)
        if purchase.order_status in REVERSING_STATUSES:
            payment = await _reverse_pending_payment(transaction, purchase.order_status)

    return _purchase_response(transaction, commission, payment, fraud_alert=alert)


@router.post("/order-status")
async def order_status(update: OrderStatusUpdate):
    """Apply a store order status change to the recorded transaction"""
    transaction = await transaction_recorder.update_order_status(update.order_id, update.status, update.reason)

    payment = None
    if update.status in REVERSING_STATUSES:
        payment = await _reverse_pending_payment(transaction, update.status, update.reason)

    return {
        "success": True,
        "message": f"Order status updated to {update.status}",
        "transaction": serialize_doc(transaction),
        "payment": serialize_doc(payment) if payment else None,
    }


@router.get("/stats/{reseller_id}")
async def purchase_stats(reseller_id: str, period: str = Query("30d", pattern="^(7d|30d|90d)$")):
    """Purchase statistics for a reseller"""
    await transaction_recorder.get_active_reseller(reseller_id)
    stats = await transaction_recorder.get_purchase_stats(reseller_id, period)
    return {"success": True, "resellerId": reseller_id, "stats": stats}

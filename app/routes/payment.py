"""
Admin payment routes – review queue, approval and rejection
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request

from app.config.database import Collections
from app.database.db_operations import db_ops
from app.models.payment import ApprovalRequest, PaymentListResponse, PaymentStats
from app.services import approval_workflow
from app.services.payment_gateway import PaymentGateway, build_payment_gateway
from app.utils.auth import require_admin
from app.utils.helpers import serialize_doc, serialize_docs, paginate

router = APIRouter(prefix="/admin/payments", tags=["Admin Payments"])


def get_payment_gateway(request: Request) -> PaymentGateway:
    """Gateway chosen at startup; built on first use when the lifespan did not run"""
    gateway = getattr(request.app.state, "payment_gateway", None)
    if gateway is None:
        gateway = build_payment_gateway()
        request.app.state.payment_gateway = gateway
    return gateway


@router.get("", response_model=PaymentListResponse)
async def list_payments(
    approval: Optional[str] = Query(None, pattern="^(pending|approved|rejected)$"),
    reseller_id: Optional[str] = Query(None, alias="resellerId"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    current_user: dict = Depends(require_admin)
):
    """List payments, newest first, optionally filtered by approval state or reseller"""
    query = {}
    if approval:
        query["adminApproval"] = approval
    if reseller_id:
        query["resellerId"] = reseller_id

    skip, limit = paginate(page, limit)
    payments = await db_ops.get_all(Collections.PAYMENTS, query, skip=skip, limit=limit)
    total = await db_ops.count(Collections.PAYMENTS, query)
    return {
        "success": True,
        "payments": serialize_docs(payments),
        "pagination": {"page": page, "limit": limit, "total": total},
    }


@router.get("/stats", response_model=PaymentStats)
async def payment_stats(current_user: dict = Depends(require_admin)):
    """Aggregate counts and amounts across the payment queue"""
    rows = await db_ops.aggregate(Collections.PAYMENTS, [
        {"$group": {
            "_id": "$adminApproval",
            "count": {"$sum": 1},
            "revenue": {"$sum": "$amount"},
            "commission": {"$sum": "$commissionAmount"},
        }},
    ])
    by_approval = {row["_id"]: row for row in rows}
    failed = await db_ops.count(Collections.PAYMENTS, {
        "adminApproval": "pending",
        "payoutStatus": {"$in": ["failed", "unknown"]},
    })

    def _get(approval, field):
        return by_approval.get(approval, {}).get(field, 0)

    return PaymentStats(
        total_payments=sum(row["count"] for row in rows),
        pending_approvals=_get("pending", "count"),
        approved_payments=_get("approved", "count"),
        rejected_payments=_get("rejected", "count"),
        failed_payouts=failed,
        total_revenue=round(sum(row["revenue"] for row in rows), 2),
        total_commissions_paid=round(_get("approved", "commission"), 2),
        pending_commission_amount=round(_get("pending", "commission"), 2),
    )


@router.get("/{payment_id}")
async def get_payment(payment_id: str, current_user: dict = Depends(require_admin)):
    payment = await approval_workflow.get_payment(payment_id)
    return {"success": True, "payment": serialize_doc(payment)}


@router.post("/{payment_id}/approve")
async def approve_payment(
    payment_id: str,
    body: Optional[ApprovalRequest] = None,
    current_user: dict = Depends(require_admin),
    gateway: PaymentGateway = Depends(get_payment_gateway)
):
    """Approve a pending payment and disburse its commission to the reseller"""
    payment = await approval_workflow.approve_payment(
        payment_id,
        gateway=gateway,
        admin_id=current_user["sub"],
        notes=body.notes if body else None,
    )
    return {
        "success": True,
        "message": "Payment approved and commission disbursed",
        "payment": serialize_doc(payment),
        "liveDisbursement": gateway.is_live,
    }


@router.post("/{payment_id}/reject")
async def reject_payment(
    payment_id: str,
    body: Optional[ApprovalRequest] = None,
    current_user: dict = Depends(require_admin)
):
    """Reject a pending payment. No funds move."""
    payment = await approval_workflow.reject_payment(
        payment_id,
        admin_id=current_user["sub"],
        notes=body.notes if body else None,
    )
    return {"success": True, "message": "Payment rejected", "payment": serialize_doc(payment)}

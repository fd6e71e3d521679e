"""
Reseller self-service routes – payment history, wallet and transactions
"""
from fastapi import APIRouter, Depends, Query

from app.config.database import Collections
from app.config.settings import settings
from app.database.db_operations import db_ops
from app.models.payment import PaymentListResponse
from app.models.transaction import TransactionListResponse
from app.models.user import WalletResponse
from app.utils.auth import require_reseller
from app.utils.errors import NotFoundError
from app.utils.helpers import serialize_docs, paginate

router = APIRouter(prefix="/reseller", tags=["Reseller"])


@router.get("/payments", response_model=PaymentListResponse)
async def my_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    current_user: dict = Depends(require_reseller)
):
    query = {"resellerId": current_user["resellerId"]}
    skip, limit = paginate(page, limit)
    payments = await db_ops.get_all(Collections.PAYMENTS, query, skip=skip, limit=limit)
    total = await db_ops.count(Collections.PAYMENTS, query)
    return {
        "success": True,
        "payments": serialize_docs(payments),
        "pagination": {"page": page, "limit": limit, "total": total},
    }


@router.get("/wallet", response_model=WalletResponse)
async def my_wallet(current_user: dict = Depends(require_reseller)):
    """Balance and lifetime totals, plus commission still awaiting approval"""
    reseller_id = current_user["resellerId"]
    user = await db_ops.get_one(Collections.USERS, {"resellerId": reseller_id})
    if not user:
        raise NotFoundError(f"Reseller '{reseller_id}' not found")

    pending = await db_ops.aggregate(Collections.PAYMENTS, [
        {"$match": {"resellerId": reseller_id, "adminApproval": "pending"}},
        {"$group": {"_id": None, "count": {"$sum": 1}, "amount": {"$sum": "$commissionAmount"}}},
    ])
    pending = pending[0] if pending else {"count": 0, "amount": 0.0}

    return WalletResponse(
        reseller_id=reseller_id,
        currency=settings.DEFAULT_CURRENCY,
        balance=round(user.get("balance", 0.0), 2),
        total_earnings=round(user.get("totalEarnings", 0.0), 2),
        total_sales=user.get("totalSales", 0),
        pending_commission=round(pending["amount"], 2),
        pending_payments=pending["count"],
    )


@router.get("/transactions", response_model=TransactionListResponse)
async def my_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    current_user: dict = Depends(require_reseller)
):
    query = {"resellerId": current_user["resellerId"]}
    skip, limit = paginate(page, limit)
    transactions = await db_ops.get_all(Collections.TRANSACTIONS, query, skip=skip, limit=limit)
    total = await db_ops.count(Collections.TRANSACTIONS, query)
    return {
        "success": True,
        "transactions": serialize_docs(transactions),
        "pagination": {"page": page, "limit": limit, "total": total},
    }

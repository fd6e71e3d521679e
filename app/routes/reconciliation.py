"""
Reconciliation routes – run the payment backfill job and read its audit trail
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from app.config.database import Collections
from app.database.db_operations import db_ops
from app.models.payment import ReconciliationReport
from app.services.payment_reconciler import reconcile_all
from app.utils.auth import require_admin

router = APIRouter(prefix="/admin/reconciliation", tags=["Reconciliation"])


@router.post("/run", response_model=ReconciliationReport)
async def run_reconciliation(
    reseller_id: Optional[str] = Query(None, alias="resellerId"),
    limit: Optional[int] = Query(None, ge=1),
    current_user: dict = Depends(require_admin)
):
    """Make sure every transaction has its payment. Safe to re-run."""
    return await reconcile_all(
        reseller_id=reseller_id,
        limit=limit,
        triggered_by=current_user.get("username") or current_user["sub"],
    )


@router.get("/runs", response_model=List[ReconciliationReport])
async def list_runs(limit: int = Query(20, ge=1, le=100), current_user: dict = Depends(require_admin)):
    return await db_ops.get_all(Collections.RECONCILIATION_RUNS, limit=limit, sort_field="startedAt")

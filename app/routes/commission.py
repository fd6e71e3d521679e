"""
Commission routes
"""
from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from app.models.commission import CommissionResponse
from app.database.db_operations import db_ops
from app.config.database import Collections
from app.utils.helpers import serialize_docs, paginate
from app.utils.auth import require_admin

router = APIRouter(prefix="/admin/commissions", tags=["Commissions"])


@router.get("", response_model=List[CommissionResponse])
async def get_commissions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(pending|approved|paid|rejected)$"),
    reseller_id: Optional[str] = Query(None, alias="resellerId"),
    current_user: dict = Depends(require_admin)
):
    """Commission ledger, newest first, with optional filtering"""
    filter_query = {}
    if status_filter:
        filter_query["status"] = status_filter
    if reseller_id:
        filter_query["resellerId"] = reseller_id

    skip, limit = paginate(page, limit)
    commissions = await db_ops.get_all(Collections.COMMISSIONS, filter_query=filter_query, skip=skip, limit=limit)
    return serialize_docs(commissions)

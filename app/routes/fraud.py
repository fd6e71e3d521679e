"""
Fraud review routes
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query

from app.config.database import Collections
from app.database.db_operations import db_ops
from app.models.fraud_alert import FraudAlertListResponse, FraudReviewRequest
from app.services.fraud_screening import review_fraud_alert
from app.utils.auth import require_admin
from app.utils.helpers import serialize_doc, serialize_docs, paginate

router = APIRouter(prefix="/admin/fraud-alerts", tags=["Fraud"])


@router.get("", response_model=FraudAlertListResponse)
async def list_fraud_alerts(
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(flagged|approved|blocked)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    current_user: dict = Depends(require_admin)
):
    query = {"status": status_filter} if status_filter else {}
    skip, limit = paginate(page, limit)
    alerts = await db_ops.get_all(Collections.FRAUD_ALERTS, query, skip=skip, limit=limit)
    total = await db_ops.count(Collections.FRAUD_ALERTS, query)
    return {
        "success": True,
        "alerts": serialize_docs(alerts),
        "pagination": {"page": page, "limit": limit, "total": total},
    }


@router.post("/{alert_id}/review")
async def review_alert(alert_id: str, review: FraudReviewRequest, current_user: dict = Depends(require_admin)):
    """Approve the sale as legitimate, or block the reseller"""
    alert = await review_fraud_alert(alert_id, review.action, current_user["sub"], review.notes)
    return {"success": True, "message": f"Fraud alert {alert['status']}", "alert": serialize_doc(alert)}

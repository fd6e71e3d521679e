"""
Payment models – the payable unit administrators approve or reject.
"""
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Literal, Dict, Any
from datetime import datetime


class PaymentResponse(BaseModel):
    id: str = Field(alias="_id")
    payment_id: str
    transaction_id: Optional[str] = None
    commission_id: Optional[str] = None
    reseller_id: str
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    amount: float
    currency: str = "USD"
    commission_amount: float
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    stripe_payment_intent_id: Optional[str] = Field(None, description="Processor reference of the customer charge")

    # status: processor-side state of the sale; admin_approval: the payout gate
    # "approved" appears on rows written before payout and approval were split
    status: Literal["pending", "paid", "approved", "disbursed", "rejected", "refunded"] = "paid"
    admin_approval: Literal["pending", "approved", "rejected"] = "pending"
    commission_status: Literal["pending", "approved", "paid", "rejected"] = "pending"

    payout_status: str = "not_started"
    payout_transaction_id: Optional[str] = None
    payout_mode: Optional[str] = None
    disbursement_attempts: int = 0
    last_disbursement_error: Optional[str] = None
    last_disbursement_at: Optional[datetime] = None

    admin_notes: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        populate_by_name = True
        alias_generator = to_camel


class PaymentListResponse(BaseModel):
    success: bool = True
    payments: List[PaymentResponse]
    pagination: Dict[str, int]


class ApprovalRequest(BaseModel):
    notes: Optional[str] = None


class PaymentStats(BaseModel):
    total_payments: int = 0
    pending_approvals: int = 0
    approved_payments: int = 0
    rejected_payments: int = 0
    failed_payouts: int = 0
    total_revenue: float = 0.0
    total_commissions_paid: float = 0.0
    pending_commission_amount: float = 0.0

    class Config:
        populate_by_name = True
        alias_generator = to_camel


class ReconciliationReport(BaseModel):
    run_id: str
    triggered_by: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    processed: int = 0
    created: int = 0
    linked: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[Dict[str, Any]] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        alias_generator = to_camel

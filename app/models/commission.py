"""
Commission model – the earning ledger entry owed to a reseller for one sale.
Lifecycle: pending → paid (when its payment is approved and disbursed) or rejected.
"""
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Optional, Literal
from datetime import datetime


class CommissionResponse(BaseModel):
    id: str = Field(alias="_id")
    reseller_id: str
    transaction_id: Optional[str] = None
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    sale_amount: Optional[float] = None
    commission_amount: float
    commission_rate: Optional[float] = None
    status: Literal["pending", "approved", "paid", "rejected"] = "pending"
    sale_date: Optional[datetime] = None
    payment_date: Optional[datetime] = None
    payment_reference: str = ""
    rejection_reason: str = ""
    created_at: Optional[datetime] = None

    class Config:
        populate_by_name = True
        alias_generator = to_camel

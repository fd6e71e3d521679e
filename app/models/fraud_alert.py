from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Literal, Dict
from datetime import datetime


class FraudAlertResponse(BaseModel):
    id: str = Field(alias="_id")
    transaction_id: str
    reseller_id: str
    customer_email: Optional[str] = None
    amount: float = 0.0
    fraud_score: float = Field(0.0, ge=0, le=1)
    risk_factors: List[str] = Field(default_factory=list)
    status: Literal["flagged", "approved", "blocked"] = "flagged"
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        populate_by_name = True
        alias_generator = to_camel


class FraudReviewRequest(BaseModel):
    action: Literal["approve", "block"]
    notes: Optional[str] = None


class FraudAlertListResponse(BaseModel):
    success: bool = True
    alerts: List[FraudAlertResponse]
    pagination: Dict[str, int]

"""
Transaction models – one purchase event referred by a reseller.
"""
from pydantic import BaseModel, Field, EmailStr
from pydantic.alias_generators import to_camel
from typing import Optional, Dict, Any, List, Literal
from datetime import datetime


class StorePurchaseRequest(BaseModel):
    """Payload posted by the external store when an order is placed"""
    order_id: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
    affiliate_id: str = Field(..., min_length=1, description="The referring reseller's resellerId")
    customer_email: EmailStr
    customer_name: str = Field(..., min_length=1)
    amount: Optional[float] = Field(None, ge=0, description="Charged price; defaults to the catalog price")
    currency: Optional[str] = None
    payment_method: str = "beam_wallet"
    payment_reference: Optional[str] = None
    purchase_date: Optional[datetime] = None
    order_status: Literal["completed", "pending", "cancelled", "refunded"] = "completed"
    tracking_data: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        populate_by_name = True
        alias_generator = to_camel
        json_schema_extra = {
            "example": {
                "orderId": "ORD-10021",
                "productId": "66f1c0a4b9e8a1d2c3f40a11",
                "affiliateId": "F2FA9D",
                "customerEmail": "jane@example.com",
                "customerName": "Jane Doe",
                "amount": 249.00,
                "trackingData": {"utmSource": "instagram"}
            }
        }


class OrderStatusUpdate(BaseModel):
    order_id: str = Field(..., min_length=1)
    status: Literal["completed", "pending", "cancelled", "refunded"]
    reason: Optional[str] = None

    class Config:
        populate_by_name = True
        alias_generator = to_camel


class TransactionResponse(BaseModel):
    id: str = Field(alias="_id")
    reseller_id: str
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    product_price: float
    commission_percentage: Optional[float] = None
    commission_amount: float
    currency: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    payment_method: Optional[str] = None
    payment_status: str = "pending"
    commission_status: str = "pending"
    order_id: Optional[str] = None
    is_suspicious: bool = False
    created_at: Optional[datetime] = None

    class Config:
        populate_by_name = True
        alias_generator = to_camel


class TransactionListResponse(BaseModel):
    success: bool = True
    transactions: List[TransactionResponse]
    pagination: Dict[str, int]

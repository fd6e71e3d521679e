"""
Reseller (affiliate user) models. Users are created by the registration
service; this backend only reads them and moves their money counters.
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class WalletResponse(BaseModel):
    """Reseller wallet summary"""
    reseller_id: str
    currency: str
    balance: float = 0.0
    total_earnings: float = 0.0
    total_sales: int = 0
    pending_commission: float = 0.0
    pending_payments: int = 0

    class Config:
        populate_by_name = True
        alias_generator = to_camel

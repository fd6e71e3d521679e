from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Literal
from datetime import datetime


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    price: float = Field(..., ge=0, description="Catalog price")
    commission: float = Field(..., ge=0, le=100, description="Commission percentage paid to the reseller")
    category: Literal["Installation", "License", "Service", "Other"] = "Other"
    is_active: bool = True
    image_url: Optional[str] = None
    features: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        alias_generator = to_camel


class ProductCreate(ProductBase):
    pass


class ProductResponse(ProductBase):
    id: str = Field(alias="_id")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

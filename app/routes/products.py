"""
Product catalog routes
"""
from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from app.models.product import ProductCreate, ProductResponse
from app.database.db_operations import db_ops
from app.config.database import Collections
from app.services.transaction_recorder import get_product
from app.utils.helpers import serialize_doc, serialize_docs
from app.utils.auth import require_admin

router = APIRouter(tags=["Products"])


@router.get("/products", response_model=List[ProductResponse])
async def list_products(
    category: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100)
):
    """Active catalog products"""
    filter_query = {"isActive": True}
    if category:
        filter_query["category"] = category
    products = await db_ops.get_all(Collections.PRODUCTS, filter_query, skip=skip, limit=limit)
    return serialize_docs(products)


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product_detail(product_id: str):
    return serialize_doc(await get_product(product_id))


@router.post("/admin/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(product: ProductCreate, current_user: dict = Depends(require_admin)):
    product_dict = product.model_dump(by_alias=True)
    created = await db_ops.create(Collections.PRODUCTS, product_dict)
    return serialize_doc(created)

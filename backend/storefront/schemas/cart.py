"""
Cart schemas
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from storefront.schemas.product import ProductResponse, VariantResponse


class CartItemCreate(BaseModel):
    product_id: int
    variant_id: Optional[int] = None
    quantity: int = Field(default=1, ge=1)


class CartItemUpdate(BaseModel):
    quantity: int = Field(ge=1)


class CartItemResponse(BaseModel):
    id: int
    product: ProductResponse
    variant: Optional[VariantResponse] = None
    quantity: int

    class Config:
        from_attributes = True


class CartResponse(BaseModel):
    items: List[CartItemResponse]
    subtotal: float
    item_count: int

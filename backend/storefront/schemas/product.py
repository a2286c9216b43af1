"""
Product and variant schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Union
from pydantic import BaseModel, Field

# Variant attributes are catalog-defined: string keys, string or numeric values
AttributeValue = Union[str, int, float]


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    price: Decimal = Field(ge=0, le=10_000_000)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, le=10_000_000)


class ActiveToggle(BaseModel):
    is_active: bool


class VariantCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    sku: Optional[str] = None
    price: Decimal = Field(ge=0, le=10_000_000)
    stock: int = Field(ge=0)
    attributes: Dict[str, AttributeValue] = Field(default_factory=dict)
    is_default: bool = False


class VariantUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    sku: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, le=10_000_000)
    stock: Optional[int] = Field(default=None, ge=0)
    attributes: Optional[Dict[str, AttributeValue]] = None
    is_default: Optional[bool] = None


class VariantResponse(BaseModel):
    id: int
    product_id: int
    name: str
    sku: Optional[str] = None
    price: float
    stock: int
    attributes: Dict[str, AttributeValue] = Field(default_factory=dict)
    is_default: bool
    is_active: bool

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    price: float
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductDetailResponse(ProductResponse):
    variants: List[VariantResponse] = Field(default_factory=list)


class ProductListItem(ProductResponse):
    """Catalog listing row with variant rollups."""
    total_stock: int = 0
    variant_count: int = 0
    min_price: float
    default_variant_id: Optional[int] = None

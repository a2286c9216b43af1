"""
Order schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field

from storefront.models.order import OrderStatus, PaymentMethod


class SubmittedItem(BaseModel):
    """A cart line as submitted by the client: only ids and quantity are trusted."""
    product_id: int
    variant_id: Optional[int] = None
    quantity: int = Field(gt=0)


class ShippingInfo(BaseModel):
    full_name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    zip: str


class OrderSubmission(BaseModel):
    """Normalized order request produced by the request validator."""
    shipping: ShippingInfo
    payment_method: PaymentMethod
    items: List[SubmittedItem]
    total: Decimal
    idempotency_key: Optional[str] = None
    notes: Optional[str] = None


class ProductSummary(BaseModel):
    id: int
    name: str
    price: float
    image_url: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True


class VariantSummary(BaseModel):
    id: int
    name: str
    sku: Optional[str] = None
    price: float
    attributes: Optional[dict] = None

    class Config:
        from_attributes = True


class OrderItemResponse(BaseModel):
    id: int
    product_id: int
    variant_id: Optional[int] = None
    product_name: str
    variant_name: Optional[str] = None
    price: float
    quantity: int
    product: Optional[ProductSummary] = None
    variant: Optional[VariantSummary] = None

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    user_id: int
    status: str
    total: float
    shipping_name: str
    shipping_email: str
    shipping_phone: str
    shipping_address: str
    shipping_city: str
    shipping_state: str
    shipping_zip: str
    payment_method: str
    notes: Optional[str] = None
    items: List[OrderItemResponse]
    created_at: datetime
    updated_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderOwner(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None

    class Config:
        from_attributes = True


class AdminOrderResponse(OrderResponse):
    user: Optional[OrderOwner] = None


class OrderList(BaseModel):
    orders: List[OrderResponse]
    total: int
    page: int
    per_page: int


class AdminOrderList(BaseModel):
    orders: List[AdminOrderResponse]
    total: int
    limit: int
    offset: int


class OrderStatusUpdate(BaseModel):
    status: OrderStatus

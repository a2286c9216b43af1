"""
Order models

Order lines snapshot the product name, variant name and unit price at the
time of purchase so later catalog edits never rewrite order history.
"""
import enum

from sqlalchemy import (
    Column, Integer, String, Numeric, ForeignKey, DateTime, Text, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from storefront.core.database import Base
from storefront.core.utils import utcnow


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    CARD = "card"
    PAYPAL = "paypal"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    order_number = Column(String, unique=True, index=True, nullable=False)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)
    total = Column(Numeric(12, 2), nullable=False)

    # Shipping snapshot
    shipping_name = Column(String, nullable=False)
    shipping_email = Column(String, nullable=False)
    shipping_phone = Column(String, nullable=False)
    shipping_address = Column(String(200), nullable=False)
    shipping_city = Column(String, nullable=False)
    shipping_state = Column(String, nullable=False)
    shipping_zip = Column(String, nullable=False)

    payment_method = Column(String(32), nullable=False)
    idempotency_key = Column(String(128), nullable=True)
    notes = Column(Text)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    shipped_at = Column(DateTime(timezone=True))
    delivered_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))

    # Relationships
    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_orders_user_created", "user_id", "created_at"),
        UniqueConstraint("user_id", "idempotency_key", name="uq_orders_user_idempotency_key"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True)

    # Snapshot of product at time of order
    product_name = Column(String, nullable=False)
    variant_name = Column(String)
    price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False)

    # Relationships
    order = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items")
    variant = relationship("ProductVariant")

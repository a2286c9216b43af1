"""
Product and variant models

A product carries the base price; variants carry their own price, stock and
a free-form attribute mapping (color, size, ...). Stock lives on variants
only: products without variants are treated as always available.
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, JSON, Numeric, ForeignKey,
    CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from storefront.core.database import Base
from storefront.core.utils import utcnow


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text)
    category = Column(String, index=True)
    image_url = Column(String)

    # Base price, used when an order line has no variant
    price = Column(Numeric(12, 2), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    variants = relationship("ProductVariant", back_populates="product", cascade="all, delete-orphan")
    cart_items = relationship("CartItem", back_populates="product", cascade="all, delete-orphan")
    order_items = relationship("OrderItem", back_populates="product")

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_product_price_non_negative"),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String, nullable=False)
    sku = Column(String, unique=True, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)

    # e.g. {"color": "red", "size": "M", "weight_g": 250}
    attributes = Column(JSON, default=dict)

    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    product = relationship("Product", back_populates="variants")

    __table_args__ = (
        CheckConstraint("stock >= 0", name="check_variant_stock_non_negative"),
        CheckConstraint("price >= 0", name="check_variant_price_non_negative"),
        Index("ix_product_variants_product_default", "product_id", "is_default"),
    )

    def __repr__(self):
        return f"<ProductVariant(id={self.id}, product_id={self.product_id}, stock={self.stock})>"

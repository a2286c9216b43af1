from storefront.models.user import User, UserRole
from storefront.models.product import Product, ProductVariant
from storefront.models.cart import CartItem
from storefront.models.order import Order, OrderItem, OrderStatus, PaymentMethod

__all__ = [
    "User",
    "UserRole",
    "Product",
    "ProductVariant",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
]

"""
Cart service

Persisted carts for registered users. The cart is a convenience copy only:
checkout re-verifies every line against the catalog.
"""
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.core.exceptions import CatalogError, NotFoundError
from storefront.core.utils import to_money
from storefront.models.cart import CartItem
from storefront.models.product import Product, ProductVariant

logger = logging.getLogger(__name__)


def line_price(item: CartItem) -> Decimal:
    if item.variant is not None:
        return to_money(item.variant.price)
    return to_money(item.product.price)


class CartService:
    def __init__(self, db: AsyncSession, user_id: int):
        self.db = db
        self.user_id = user_id

    async def get_items(self) -> List[CartItem]:
        result = await self.db.execute(
            select(CartItem)
            .where(CartItem.user_id == self.user_id)
            .options(selectinload(CartItem.product), selectinload(CartItem.variant))
            .order_by(CartItem.created_at, CartItem.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_cart(self) -> Tuple[List[CartItem], Decimal, int]:
        """Returns (items, subtotal, item_count)."""
        items = await self.get_items()
        subtotal = to_money(sum((line_price(item) * item.quantity for item in items), Decimal("0")))
        item_count = sum(item.quantity for item in items)
        return items, subtotal, item_count

    async def _check_availability(self, product_id: int, variant_id: Optional[int], quantity: int) -> None:
        product = await self.db.get(Product, product_id)
        if not product or not product.is_active:
            raise NotFoundError("Product not found")

        if variant_id is None:
            return

        result = await self.db.execute(
            select(ProductVariant).where(ProductVariant.id == variant_id).with_for_update()
        )
        variant = result.scalar_one_or_none()
        if not variant or variant.product_id != product_id:
            raise NotFoundError("Variant not found")
        if not variant.is_active:
            raise CatalogError("This variant is no longer available")
        if quantity > variant.stock:
            raise CatalogError(f"Only {variant.stock} items in stock", code="INSUFFICIENT_STOCK")

    async def _find_line(self, product_id: int, variant_id: Optional[int]) -> Optional[CartItem]:
        query = select(CartItem).where(
            CartItem.user_id == self.user_id,
            CartItem.product_id == product_id,
        )
        if variant_id is None:
            query = query.where(CartItem.variant_id.is_(None))
        else:
            query = query.where(CartItem.variant_id == variant_id)
        result = await self.db.execute(query)
        return result.scalars().first()

    async def add_item(self, product_id: int, variant_id: Optional[int], quantity: int) -> CartItem:
        """Add to the cart, merging with an existing line for the same product/variant."""
        existing = await self._find_line(product_id, variant_id)
        total_requested = quantity + (existing.quantity if existing else 0)
        await self._check_availability(product_id, variant_id, total_requested)

        if existing:
            existing.quantity = total_requested
            item = existing
        else:
            item = CartItem(
                user_id=self.user_id,
                product_id=product_id,
                variant_id=variant_id,
                quantity=quantity,
            )
            self.db.add(item)
        await self.db.commit()
        return item

    async def _get_line(self, item_id: int) -> CartItem:
        result = await self.db.execute(
            select(CartItem).where(CartItem.id == item_id, CartItem.user_id == self.user_id)
        )
        item = result.scalar_one_or_none()
        if not item:
            raise NotFoundError("Cart item not found")
        return item

    async def update_quantity(self, item_id: int, quantity: int) -> CartItem:
        item = await self._get_line(item_id)
        await self._check_availability(item.product_id, item.variant_id, quantity)
        item.quantity = quantity
        await self.db.commit()
        return item

    async def remove_item(self, item_id: int) -> None:
        item = await self._get_line(item_id)
        await self.db.delete(item)
        await self.db.commit()

    async def clear(self) -> int:
        result = await self.db.execute(delete(CartItem).where(CartItem.user_id == self.user_id))
        await self.db.commit()
        logger.info(f"Cart cleared for user_id={self.user_id} ({result.rowcount} line(s))")
        return result.rowcount

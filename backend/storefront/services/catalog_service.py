"""
Catalog administration

Products and their variants. Deactivating a product deactivates every
variant; a variant cannot be re-activated while its product is inactive;
a product has at most one default variant.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.core.exceptions import CatalogError, NotFoundError
from storefront.models.product import Product, ProductVariant
from storefront.schemas.product import ProductCreate, ProductUpdate, VariantCreate, VariantUpdate

logger = logging.getLogger(__name__)


def ordered_variants(product: Product, active_only: bool = False) -> List[ProductVariant]:
    """Default variant first, then creation order."""
    variants = [v for v in product.variants if v.is_active or not active_only]
    return sorted(variants, key=lambda v: (not v.is_default, v.id))


def summarize_product(product: Product) -> Dict[str, Any]:
    variants = ordered_variants(product, active_only=True)
    default = variants[0] if variants else None
    return {
        "total_stock": sum(v.stock or 0 for v in variants),
        "variant_count": len(variants),
        "min_price": float(min(v.price for v in variants)) if variants else float(product.price),
        "default_variant_id": default.id if default else None,
    }


class CatalogService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_products(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        include_inactive: bool = False,
    ) -> List[Product]:
        query = select(Product).options(selectinload(Product.variants))
        if not include_inactive:
            query = query.where(Product.is_active.is_(True))
        if category:
            query = query.where(Product.category == category)
        if search:
            query = query.where(Product.name.ilike(f"%{search.strip()}%"))
        result = await self.db.execute(query.order_by(Product.created_at.desc(), Product.id.desc()))
        return list(result.scalars().all())

    async def get_product(self, product_id: int, include_inactive: bool = False) -> Product:
        result = await self.db.execute(
            select(Product)
            .where(Product.id == product_id)
            .options(selectinload(Product.variants))
            .execution_options(populate_existing=True)
        )
        product = result.scalar_one_or_none()
        if not product or (not product.is_active and not include_inactive):
            raise NotFoundError("Product not found")
        return product

    async def get_variant(self, variant_id: int) -> ProductVariant:
        result = await self.db.execute(
            select(ProductVariant)
            .where(ProductVariant.id == variant_id)
            .execution_options(populate_existing=True)
        )
        variant = result.scalar_one_or_none()
        if not variant:
            raise NotFoundError("Variant not found")
        return variant

    async def get_public_variant(self, variant_id: int) -> ProductVariant:
        """A variant as shoppers see it: hidden when it or its product is inactive."""
        result = await self.db.execute(
            select(ProductVariant)
            .join(Product, Product.id == ProductVariant.product_id)
            .where(
                ProductVariant.id == variant_id,
                ProductVariant.is_active.is_(True),
                Product.is_active.is_(True),
            )
        )
        variant = result.scalar_one_or_none()
        if not variant:
            raise NotFoundError("Variant not found")
        return variant

    async def list_variants(self, product_id: int) -> List[ProductVariant]:
        product = await self.get_product(product_id)
        return ordered_variants(product, active_only=True)

    async def list_categories(self) -> List[str]:
        result = await self.db.execute(
            select(Product.category)
            .where(Product.is_active.is_(True), Product.category.is_not(None), Product.category != "")
            .distinct()
            .order_by(Product.category)
        )
        return list(result.scalars().all())

    async def create_product(self, data: ProductCreate) -> Product:
        product = Product(**data.model_dump(), is_active=True)
        self.db.add(product)
        await self.db.commit()
        logger.info(f"Product created id={product.id} name={product.name!r}")
        return await self.get_product(product.id, include_inactive=True)

    async def update_product(self, product_id: int, data: ProductUpdate) -> Product:
        product = await self.get_product(product_id, include_inactive=True)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(product, field, value)
        await self.db.commit()
        return await self.get_product(product_id, include_inactive=True)

    async def delete_product(self, product_id: int) -> None:
        """
        Delete a product with its variants and cart lines.

        Products that appear on orders are kept for the order history;
        deactivate them instead.
        """
        result = await self.db.execute(
            select(Product)
            .where(Product.id == product_id)
            .options(
                selectinload(Product.variants),
                selectinload(Product.cart_items),
                selectinload(Product.order_items),
            )
        )
        product = result.scalar_one_or_none()
        if not product:
            raise NotFoundError("Product not found")
        if product.order_items:
            raise CatalogError(
                "Product has orders and cannot be deleted. Deactivate it instead.",
                code="PRODUCT_HAS_ORDERS",
            )
        await self.db.delete(product)
        await self.db.commit()
        logger.info(f"Product deleted id={product_id}")

    async def set_product_active(self, product_id: int, is_active: bool) -> Product:
        product = await self.get_product(product_id, include_inactive=True)
        product.is_active = is_active
        if not is_active:
            for variant in product.variants:
                variant.is_active = False
        await self.db.commit()
        logger.info(f"Product {product_id} {'activated' if is_active else 'deactivated'}")
        return await self.get_product(product_id, include_inactive=True)

    async def _clear_default(self, product_id: int, keep_variant_id: Optional[int] = None) -> None:
        query = (
            update(ProductVariant)
            .where(ProductVariant.product_id == product_id, ProductVariant.is_default.is_(True))
            .values(is_default=False)
        )
        if keep_variant_id is not None:
            query = query.where(ProductVariant.id != keep_variant_id)
        await self.db.execute(query)

    async def _commit_variant(self, variant: ProductVariant) -> ProductVariant:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise CatalogError("A variant with this SKU already exists", code="DUPLICATE_SKU")
        await self.db.refresh(variant)
        return variant

    async def create_variant(self, product_id: int, data: VariantCreate) -> ProductVariant:
        await self.get_product(product_id, include_inactive=True)
        if data.is_default:
            await self._clear_default(product_id)

        variant = ProductVariant(product_id=product_id, is_active=True, **data.model_dump())
        self.db.add(variant)
        variant = await self._commit_variant(variant)
        logger.info(f"Variant created id={variant.id} product_id={product_id}")
        return variant

    async def update_variant(self, variant_id: int, data: VariantUpdate) -> ProductVariant:
        variant = await self.get_variant(variant_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("is_default"):
            await self._clear_default(variant.product_id, keep_variant_id=variant.id)
        for field, value in changes.items():
            setattr(variant, field, value)
        return await self._commit_variant(variant)

    async def set_variant_active(self, variant_id: int, is_active: bool) -> ProductVariant:
        variant = await self.get_variant(variant_id)
        if is_active:
            product = await self.db.get(Product, variant.product_id)
            if product is not None and not product.is_active:
                raise CatalogError(
                    "Cannot activate variant. Product is inactive. Please activate the product first.",
                    code="PRODUCT_INACTIVE",
                )
        variant.is_active = is_active
        await self.db.commit()
        await self.db.refresh(variant)
        return variant

    async def delete_variant(self, variant_id: int) -> None:
        variant = await self.get_variant(variant_id)
        await self.db.delete(variant)
        await self.db.commit()
        logger.info(f"Variant deleted id={variant_id}")

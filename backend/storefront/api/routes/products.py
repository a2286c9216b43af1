"""
Product catalog routes

Public reads return active products only; writes require an admin.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.database import get_db
from storefront.models.product import Product
from storefront.models.user import User
from storefront.schemas.product import (
    ActiveToggle,
    ProductCreate,
    ProductDetailResponse,
    ProductListItem,
    ProductResponse,
    ProductUpdate,
    VariantCreate,
    VariantResponse,
    VariantUpdate,
)
from storefront.services.catalog_service import CatalogService, ordered_variants, summarize_product
from storefront.api.deps import get_current_admin

router = APIRouter()
variants_router = APIRouter()


def product_detail(product: Product, active_only: bool) -> ProductDetailResponse:
    return ProductDetailResponse(
        **ProductResponse.model_validate(product).model_dump(),
        variants=[
            VariantResponse.model_validate(v)
            for v in ordered_variants(product, active_only=active_only)
        ],
    )


@router.get("", response_model=List[ProductListItem])
async def list_products(
    db: AsyncSession = Depends(get_db),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
):
    """Active products with stock and price rollups from their variants."""
    products = await CatalogService(db).list_products(category=category, search=search)
    return [
        ProductListItem(
            **ProductResponse.model_validate(product).model_dump(),
            **summarize_product(product),
        )
        for product in products
    ]


@router.get("/categories", response_model=List[str])
async def list_categories(db: AsyncSession = Depends(get_db)):
    """Distinct categories of active products, alphabetical."""
    return await CatalogService(db).list_categories()


@router.get("/{product_id}", response_model=ProductDetailResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    """Get a product with its active variants, default variant first."""
    product = await CatalogService(db).get_product(product_id)
    return product_detail(product, active_only=True)


@router.get("/{product_id}/variants", response_model=List[VariantResponse])
async def list_variants(product_id: int, db: AsyncSession = Depends(get_db)):
    return await CatalogService(db).list_variants(product_id)


@router.post("", response_model=ProductDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    product = await CatalogService(db).create_product(data)
    return product_detail(product, active_only=False)


@router.put("/{product_id}", response_model=ProductDetailResponse)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    product = await CatalogService(db).update_product(product_id, data)
    return product_detail(product, active_only=False)


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a product that has never been ordered (admin only)."""
    await CatalogService(db).delete_product(product_id)
    return {"success": True, "message": "Product deleted successfully"}


@router.put("/{product_id}/active", response_model=ProductDetailResponse)
async def set_product_active(
    product_id: int,
    data: ActiveToggle,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Activate or deactivate a product. Deactivation also deactivates its variants."""
    product = await CatalogService(db).set_product_active(product_id, data.is_active)
    return product_detail(product, active_only=False)


@router.post("/{product_id}/variants", response_model=VariantResponse, status_code=status.HTTP_201_CREATED)
async def create_variant(
    product_id: int,
    data: VariantCreate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).create_variant(product_id, data)


@variants_router.get("/{variant_id}", response_model=VariantResponse)
async def get_variant(variant_id: int, db: AsyncSession = Depends(get_db)):
    return await CatalogService(db).get_public_variant(variant_id)


@variants_router.put("/{variant_id}", response_model=VariantResponse)
async def update_variant(
    variant_id: int,
    data: VariantUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).update_variant(variant_id, data)


@variants_router.put("/{variant_id}/active", response_model=VariantResponse)
async def set_variant_active(
    variant_id: int,
    data: ActiveToggle,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).set_variant_active(variant_id, data.is_active)


@variants_router.delete("/{variant_id}")
async def delete_variant(
    variant_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    await CatalogService(db).delete_variant(variant_id)
    return {"success": True, "message": "Variant deleted successfully"}

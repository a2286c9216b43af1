"""
Tests for catalog administration: activation rules, default variants, SKUs.
"""
from decimal import Decimal

import pytest
from sqlalchemy import select

from storefront.core.exceptions import CatalogError, NotFoundError
from storefront.models import ProductVariant
from storefront.schemas.product import ProductCreate, ProductUpdate, VariantCreate, VariantUpdate
from storefront.services.catalog_service import CatalogService, ordered_variants, summarize_product


async def _variant_flags(db_session, product_id):
    result = await db_session.execute(
        select(ProductVariant.id, ProductVariant.is_active, ProductVariant.is_default)
        .where(ProductVariant.product_id == product_id)
        .order_by(ProductVariant.id)
    )
    return [tuple(row) for row in result.all()]


class TestProducts:
    @pytest.mark.asyncio
    async def test_create_and_update(self, db_session):
        service = CatalogService(db_session)
        product = await service.create_product(ProductCreate(name="Desk Lamp", price=Decimal("45.00"), category="home"))

        assert product.is_active is True
        assert product.variants == []

        updated = await service.update_product(product.id, ProductUpdate(price=Decimal("39.99")))
        assert updated.price == Decimal("39.99")
        assert updated.name == "Desk Lamp"

    @pytest.mark.asyncio
    async def test_inactive_product_hidden_unless_requested(self, db_session, factory):
        product = await factory.product(is_active=False)
        service = CatalogService(db_session)

        with pytest.raises(NotFoundError):
            await service.get_product(product.id)
        assert (await service.get_product(product.id, include_inactive=True)).id == product.id

    @pytest.mark.asyncio
    async def test_listing_filters(self, db_session, factory):
        await factory.product(name="Linen Shirt", category="apparel")
        await factory.product(name="Wool Scarf", category="apparel")
        await factory.product(name="Clay Mug", category="kitchen")
        await factory.product(name="Old Shirt", category="apparel", is_active=False)
        service = CatalogService(db_session)

        assert len(await service.list_products()) == 3
        assert {p.name for p in await service.list_products(category="apparel")} == {"Linen Shirt", "Wool Scarf"}
        assert [p.name for p in await service.list_products(search="shirt")] == ["Linen Shirt"]
        assert len(await service.list_products(search="shirt", include_inactive=True)) == 2

    @pytest.mark.asyncio
    async def test_deactivating_product_deactivates_variants(self, db_session, factory):
        product = await factory.product()
        await factory.variant(product, name="S")
        await factory.variant(product, name="M")

        await CatalogService(db_session).set_product_active(product.id, False)

        flags = await _variant_flags(db_session, product.id)
        assert [active for _, active, _ in flags] == [False, False]

    @pytest.mark.asyncio
    async def test_reactivating_product_leaves_variants_inactive(self, db_session, factory):
        product = await factory.product(is_active=False)
        await factory.variant(product, is_active=False)

        reactivated = await CatalogService(db_session).set_product_active(product.id, True)

        assert reactivated.is_active is True
        assert [active for _, active, _ in await _variant_flags(db_session, product.id)] == [False]


class TestVariants:
    @pytest.mark.asyncio
    async def test_cannot_activate_variant_of_inactive_product(self, db_session, factory):
        product = await factory.product(is_active=False)
        variant = await factory.variant(product, is_active=False)

        with pytest.raises(CatalogError) as exc_info:
            await CatalogService(db_session).set_variant_active(variant.id, True)

        assert exc_info.value.code == "PRODUCT_INACTIVE"

    @pytest.mark.asyncio
    async def test_activate_and_deactivate_variant(self, db_session, factory):
        product = await factory.product()
        variant = await factory.variant(product)
        service = CatalogService(db_session)

        assert (await service.set_variant_active(variant.id, False)).is_active is False
        assert (await service.set_variant_active(variant.id, True)).is_active is True

    @pytest.mark.asyncio
    async def test_single_default_variant(self, db_session, factory):
        product = await factory.product()
        first = await factory.variant(product, name="S", is_default=True)
        first_id = first.id
        service = CatalogService(db_session)

        second = await service.create_variant(
            product.id, VariantCreate(name="M", price=Decimal("16.00"), stock=3, is_default=True)
        )
        flags = dict((vid, default) for vid, _, default in await _variant_flags(db_session, product.id))
        assert flags == {first_id: False, second.id: True}

        await service.update_variant(first_id, VariantUpdate(is_default=True))
        flags = dict((vid, default) for vid, _, default in await _variant_flags(db_session, product.id))
        assert flags == {first_id: True, second.id: False}

    @pytest.mark.asyncio
    async def test_duplicate_sku_rejected(self, db_session, factory):
        product = await factory.product()
        product_id = product.id
        await factory.variant(product, sku="TOTE-RED")

        with pytest.raises(CatalogError) as exc_info:
            await CatalogService(db_session).create_variant(
                product_id, VariantCreate(name="Red again", sku="TOTE-RED", price=Decimal("15.00"), stock=1)
            )

        assert exc_info.value.code == "DUPLICATE_SKU"
        assert len(await _variant_flags(db_session, product_id)) == 1

    @pytest.mark.asyncio
    async def test_variant_for_missing_product(self, db_session):
        with pytest.raises(NotFoundError):
            await CatalogService(db_session).create_variant(
                404, VariantCreate(name="Ghost", price=Decimal("1.00"), stock=1)
            )

    @pytest.mark.asyncio
    async def test_delete_variant(self, db_session, factory):
        product = await factory.product()
        variant = await factory.variant(product)
        service = CatalogService(db_session)

        await service.delete_variant(variant.id)

        assert await _variant_flags(db_session, product.id) == []
        with pytest.raises(NotFoundError):
            await service.get_variant(variant.id)


class TestSummaries:
    @pytest.mark.asyncio
    async def test_summary_counts_active_variants_only(self, db_session, factory):
        product = await factory.product(price="30.00")
        await factory.variant(product, name="S", price="18.00", stock=4)
        default = await factory.variant(product, name="M", price="22.00", stock=6, is_default=True)
        await factory.variant(product, name="XL", price="9.00", stock=50, is_active=False)

        loaded = await CatalogService(db_session).get_product(product.id)
        summary = summarize_product(loaded)

        assert summary == {
            "total_stock": 10,
            "variant_count": 2,
            "min_price": 18.0,
            "default_variant_id": default.id,
        }
        assert [v.name for v in ordered_variants(loaded)] == ["M", "S", "XL"]
        assert [v.name for v in ordered_variants(loaded, active_only=True)] == ["M", "S"]

    @pytest.mark.asyncio
    async def test_summary_without_variants_uses_base_price(self, db_session, factory):
        product = await factory.product(price="30.00")

        summary = summarize_product(await CatalogService(db_session).get_product(product.id))

        assert summary["min_price"] == 30.0
        assert summary["variant_count"] == 0
        assert summary["default_variant_id"] is None

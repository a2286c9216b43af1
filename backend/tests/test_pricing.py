"""
Tests for line-item re-verification, pricing and the total tolerance check.
"""
from decimal import Decimal

import pytest

from storefront.core.exceptions import ItemsUnavailableError, TotalMismatchError
from storefront.schemas.order import SubmittedItem
from storefront.services.pricing import LineItemPricer, check_total, compute_total


class TestCheckTotal:
    def test_exact_match_passes(self):
        check_total(Decimal("40.00"), Decimal("40.00"))

    def test_within_one_percent_passes(self):
        check_total(Decimal("100.99"), Decimal("100.00"))
        check_total(Decimal("99.00"), Decimal("100.00"))

    def test_beyond_one_percent_rejected(self):
        with pytest.raises(TotalMismatchError) as exc_info:
            check_total(Decimal("101.50"), Decimal("100.00"))

        assert exc_info.value.to_response()["submittedTotal"] == 101.5
        assert exc_info.value.to_response()["computedTotal"] == 100.0

    def test_zero_computed_total_compared_absolutely(self):
        check_total(Decimal("0"), Decimal("0"))
        with pytest.raises(TotalMismatchError):
            check_total(Decimal("5"), Decimal("0"))

    def test_out_of_range_total_is_a_mismatch(self):
        with pytest.raises(TotalMismatchError) as exc_info:
            check_total(Decimal("1e30"), Decimal("40.00"))

        assert exc_info.value.to_response()["computedTotal"] == 40.0

    def test_custom_tolerance(self):
        check_total(Decimal("104"), Decimal("100"), tolerance=0.05)
        with pytest.raises(TotalMismatchError):
            check_total(Decimal("106"), Decimal("100"), tolerance=0.05)


class TestLineItemPricer:
    @pytest.mark.asyncio
    async def test_base_price_used_without_variant(self, db_session, factory):
        product = await factory.product(price="20.00")

        lines = await LineItemPricer(db_session).verify([
            SubmittedItem(product_id=product.id, quantity=2),
        ])

        assert len(lines) == 1
        assert lines[0].unit_price == Decimal("20.00")
        assert lines[0].variant is None
        assert compute_total(lines) == Decimal("40.00")

    @pytest.mark.asyncio
    async def test_variant_price_overrides_base_price(self, db_session, factory):
        product = await factory.product(price="20.00")
        variant = await factory.variant(product, name="Large", price="25.50", stock=4)

        lines = await LineItemPricer(db_session).verify([
            SubmittedItem(product_id=product.id, variant_id=variant.id, quantity=3),
        ])

        assert lines[0].unit_price == Decimal("25.50")
        assert lines[0].variant_name == "Large"
        assert compute_total(lines) == Decimal("76.50")

    @pytest.mark.asyncio
    async def test_every_problem_is_reported(self, db_session, factory):
        inactive_product = await factory.product(name="Retired Mug", is_active=False)
        product = await factory.product(name="Notebook")
        other = await factory.product(name="Pen")
        inactive_variant = await factory.variant(product, name="Blue", is_active=False)
        low_stock = await factory.variant(product, name="Red", stock=3)
        foreign = await factory.variant(other, name="Black")

        with pytest.raises(ItemsUnavailableError) as exc_info:
            await LineItemPricer(db_session).verify([
                SubmittedItem(product_id=9999, quantity=1),
                SubmittedItem(product_id=inactive_product.id, quantity=1),
                SubmittedItem(product_id=product.id, variant_id=8888, quantity=1),
                SubmittedItem(product_id=product.id, variant_id=inactive_variant.id, quantity=1),
                SubmittedItem(product_id=product.id, variant_id=low_stock.id, quantity=5),
                SubmittedItem(product_id=product.id, variant_id=foreign.id, quantity=1),
            ])

        reasons = exc_info.value.unavailable_items
        assert len(reasons) == 6
        assert "Product 9999 not found" in reasons
        assert "'Retired Mug' is no longer available" in reasons
        assert "Variant 8888 of 'Notebook' not found" in reasons
        assert "'Notebook' (Blue) is no longer available" in reasons
        assert f"Variant {foreign.id} does not belong to 'Notebook'" in reasons
        assert any(
            r.startswith("Insufficient stock") and f"variant {low_stock.id}" in r and "available 3" in r
            for r in reasons
        )

    @pytest.mark.asyncio
    async def test_quantities_for_one_variant_are_combined(self, db_session, factory):
        product = await factory.product()
        variant = await factory.variant(product, stock=3)

        with pytest.raises(ItemsUnavailableError) as exc_info:
            await LineItemPricer(db_session).verify([
                SubmittedItem(product_id=product.id, variant_id=variant.id, quantity=2),
                SubmittedItem(product_id=product.id, variant_id=variant.id, quantity=2),
            ])

        assert len(exc_info.value.unavailable_items) == 1
        assert "requested 4" in exc_info.value.unavailable_items[0]

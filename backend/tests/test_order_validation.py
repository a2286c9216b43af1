"""
Tests for checkout request validation.
"""
from decimal import Decimal

import pytest

from storefront.models.order import PaymentMethod
from storefront.services.order_validation import (
    parse_quantity,
    parse_total,
    validate_address,
    validate_email,
    validate_items,
    validate_order_submission,
    validate_payment_method,
    validate_phone,
)

from conftest import order_payload


class TestFieldValidators:
    """Single-field checks."""

    @pytest.mark.parametrize("email", ["a@b.co", "first.last@shop.example.in"])
    def test_valid_emails(self, email):
        assert validate_email(email) is None

    @pytest.mark.parametrize("email", ["plainaddress", "no@tld", "two words@x.com", "@x.com"])
    def test_invalid_emails(self, email):
        assert validate_email(email) == "Invalid email format"

    def test_missing_email(self):
        assert validate_email("") == "Email is required"
        assert validate_email(None) == "Email is required"

    def test_phone_separators_are_ignored(self):
        assert validate_phone("+91 (987) 654-3210") is None

    @pytest.mark.parametrize("phone", ["12345", "1234567890123456", "98765abc10"])
    def test_invalid_phones(self, phone):
        assert validate_phone(phone) == "Invalid phone number format"

    def test_address_length_bounds(self):
        assert validate_address("12 A") == "Address must be at least 5 characters"
        assert validate_address("x" * 201) == "Address must be less than 200 characters"
        assert validate_address("   12 Main St   ") is None

    def test_payment_method_enumeration(self):
        assert validate_payment_method("cash_on_delivery") is None
        assert validate_payment_method("card") is None
        assert validate_payment_method("bitcoin").startswith("Invalid payment method")
        assert validate_payment_method(None) == "Payment method is required"


class TestItems:
    def test_empty_items_rejected(self):
        items, errors = validate_items([])
        assert items == []
        assert errors == ["Order must contain at least one item"]

    def test_nested_product_and_variant_references(self):
        items, errors = validate_items([
            {"product": {"id": 3}, "variant": {"id": "7"}, "quantity": 2},
        ])
        assert errors == []
        assert items[0].product_id == 3
        assert items[0].variant_id == 7
        assert items[0].quantity == 2

    def test_item_errors_are_positioned(self):
        items, errors = validate_items([
            {"product_id": 1, "quantity": 1},
            {"quantity": 1},
            {"product_id": 2, "quantity": 0},
        ])
        assert len(items) == 1
        assert "Item 2: product reference is required" in errors
        assert "Item 3: Quantity must be at least 1" in errors

    def test_invalid_variant_reference(self):
        items, errors = validate_items([{"product_id": 1, "variant_id": "abc", "quantity": 1}])
        assert items == []
        assert errors == ["Item 1: invalid variant reference"]

    @pytest.mark.parametrize("value,expected", [(3, 3), ("4", 4), (2.0, 2)])
    def test_quantity_parsing(self, value, expected):
        assert parse_quantity(value) == (expected, None)

    @pytest.mark.parametrize("value", [1.5, "1.5", True, None, "x"])
    def test_quantity_rejections(self, value):
        quantity, error = parse_quantity(value)
        assert quantity is None
        assert error


class TestSubmission:
    def test_valid_submission_is_normalized(self):
        raw = order_payload(
            [{"product_id": 1, "quantity": 2}],
            "40.00",
            email="  Asha@Example.COM ",
            idempotencyKey="checkout-123",
        )
        submission, errors = validate_order_submission(raw)

        assert errors == []
        assert submission.shipping.email == "Asha@Example.COM"
        assert submission.shipping.full_name == "Asha Rao"
        assert submission.payment_method == PaymentMethod.CASH_ON_DELIVERY
        assert submission.total == Decimal("40.00")
        assert submission.idempotency_key == "checkout-123"

    def test_name_is_accepted_in_place_of_full_name(self):
        raw = order_payload([{"product_id": 1, "quantity": 1}], 20)
        del raw["fullName"]
        raw["name"] = "Ravi Kumar"
        submission, errors = validate_order_submission(raw)
        assert errors == []
        assert submission.shipping.full_name == "Ravi Kumar"

    def test_all_problems_reported_together(self):
        raw = {
            "email": "bad",
            "phone": "1",
            "address": "x",
            "paymentMethod": "crypto",
            "items": [],
        }
        submission, errors = validate_order_submission(raw)

        assert submission is None
        assert "Full name is required" in errors
        assert "Invalid email format" in errors
        assert "Invalid phone number format" in errors
        assert "Address must be at least 5 characters" in errors
        assert "City is required" in errors
        assert "State is required" in errors
        assert "ZIP code is required" in errors
        assert "Order must contain at least one item" in errors
        assert "Order total is required" in errors
        assert any(e.startswith("Invalid payment method") for e in errors)

    def test_non_object_payload(self):
        assert validate_order_submission(["not", "a", "dict"]) == (None, ["Invalid order payload"])

    def test_negative_total(self):
        assert parse_total(-1) == (None, "Order total cannot be negative")
        assert parse_total("abc") == (None, "Order total must be a valid number")

    def test_total_upper_bound(self):
        assert parse_total("10000000") == (Decimal("10000000"), None)
        assert parse_total(1e30) == (None, "Order total must be at most 10000000")

    def test_quantity_upper_bound(self):
        assert parse_quantity(10_000) == (10_000, None)
        assert parse_quantity(10**27) == (None, "Quantity must be at most 10000")
        assert parse_quantity("10001") == (None, "Quantity must be at most 10000")

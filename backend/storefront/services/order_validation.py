"""
Order Request Validator

Turns a raw checkout submission into a typed OrderSubmission, or a list of
field-level messages. No I/O: nothing here touches the database.

Accepted shape:
    {fullName|name, email, phone, address, city, state, zip, paymentMethod,
     items: [{product_id | product.id, variant_id? | variant.id?, quantity}],
     total, idempotencyKey?, notes?}
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from storefront.models.order import PaymentMethod
from storefront.schemas.order import OrderSubmission, ShippingInfo, SubmittedItem

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_SEPARATORS = re.compile(r"[\s\-\(\)\+]")
PHONE_DIGITS = re.compile(r"^\d{7,15}$")

ADDRESS_MIN_LENGTH = 5
ADDRESS_MAX_LENGTH = 200
IDEMPOTENCY_KEY_MAX_LENGTH = 128
MAX_ITEM_QUANTITY = 10_000
MAX_ORDER_TOTAL = Decimal("10000000")

VALID_PAYMENT_METHODS = [method.value for method in PaymentMethod]


def _clean(value: Any) -> str:
    if value is None or not isinstance(value, str):
        return ""
    return value.strip()


def validate_email(email: Any) -> Optional[str]:
    """Return an error message, or None if the email is plausible."""
    if not email or not isinstance(email, str):
        return "Email is required"
    if not EMAIL_PATTERN.match(email.strip()):
        return "Invalid email format"
    return None


def validate_phone(phone: Any) -> Optional[str]:
    if not phone or not isinstance(phone, str):
        return "Phone number is required"
    cleaned = PHONE_SEPARATORS.sub("", phone)
    if not PHONE_DIGITS.match(cleaned):
        return "Invalid phone number format"
    return None


def validate_address(address: Any) -> Optional[str]:
    if not address or not isinstance(address, str):
        return "Address is required"
    trimmed = address.strip()
    if len(trimmed) < ADDRESS_MIN_LENGTH:
        return f"Address must be at least {ADDRESS_MIN_LENGTH} characters"
    if len(trimmed) > ADDRESS_MAX_LENGTH:
        return f"Address must be less than {ADDRESS_MAX_LENGTH} characters"
    return None


def validate_payment_method(payment_method: Any) -> Optional[str]:
    """Only the enumerated methods are accepted, even if card/paypal are not wired up."""
    if not payment_method:
        return "Payment method is required"
    if payment_method not in VALID_PAYMENT_METHODS:
        return f"Invalid payment method. Must be one of: {', '.join(VALID_PAYMENT_METHODS)}"
    return None


def validate_shipping(raw: Dict[str, Any]) -> List[str]:
    """Validate shipping fields; returns every problem found."""
    errors = []

    if not _clean(raw.get("fullName")) and not _clean(raw.get("name")):
        errors.append("Full name is required")

    for check, field in (
        (validate_email, "email"),
        (validate_phone, "phone"),
        (validate_address, "address"),
    ):
        message = check(raw.get(field))
        if message:
            errors.append(message)

    if not _clean(raw.get("city")):
        errors.append("City is required")
    if not _clean(raw.get("state")):
        errors.append("State is required")
    if not _clean(raw.get("zip")):
        errors.append("ZIP code is required")

    return errors


def _parse_id(value: Any) -> Optional[int]:
    """Accept positive ints or digit strings; reject bools and everything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed > 0 else None
    return None


def _reference(item: Dict[str, Any], key: str) -> Any:
    """Read `<key>_id`, falling back to a nested `<key>: {id}` cart snapshot."""
    direct = item.get(f"{key}_id")
    if direct is not None:
        return direct
    nested = item.get(key)
    if isinstance(nested, dict):
        return nested.get("id")
    return None


def parse_quantity(value: Any) -> Tuple[Optional[int], Optional[str]]:
    if value is None:
        return None, "Quantity is required"
    if isinstance(value, bool):
        return None, "Quantity must be a valid number"
    if isinstance(value, str):
        value = value.strip()
        if not re.fullmatch(r"-?\d+", value):
            return None, "Quantity must be an integer"
        value = int(value)
    if isinstance(value, float):
        if not value.is_integer():
            return None, "Quantity must be an integer"
        value = int(value)
    if not isinstance(value, int):
        return None, "Quantity must be a valid number"
    if value < 1:
        return None, "Quantity must be at least 1"
    if value > MAX_ITEM_QUANTITY:
        return None, f"Quantity must be at most {MAX_ITEM_QUANTITY}"
    return value, None


def validate_items(raw_items: Any) -> Tuple[List[SubmittedItem], List[str]]:
    if not raw_items or not isinstance(raw_items, list):
        return [], ["Order must contain at least one item"]

    items: List[SubmittedItem] = []
    errors: List[str] = []

    for position, raw_item in enumerate(raw_items, start=1):
        if not isinstance(raw_item, dict):
            errors.append(f"Item {position}: invalid item")
            continue

        product_id = _parse_id(_reference(raw_item, "product"))
        if product_id is None:
            errors.append(f"Item {position}: product reference is required")

        variant_ref = _reference(raw_item, "variant")
        variant_id = None
        variant_invalid = False
        if variant_ref is not None and variant_ref != "":
            variant_id = _parse_id(variant_ref)
            if variant_id is None:
                variant_invalid = True
                errors.append(f"Item {position}: invalid variant reference")

        quantity, quantity_error = parse_quantity(raw_item.get("quantity"))
        if quantity_error:
            errors.append(f"Item {position}: {quantity_error}")

        if product_id is not None and quantity is not None and not variant_invalid:
            items.append(SubmittedItem(product_id=product_id, variant_id=variant_id, quantity=quantity))

    return items, errors


def parse_total(value: Any) -> Tuple[Optional[Decimal], Optional[str]]:
    if value is None or isinstance(value, bool):
        return None, "Order total is required"
    try:
        total = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None, "Order total must be a valid number"
    if not total.is_finite():
        return None, "Order total must be a valid number"
    if total < 0:
        return None, "Order total cannot be negative"
    if total > MAX_ORDER_TOTAL:
        return None, f"Order total must be at most {MAX_ORDER_TOTAL}"
    return total, None


def validate_order_submission(raw: Any) -> Tuple[Optional[OrderSubmission], List[str]]:
    """
    Validate a raw checkout payload.

    Returns:
        (OrderSubmission, []) when valid, (None, errors) otherwise.
    """
    if not isinstance(raw, dict):
        return None, ["Invalid order payload"]

    errors = validate_shipping(raw)

    payment_error = validate_payment_method(raw.get("paymentMethod"))
    if payment_error:
        errors.append(payment_error)

    items, item_errors = validate_items(raw.get("items"))
    errors.extend(item_errors)

    total, total_error = parse_total(raw.get("total"))
    if total_error:
        errors.append(total_error)

    idempotency_key = raw.get("idempotencyKey")
    if idempotency_key is not None:
        if not isinstance(idempotency_key, str) or not idempotency_key.strip():
            errors.append("Idempotency key must be a non-empty string")
        elif len(idempotency_key.strip()) > IDEMPOTENCY_KEY_MAX_LENGTH:
            errors.append(f"Idempotency key must be at most {IDEMPOTENCY_KEY_MAX_LENGTH} characters")

    if errors:
        return None, errors

    notes = raw.get("notes")
    submission = OrderSubmission(
        shipping=ShippingInfo(
            full_name=_clean(raw.get("fullName")) or _clean(raw.get("name")),
            email=raw["email"].strip(),
            phone=raw["phone"].strip(),
            address=raw["address"].strip(),
            city=raw["city"].strip(),
            state=raw["state"].strip(),
            zip=raw["zip"].strip(),
        ),
        payment_method=PaymentMethod(raw["paymentMethod"]),
        items=items,
        total=total,
        idempotency_key=idempotency_key.strip() if idempotency_key else None,
        notes=notes.strip() if isinstance(notes, str) and notes.strip() else None,
    )
    return submission, []

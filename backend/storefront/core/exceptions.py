"""
Storefront Exception Hierarchy

Structured exception classes for order intake, inventory and catalog
management. All exceptions carry a code, message and details; the API layer
renders them as ``{"success": false, "message": ..., **details}``.

Exception Hierarchy:
    StorefrontError
    ├── NotFoundError
    ├── OrderError
    │   ├── OrderValidationError
    │   ├── ItemsUnavailableError
    │   ├── TotalMismatchError
    │   ├── DuplicateOrderError
    │   └── InvalidStatusTransitionError
    ├── InventoryError
    │   └── StockError
    └── CatalogError
"""
import logging
from decimal import Decimal
from typing import Optional, Dict, Any, List

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """
    Base exception for all storefront errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Extra response fields (already in wire format)
        status_code: HTTP status the API layer answers with
    """

    default_code: str = "STOREFRONT_ERROR"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def to_response(self) -> Dict[str, Any]:
        """Client-facing payload."""
        return {"success": False, "message": self.message, **self.details}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class NotFoundError(StorefrontError):
    """Requested record does not exist (or is not visible to the caller)."""
    default_code = "NOT_FOUND"
    status_code = 404


# =============================================================================
# ORDER ERRORS
# =============================================================================

class OrderError(StorefrontError):
    """Base exception for order intake and lifecycle errors."""
    default_code = "ORDER_ERROR"


class OrderValidationError(OrderError):
    """Submission failed field-level validation."""
    default_code = "ORDER_VALIDATION_FAILED"

    def __init__(self, errors: List[str], message: str = "Validation failed", **kwargs):
        self.errors = list(errors)
        super().__init__(message, details={"errors": self.errors}, **kwargs)


class ItemsUnavailableError(OrderError):
    """One or more line items failed catalog re-verification."""
    default_code = "ITEMS_UNAVAILABLE"

    def __init__(
        self,
        unavailable_items: List[str],
        message: str = "Some items are no longer available",
        **kwargs
    ):
        self.unavailable_items = list(unavailable_items)
        super().__init__(message, details={"unavailableItems": self.unavailable_items}, **kwargs)


class TotalMismatchError(OrderError):
    """Client-submitted total deviates too far from the recomputed total."""
    default_code = "TOTAL_MISMATCH"

    def __init__(
        self,
        submitted_total: Decimal,
        computed_total: Decimal,
        message: str = "Order total has changed. Please review your cart and try again.",
        **kwargs
    ):
        self.submitted_total = submitted_total
        self.computed_total = computed_total
        super().__init__(
            message,
            details={
                "submittedTotal": float(submitted_total),
                "computedTotal": float(computed_total),
            },
            **kwargs
        )


class DuplicateOrderError(OrderError):
    """The same checkout was already submitted."""
    default_code = "DUPLICATE_ORDER"
    status_code = 409

    def __init__(
        self,
        existing_order_id: int,
        message: str = "Duplicate order detected. Your order has already been placed.",
        **kwargs
    ):
        self.existing_order_id = existing_order_id
        super().__init__(message, details={"orderId": existing_order_id}, **kwargs)


class InvalidStatusTransitionError(OrderError):
    """Order status change not permitted by the lifecycle."""
    default_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current_status: str, target_status: str, message: Optional[str] = None, **kwargs):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            message or f"Cannot change order status from '{current_status}' to '{target_status}'",
            details={"currentStatus": current_status, "requestedStatus": target_status},
            **kwargs
        )


# =============================================================================
# INVENTORY ERRORS
# =============================================================================

class InventoryError(StorefrontError):
    """Base exception for inventory-related errors."""
    default_code = "INVENTORY_ERROR"


class StockError(InventoryError):
    """Stock changed between verification and decrement (oversell guard)."""
    default_code = "STOCK_ERROR"
    status_code = 409

    def __init__(
        self,
        message: str,
        variant_id: Optional[int] = None,
        requested_qty: Optional[int] = None,
        **kwargs
    ):
        self.variant_id = variant_id
        self.requested_qty = requested_qty
        super().__init__(
            message,
            details={"unavailableItems": [message]},
            **kwargs
        )


# =============================================================================
# CATALOG ERRORS
# =============================================================================

class CatalogError(StorefrontError):
    """Invalid catalog or cart operation."""
    default_code = "CATALOG_ERROR"

"""
Line-item re-verification and pricing

Only ids and quantities are taken from the client. Prices, active flags and
stock come from a fresh read; variant rows are locked FOR UPDATE so the
stock seen here is the stock the decrement will act on.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.exceptions import ItemsUnavailableError, TotalMismatchError
from storefront.core.utils import to_money
from storefront.models.product import Product, ProductVariant
from storefront.schemas.order import SubmittedItem

logger = logging.getLogger(__name__)


@dataclass
class VerifiedLine:
    """A submitted line priced from authoritative catalog data."""
    product: Product
    variant: Optional[ProductVariant]
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def variant_name(self) -> Optional[str]:
        return self.variant.name if self.variant else None


def describe(product: Product, variant: Optional[ProductVariant] = None) -> str:
    if variant is None:
        return f"'{product.name}'"
    return f"'{product.name}' ({variant.name})"


def compute_total(lines: List[VerifiedLine]) -> Decimal:
    return to_money(sum((line.line_total for line in lines), Decimal("0")))


def check_total(submitted: Decimal, computed: Decimal, tolerance: Optional[float] = None) -> None:
    """
    Reject when the submitted total deviates from the computed one by more
    than ``tolerance`` (relative). A zero computed total is compared absolutely.
    """
    tolerance = Decimal(str(settings.ORDER_TOTAL_TOLERANCE if tolerance is None else tolerance))
    try:
        submitted = to_money(submitted)
        computed = to_money(computed)
    except InvalidOperation:
        logger.warning(f"Order total out of range: submitted={submitted} computed={computed}")
        raise TotalMismatchError(submitted_total=submitted, computed_total=computed)
    difference = abs(submitted - computed)

    if computed == 0:
        mismatch = difference > tolerance
    else:
        mismatch = difference / computed > tolerance

    if mismatch:
        logger.warning(f"Order total mismatch: submitted={submitted} computed={computed}")
        raise TotalMismatchError(submitted_total=submitted, computed_total=computed)


class LineItemPricer:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load_products(self, product_ids) -> Dict[int, Product]:
        if not product_ids:
            return {}
        result = await self.db.execute(select(Product).where(Product.id.in_(product_ids)))
        return {product.id: product for product in result.scalars().all()}

    async def _lock_variants(self, variant_ids) -> Dict[int, ProductVariant]:
        if not variant_ids:
            return {}
        # Lock in id order so concurrent checkouts acquire rows consistently
        result = await self.db.execute(
            select(ProductVariant)
            .where(ProductVariant.id.in_(variant_ids))
            .order_by(ProductVariant.id)
            .with_for_update()
        )
        return {variant.id: variant for variant in result.scalars().all()}

    async def verify(self, items: List[SubmittedItem]) -> List[VerifiedLine]:
        """
        Price every submitted line, or raise ItemsUnavailableError listing
        every problem found. No partial result is ever returned.
        """
        products = await self._load_products(sorted({item.product_id for item in items}))
        variants = await self._lock_variants(
            sorted({item.variant_id for item in items if item.variant_id is not None})
        )

        # Same variant on several lines draws from one stock figure
        requested: Dict[int, int] = defaultdict(int)
        for item in items:
            if item.variant_id is not None:
                requested[item.variant_id] += item.quantity

        lines: List[VerifiedLine] = []
        reasons: List[str] = []
        stock_reported = set()

        for item in items:
            product = products.get(item.product_id)
            if product is None:
                reasons.append(f"Product {item.product_id} not found")
                continue
            if not product.is_active:
                reasons.append(f"{describe(product)} is no longer available")
                continue

            variant = None
            if item.variant_id is not None:
                variant = variants.get(item.variant_id)
                if variant is None:
                    reasons.append(f"Variant {item.variant_id} of {describe(product)} not found")
                    continue
                if variant.product_id != product.id:
                    reasons.append(
                        f"Variant {variant.id} does not belong to {describe(product)}"
                    )
                    continue
                if not variant.is_active:
                    reasons.append(f"{describe(product, variant)} is no longer available")
                    continue
                wanted = requested[variant.id]
                if variant.stock < wanted:
                    if variant.id not in stock_reported:
                        stock_reported.add(variant.id)
                        reasons.append(
                            f"Insufficient stock for {describe(product, variant)} "
                            f"(variant {variant.id}): requested {wanted}, available {variant.stock}"
                        )
                    continue

            unit_price = to_money(variant.price if variant is not None else product.price)
            lines.append(VerifiedLine(
                product=product,
                variant=variant,
                quantity=item.quantity,
                unit_price=unit_price,
            ))

        if reasons:
            logger.info(f"Order rejected, {len(reasons)} unavailable item(s)")
            raise ItemsUnavailableError(reasons)

        return lines

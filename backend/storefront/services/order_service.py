"""
OrderService - order placement and customer order reads

PLACEMENT FLOW (one database transaction):
1. Resolve the owning account (authenticated user, matched guest, or new guest)
2. Re-verify and price every line from the catalog, variant rows FOR UPDATE
3. Compare the recomputed total against the submitted one
4. Duplicate guard: idempotency key replay, then the same-size recent order heuristic
5. Insert order (pending) and lines with name/price snapshots
6. Guarded stock decrement per variant line (stock >= qty in the WHERE clause)
7. Clear the authenticated buyer's cart
8. Commit; any failure before this point rolls everything back, new guest included
9. Re-fetch the joined order, then send credentials / confirmation emails
"""
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.core.config import settings
from storefront.core.exceptions import DuplicateOrderError, NotFoundError, StockError
from storefront.core.security import Principal
from storefront.core.utils import utcnow
from storefront.models import CartItem, Order, OrderItem, OrderStatus, ProductVariant
from storefront.schemas.order import OrderSubmission
from storefront.services.account_service import AccountResolution, AccountService
from storefront.services.notifications import NotificationService, get_notification_service
from storefront.services.pricing import LineItemPricer, VerifiedLine, check_total, compute_total, describe

logger = logging.getLogger(__name__)


def order_load_options():
    """Eager-load lines with their product and variant for responses and emails."""
    return (
        selectinload(Order.items).selectinload(OrderItem.product),
        selectinload(Order.items).selectinload(OrderItem.variant),
    )


@dataclass
class OrderPlacementResult:
    order: Order
    is_new_guest: bool
    user_id: int


class OrderService:
    def __init__(self, db: AsyncSession, notifier: Optional[NotificationService] = None):
        self.db = db
        self._notifier = notifier

    @property
    def notifier(self) -> NotificationService:
        if self._notifier is None:
            self._notifier = get_notification_service()
        return self._notifier

    @staticmethod
    def generate_order_number() -> str:
        """Generate unique order number in format PREFIX-YYYYMMDD-XXXXXXXX."""
        return f"{settings.ORDER_NUMBER_PREFIX}-{utcnow().strftime('%Y%m%d')}-{uuid.uuid4().hex[:8].upper()}"

    async def find_by_idempotency_key(self, user_id: int, idempotency_key: str) -> Optional[Order]:
        result = await self.db.execute(
            select(Order).where(
                Order.user_id == user_id,
                Order.idempotency_key == idempotency_key,
            )
        )
        return result.scalar_one_or_none()

    async def find_recent_same_size(self, user_id: int, line_count: int) -> Optional[Order]:
        """Most recent order by this user inside the duplicate window with the same line count."""
        cutoff = utcnow() - timedelta(seconds=settings.DUPLICATE_ORDER_WINDOW_SECONDS)
        line_counts = (
            select(OrderItem.order_id, func.count(OrderItem.id).label("line_count"))
            .group_by(OrderItem.order_id)
            .subquery()
        )
        result = await self.db.execute(
            select(Order)
            .join(line_counts, line_counts.c.order_id == Order.id)
            .where(
                Order.user_id == user_id,
                Order.created_at >= cutoff,
                line_counts.c.line_count == line_count,
            )
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def find_duplicate(
        self,
        user_id: int,
        line_count: int,
        idempotency_key: Optional[str] = None,
    ) -> Optional[Order]:
        if idempotency_key:
            existing = await self.find_by_idempotency_key(user_id, idempotency_key)
            if existing:
                return existing
        return await self.find_recent_same_size(user_id, line_count)

    async def _decrement_stock(self, line: VerifiedLine) -> None:
        """Conditional decrement; zero affected rows means stock moved under us."""
        result = await self.db.execute(
            update(ProductVariant)
            .where(
                ProductVariant.id == line.variant.id,
                ProductVariant.stock >= line.quantity,
            )
            .values(stock=ProductVariant.stock - line.quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StockError(
                f"Insufficient stock for {describe(line.product, line.variant)} "
                f"(variant {line.variant.id}): requested {line.quantity}",
                variant_id=line.variant.id,
                requested_qty=line.quantity,
            )

    async def _clear_cart(self, user_id: int) -> None:
        try:
            async with self.db.begin_nested():
                await self.db.execute(delete(CartItem).where(CartItem.user_id == user_id))
        except SQLAlchemyError as e:
            logger.error(f"Failed to clear cart for user_id={user_id}: {e}")

    async def _persist(
        self,
        submission: OrderSubmission,
        user_id: int,
        lines: List[VerifiedLine],
        total,
    ) -> Order:
        shipping = submission.shipping
        order = Order(
            user_id=user_id,
            order_number=self.generate_order_number(),
            status=OrderStatus.PENDING.value,
            total=total,
            shipping_name=shipping.full_name,
            shipping_email=shipping.email,
            shipping_phone=shipping.phone,
            shipping_address=shipping.address,
            shipping_city=shipping.city,
            shipping_state=shipping.state,
            shipping_zip=shipping.zip,
            payment_method=submission.payment_method.value,
            idempotency_key=submission.idempotency_key,
            notes=submission.notes,
        )
        order.items = [
            OrderItem(
                product_id=line.product.id,
                variant_id=line.variant.id if line.variant else None,
                product_name=line.product.name,
                variant_name=line.variant_name,
                price=line.unit_price,
                quantity=line.quantity,
            )
            for line in lines
        ]
        self.db.add(order)
        await self.db.flush()

        for line in lines:
            if line.variant is not None:
                await self._decrement_stock(line)

        return order

    async def place_order(
        self,
        submission: OrderSubmission,
        principal: Optional[Principal] = None,
    ) -> OrderPlacementResult:
        """
        Place an order from a validated submission.

        Raises:
            ItemsUnavailableError: a line failed catalog re-verification
            TotalMismatchError: submitted total is outside tolerance
            DuplicateOrderError: the same checkout was already placed
            StockError: a concurrent order took the stock first
        """
        start_time = time.time()
        shipping = submission.shipping
        owner_id: Optional[int] = None

        try:
            account: AccountResolution = await AccountService(self.db).resolve(
                principal, shipping.email, shipping.full_name, shipping.phone
            )
            owner_id = account.user_id

            lines = await LineItemPricer(self.db).verify(submission.items)
            total = compute_total(lines)
            check_total(submission.total, total)

            duplicate = await self.find_duplicate(
                account.user_id, len(submission.items), submission.idempotency_key
            )
            if duplicate:
                logger.warning(
                    f"Duplicate order rejected user_id={account.user_id} existing_order_id={duplicate.id}"
                )
                raise DuplicateOrderError(duplicate.id)

            order = await self._persist(submission, account.user_id, lines, total)

            if principal is not None:
                await self._clear_cart(account.user_id)

            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if submission.idempotency_key and owner_id is not None:
                # Concurrent replay of the same key committed first
                existing = await self.find_by_idempotency_key(owner_id, submission.idempotency_key)
                if existing:
                    raise DuplicateOrderError(existing.id)
            raise
        except Exception:
            await self.db.rollback()
            raise

        order = await self.get_order(order.id)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"ORDER_METRIC: order_created "
            f"order_id={order.id} "
            f"user_id={account.user_id} "
            f"total={order.total} "
            f"line_count={len(order.items)} "
            f"new_guest={account.is_new_guest} "
            f"duration_ms={duration_ms:.2f}"
        )

        if account.is_new_guest:
            await self.notifier.send_account_credentials(
                shipping.email, account.generated_password, shipping.full_name
            )
        await self.notifier.send_order_confirmation(shipping.email, order)

        return OrderPlacementResult(order=order, is_new_guest=account.is_new_guest, user_id=account.user_id)

    async def get_order(self, order_id: int) -> Order:
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(*order_load_options())
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def list_user_orders(self, user_id: int, page: int = 1, per_page: int = 20) -> Tuple[List[Order], int]:
        total = await self.db.scalar(
            select(func.count(Order.id)).where(Order.user_id == user_id)
        )
        result = await self.db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .options(*order_load_options())
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return list(result.scalars().all()), total or 0

    async def get_user_order(self, user_id: int, order_id: int) -> Order:
        """An order is only visible to its owner; others get the same 404."""
        order = await self.get_order(order_id)
        if order.user_id != user_id:
            raise NotFoundError("Order not found")
        return order

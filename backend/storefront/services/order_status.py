"""
Order status lifecycle

    pending -> processing -> shipped -> delivered
        \\           \\           \\
         +-----------+-----------+--> cancelled

Forward moves may skip states. Delivered and cancelled are terminal.
Cancelling puts every variant line's quantity back on the shelf in the same
transaction that flips the status.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.core.exceptions import InvalidStatusTransitionError, NotFoundError
from storefront.core.utils import utcnow
from storefront.models import Order, OrderItem, OrderStatus, ProductVariant

logger = logging.getLogger(__name__)

FORWARD_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]
TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

STATUS_TIMESTAMPS = {
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


def validate_transition(current, target) -> None:
    """Raise InvalidStatusTransitionError unless ``current -> target`` is allowed."""
    try:
        current_status = OrderStatus(current)
        target_status = OrderStatus(target)
    except ValueError:
        raise InvalidStatusTransitionError(str(current), str(target), "Unknown order status")

    if current_status in TERMINAL_STATUSES:
        raise InvalidStatusTransitionError(
            current_status.value,
            target_status.value,
            f"Order is already {current_status.value} and cannot be changed",
        )
    if current_status == target_status:
        raise InvalidStatusTransitionError(
            current_status.value,
            target_status.value,
            f"Order is already {current_status.value}",
        )
    if target_status == OrderStatus.CANCELLED:
        return
    if FORWARD_FLOW.index(target_status) < FORWARD_FLOW.index(current_status):
        raise InvalidStatusTransitionError(current_status.value, target_status.value)


def admin_order_load_options():
    return (
        selectinload(Order.user),
        selectinload(Order.items).selectinload(OrderItem.product),
        selectinload(Order.items).selectinload(OrderItem.variant),
    )


class OrderStatusService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_order(self, order_id: int) -> Order:
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(*admin_order_load_options())
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def list_orders(
        self,
        status: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        email: Optional[str] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> Tuple[List[Order], int]:
        """All orders, newest first, with optional filters."""
        conditions = []
        if status:
            conditions.append(Order.status == status)
        if date_from:
            conditions.append(Order.created_at >= date_from)
        if date_to:
            conditions.append(Order.created_at <= date_to)
        if email:
            conditions.append(Order.shipping_email.ilike(f"%{email.strip()}%"))

        total = await self.db.scalar(select(func.count(Order.id)).where(*conditions))
        result = await self.db.execute(
            select(Order)
            .where(*conditions)
            .options(*admin_order_load_options())
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def _lock_order(self, order_id: int) -> Order:
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.items))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def _restore_stock(self, order: Order) -> int:
        restored = 0
        for item in order.items:
            if item.variant_id is None:
                continue
            await self.db.execute(
                update(ProductVariant)
                .where(ProductVariant.id == item.variant_id)
                .values(stock=ProductVariant.stock + item.quantity)
                .execution_options(synchronize_session=False)
            )
            restored += item.quantity
        return restored

    async def transition(self, order_id: int, target) -> Order:
        """
        Move an order to ``target``. Cancellation restores stock.

        The order row is locked for the duration, so two admins cannot both
        cancel (and double-restore) the same order.
        """
        target_status = OrderStatus(target)
        try:
            order = await self._lock_order(order_id)
            previous = order.status
            validate_transition(previous, target_status)

            if target_status == OrderStatus.CANCELLED:
                restored = await self._restore_stock(order)
                logger.info(f"Order {order.id} cancelled, restored {restored} unit(s) of stock")

            order.status = target_status.value
            timestamp_field = STATUS_TIMESTAMPS.get(target_status)
            if timestamp_field:
                setattr(order, timestamp_field, utcnow())

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Order {order_id} status {previous} -> {target_status.value}")
        return await self.get_order(order_id)

    async def cancel(self, order_id: int) -> Order:
        return await self.transition(order_id, OrderStatus.CANCELLED)

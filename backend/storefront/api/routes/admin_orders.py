"""
Admin Orders Routes

Fulfillment endpoints for managing all orders.
Requires admin authentication.
"""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.database import get_db
from storefront.models.order import OrderStatus
from storefront.models.user import User
from storefront.schemas.order import AdminOrderList, AdminOrderResponse, OrderStatusUpdate
from storefront.services.order_status import OrderStatusService
from storefront.api.deps import get_current_admin

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=AdminOrderList)
async def list_all_orders(
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="Filter by status"),
    email: Optional[str] = Query(None, description="Customer email contains"),
    date_from: Optional[datetime] = Query(None, description="Created at or after"),
    date_to: Optional[datetime] = Query(None, description="Created at or before"),
    limit: int = Query(25, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """Get all orders with filters (admin only)."""
    orders, total = await OrderStatusService(db).list_orders(
        status=status_filter.value if status_filter else None,
        date_from=date_from,
        date_to=date_to,
        email=email,
        limit=limit,
        offset=offset,
    )
    return AdminOrderList(orders=orders, total=total, limit=limit, offset=offset)


@router.get("/{order_id}", response_model=AdminOrderResponse)
async def get_order(
    order_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Get single order details (admin only)."""
    return await OrderStatusService(db).get_order(order_id)


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Move an order along its lifecycle (admin only)."""
    order = await OrderStatusService(db).transition(order_id, payload.status)
    logger.info(f"Admin {admin.id} set order {order_id} to {order.status}")
    return {
        "success": True,
        "message": f"Order status updated to {order.status}",
        "order": AdminOrderResponse.model_validate(order).model_dump(mode="json"),
    }


@router.put("/{order_id}/cancel")
async def cancel_order(
    order_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Cancel an order and restore its stock (admin only)."""
    order = await OrderStatusService(db).cancel(order_id)
    logger.info(f"Admin {admin.id} cancelled order {order_id}")
    return {
        "success": True,
        "message": "Order cancelled",
        "order": AdminOrderResponse.model_validate(order).model_dump(mode="json"),
    }

"""
Order routes

Checkout accepts guests: without a usable bearer token the order is attached
to the account matching the shipping email, or to a newly created one.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.database import get_db
from storefront.core.exceptions import OrderValidationError
from storefront.core.rate_limit import limiter
from storefront.core.security import Principal
from storefront.models.user import User
from storefront.schemas.order import OrderList, OrderResponse
from storefront.services.order_service import OrderService
from storefront.services.order_validation import validate_order_submission
from storefront.api.deps import get_current_user, get_optional_principal

logger = logging.getLogger(__name__)

router = APIRouter()

# Pagination limits
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_CHECKOUT)
async def create_order(
    request: Request,
    principal: Optional[Principal] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Place an order.

    The body is validated by hand so every field problem is reported at
    once in the ``{success, message, errors}`` envelope.
    """
    try:
        raw = await request.json()
    except ValueError:
        raw = None

    submission, errors = validate_order_submission(raw)
    if errors:
        raise OrderValidationError(errors)

    result = await OrderService(db).place_order(submission, principal)

    message = "Order placed successfully"
    if result.is_new_guest:
        message += ". Check your email for your account login details."

    return {
        "success": True,
        "message": message,
        "orderId": result.order.id,
        "order": OrderResponse.model_validate(result.order).model_dump(mode="json"),
        "isGuest": result.is_new_guest,
        "userId": result.user_id,
    }


@router.get("", response_model=OrderList)
async def list_orders(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
):
    """Get current user's orders, newest first."""
    orders, total = await OrderService(db).list_user_orders(user.id, page, per_page)
    return OrderList(orders=orders, total=total, page=page, per_page=per_page)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get single order"""
    return await OrderService(db).get_user_order(user.id, order_id)

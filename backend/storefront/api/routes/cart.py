"""
Cart routes

Registered users only; guest browsing tokens are rejected by get_current_user.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.database import get_db
from storefront.models.user import User
from storefront.schemas.cart import CartItemCreate, CartItemUpdate, CartResponse
from storefront.services.cart_service import CartService
from storefront.api.deps import get_current_user

router = APIRouter()


async def _cart_response(service: CartService) -> CartResponse:
    items, subtotal, item_count = await service.get_cart()
    return CartResponse(items=items, subtotal=float(subtotal), item_count=item_count)


@router.get("", response_model=CartResponse)
async def get_cart(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get current user's cart"""
    return await _cart_response(CartService(db, user.id))


@router.post("/items", response_model=CartResponse, status_code=status.HTTP_201_CREATED)
async def add_to_cart(
    item_data: CartItemCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = CartService(db, user.id)
    await service.add_item(item_data.product_id, item_data.variant_id, item_data.quantity)
    return await _cart_response(service)


@router.put("/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: int,
    item_data: CartItemUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = CartService(db, user.id)
    await service.update_quantity(item_id, item_data.quantity)
    return await _cart_response(service)


@router.delete("/items/{item_id}", response_model=CartResponse)
async def remove_from_cart(
    item_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = CartService(db, user.id)
    await service.remove_item(item_id)
    return await _cart_response(service)


@router.delete("", response_model=CartResponse)
async def clear_cart(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = CartService(db, user.id)
    await service.clear()
    return await _cart_response(service)

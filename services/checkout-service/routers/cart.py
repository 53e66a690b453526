"""Cart API router."""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException

from schemas import AddToCartRequest, CartResponse, OkResponse
from dependencies import get_cart_service, get_session_id, ensure_session_id
from errors import UnknownProduct, InvalidQuantity
from services.cart_service import CartService

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("", response_model=CartResponse)
async def get_cart(
    session_id: Optional[str] = Depends(get_session_id),
    cart_service: CartService = Depends(get_cart_service)
):
    """Get the session's cart with totals."""
    return cart_service.get_cart(session_id)


@router.post("/add", response_model=OkResponse)
async def add_to_cart(
    request: AddToCartRequest,
    session_id: str = Depends(ensure_session_id),
    cart_service: CartService = Depends(get_cart_service)
):
    """Add a product to the session's cart."""
    try:
        cart_service.add(session_id, request.sku, request.qty)
    except (UnknownProduct, InvalidQuantity):
        raise HTTPException(status_code=400, detail="invalid_input")
    return {"ok": True}


@router.post("/clear", response_model=OkResponse)
async def clear_cart(
    session_id: Optional[str] = Depends(get_session_id),
    cart_service: CartService = Depends(get_cart_service)
):
    """Empty the session's cart."""
    if session_id is not None:
        cart_service.clear(session_id)
    return {"ok": True}

"""Checkout and orders API router."""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session

from database import get_db
from schemas import CheckoutResponse, OrderResponse
from dependencies import get_order_service, get_session_id
from errors import EmptyCart, CheckoutFailed, OrderNotFound
from services.order_service import OrderService

router = APIRouter(prefix="/api", tags=["orders"])


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
    db: Session = Depends(get_db),
    session_id: Optional[str] = Depends(get_session_id),
    order_service: OrderService = Depends(get_order_service)
):
    """Persist the session's cart as an order and return the receipt."""
    if session_id is None:
        raise HTTPException(status_code=400, detail=EmptyCart.code)

    try:
        receipt = order_service.checkout(db, session_id)
    except EmptyCart:
        raise HTTPException(status_code=400, detail=EmptyCart.code)
    except CheckoutFailed:
        raise HTTPException(status_code=500, detail=CheckoutFailed.code)

    return {"receipt": receipt}


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int = Path(..., description="Order ID"),
    db: Session = Depends(get_db),
    order_service: OrderService = Depends(get_order_service)
):
    """Get a persisted order with its lines."""
    try:
        return order_service.get_order(db, order_id)
    except OrderNotFound:
        raise HTTPException(status_code=404, detail=OrderNotFound.code)

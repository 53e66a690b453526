"""Dependency injection for services and session identity."""
import secrets
from typing import Optional
import redis
from fastapi import Depends, Request, Response

from config import SESSION_COOKIE_NAME, SESSION_TTL_SECONDS, SESSION_COOKIE_SECURE
from services.cart_service import CartService, CartStore, RedisCartStore
from services.order_service import OrderService


def get_redis(request: Request) -> redis.Redis:
    """Get Redis client from app state."""
    return request.app.state.redis_client


def get_cart_store(request: Request) -> CartStore:
    """Get the session cart store."""
    return RedisCartStore(get_redis(request))


def get_cart_service(store: CartStore = Depends(get_cart_store)) -> CartService:
    """Get cart service instance."""
    return CartService(store)


def get_order_service(cart_service: CartService = Depends(get_cart_service)) -> OrderService:
    """Get order service instance."""
    return OrderService(cart_service)


def get_session_id(request: Request) -> Optional[str]:
    """Session id from the cookie, or None for a visitor without a cart yet."""
    return request.cookies.get(SESSION_COOKIE_NAME)


def ensure_session_id(request: Request, response: Response) -> str:
    """
    Session id for requests that mutate the cart.

    Issues a new opaque id and sets the cookie when the visitor has none.
    """
    session_id = get_session_id(request)
    if session_id:
        return session_id

    session_id = secrets.token_urlsafe(32)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        session_id,
        max_age=SESSION_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        secure=SESSION_COOKIE_SECURE
    )
    return session_id
